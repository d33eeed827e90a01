import logging

import pytest

from contrib_calendar.core.observability import LOG_FORMAT
from contrib_calendar.core.observability import init_logging
from contrib_calendar.main import create_app
from contrib_calendar.settings import Settings


DSN = "https://examplePublicKey@o0.ingest.sentry.io/0"


@pytest.fixture
def sentry_calls(monkeypatch) -> list[dict[str, object]]:
    calls: list[dict[str, object]] = []
    monkeypatch.setattr(
        "contrib_calendar.core.observability.sentry_sdk.init",
        lambda **kwargs: calls.append(kwargs),
    )
    return calls


def test_create_app_without_dsn_leaves_sentry_off(sentry_calls) -> None:
    create_app(Settings(sentry_dsn=None))

    assert sentry_calls == []


def test_create_app_reports_to_sentry_from_environment(
    monkeypatch, sentry_calls
) -> None:
    """SENTRY_* variables reach the SDK without leaking request PII."""

    monkeypatch.setenv("SENTRY_DSN", DSN)
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("RELEASE", "contrib-calendar@1.2.0")
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "0")

    create_app()

    assert sentry_calls == [
        {
            "dsn": DSN,
            "environment": "production",
            "release": "contrib-calendar@1.2.0",
            "traces_sample_rate": 0.0,
            "send_default_pii": False,
        }
    ]


@pytest.mark.parametrize(
    ("log_level", "expected"), [("debug", "DEBUG"), ("WARNING", "WARNING")]
)
def test_init_logging_uses_configured_level(monkeypatch, log_level, expected) -> None:
    calls: list[dict[str, object]] = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    init_logging(Settings(log_level=log_level))

    assert calls == [{"level": expected, "format": LOG_FORMAT}]


def test_settings_reads_proxy_configuration_from_environment(monkeypatch) -> None:
    """Token and cache TTL come from the process environment."""

    monkeypatch.setenv("GITHUB_TOKEN", "ghp_example")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "120")

    settings = Settings()

    assert settings.github_token == "ghp_example"
    assert settings.cache_ttl_seconds == 120
