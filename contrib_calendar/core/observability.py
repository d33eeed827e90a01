import logging

import sentry_sdk

from contrib_calendar.settings import Settings


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def init_logging(app_settings: Settings) -> None:
    """Configure root logging once with the configured level."""

    logging.basicConfig(level=app_settings.log_level.upper(), format=LOG_FORMAT)


def init_sentry(app_settings: Settings) -> None:
    """Initialize Sentry SDK when DSN is configured."""

    if not app_settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=app_settings.sentry_dsn,
        environment=app_settings.environment,
        release=app_settings.release,
        traces_sample_rate=app_settings.sentry_traces_sample_rate,
        send_default_pii=False,
    )
