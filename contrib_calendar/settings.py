from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Values are read from process environment and optionally from `.env`.
    """

    github_token: str | None = None
    github_graphql_url: str = "https://api.github.com/graphql"
    github_api_base_url: str = "https://api.github.com"
    github_timeout_seconds: float = 20.0
    cache_ttl_seconds: int = 600

    proxy_base_url: str = "/contributions"
    week_start: int = 0
    days_to_show: int = 167
    events_per_page: int = 100
    events_max_pages: int = 10

    sentry_dsn: str | None = None
    environment: str = "development"
    release: str | None = None
    sentry_traces_sample_rate: float = 0.1
    rate_limit_per_minute: int = 30
    rate_limit_window_seconds: int = 60
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def get_settings() -> Settings:
    return Settings()
