"""
Application configuration using pydantic-settings.
All config is validated at startup - fail fast if anything is missing.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_base_url: str = "http://localhost:8000"
    app_secret_key: str
    log_level: str = "INFO"
    allowed_origins: str = ""  # Comma-separated CORS origins (auto-includes localhost in dev)

    # Database
    database_url: str
    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Redis (worker heartbeats, alert cooldowns)
    redis_url: str = "redis://localhost:6379/0"

    # Auth - tokens are issued by the identity provider, verified here
    jwt_secret: str = ""
    jwt_expiry_hours: int = 24

    # Sentry
    sentry_dsn: str = ""

    # Alerting
    alert_webhook_url: str = ""  # Discord/Slack webhook URL for ops alerts

    # Payouts
    default_commission_percentage: float = 15.0
    payout_export_max_rows: int = 10000

    # Auto-assignment worker
    auto_assign_enabled: bool = False
    auto_assign_poll_seconds: int = 300
    auto_assign_after_minutes: int = 30

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
