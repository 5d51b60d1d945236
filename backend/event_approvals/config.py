"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./event_approvals.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    APP_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Request local times are interpreted in this zone when publishing events
    CALENDAR_TIMEZONE: str = "America/New_York"

    FEEDBACK_MIN_LENGTH: int = 10
    FEEDBACK_MAX_LENGTH: int = 1000
    DELETE_REASON_MAX_LENGTH: int = 500

    NOTIFICATION_MAX_ATTEMPTS: int = 3
    NOTIFICATION_RETRY_BACKOFF_SECONDS: float = 0.5

    EMAIL_ENABLED: bool = False
    EMAIL_FROM: str = "events@church.org"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True

    class Config:
        env_file = ".env"


settings = Settings()
