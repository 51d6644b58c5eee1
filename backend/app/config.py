"""Application configuration."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Settings
    APP_NAME: str = "Workflow Automation Engine"
    APP_VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database Settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./workflows.db"
    SQLALCHEMY_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30

    # Redis Settings
    REDIS_URL: str = "redis://localhost:6379/0"

    # Continuation scheduling
    SCHEDULER_BACKEND: str = "celery"  # celery or polling
    SCHEDULER_POLL_INTERVAL_SECONDS: int = 60
    SCHEDULER_BATCH_SIZE: int = 10

    # Step retry preset: none, quick, standard, aggressive, gentle
    STEP_RETRY_PRESET: str = "none"

    # Outbound email
    ADMIN_EMAIL: str = "admin@example.com"
    EMAIL_DELIVERY: str = "http"  # http or smtp
    EMAIL_SERVICE_URL: str = ""
    EMAIL_SERVICE_TOKEN: str = ""
    EMAIL_FROM_ADDRESS: str = "noreply@example.com"
    EMAIL_FROM_NAME: str = "Workflow Automation"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    INTERNAL_ALERT_WEBHOOK_URL: str = ""

    # Links embedded in outgoing messages
    PLAN_BUILDER_URL: str = "https://app.example.com/plan-builder"

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8080"
    ALLOW_CREDENTIALS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse ALLOWED_ORIGINS string into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def uses_polling_scheduler(self) -> bool:
        """True when delayed executions are picked up by the in-process poller."""
        return self.SCHEDULER_BACKEND.lower() == "polling"

    def validate_delivery(self) -> None:
        """Validate that outbound email is wired in production.

        Raises:
            RuntimeError: If production uses HTTP delivery without a service URL
        """
        if self.is_production and self.EMAIL_DELIVERY == "http" and not self.EMAIL_SERVICE_URL:
            raise RuntimeError(
                "EMAIL_SERVICE_URL must be set in production when EMAIL_DELIVERY=http."
            )

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings.

    Uses caching to ensure settings are loaded only once.

    Returns:
        Settings object with all configuration values
    """
    return Settings()
