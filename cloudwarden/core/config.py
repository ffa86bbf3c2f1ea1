from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# Environment Constants
ENV_PRODUCTION = "production"
ENV_STAGING = "staging"
ENV_DEVELOPMENT = "development"
ENV_LOCAL = "local"


class Settings(BaseSettings):
    """
    Main configuration for CloudWarden.
    Uses Pydantic-Settings for environment variable parsing from .env.
    """

    APP_NAME: str = "CloudWarden"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    # ENVIRONMENT options: local, development, staging, production
    ENVIRONMENT: str = ENV_DEVELOPMENT
    TESTING: bool = False

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./cloudwarden.sqlite"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Cloud account service (credentials are owned there, never stored here)
    CLOUD_ACCOUNT_SERVICE_URL: str = "http://localhost:8001"
    CLOUD_ACCOUNT_TIMEOUT_SECONDS: float = 10.0

    # AWS
    AWS_DEFAULT_REGION: str = "us-east-1"
    AWS_ENDPOINT_URL: Optional[str] = None  # For LocalStack/testing

    # Audit rule thresholds
    AUDIT_SQL_PEAK_LOOKBACK_DAYS: int = 30
    AUDIT_SQL_PEAK_DANGER_PCT: float = 30.0
    AUDIT_SQL_PEAK_WARNING_PCT: float = 60.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT in (ENV_PRODUCTION, ENV_STAGING)


@lru_cache
def get_settings() -> Settings:
    """Returns a singleton instance of the application settings."""
    return Settings()
