# app/config/settings.py

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True
    )

    # Redis Configuration
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DECODE_RESPONSES: bool = True

    # PostgreSQL Configuration
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "drift_db"

    # Application Configuration
    APP_NAME: str = "Drift Relationships"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Relationship store retries (transient database failures)
    STORE_MAX_RETRIES: int = 3
    STORE_RETRY_BASE_DELAY: float = 0.05  # seconds, doubled on every attempt
    STORE_RETRY_MAX_DELAY: float = 1.0

    # Relationship events
    EVENTS_CHANNEL_PREFIX: str = "drift:events"
    NOTIFICATION_INBOX_PREFIX: str = "drift:inbox"
    NOTIFICATION_INBOX_SIZE: int = 100

    @property
    def DATABASE_URL(self) -> str:
        """Construct PostgreSQL connection URL for SQLAlchemy"""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"


settings = Settings()
