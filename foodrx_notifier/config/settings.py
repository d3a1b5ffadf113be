from typing import List, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    ENVIRONMENT: str = "development"
    NAME: str = "FoodRx Notifier"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None
    LOG_JSON: bool = False
    LOG_ROTATION: str = "20 MB"
    LOG_RETENTION: str = "14 days"

    # CORS
    ALLOWED_HOSTS: List[str] = ["*"]

    # Database
    DATABASE_URL: str = "sqlite:///./foodrx.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 3600
    DB_CONNECT_TIMEOUT: int = 5

    # Redis & Celery
    REDIS_PASSWORD: str = ""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # Firebase Cloud Messaging
    FIREBASE_SERVICE_ACCOUNT_B64: Optional[str] = None
    FIREBASE_PROJECT_ID: Optional[str] = None

    # Notification pipeline
    NOTIFICATION_TIMEZONE: str = "America/New_York"
    EXPIRY_WINDOW_DAYS: int = 3
    GENERATION_BATCH_SIZE: int = 1000
    DELIVERY_BATCH_SIZE: int = 1000
    DIGEST_MAX_NAMES: int = 3
    WEEK_END_WEEKDAY: int = 5  # Monday == 0, so Saturday
    RUN_TIME_BUDGET_SECONDS: int = 23 * 60

    @field_validator(
        "GENERATION_BATCH_SIZE", "DELIVERY_BATCH_SIZE", "DIGEST_MAX_NAMES"
    )
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("WEEK_END_WEEKDAY")
    def must_be_weekday(cls, v: int) -> int:
        if not 0 <= v <= 6:
            raise ValueError("must be between 0 (Monday) and 6 (Sunday)")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
