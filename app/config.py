"""Application configuration via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Car Rental Booking API"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"
    public_base_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "rental"
    postgres_password: str = Field(default="rental_secret")
    postgres_db: str = "car_rental"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    database_url_override: Optional[str] = None  # e.g. sqlite+aiosqlite:///./local.db

    @computed_field
    @property
    def database_url(self) -> str:
        """Async database connection URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis (Celery broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # JWT Authentication
    jwt_secret_key: str = Field(default="your-super-secret-key-change-in-production")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7

    # Card payment gateway (JCC REST API)
    gateway_test_mode: bool = True
    gateway_test_api_url: str = "https://gateway-test.jcc.com.cy"
    gateway_prod_api_url: str = "https://gateway.jcc.com.cy"
    gateway_test_login: Optional[str] = None
    gateway_test_password: Optional[str] = None
    gateway_prod_login: Optional[str] = None
    gateway_prod_password: Optional[str] = None
    gateway_timeout_seconds: float = 30.0
    currency: str = "EUR"
    currency_numeric_codes: dict[str, str] = {"EUR": "978", "USD": "840"}

    # Email (SendGrid)
    sendgrid_api_key: Optional[str] = None
    email_from_address: str = "bookings@example.com"
    email_from_name: str = "Car Rentals"
    notification_timeout_seconds: float = 10.0
    # Hand committed notifications to the Celery worker instead of sending in-process
    notification_queue_enabled: bool = False

    # Order / invoice numbering
    order_number_prefix: str = "K"
    invoice_number_prefix: str = "P"
    sequence_number_width: int = 6

    # Payment reconciliation
    reconciliation_stale_minutes: int = 30
    reconciliation_batch_size: int = 50
    reconciliation_interval_minutes: int = 15

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
