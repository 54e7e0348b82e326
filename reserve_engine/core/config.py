# reserve_engine/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz

from .time_slots import is_valid_time_format


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = _PROJECT_ROOT / ".env"
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    # Environment
    environment: Literal["development", "test", "production"] = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Deployment environment name",
    )

    # Database
    database_url: str = Field(
        default="sqlite+pysqlite:///./reserve_engine.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL of the reservation store",
    )
    test_database_url: Optional[str] = Field(
        default=None,
        alias="TEST_DATABASE_URL",
        description="Store used by integration tests; falls back to a temporary SQLite file",
    )
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE", ge=1)
    db_max_overflow: int = Field(default=5, alias="DB_MAX_OVERFLOW", ge=0)
    db_pool_timeout: int = Field(default=5, alias="DB_POOL_TIMEOUT", ge=1)
    store_lock_timeout_seconds: float = Field(
        default=5.0,
        alias="STORE_LOCK_TIMEOUT_SECONDS",
        gt=0,
        description="Upper bound on waiting for a slot lock or busy store before giving up",
    )

    # Reservation policy
    auto_assign_staff: bool = Field(
        default=True,
        alias="AUTO_ASSIGN_STAFF",
        description="Pick a free staff member when a reservation names none",
    )
    prevent_customer_double_booking: bool = Field(
        default=True,
        alias="PREVENT_CUSTOMER_DOUBLE_BOOKING",
        description="Reject reservations overlapping the customer's own active reservations",
    )
    notes_max_length: int = Field(default=500, alias="NOTES_MAX_LENGTH", ge=0)
    business_timezone: str = Field(
        default="Asia/Tokyo",
        alias="BUSINESS_TIMEZONE",
        description="Timezone used to decide what 'today' is for past-date checks",
    )

    # Store hours used when a tenant has no settings row
    default_open_time: str = Field(default="09:00", alias="DEFAULT_OPEN_TIME")
    default_close_time: str = Field(default="20:00", alias="DEFAULT_CLOSE_TIME")
    default_slot_interval_minutes: int = Field(
        default=30, alias="DEFAULT_SLOT_INTERVAL_MINUTES", gt=0
    )

    # Email settings
    email_provider: Literal["console", "resend"] = Field(
        default="console",
        alias="EMAIL_PROVIDER",
        description="Email provider name",
    )
    resend_api_key: Optional[SecretStr] = Field(
        default=None,
        alias="RESEND_API_KEY",
        description="API key for Resend provider (optional)",
    )
    from_email: str = Field(default="Reserve <noreply@example.com>", alias="FROM_EMAIL")

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("default_open_time", "default_close_time")
    @classmethod
    def _validate_store_hours(cls, value: str) -> str:
        if not is_valid_time_format(value):
            raise ValueError(f"Store hours must use HH:MM, got {value!r}")
        return value

    @field_validator("business_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    def get_database_url(self) -> str:
        """Return the store URL for the current context (tests use their own store)."""
        if is_running_tests() and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
