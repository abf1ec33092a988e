# studio_booking/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).resolve().parents[2] / ".env"
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment mode")

    database_url: str = Field(
        default="sqlite:///./studio_booking.db",
        description="SQLAlchemy database URL",
    )

    # Temporal policy
    studio_timezone: str = Field(
        default="Europe/Tirane",
        description="Canonical studio timezone used for every cutoff comparison",
    )
    booking_lockout_minutes: int = Field(
        default=15, description="New bookings are refused this close to class start"
    )
    cancellation_notice_minutes: int = Field(
        default=120, description="Minimum notice required to cancel a booking"
    )

    # Entitlements
    unlimited_allotment_sentinel: int = Field(
        default=999,
        description="Monthly allotments at or above this value are treated as unlimited",
    )

    # Reminders
    default_reminder_lead_minutes: int = Field(
        default=15, description="Reminder lead time when a member has no preference"
    )
    reminder_dispatch_batch_size: int = Field(default=50)
    reminder_dispatch_interval_seconds: int = Field(default=60)

    # Per-class critical section
    class_lock_backend: Literal["local", "redis"] = Field(
        default="local",
        description="'local' for in-process locks, 'redis' to also lock across processes",
    )
    redis_url: str = Field(default="redis://localhost:6379/0")
    class_lock_ttl_seconds: int = Field(default=30)
    class_lock_wait_seconds: float = Field(default=10.0)
    lock_namespace: str = Field(default="studio")

    # Logging
    log_level: str = Field(default="INFO")
    structured_logs: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("studio_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown studio timezone: {value}")
        return value

    @field_validator("class_lock_backend", mode="before")
    @classmethod
    def _normalize_lock_backend(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _validate_windows(self) -> "Settings":
        for name in (
            "booking_lockout_minutes",
            "cancellation_notice_minutes",
            "default_reminder_lead_minutes",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.unlimited_allotment_sentinel < 1:
            raise ValueError("unlimited_allotment_sentinel must be >= 1")
        if self.class_lock_wait_seconds <= 0:
            raise ValueError("class_lock_wait_seconds must be > 0")
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
