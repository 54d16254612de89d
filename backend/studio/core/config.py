# backend/studio/core/config.py
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.info(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    app_name: str = Field(default=BRAND_NAME, description="Display name of the service")
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "environment"),
        description="Deployment environment (development, staging, production)",
    )

    # Storage
    database_url: str = Field(
        default="sqlite:///./studio.db",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
        description="SQLAlchemy database URL",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements to the log")
    redis_url: str = Field(
        default="redis://localhost:6379",
        validation_alias=AliasChoices("REDIS_URL", "redis_url"),
        description="Redis URL used as the Celery broker",
    )

    # Studio scheduling rules
    studio_timezone: str = Field(
        default="Asia/Bangkok",
        validation_alias=AliasChoices("STUDIO_TIMEZONE", "studio_timezone"),
        description="IANA timezone the studio operates in",
    )
    session_duration_minutes: int = Field(
        default=60,
        description="Default length of a session when only a start time is given",
    )
    min_booking_hours_advance: int = Field(
        default=24,
        description="Customers must request bookings at least this many hours ahead",
    )
    max_concurrent_teachers: int = Field(
        default=2,
        description="Maximum distinct teachers with overlapping sessions in the studio",
    )

    # Cancellation windows (hours before start)
    cancellation_direct_hours: int = Field(
        default=12,
        description="At or beyond this many hours a cancellation is applied immediately",
    )
    cancellation_request_hours: int = Field(
        default=6,
        description="Below this many hours a cancellation is refused outright",
    )

    # Background sweeps
    auto_confirm_enabled: bool = Field(
        default=True, description="Auto-confirm customer requests left pending too long"
    )
    auto_confirm_after_hours: int = Field(
        default=12,
        description="Pending requests older than this are confirmed by the sweep",
    )
    sweep_interval_minutes: int = Field(
        default=60, description="How often the session sweep runs under Celery beat"
    )
    session_reminders_enabled: bool = Field(
        default=True, description="Remind customers 24h and 6h before confirmed sessions"
    )

    # Collaborators
    calendar_sync_enabled: bool = Field(
        default=False, description="Push confirmed sessions to the external calendar"
    )
    notifications_enabled: bool = Field(
        default=True, description="Enqueue customer/teacher notifications"
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("session_duration_minutes", "max_concurrent_teachers")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @model_validator(mode="after")
    def _validate_cancellation_windows(self) -> "Settings":
        if self.cancellation_request_hours > self.cancellation_direct_hours:
            raise ValueError(
                "cancellation_request_hours must not exceed cancellation_direct_hours"
            )
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
