"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): single instance per process
    - Slot windows are interpreted in exactly one timezone (slot_timezone)

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
    - Lifecycle thresholds live here, not in routes: ops can tune grace/threshold per deployment
    - Skip bounds may only narrow 1..30, the range the skip_requests CHECK constraint enforces
"""

from datetime import timedelta, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://prayer:prayer@db:5432/prayer_slots"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Slots
    slot_timezone: str = "UTC"
    slot_length_minutes: int = 30
    seed_slots_on_startup: bool = True

    # Lifecycle rules
    attendance_grace_minutes: int = Field(15, ge=0, le=120)
    auto_release_threshold: int = Field(5, ge=1)
    skip_min_days: int = Field(1, ge=1, le=30)
    skip_max_days: int = Field(30, ge=1, le=30)

    # Auto-release sweep (original missed-slot check ran every 5 minutes)
    sweep_enabled: bool = True
    sweep_interval_seconds: int = Field(300, ge=1)
    sweep_lookback_days: int = Field(7, ge=1)

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def slot_tz(self) -> tzinfo:
        if self.slot_timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.slot_timezone)

    @property
    def attendance_grace(self) -> timedelta:
        return timedelta(minutes=self.attendance_grace_minutes)


@lru_cache
def get_settings() -> Settings:
    return Settings()
