from datetime import time
from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_time_of_day(value) -> time:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) string into a ``time``."""
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid time of day: {value!r} (expected HH:MM)") from exc


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production", "test"] = "local"
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Karachi"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./attendance.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Worker
    REDIS_URL: str = "redis://localhost:6379/0"

    # Attendance rules
    ATTENDANCE_CUTOFF_TIME: time = time(7, 0)
    ON_TIME_THRESHOLD: Optional[time] = None

    # Daily job triggers (local time in TIMEZONE)
    ABSENCE_SWEEP_TIME: time = time(7, 5)
    LEAVE_REJECTION_TIME: time = time(23, 55)
    REMINDER_TIME: time = time(18, 0)

    # Email
    COMMUNICATIONS_SERVICE_URL: str = "http://communications-service:8004"
    SMTP_HOST: str = "smtp-relay.brevo.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    DEFAULT_FROM_EMAIL: str = "no-reply@attendance.local"
    DEFAULT_FROM_NAME: str = "Attendance Desk"

    # Identity
    # Placeholder keeps local/test runs working; real deployments override via env.
    JWT_SECRET: str = "test-jwt-secret"
    JWT_ALGORITHM: str = "HS256"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v

    @field_validator(
        "ATTENDANCE_CUTOFF_TIME",
        "ABSENCE_SWEEP_TIME",
        "LEAVE_REJECTION_TIME",
        "REMINDER_TIME",
        mode="before",
    )
    @classmethod
    def parse_required_time(cls, v):
        return parse_time_of_day(v)

    @field_validator("ON_TIME_THRESHOLD", mode="before")
    @classmethod
    def parse_optional_time(cls, v):
        if v is None or v == "":
            return None
        return parse_time_of_day(v)

    @field_validator("TIMEZONE")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v!r}") from exc
        return v

    @model_validator(mode="after")
    def check_on_time_threshold(self) -> "Settings":
        if (
            self.ON_TIME_THRESHOLD is not None
            and self.ON_TIME_THRESHOLD >= self.ATTENDANCE_CUTOFF_TIME
        ):
            raise ValueError("ON_TIME_THRESHOLD must be earlier than ATTENDANCE_CUTOFF_TIME")
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
