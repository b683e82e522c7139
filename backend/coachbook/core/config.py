# backend/coachbook/core/config.py
"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (and an optional
``backend/.env`` file) with sensible defaults for local development.
"""

from functools import lru_cache
import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz

logger = logging.getLogger(__name__)

_BACKEND_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Settings for the availability API and engine."""

    api_title: str = "Coach Availability API"
    api_version: str = "v1"
    environment: str = Field(default="development", description="development, test or production")

    database_url: str = Field(
        default="sqlite:///./coachbook.db",
        description="SQLAlchemy URL for the profile and session store",
    )
    database_echo: bool = False

    default_timezone: str = Field(
        default="UTC",
        description="Timezone seeded into a profile created on first access",
    )
    max_range_days: int = Field(
        default=90,
        ge=1,
        description="Widest date range a single slot request may cover; callers page beyond it",
    )
    store_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for a store fetch before the request fails",
    )
    store_retry_backoff_seconds: float = Field(default=0.05, ge=0)

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_timezone")
    @classmethod
    def validate_default_timezone(cls, v: str) -> str:
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    For tests, call ``get_settings.cache_clear()`` to pick up new env values.
    """
    return Settings()


settings = get_settings()
