"""
Keep-in-Touch — Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

# Load .env from project root (two levels up from keepintouch/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite
    DATABASE_PATH: str = "data/keepintouch.db"

    # Calendar days (birthdays, "today") are computed in this zone
    TIMEZONE: str = "UTC"

    # Periodic jobs
    GENERATION_INTERVAL_HOURS: int = 6
    BIRTHDAY_REFRESH_HOUR: int = 3

    # Maintenance
    CLEANUP_DAYS_OLD: int = 30

    LOG_LEVEL: str = "INFO"

    @field_validator("TIMEZONE")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v!r}") from exc
        return v

    @field_validator(
        "GENERATION_INTERVAL_HOURS", "CLEANUP_DAYS_OLD",
        mode="before",
    )
    @classmethod
    def parse_positive(cls, v: str | int) -> int:
        value = int(v)
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("BIRTHDAY_REFRESH_HOUR", mode="before")
    @classmethod
    def parse_hour(cls, v: str | int) -> int:
        hour = int(v)
        if not 0 <= hour <= 23:
            raise ValueError("must be an hour between 0 and 23")
        return hour

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.strip().upper() or "INFO"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)


def _load_settings() -> Settings:
    """Load settings from environment, exiting on invalid values."""
    database_path = os.getenv("DATABASE_PATH", "data/keepintouch.db")
    if not database_path.strip():
        print("ERROR: DATABASE_PATH is empty in .env", file=sys.stderr)
        sys.exit(1)

    try:
        return Settings(
            DATABASE_PATH=database_path,
            TIMEZONE=os.getenv("TIMEZONE", "UTC"),
            GENERATION_INTERVAL_HOURS=os.getenv("GENERATION_INTERVAL_HOURS", "6"),
            BIRTHDAY_REFRESH_HOUR=os.getenv("BIRTHDAY_REFRESH_HOUR", "3"),
            CLEANUP_DAYS_OLD=os.getenv("CLEANUP_DAYS_OLD", "30"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        )
    except ValidationError as exc:
        print(f"ERROR: invalid configuration in .env:\n{exc}", file=sys.stderr)
        sys.exit(1)


# Singleton — imported by all other modules as:
#   from keepintouch.config import settings
settings = _load_settings()
