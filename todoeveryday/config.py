"""
TodoEveryday — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from todoeveryday/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Security
    ALLOWED_USER_IDS: list[int] = []

    # SQLite
    DATABASE_PATH: str = "data/todoeveryday.db"

    # Day bootstrap
    AUTO_CARRYOVER: bool = True
    CREATE_WEEKEND_DAYS: bool = True

    # Ask "all linked / only this one" when completing a carried-over task
    SHOW_CARRYOVER_PROMPT: bool = True

    # Enables /nextday, /prevday and /deleteday
    DEBUG_MODE: bool = False

    # Ring the terminal bell of the host on completion
    COMPLETION_SOUND: bool = False

    # "Today" and the daily rollover check are computed in this zone
    TIMEZONE: str = "UTC"
    ROLLOVER_CHECK_HOUR: int = 0
    ROLLOVER_CHECK_MINUTE: int = 5

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator(
        "AUTO_CARRYOVER",
        "CREATE_WEEKEND_DAYS",
        "SHOW_CARRYOVER_PROMPT",
        "DEBUG_MODE",
        "COMPLETION_SOUND",
        mode="before",
    )
    @classmethod
    def parse_flag(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() in _TRUE_VALUES

    @field_validator("ROLLOVER_CHECK_HOUR", "ROLLOVER_CHECK_MINUTE", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/todoeveryday.db"),
        AUTO_CARRYOVER=os.getenv("AUTO_CARRYOVER", "true"),
        CREATE_WEEKEND_DAYS=os.getenv("CREATE_WEEKEND_DAYS", "true"),
        SHOW_CARRYOVER_PROMPT=os.getenv("SHOW_CARRYOVER_PROMPT", "true"),
        DEBUG_MODE=os.getenv("DEBUG_MODE", "false"),
        COMPLETION_SOUND=os.getenv("COMPLETION_SOUND", "false"),
        TIMEZONE=os.getenv("TIMEZONE", "UTC"),
        ROLLOVER_CHECK_HOUR=os.getenv("ROLLOVER_CHECK_HOUR", "0"),
        ROLLOVER_CHECK_MINUTE=os.getenv("ROLLOVER_CHECK_MINUTE", "5"),
    )


# Singleton, imported by all other modules as:
#   from todoeveryday.config import settings
settings = _load_settings()
