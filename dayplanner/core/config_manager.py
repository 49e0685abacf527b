# File: dayplanner/core/config_manager.py
"""
Centralized configuration management for the day planner.
Loads settings from environment variables (and a .env file).
"""

import os
from pathlib import Path

import pytz
from dotenv import load_dotenv

from dayplanner.models import LEGACY_REMINDER_LEAD_MINUTES, TimeFormat
from dayplanner.utils.logger import setup_logger, enable_file_logging

# Load environment variables
load_dotenv()

logger = setup_logger(__name__)


class Config:
    """Application configuration."""

    # Base directories
    BASE_DIR = Path(__file__).parent.parent.parent  # Go up 3 levels from dayplanner/core/

    DATA_DIR = Path(os.getenv("DAYPLANNER_DATA_DIR", str(BASE_DIR / "data")))
    LOGS_DIR = Path(os.getenv("DAYPLANNER_LOG_DIR", str(BASE_DIR / "logs")))
    OUTPUT_DIR = BASE_DIR / "output"

    # Files
    DB_FILE = Path(os.getenv("DAYPLANNER_DB", str(DATA_DIR / "dayplanner.db")))
    SCHEDULE_OUTPUT_FILE = OUTPUT_DIR / "today_schedule.json"
    ENV_FILE = BASE_DIR / ".env"

    # Storage: "sqlite" or "memory"
    STORAGE_BACKEND = os.getenv("DAYPLANNER_STORAGE", "sqlite").lower()

    # Application Settings
    TARGET_TIMEZONE = os.getenv("TIMEZONE", "Europe/Amsterdam")
    TIME_FORMAT = os.getenv("TIME_FORMAT", TimeFormat.H12.value)
    DATE_FORMAT = "%Y-%m-%d"

    # Reminder Settings
    REMINDER_INTERVAL_SECONDS = int(os.getenv("REMINDER_INTERVAL_SECONDS", "30"))
    LEGACY_REMINDER_LEAD_MINUTES = LEGACY_REMINDER_LEAD_MINUTES

    # Notification Settings
    NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL")
    NOTIFY_TIMEOUT_SECONDS = int(os.getenv("NOTIFY_TIMEOUT_SECONDS", "10"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def setup_logging(cls) -> None:
        """Write package logs to the daily file under LOGS_DIR."""
        enable_file_logging(cls.LOGS_DIR, cls.LOG_LEVEL)

    @classmethod
    def get_timezone(cls) -> pytz.BaseTzInfo:
        """Resolve the configured timezone, falling back to UTC."""
        try:
            return pytz.timezone(cls.TARGET_TIMEZONE)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown timezone '{cls.TARGET_TIMEZONE}', using UTC")
            return pytz.utc

    @classmethod
    def get_time_format(cls) -> TimeFormat:
        try:
            return TimeFormat(cls.TIME_FORMAT.lower())
        except ValueError:
            return TimeFormat.H12

    @classmethod
    def validate(cls) -> bool:
        """Validate that all required configuration is present."""
        errors = []

        if cls.TARGET_TIMEZONE not in pytz.all_timezones_set:
            errors.append(f"TIMEZONE '{cls.TARGET_TIMEZONE}' is not a known timezone")

        if cls.STORAGE_BACKEND not in ("sqlite", "memory"):
            errors.append(f"DAYPLANNER_STORAGE must be 'sqlite' or 'memory', got '{cls.STORAGE_BACKEND}'")

        if cls.REMINDER_INTERVAL_SECONDS <= 0:
            errors.append("REMINDER_INTERVAL_SECONDS must be positive")

        if cls.TIME_FORMAT.lower() not in [f.value for f in TimeFormat]:
            errors.append(f"TIME_FORMAT must be '12h' or '24h', got '{cls.TIME_FORMAT}'")

        if cls.LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"LOG_LEVEL must be a logging level name, got '{cls.LOG_LEVEL}'")

        if errors:
            for error in errors:
                logger.error(f"Configuration Error: {error}")
            return False

        return True
