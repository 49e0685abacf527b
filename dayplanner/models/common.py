# File: dayplanner/models/common.py
"""
Slot constants and date helpers shared by the models.
"""

import datetime
from typing import Optional, Union

DATE_KEY_FORMAT = "%Y-%m-%d"

SLOTS_PER_HOUR = 6
MINUTES_PER_SLOT = 10
SLOTS_PER_DAY = 24 * SLOTS_PER_HOUR  # 144
LAST_SLOT = SLOTS_PER_DAY - 1


def date_key(day: datetime.date) -> str:
    """Storage key for a calendar date ("YYYY-MM-DD")."""
    return day.strftime(DATE_KEY_FORMAT)


def weekday_index(day: datetime.date) -> int:
    """Weekday with 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def parse_date(value: Union[str, datetime.date, datetime.datetime, None]) -> Optional[datetime.date]:
    """Robustly parse a date from a key, an ISO timestamp or a date object."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.datetime.strptime(value, DATE_KEY_FORMAT).date()
    except ValueError:
        pass
    try:
        # fromisoformat before 3.11 does not accept 'Z'
        return datetime.datetime.fromisoformat(value.replace('Z', '+00:00')).date()
    except ValueError:
        return None


def parse_iso_datetime(date_str: Optional[str]) -> Optional[datetime.datetime]:
    """Robustly parse ISO date strings with 'Z' or offsets."""
    if not date_str:
        return None
    try:
        clean_str = date_str.replace('Z', '+00:00')
        return datetime.datetime.fromisoformat(clean_str)
    except ValueError:
        # Fallback for simple date strings without time
        try:
            return datetime.datetime.strptime(date_str, DATE_KEY_FORMAT)
        except ValueError:
            return None
