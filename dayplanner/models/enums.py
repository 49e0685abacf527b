# File: dayplanner/models/enums.py
"""Enumerations used across the planner."""

from enum import Enum

class Provenance(Enum):
    """Where a scheduled block comes from."""
    ONE_OFF = "one_off"        # Stored TimeBlock bound to a single date
    RECURRING = "recurring"    # Derived from a weekly RecurringBlock template


class TimeFormat(Enum):
    """Clock display formats."""
    H12 = "12h"
    H24 = "24h"


class PermissionState(Enum):
    """Notification permission as reported by the platform."""
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class ReminderKind(Enum):
    """What an upcoming reminder points at."""
    BLOCK = "block"
    DEADLINE = "deadline"


class WriteStatus(Enum):
    """Outcome of a Block Store write."""
    COMMITTED = "committed"  # No conflict, written
    FORCED = "forced"        # Conflict, handler invoked the commit action
    DEFERRED = "deferred"    # Conflict, handler kept the commit action for later
    REJECTED = "rejected"    # Conflict without handler, or invalid input
