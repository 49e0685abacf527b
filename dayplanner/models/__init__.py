from .enums import Provenance, TimeFormat, PermissionState, ReminderKind, WriteStatus
from .common import (
    SLOTS_PER_DAY,
    SLOTS_PER_HOUR,
    MINUTES_PER_SLOT,
    LAST_SLOT,
    date_key,
    weekday_index,
    parse_date,
    parse_iso_datetime,
)
from .errors import (
    PlannerError,
    SlotConflictError,
    InvalidDurationError,
    InvalidSlotError,
    SlotOverflowError,
    BlockNotFoundError,
)
from .blocks import (
    TimeBlock,
    RecurringBlock,
    LEGACY_REMINDER_LEAD_MINUTES,
    RECURRING_ID_PREFIX,
    time_block_from_dict,
    recurring_block_from_dict,
)
from .schedule import ScheduleBlock, SlotCollision, OccupancyMap
from .reminders import UpcomingReminder, DeadlineItem
from .api import WriteResult

__all__ = [
    "Provenance",
    "TimeFormat",
    "PermissionState",
    "ReminderKind",
    "WriteStatus",
    "SLOTS_PER_DAY",
    "SLOTS_PER_HOUR",
    "MINUTES_PER_SLOT",
    "LAST_SLOT",
    "date_key",
    "weekday_index",
    "parse_date",
    "parse_iso_datetime",
    "PlannerError",
    "SlotConflictError",
    "InvalidDurationError",
    "InvalidSlotError",
    "SlotOverflowError",
    "BlockNotFoundError",
    "TimeBlock",
    "RecurringBlock",
    "LEGACY_REMINDER_LEAD_MINUTES",
    "RECURRING_ID_PREFIX",
    "time_block_from_dict",
    "recurring_block_from_dict",
    "ScheduleBlock",
    "SlotCollision",
    "OccupancyMap",
    "UpcomingReminder",
    "DeadlineItem",
    "WriteResult",
]
