# File: dayplanner/models/blocks.py
"""
Block models: one-off TimeBlocks and weekly RecurringBlock templates.
"""

import datetime
from dataclasses import dataclass, field
from typing import Optional, FrozenSet, Iterable, Any, Dict

from .common import SLOTS_PER_DAY, LAST_SLOT, date_key, parse_date, weekday_index
from .errors import InvalidDurationError, InvalidSlotError

# Lead time applied to blocks that only carry the old boolean `reminder` flag
LEGACY_REMINDER_LEAD_MINUTES = 5

RECURRING_ID_PREFIX = "recurring-"


def _validate_placement(title: str, start_time: Any, duration: Any) -> None:
    if not isinstance(duration, int) or isinstance(duration, bool) or duration < 1:
        raise InvalidDurationError(f"Duration must be at least one slot: {title} ({duration!r})")
    if not isinstance(start_time, int) or isinstance(start_time, bool) or not 0 <= start_time <= LAST_SLOT:
        raise InvalidSlotError(f"Start slot must be within 0-{LAST_SLOT}: {title} ({start_time!r})")


def resolve_lead_time(reminder_lead_time: Optional[int], reminder: bool, legacy_lead: int) -> int:
    if reminder_lead_time is not None:
        return max(int(reminder_lead_time), 0)
    return legacy_lead if reminder else 0


@dataclass(frozen=True)
class TimeBlock:
    """A user-placed activity bound to a single date."""
    id: str
    date: datetime.date
    title: str
    start_time: int  # Slot index 0-143
    duration: int    # Number of 10-minute slots
    color: str = "slate"
    reminder_lead_time: Optional[int] = None  # Minutes, 0 disables
    reminder: bool = False  # Legacy flag, see effective_lead_time()
    deadline_for: Optional[str] = None

    def __post_init__(self):
        """Validate placement and normalize the date."""
        if isinstance(self.date, (str, datetime.datetime)):
            object.__setattr__(self, 'date', parse_date(self.date))
        if not isinstance(self.date, datetime.date):
            raise ValueError(f"Block needs a valid date: {self.title}")
        _validate_placement(self.title, self.start_time, self.duration)

    @property
    def end_slot(self) -> int:
        """Last covered slot (inclusive, may exceed 143)."""
        return self.start_time + self.duration - 1

    def overflows_day(self) -> bool:
        return self.start_time + self.duration > SLOTS_PER_DAY

    def effective_lead_time(self, legacy_lead: int = LEGACY_REMINDER_LEAD_MINUTES) -> int:
        """Minutes before start at which a reminder is due (0 = none)."""
        return resolve_lead_time(self.reminder_lead_time, self.reminder, legacy_lead)

    def overlaps_with(self, other: 'TimeBlock') -> bool:
        """Check if this block shares a slot with another on the same date."""
        return (self.date == other.date
                and self.start_time <= other.end_slot
                and other.start_time <= self.end_slot)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'date': date_key(self.date),
            'title': self.title,
            'start_time': self.start_time,
            'duration': self.duration,
            'color': self.color,
            'reminder_lead_time': self.reminder_lead_time,
            'reminder': self.reminder,
            'deadline_for': self.deadline_for,
        }


@dataclass(frozen=True)
class RecurringBlock:
    """Weekly template. Occurrences are derived per date and never stored."""
    id: str
    title: str
    start_time: int
    duration: int
    days_of_week: FrozenSet[int] = field(default_factory=frozenset)  # 0=Sunday..6=Saturday
    color: str = "slate"
    reminder_lead_time: Optional[int] = None
    reminder: bool = False
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None

    def __post_init__(self):
        """Validate placement and convert weekday lists."""
        _validate_placement(self.title, self.start_time, self.duration)

        days = frozenset(int(d) for d in self.days_of_week)
        invalid = [d for d in days if not 0 <= d <= 6]
        if invalid:
            raise ValueError(f"Weekdays must be 0-6 (0=Sunday): {self.title} {sorted(invalid)}")
        object.__setattr__(self, 'days_of_week', days)

        for name in ('start_date', 'end_date'):
            value = getattr(self, name)
            if isinstance(value, (str, datetime.datetime)):
                object.__setattr__(self, name, parse_date(value))

    @property
    def end_slot(self) -> int:
        return self.start_time + self.duration - 1

    def overflows_day(self) -> bool:
        return self.start_time + self.duration > SLOTS_PER_DAY

    def is_active_on(self, day: datetime.date) -> bool:
        """True if the template recurs on this date."""
        if weekday_index(day) not in self.days_of_week:
            return False
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        return True

    def effective_lead_time(self, legacy_lead: int = LEGACY_REMINDER_LEAD_MINUTES) -> int:
        return resolve_lead_time(self.reminder_lead_time, self.reminder, legacy_lead)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'start_time': self.start_time,
            'duration': self.duration,
            'days_of_week': sorted(self.days_of_week),
            'color': self.color,
            'reminder_lead_time': self.reminder_lead_time,
            'reminder': self.reminder,
            'start_date': date_key(self.start_date) if self.start_date else None,
            'end_date': date_key(self.end_date) if self.end_date else None,
        }


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key wins; accepts snake_case and the older camelCase."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(float(value))  # Handle "5.0" strings


def time_block_from_dict(data: Dict[str, Any], day: Optional[datetime.date] = None) -> TimeBlock:
    """Create a TimeBlock from a stored dictionary."""
    return TimeBlock(
        id=str(_pick(data, 'id', default='')),
        date=day or parse_date(_pick(data, 'date')),
        title=str(_pick(data, 'title', default='Untitled Block')),
        start_time=int(_pick(data, 'start_time', 'startTime', default=0)),
        duration=int(_pick(data, 'duration', default=1)),
        color=str(_pick(data, 'color', default='slate')),
        reminder_lead_time=_optional_int(_pick(data, 'reminder_lead_time', 'reminderLeadTime')),
        reminder=bool(_pick(data, 'reminder', default=False)),
        deadline_for=_pick(data, 'deadline_for', 'deadlineFor'),
    )


def recurring_block_from_dict(data: Dict[str, Any]) -> RecurringBlock:
    """Create a RecurringBlock from a stored dictionary."""
    days: Iterable[Any] = _pick(data, 'days_of_week', 'daysOfWeek', default=[])
    return RecurringBlock(
        id=str(_pick(data, 'id', default='')),
        title=str(_pick(data, 'title', default='Untitled Template')),
        start_time=int(_pick(data, 'start_time', 'startTime', default=0)),
        duration=int(_pick(data, 'duration', default=1)),
        days_of_week=frozenset(int(d) for d in days),
        color=str(_pick(data, 'color', default='slate')),
        reminder_lead_time=_optional_int(_pick(data, 'reminder_lead_time', 'reminderLeadTime')),
        reminder=bool(_pick(data, 'reminder', default=False)),
        start_date=parse_date(_pick(data, 'start_date', 'startDate')),
        end_date=parse_date(_pick(data, 'end_date', 'endDate')),
    )
