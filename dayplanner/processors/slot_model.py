# File: dayplanner/processors/slot_model.py
"""
Slot <-> wall-clock conversions.

A day is 144 slots of 10 minutes; slot 0 is 00:00. All placement math is
done in slots, minutes only show up at display time.
"""

import datetime
import math
from typing import Union

from dayplanner.models import (
    TimeFormat,
    InvalidSlotError,
    InvalidDurationError,
    SLOTS_PER_DAY,
    SLOTS_PER_HOUR,
    MINUTES_PER_SLOT,
    LAST_SLOT,
)


def _coerce_format(time_format: Union[TimeFormat, str]) -> TimeFormat:
    if isinstance(time_format, TimeFormat):
        return time_format
    return TimeFormat(str(time_format).lower())


def _check_slot(slot: int) -> None:
    if not 0 <= slot <= LAST_SLOT:
        raise InvalidSlotError(f"Slot must be within 0-{LAST_SLOT}: {slot}")


def _format_clock(hour: int, minute: int, time_format: TimeFormat) -> str:
    if time_format == TimeFormat.H24:
        return f"{hour:02d}:{minute:02d}"
    display_hour = 12 if hour in (0, 12) else hour % 12
    suffix = "am" if hour < 12 else "pm"
    return f"{display_hour}:{minute:02d}{suffix}"


def slot_to_time(slot: int, time_format: Union[TimeFormat, str] = TimeFormat.H12) -> str:
    """
    Render the start of a slot as a clock string.

    Args:
        slot: Slot index 0-143
        time_format: TimeFormat.H12 ("9:30am") or TimeFormat.H24 ("09:30")

    Returns:
        Formatted wall-clock time
    """
    _check_slot(slot)
    hour, minute = divmod(slot, SLOTS_PER_HOUR)
    return _format_clock(hour, minute * MINUTES_PER_SLOT, _coerce_format(time_format))


def format_range(start_time: int, duration: int, time_format: Union[TimeFormat, str] = TimeFormat.H12) -> str:
    """
    Render a block as "start - end" with an inclusive end.

    The end shows the last minute of the last covered slot, so one slot at
    00:00 reads "00:00 - 00:09". Hours past 23 wrap to 0; this only affects
    display, never slot arithmetic.

    Example:
        >>> format_range(0, 6, TimeFormat.H24)
        '00:00 - 00:59'
    """
    _check_slot(start_time)
    if duration < 1:
        raise InvalidDurationError(f"Duration must be at least one slot: {duration}")

    fmt = _coerce_format(time_format)
    start_hour, start_slot = divmod(start_time, SLOTS_PER_HOUR)

    end_slot = start_time + duration - 1  # duration of 1 is one slot
    end_hour, end_minute_slot = divmod(end_slot, SLOTS_PER_HOUR)
    end_hour %= 24

    start_text = _format_clock(start_hour, start_slot * MINUTES_PER_SLOT, fmt)
    end_text = _format_clock(end_hour, end_minute_slot * MINUTES_PER_SLOT + 9, fmt)
    return f"{start_text} - {end_text}"


def slot_to_clock(slot: int) -> datetime.time:
    """Wall-clock time at which a slot starts."""
    _check_slot(slot)
    hour, minute = divmod(slot, SLOTS_PER_HOUR)
    return datetime.time(hour, minute * MINUTES_PER_SLOT)


def slot_to_minutes(slot: int) -> int:
    """Minutes since midnight at which a slot starts."""
    return slot * MINUTES_PER_SLOT


def time_to_slot(value: datetime.time) -> int:
    """Slot containing a wall-clock time (floors to the slot start)."""
    return value.hour * SLOTS_PER_HOUR + value.minute // MINUTES_PER_SLOT


def minutes_to_slots(minutes: int) -> int:
    """Number of slots needed to cover a number of minutes."""
    return max(1, math.ceil(minutes / MINUTES_PER_SLOT))


def slot_range(start_time: int, duration: int) -> range:
    """Slots covered by a block, clamped to the end of the day."""
    return range(start_time, min(start_time + duration, SLOTS_PER_DAY))
