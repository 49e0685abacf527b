# File: dayplanner/models/reminders.py
"""Reminder list entries and externally supplied deadline items."""

import datetime
from dataclasses import dataclass
from typing import Optional

from .enums import ReminderKind

@dataclass(frozen=True)
class UpcomingReminder:
    """Entry in the in-app upcoming reminders list."""
    id: str
    title: str
    time_to_start: int  # Whole minutes, rounded up
    color: str
    kind: ReminderKind = ReminderKind.BLOCK

    @property
    def notification_key(self) -> str:
        """Key used to remember that a platform notification went out."""
        return f"{self.kind.value}-{self.id}"

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'time_to_start': self.time_to_start,
            'color': self.color,
            'type': self.kind.value,
        }


@dataclass(frozen=True)
class DeadlineItem:
    """An external item with a deadline that wants a reminder."""
    id: str
    title: str
    deadline: Optional[datetime.datetime]
    reminder_lead_time: int = 0  # Minutes
    color: str = "red"
