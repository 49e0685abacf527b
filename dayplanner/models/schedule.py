# File: dayplanner/models/schedule.py
"""
Merged view of a date.

ScheduleBlock wraps either source with its provenance. OccupancyMap maps each
slot to the block that owns it and records every collision it had to settle.
"""

import datetime
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Iterator

from .blocks import TimeBlock, RecurringBlock, LEGACY_REMINDER_LEAD_MINUTES, resolve_lead_time
from .common import SLOTS_PER_DAY, date_key
from .enums import Provenance

@dataclass(frozen=True)
class ScheduleBlock:
    """A block as seen on a concrete date: a stored one-off or a derived occurrence."""
    id: str
    date: datetime.date
    title: str
    start_time: int
    duration: int
    color: str
    provenance: Provenance
    source_id: str  # TimeBlock id or RecurringBlock template id
    reminder_lead_time: Optional[int] = None
    reminder: bool = False
    is_spillover: bool = False

    @classmethod
    def from_time_block(cls, block: TimeBlock) -> 'ScheduleBlock':
        return cls(
            id=block.id,
            date=block.date,
            title=block.title,
            start_time=block.start_time,
            duration=block.duration,
            color=block.color,
            provenance=Provenance.ONE_OFF,
            source_id=block.id,
            reminder_lead_time=block.reminder_lead_time,
            reminder=block.reminder,
        )

    @classmethod
    def from_recurring(cls, template: RecurringBlock, day: datetime.date, occurrence_id: str) -> 'ScheduleBlock':
        return cls(
            id=occurrence_id,
            date=day,
            title=template.title,
            start_time=template.start_time,
            duration=template.duration,
            color=template.color,
            provenance=Provenance.RECURRING,
            source_id=template.id,
            reminder_lead_time=template.reminder_lead_time,
            reminder=template.reminder,
        )

    @property
    def is_recurring(self) -> bool:
        return self.provenance == Provenance.RECURRING

    @property
    def end_slot(self) -> int:
        return self.start_time + self.duration - 1

    def covered_slots(self) -> range:
        """Slots this block claims on its date, clamped to the day."""
        return range(self.start_time, min(self.start_time + self.duration, SLOTS_PER_DAY))

    def effective_lead_time(self, legacy_lead: int = LEGACY_REMINDER_LEAD_MINUTES) -> int:
        return resolve_lead_time(self.reminder_lead_time, self.reminder, legacy_lead)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'date': date_key(self.date),
            'title': self.title,
            'start_time': self.start_time,
            'duration': self.duration,
            'color': self.color,
            'provenance': self.provenance.value,
            'source_id': self.source_id,
            'is_spillover': self.is_spillover,
        }


@dataclass(frozen=True)
class SlotCollision:
    """Two blocks claimed the same slot while building a read view."""
    slot: int
    owner: ScheduleBlock       # Block that ended up owning the slot
    displaced: ScheduleBlock   # Block that lost the slot


@dataclass
class OccupancyMap:
    """Slot index -> owning ScheduleBlock for one date."""
    date: datetime.date
    slots: Dict[int, ScheduleBlock] = field(default_factory=dict)
    collisions: List[SlotCollision] = field(default_factory=list)

    def get(self, slot: int) -> Optional[ScheduleBlock]:
        return self.slots.get(slot)

    def is_free(self, slot: int) -> bool:
        return slot not in self.slots

    def __contains__(self, slot: int) -> bool:
        return slot in self.slots

    def __len__(self) -> int:
        return len(self.slots)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self.slots))

    def blocks(self) -> List[ScheduleBlock]:
        """Distinct blocks present in the map, ordered by start slot."""
        seen: Dict[str, ScheduleBlock] = {}
        for slot in sorted(self.slots):
            block = self.slots[slot]
            seen.setdefault(block.id, block)
        return list(seen.values())

    def has_collisions(self) -> bool:
        return bool(self.collisions)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'date': date_key(self.date),
            'slots': {slot: self.slots[slot].id for slot in sorted(self.slots)},
            'blocks': [b.to_dict() for b in self.blocks()],
            'collisions': len(self.collisions),
        }
