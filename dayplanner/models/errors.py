# File: dayplanner/models/errors.py
"""
Exception types for the scheduling core.

Conflicts and invalid input are surfaced to callers. Cosmetic failures
(colors) and missing notification permission are absorbed where they occur
and never show up here.
"""

from typing import Optional, Any


class PlannerError(Exception):
    """Base class for all planner errors."""


class SlotConflictError(PlannerError):
    """A write or strict build would claim a slot that is already owned."""

    def __init__(self, conflict: Any, slot: Optional[int] = None, message: Optional[str] = None):
        self.conflict = conflict
        self.slot = slot
        if message is None:
            title = getattr(conflict, 'title', conflict)
            where = f" at slot {slot}" if slot is not None else ""
            message = f"Slot conflict with '{title}'{where}"
        super().__init__(message)


class InvalidDurationError(PlannerError, ValueError):
    """Duration is less than one slot."""


class InvalidSlotError(PlannerError, ValueError):
    """Start slot outside 0-143."""


class SlotOverflowError(PlannerError, ValueError):
    """Block would run past the last slot of the day."""


class BlockNotFoundError(PlannerError, KeyError):
    """No block with the given id on the given date."""
