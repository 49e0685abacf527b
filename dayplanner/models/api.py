# File: dayplanner/models/api.py
"""
Result objects returned by store writes.
"""

from dataclasses import dataclass
from typing import Optional, Callable, Union

from .blocks import TimeBlock, RecurringBlock
from .enums import WriteStatus
from .errors import SlotConflictError
from .schedule import ScheduleBlock

@dataclass
class WriteResult:
    """Outcome of an add/update on the Block Store."""
    status: WriteStatus
    block: Optional[Union[TimeBlock, RecurringBlock]] = None  # Candidate, committed block or edited template
    conflict: Optional[ScheduleBlock] = None   # Block that owns a requested slot
    error: Optional[Exception] = None
    commit: Optional[Callable[[], Optional[TimeBlock]]] = None  # Still usable when DEFERRED

    def is_success(self) -> bool:
        """Check if the block was written."""
        return self.status in (WriteStatus.COMMITTED, WriteStatus.FORCED)

    def raise_for_status(self) -> 'WriteResult':
        """Raise the underlying error for rejected or deferred writes."""
        if self.error is not None and self.status == WriteStatus.REJECTED:
            raise self.error
        if self.conflict is not None and not self.is_success():
            raise SlotConflictError(self.conflict)
        return self

    def __str__(self) -> str:
        title = self.block.title if self.block else "?"
        if self.conflict is not None:
            return f"{self.status.value}: '{title}' conflicts with '{self.conflict.title}'"
        if self.error is not None:
            return f"{self.status.value}: '{title}' - {self.error}"
        return f"{self.status.value}: '{title}'"
