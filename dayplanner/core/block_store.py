# File: dayplanner/core/block_store.py
"""
Block Store: the only writer of one-off TimeBlocks.

Every add/update is checked against the date's occupancy map, recurring
occurrences included. A write that would claim an owned slot is never
applied silently: it goes to the caller's conflict handler, or it is
rejected when there is none.
"""

import datetime
import threading
import uuid
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from dayplanner.core.template_store import TemplateStore
from dayplanner.models import (
    TimeBlock,
    ScheduleBlock,
    OccupancyMap,
    WriteResult,
    WriteStatus,
    SlotConflictError,
    SlotOverflowError,
    BlockNotFoundError,
    PlannerError,
    RECURRING_ID_PREFIX,
    LAST_SLOT,
    date_key,
    time_block_from_dict,
)
from dayplanner.processors.schedule_processor import ScheduleProcessor
from dayplanner.services.repository import BlockRepository
from dayplanner.utils.logger import setup_logger

logger = setup_logger(__name__)

# on_conflict(colliding_block, commit_action)
ConflictHandler = Callable[[ScheduleBlock, Callable[[], Optional[TimeBlock]]], None]

_PATCH_ALIASES = {
    'startTime': 'start_time',
    'reminderLeadTime': 'reminder_lead_time',
    'deadlineFor': 'deadline_for',
}
_PATCHABLE = {'title', 'start_time', 'duration', 'color', 'reminder_lead_time', 'reminder', 'deadline_for'}


class CommitAction:
    """
    Deferred write handed to conflict handlers.

    Calling it applies the write; later calls return the first result
    without writing again.
    """

    def __init__(self, perform: Callable[[], Optional[TimeBlock]]):
        self._perform = perform
        self._lock = threading.Lock()
        self.committed = False
        self.result: Optional[TimeBlock] = None

    def __call__(self) -> Optional[TimeBlock]:
        with self._lock:
            if not self.committed:
                self.result = self._perform()
                self.committed = self.result is not None
            return self.result


class BlockStore:
    """Authoritative date -> [TimeBlock] mapping with conflict interception."""

    def __init__(
        self,
        repository: BlockRepository,
        template_store: TemplateStore,
        processor: Optional[ScheduleProcessor] = None
    ):
        """
        Initialize the store.

        Args:
            repository: Persistence collaborator
            template_store: Source of recurring templates for conflict checks
            processor: Occupancy builder (a default one is created if omitted)
        """
        self.repository = repository
        self.template_store = template_store
        self.processor = processor or ScheduleProcessor()
        self._lock = threading.RLock()

    # ==================== Reads ====================

    def get_blocks(self, day: datetime.date) -> Tuple[TimeBlock, ...]:
        """Snapshot of a date's blocks, ordered by start slot."""
        with self._lock:
            return tuple(sorted(self.repository.load_blocks_for_date(day), key=lambda b: b.start_time))

    def get_block(self, day: datetime.date, block_id: str) -> Optional[TimeBlock]:
        for block in self.get_blocks(day):
            if block.id == block_id:
                return block
        return None

    def build_occupancy(self, day: datetime.date, exclude_id: Optional[str] = None) -> OccupancyMap:
        """Occupancy map for a date, optionally leaving one block out."""
        with self._lock:
            blocks = [b for b in self.get_blocks(day) if b.id != exclude_id]
            templates = self.template_store.get_templates()
        return self.processor.build_occupancy(day, blocks, templates)

    def check_conflict(
        self,
        day: datetime.date,
        start_time: int,
        duration: int,
        ignore_id: Optional[str] = None
    ) -> Optional[ScheduleBlock]:
        """First block that owns any slot of the placement, ignoring `ignore_id`."""
        occupancy = self.build_occupancy(day, exclude_id=ignore_id)
        return self.processor.find_conflict(occupancy, start_time, duration, ignore_id=ignore_id)

    # ==================== Writes ====================

    def add_block(
        self,
        day: datetime.date,
        data: Dict[str, Any],
        on_conflict: Optional[ConflictHandler] = None
    ) -> WriteResult:
        """
        Create a block on a date.

        Args:
            day: Owning date
            data: Block fields (title, start_time, duration, color, reminder_lead_time, ...)
            on_conflict: Called as on_conflict(colliding_block, commit) when the
                placement collides; calling commit() forces the write

        Returns:
            WriteResult describing what happened
        """
        try:
            candidate = time_block_from_dict({**data, 'id': str(uuid.uuid4())}, day=day)
            self._check_bounds(candidate)
        except (PlannerError, ValueError, TypeError) as e:
            logger.warning(f"Rejected new block on {date_key(day)}: {e}")
            return WriteResult(WriteStatus.REJECTED, error=e)

        def perform_add() -> TimeBlock:
            with self._lock:
                blocks = list(self.repository.load_blocks_for_date(day))
                blocks.append(candidate)
                self._save(day, blocks)
            logger.info(f"Added '{candidate.title}' on {date_key(day)} at slot {candidate.start_time}")
            return candidate

        with self._lock:
            conflict = self.check_conflict(day, candidate.start_time, candidate.duration)
            if conflict is None:
                return WriteResult(WriteStatus.COMMITTED, block=perform_add())

        return self._handle_conflict(candidate, conflict, CommitAction(perform_add), on_conflict)

    def update_block(
        self,
        day: datetime.date,
        block_id: str,
        patch: Dict[str, Any],
        on_conflict: Optional[ConflictHandler] = None
    ) -> WriteResult:
        """
        Patch a block and re-check it against every other block on the date.

        `id` and `date` cannot be patched; move a block to another date by
        deleting and re-adding it.
        """
        try:
            with self._lock:
                original = self.get_block(day, block_id)
                if original is None:
                    raise BlockNotFoundError(f"No block {block_id} on {date_key(day)}")
                patched = self._apply_patch(original, patch)
                self._check_bounds(patched)
        except (PlannerError, ValueError, TypeError) as e:
            logger.warning(f"Rejected update of {block_id} on {date_key(day)}: {e}")
            return WriteResult(WriteStatus.REJECTED, error=e)

        def perform_update() -> Optional[TimeBlock]:
            with self._lock:
                blocks = list(self.repository.load_blocks_for_date(day))
                for index, block in enumerate(blocks):
                    if block.id == block_id:
                        break
                else:
                    logger.warning(f"Block {block_id} disappeared before the update was committed")
                    return None

                # Patch is applied to the block as stored now, not as first read
                try:
                    updated = self._apply_patch(block, patch)
                    self._check_bounds(updated)
                except (PlannerError, ValueError, TypeError) as e:
                    logger.warning(f"Update of {block_id} no longer applies: {e}")
                    return None
                blocks[index] = updated
                self._save(day, blocks)
            logger.info(f"Updated '{updated.title}' on {date_key(day)}")
            return updated

        with self._lock:
            conflict = self.check_conflict(day, patched.start_time, patched.duration, ignore_id=block_id)
            if conflict is None:
                return WriteResult(WriteStatus.COMMITTED, block=perform_update())

        return self._handle_conflict(patched, conflict, CommitAction(perform_update), on_conflict)

    def delete_block(self, day: datetime.date, block_id: str) -> bool:
        """Remove a block. Returns False if no such block existed."""
        with self._lock:
            blocks = list(self.repository.load_blocks_for_date(day))
            remaining = [b for b in blocks if b.id != block_id]
            if len(remaining) == len(blocks):
                logger.debug(f"Nothing to delete: {block_id} on {date_key(day)}")
                return False
            self._save(day, remaining)
        logger.info(f"Deleted block {block_id} on {date_key(day)}")
        return True

    # ==================== Helpers ====================

    def _handle_conflict(
        self,
        candidate: TimeBlock,
        conflict: ScheduleBlock,
        commit: CommitAction,
        on_conflict: Optional[ConflictHandler]
    ) -> WriteResult:
        if on_conflict is None:
            logger.info(f"'{candidate.title}' conflicts with '{conflict.title}'; no handler, write rejected")
            return WriteResult(
                WriteStatus.REJECTED,
                block=candidate,
                conflict=conflict,
                error=SlotConflictError(conflict)
            )

        logger.debug(f"'{candidate.title}' conflicts with '{conflict.title}'; asking handler")
        on_conflict(conflict, commit)

        if commit.committed:
            return WriteResult(WriteStatus.FORCED, block=commit.result, conflict=conflict)
        return WriteResult(WriteStatus.DEFERRED, block=candidate, conflict=conflict, commit=commit)

    def _save(self, day: datetime.date, blocks: List[TimeBlock]) -> None:
        self.repository.save_blocks_for_date(day, sorted(blocks, key=lambda b: b.start_time))

    @staticmethod
    def _check_bounds(block: TimeBlock) -> None:
        if block.id.startswith(RECURRING_ID_PREFIX):
            raise ValueError(f"One-off blocks cannot use recurring ids: {block.id}")
        if block.overflows_day():
            raise SlotOverflowError(
                f"'{block.title}' would end at slot {block.end_slot}, past slot {LAST_SLOT}"
            )

    @staticmethod
    def _apply_patch(block: TimeBlock, patch: Dict[str, Any]) -> TimeBlock:
        changes = {_PATCH_ALIASES.get(k, k): v for k, v in patch.items()}
        unknown = set(changes) - _PATCHABLE
        if unknown:
            raise ValueError(f"Cannot patch block fields: {sorted(unknown)}")
        return replace(block, **changes)
