# File: dayplanner/processors/schedule_processor.py
"""
Schedule processing module.
Merges one-off blocks and recurring occurrences into a per-date occupancy map
and detects slot conflicts.
"""

import datetime
import json
from pathlib import Path
from typing import Iterable, Optional, Set, Tuple

from dayplanner.models import (
    TimeBlock,
    RecurringBlock,
    ScheduleBlock,
    OccupancyMap,
    SlotCollision,
    SlotConflictError,
    Provenance,
    date_key,
)
from dayplanner.processors.recurrence import expand_for_date, spillover_for_date
from dayplanner.processors.slot_model import slot_range
from dayplanner.utils.logger import setup_logger

logger = setup_logger(__name__)


class ScheduleProcessor:
    """Builds occupancy maps and checks candidate placements against them."""

    def __init__(self):
        self.logger = setup_logger(__name__)

    def build_occupancy(
        self,
        day: datetime.date,
        one_off_blocks: Iterable[TimeBlock],
        templates: Iterable[RecurringBlock],
        strict: bool = False
    ) -> OccupancyMap:
        """
        Build the slot -> block map for a date.

        Recurring occurrences go in first (yesterday's spillover, then today's),
        one-off blocks are layered on top.

        Args:
            day: Date to build
            one_off_blocks: Stored blocks for that date
            templates: All recurring templates
            strict: Raise on the first collision instead of resolving it

        Returns:
            OccupancyMap; in read mode every resolved collision is listed in
            `collisions`

        Raises:
            SlotConflictError: In strict mode, when two blocks claim a slot
        """
        templates = list(templates)
        occupancy = OccupancyMap(date=day)
        logged: Set[Tuple[str, str]] = set()

        recurring = spillover_for_date(templates, day) + expand_for_date(templates, day)
        for occurrence in recurring:
            self._place(occupancy, occurrence, strict, logged)

        for block in sorted(one_off_blocks, key=lambda b: (b.start_time, b.id)):
            if block.date != day:
                self.logger.warning(
                    f"Skipping block '{block.title}' stored under {date_key(day)} "
                    f"but dated {date_key(block.date)}"
                )
                continue
            if block.overflows_day():
                self.logger.warning(
                    f"Block '{block.title}' runs past midnight; clamping to the end of {date_key(day)}"
                )
            self._place(occupancy, ScheduleBlock.from_time_block(block), strict, logged)

        if occupancy.collisions:
            self.logger.info(
                f"Built {date_key(day)} with {len(occupancy.collisions)} overridden slot(s)"
            )
        return occupancy

    def _place(
        self,
        occupancy: OccupancyMap,
        block: ScheduleBlock,
        strict: bool,
        logged: Set[Tuple[str, str]]
    ) -> None:
        for slot in block.covered_slots():
            owner = occupancy.slots.get(slot)
            if owner is None:
                occupancy.slots[slot] = block
                continue
            if owner.id == block.id:
                continue
            if strict:
                raise SlotConflictError(owner, slot)

            # User-authored day plans override the standing weekly template
            if block.provenance == Provenance.ONE_OFF and owner.provenance == Provenance.RECURRING:
                winner, loser = block, owner
                occupancy.slots[slot] = block
            else:
                winner, loser = owner, block
            occupancy.collisions.append(SlotCollision(slot=slot, owner=winner, displaced=loser))

            if (winner.id, loser.id) not in logged:
                logged.add((winner.id, loser.id))
                self.logger.warning(f"'{winner.title}' overrides '{loser.title}' from slot {slot}")

    def find_conflict(
        self,
        occupancy: OccupancyMap,
        start_time: int,
        duration: int,
        ignore_id: Optional[str] = None
    ) -> Optional[ScheduleBlock]:
        """
        First block owning any slot of a candidate placement.

        Args:
            occupancy: Map to check against
            start_time: Candidate start slot
            duration: Candidate length in slots
            ignore_id: Block id to treat as free (the block being moved)

        Returns:
            Colliding ScheduleBlock, or None if every slot is free
        """
        for slot in slot_range(start_time, duration):
            owner = occupancy.get(slot)
            if owner is not None and owner.id != ignore_id:
                return owner
        return None

    def save_schedule(self, occupancy: OccupancyMap, filepath: Path) -> bool:
        """
        Save an occupancy map as JSON.

        Args:
            occupancy: Map to write
            filepath: Output file path

        Returns:
            True if successful, False otherwise
        """
        try:
            data_to_save = occupancy.to_dict()
            data_to_save["generated_at"] = datetime.datetime.now().isoformat()

            filepath.parent.mkdir(parents=True, exist_ok=True)
            with open(filepath, 'w', encoding="utf-8") as f:
                json.dump(data_to_save, f, indent=2, default=str, ensure_ascii=False)

            self.logger.info(f"Schedule saved to {filepath}")
            return True
        except OSError as e:
            self.logger.error(f"Could not save schedule: {e}", exc_info=True)
            return False
