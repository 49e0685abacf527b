# File: dayplanner/processors/slot_finder.py
"""
Free-slot search over an occupancy map.
"""

from typing import List, Optional, Tuple

from dayplanner.models import OccupancyMap, InvalidDurationError, SLOTS_PER_DAY


def find_next_available_slot(occupancy: OccupancyMap, duration: int, start_slot: int = 0) -> Optional[int]:
    """
    Lowest slot >= start_slot that starts a free run of `duration` slots.

    The run must end by slot 143; the search does not wrap past midnight.

    Args:
        occupancy: Map for the date
        duration: Slots needed (>= 1)
        start_slot: First candidate slot

    Returns:
        Start slot of the run, or None if no run fits
    """
    if duration < 1:
        raise InvalidDurationError(f"Duration must be at least one slot: {duration}")

    candidate = max(start_slot, 0)
    last_candidate = SLOTS_PER_DAY - duration
    while candidate <= last_candidate:
        blocked = None
        for slot in range(candidate, candidate + duration):
            if not occupancy.is_free(slot):
                blocked = slot
                break
        if blocked is None:
            return candidate
        # Nothing starting at or before the occupied slot can fit
        candidate = blocked + 1
    return None


def find_free_runs(occupancy: OccupancyMap) -> List[Tuple[int, int]]:
    """All maximal free runs as (start_slot, length) pairs."""
    runs = []
    run_start = None
    for slot in range(SLOTS_PER_DAY):
        if occupancy.is_free(slot):
            if run_start is None:
                run_start = slot
        elif run_start is not None:
            runs.append((run_start, slot - run_start))
            run_start = None
    if run_start is not None:
        runs.append((run_start, SLOTS_PER_DAY - run_start))
    return runs
