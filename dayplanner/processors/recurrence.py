# File: dayplanner/processors/recurrence.py
"""
Projects weekly RecurringBlock templates onto concrete dates.

Occurrences are never stored. Their ids are derived from the template id and
the date, so the same (template, date) pair always maps to the same id.
"""

import datetime
from dataclasses import replace
from typing import Iterable, List, Optional

from dayplanner.models import (
    RecurringBlock,
    ScheduleBlock,
    RECURRING_ID_PREFIX,
    SLOTS_PER_DAY,
    date_key,
)
from dayplanner.utils.logger import setup_logger

logger = setup_logger(__name__)

SPILLOVER_SUFFIX = "-spillover"


def occurrence_id(template_id: str, day: datetime.date) -> str:
    """Stable id of a template's occurrence on a date."""
    return f"{RECURRING_ID_PREFIX}{template_id}-{date_key(day)}"


def expand_recurring(template: RecurringBlock, day: datetime.date) -> Optional[ScheduleBlock]:
    """
    Derive the occurrence of a template on a date.

    Args:
        template: Weekly template
        day: Calendar date to project onto

    Returns:
        ScheduleBlock tagged RECURRING, or None if the template does not
        recur on that date
    """
    if not template.is_active_on(day):
        return None
    return ScheduleBlock.from_recurring(template, day, occurrence_id(template.id, day))


def expand_for_date(templates: Iterable[RecurringBlock], day: datetime.date) -> List[ScheduleBlock]:
    """All occurrences on a date, ordered by start slot."""
    occurrences = []
    for template in templates:
        occurrence = expand_recurring(template, day)
        if occurrence is not None:
            occurrences.append(occurrence)
    return sorted(occurrences, key=lambda b: (b.start_time, b.id))


def spillover_for_date(templates: Iterable[RecurringBlock], day: datetime.date) -> List[ScheduleBlock]:
    """
    Parts of the previous day's occurrences that run past midnight.

    Each piece is re-anchored at slot 0 of `day` and keeps the template as
    its source so edits still route to the template.
    """
    previous_day = day - datetime.timedelta(days=1)
    pieces = []
    for occurrence in expand_for_date(templates, previous_day):
        overflow = occurrence.start_time + occurrence.duration - SLOTS_PER_DAY
        if overflow <= 0:
            continue
        logger.debug(f"'{occurrence.title}' spills {overflow} slot(s) into {date_key(day)}")
        pieces.append(replace(
            occurrence,
            id=f"{occurrence.id}{SPILLOVER_SUFFIX}",
            date=day,
            start_time=0,
            duration=min(overflow, SLOTS_PER_DAY),
            is_spillover=True,
        ))
    return pieces
