# File: dayplanner/core/template_store.py
"""
Owns the list of weekly RecurringBlock templates.
"""

import threading
import uuid
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple, Union

from dayplanner.models import RecurringBlock, BlockNotFoundError, recurring_block_from_dict
from dayplanner.services.repository import BlockRepository
from dayplanner.utils.logger import setup_logger

logger = setup_logger(__name__)

_PATCH_ALIASES = {
    'startTime': 'start_time',
    'daysOfWeek': 'days_of_week',
    'reminderLeadTime': 'reminder_lead_time',
    'startDate': 'start_date',
    'endDate': 'end_date',
}
_PATCHABLE = {
    'title', 'start_time', 'duration', 'days_of_week', 'color',
    'reminder_lead_time', 'reminder', 'start_date', 'end_date',
}


class TemplateStore:
    """CRUD for recurring templates, persisted as one list."""

    def __init__(self, repository: BlockRepository):
        self.repository = repository
        self._lock = threading.RLock()

    def get_templates(self) -> Tuple[RecurringBlock, ...]:
        """Snapshot of all templates."""
        with self._lock:
            return tuple(self.repository.load_recurring_templates())

    def get_template(self, template_id: str) -> Optional[RecurringBlock]:
        for template in self.get_templates():
            if template.id == template_id:
                return template
        return None

    def add_template(self, data: Union[RecurringBlock, Dict[str, Any]]) -> RecurringBlock:
        """
        Add a template.

        Args:
            data: A RecurringBlock, or a dict in stored form (id optional)

        Returns:
            The stored template
        """
        if isinstance(data, RecurringBlock):
            template = data
        else:
            template = recurring_block_from_dict({**data, 'id': data.get('id') or str(uuid.uuid4())})

        with self._lock:
            templates = list(self.repository.load_recurring_templates())
            if any(t.id == template.id for t in templates):
                raise ValueError(f"Template id already exists: {template.id}")
            templates.append(template)
            templates.sort(key=lambda t: t.start_time)
            self.repository.save_recurring_templates(templates)

        logger.info(f"Added recurring template '{template.title}' on days {sorted(template.days_of_week)}")
        return template

    def update_template(self, template_id: str, patch: Dict[str, Any]) -> RecurringBlock:
        """
        Replace fields of a template. Every future occurrence changes with it.

        Raises:
            BlockNotFoundError: Unknown template id
            ValueError: Patch touches `id` or an unknown field, or the result is invalid
        """
        changes = {_PATCH_ALIASES.get(k, k): v for k, v in patch.items()}
        unknown = set(changes) - _PATCHABLE
        if unknown:
            raise ValueError(f"Cannot patch template fields: {sorted(unknown)}")

        with self._lock:
            templates = list(self.repository.load_recurring_templates())
            for index, template in enumerate(templates):
                if template.id == template_id:
                    updated = replace(template, **changes)
                    templates[index] = updated
                    break
            else:
                raise BlockNotFoundError(template_id)

            templates.sort(key=lambda t: t.start_time)
            self.repository.save_recurring_templates(templates)

        logger.info(f"Updated recurring template '{updated.title}'")
        return updated

    def delete_template(self, template_id: str) -> bool:
        """Remove a template; returns False if it did not exist."""
        with self._lock:
            templates = list(self.repository.load_recurring_templates())
            remaining = [t for t in templates if t.id != template_id]
            if len(remaining) == len(templates):
                return False
            self.repository.save_recurring_templates(remaining)

        logger.info(f"Deleted recurring template {template_id}")
        return True

    def __len__(self) -> int:
        return len(self.get_templates())
