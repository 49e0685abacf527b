# File: dayplanner/core/schedule_context.py
"""
Scheduling context.

One object owns the stores, the occupancy builder and the reminder loop for
a user session. Callers construct it, pass it around, and close it when the
session ends.
"""

import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import pytz
from apscheduler.schedulers.background import BackgroundScheduler

from dayplanner.core.block_store import BlockStore, ConflictHandler
from dayplanner.core.config_manager import Config
from dayplanner.core.reminder_scheduler import ReminderScheduler, ReminderListener
from dayplanner.core.template_store import TemplateStore
from dayplanner.models import (
    OccupancyMap,
    ScheduleBlock,
    RecurringBlock,
    DeadlineItem,
    UpcomingReminder,
    TimeFormat,
    WriteResult,
    WriteStatus,
    PlannerError,
    LEGACY_REMINDER_LEAD_MINUTES,
    date_key,
)
from dayplanner.processors.schedule_processor import ScheduleProcessor
from dayplanner.processors.slot_finder import find_next_available_slot, find_free_runs
from dayplanner.processors.slot_model import format_range
from dayplanner.services.notification_service import NotificationPlatform
from dayplanner.services.repository import BlockRepository
from dayplanner.services.service_factory import ServiceFactory
from dayplanner.utils.logger import setup_logger

logger = setup_logger(__name__)


class ScheduleContext:
    """Entry point for UI consumers: schedule reads, writes and reminders."""

    def __init__(
        self,
        repository: BlockRepository,
        notifier: NotificationPlatform,
        timezone: pytz.BaseTzInfo = pytz.utc,
        time_format: Union[TimeFormat, str] = TimeFormat.H12,
        interval_seconds: int = 30,
        deadline_source: Optional[Callable[[], Iterable[DeadlineItem]]] = None,
        clock: Optional[Callable[[], datetime.datetime]] = None,
        scheduler: Optional[BackgroundScheduler] = None,
        legacy_lead: int = LEGACY_REMINDER_LEAD_MINUTES
    ):
        self.repository = repository
        self.notifier = notifier
        self.timezone = timezone
        self.time_format = TimeFormat(time_format.lower()) if isinstance(time_format, str) else time_format

        self.processor = ScheduleProcessor()
        self.templates = TemplateStore(repository)
        self.blocks = BlockStore(repository, self.templates, self.processor)
        self.reminders = ReminderScheduler(
            self.blocks,
            self.templates,
            notifier,
            timezone,
            interval_seconds=interval_seconds,
            deadline_source=deadline_source,
            clock=clock,
            scheduler=scheduler,
            legacy_lead=legacy_lead,
        )

    # ==================== Reads ====================

    def today(self) -> datetime.date:
        return datetime.datetime.now(self.timezone).date()

    def get_schedule_for_date(self, day: datetime.date) -> OccupancyMap:
        """Merged slot -> block view of a date."""
        return self.blocks.build_occupancy(day)

    def find_next_available_slot(self, day: datetime.date, duration: int, start_slot: int = 0) -> Optional[int]:
        """Lowest free start slot >= start_slot that fits `duration`, or None."""
        return find_next_available_slot(self.get_schedule_for_date(day), duration, start_slot)

    def describe_day(self, day: datetime.date) -> List[str]:
        """Human readable lines for a date, one per block."""
        lines = []
        for block in self.get_schedule_for_date(day).blocks():
            marker = " (recurring)" if block.is_recurring else ""
            lines.append(f"{format_range(block.start_time, block.duration, self.time_format)}  {block.title}{marker}")
        return lines

    def free_runs(self, day: datetime.date) -> List[Tuple[int, int]]:
        return find_free_runs(self.get_schedule_for_date(day))

    # ==================== One-off blocks ====================

    def add_block(self, day: datetime.date, data: Dict[str, Any], on_conflict: Optional[ConflictHandler] = None) -> WriteResult:
        return self.blocks.add_block(day, data, on_conflict)

    def update_block(
        self,
        day: datetime.date,
        block_id: str,
        patch: Dict[str, Any],
        on_conflict: Optional[ConflictHandler] = None
    ) -> WriteResult:
        return self.blocks.update_block(day, block_id, patch, on_conflict)

    def delete_block(self, day: datetime.date, block_id: str) -> bool:
        return self.blocks.delete_block(day, block_id)

    # ==================== Recurring templates ====================

    def add_template(self, data: Union[RecurringBlock, Dict[str, Any]]) -> RecurringBlock:
        return self.templates.add_template(data)

    def update_template(self, template_id: str, patch: Dict[str, Any]) -> RecurringBlock:
        return self.templates.update_template(template_id, patch)

    def delete_template(self, template_id: str) -> bool:
        return self.templates.delete_template(template_id)

    # ==================== Provenance routing ====================

    def update_scheduled_block(
        self,
        block: ScheduleBlock,
        patch: Dict[str, Any],
        on_conflict: Optional[ConflictHandler] = None
    ) -> WriteResult:
        """
        Edit whatever a schedule entry came from.

        One-off entries are patched in the Block Store with the usual conflict
        protocol. Recurring entries and their spillover pieces edit the
        template, which changes every occurrence.
        """
        if not block.is_recurring:
            return self.blocks.update_block(block.date, block.source_id, patch, on_conflict)

        try:
            template = self.templates.update_template(block.source_id, patch)
        except (PlannerError, ValueError, TypeError) as e:
            logger.warning(f"Rejected edit of recurring template {block.source_id}: {e}")
            return WriteResult(WriteStatus.REJECTED, error=e)
        return WriteResult(WriteStatus.COMMITTED, block=template)

    def delete_scheduled_block(self, block: ScheduleBlock) -> bool:
        """Delete a one-off block, or the whole template behind a recurring entry."""
        if block.is_recurring:
            logger.info(f"Deleting recurring template {block.source_id} via {date_key(block.date)}")
            return self.templates.delete_template(block.source_id)
        return self.blocks.delete_block(block.date, block.source_id)

    # ==================== Reminders ====================

    @property
    def upcoming_reminders(self) -> List[UpcomingReminder]:
        return self.reminders.upcoming_reminders

    def subscribe_reminders(self, callback: ReminderListener) -> Callable[[], None]:
        return self.reminders.subscribe(callback)

    # ==================== Lifecycle ====================

    def start(self) -> None:
        """Start the reminder loop."""
        self.reminders.start()

    def close(self) -> None:
        """Stop the reminder loop. Safe to call more than once."""
        self.reminders.stop()
        logger.debug("Schedule context closed")

    def __enter__(self) -> 'ScheduleContext':
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class ScheduleContextFactory:
    """Factory for creating ScheduleContext instances from Config."""

    @staticmethod
    def create(
        deadline_source: Optional[Callable[[], Iterable[DeadlineItem]]] = None
    ) -> ScheduleContext:
        """
        Create a context wired to the configured storage and notifier.

        Raises:
            ValueError: If configuration is invalid
        """
        logger.info("Creating ScheduleContext via factory")

        if not Config.validate():
            raise ValueError("Configuration validation failed. Check your .env settings.")
        Config.setup_logging()

        return ScheduleContext(
            repository=ServiceFactory.create_repository(),
            notifier=ServiceFactory.create_notifier(),
            timezone=Config.get_timezone(),
            time_format=Config.get_time_format(),
            interval_seconds=Config.REMINDER_INTERVAL_SECONDS,
            deadline_source=deadline_source,
            legacy_lead=Config.LEGACY_REMINDER_LEAD_MINUTES,
        )
