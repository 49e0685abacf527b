# File: dayplanner/core/reminder_scheduler.py
"""
Reminder evaluation loop.

Every tick recomputes the upcoming-reminders list for today from scratch and
raises at most one platform notification per occurrence. The set of notified
keys is cleared at local midnight by a separate one-shot job.
"""

import datetime
import math
import threading
from typing import Callable, Iterable, List, Optional, Set

import pytz
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from dayplanner.core.block_store import BlockStore
from dayplanner.core.template_store import TemplateStore
from dayplanner.models import (
    UpcomingReminder,
    DeadlineItem,
    ScheduleBlock,
    PermissionState,
    ReminderKind,
    LEGACY_REMINDER_LEAD_MINUTES,
)
from dayplanner.processors.recurrence import expand_for_date
from dayplanner.processors.slot_model import slot_to_clock
from dayplanner.services.notification_service import NotificationPlatform
from dayplanner.utils.logger import LoggerMixin

TICK_JOB_ID = "reminder-tick"
MIDNIGHT_JOB_ID = "reminder-midnight-reset"

ReminderListener = Callable[[List[UpcomingReminder]], None]


class ReminderScheduler(LoggerMixin):
    """Periodic reminder evaluation for today's blocks and deadline items."""

    def __init__(
        self,
        block_store: BlockStore,
        template_store: TemplateStore,
        notifier: NotificationPlatform,
        timezone: pytz.BaseTzInfo,
        interval_seconds: int = 30,
        deadline_source: Optional[Callable[[], Iterable[DeadlineItem]]] = None,
        clock: Optional[Callable[[], datetime.datetime]] = None,
        scheduler: Optional[BackgroundScheduler] = None,
        legacy_lead: int = LEGACY_REMINDER_LEAD_MINUTES
    ):
        """
        Initialize the reminder scheduler.

        Args:
            block_store: Source of today's one-off blocks
            template_store: Source of recurring templates
            notifier: Platform notifications are sent through this
            timezone: Local zone that defines "today" and midnight
            interval_seconds: Seconds between ticks
            deadline_source: Callable returning external deadline items
            clock: Returns the current time (defaults to now in `timezone`)
            scheduler: APScheduler instance to register jobs on; one is
                created and owned when omitted
            legacy_lead: Lead minutes for blocks with only the `reminder` flag
        """
        self.block_store = block_store
        self.template_store = template_store
        self.notifier = notifier
        self.timezone = timezone
        self.interval_seconds = interval_seconds
        self.deadline_source = deadline_source
        self.legacy_lead = legacy_lead
        self._clock = clock or (lambda: datetime.datetime.now(self.timezone))

        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler or BackgroundScheduler(timezone=timezone)

        self._lock = threading.RLock()
        self._notified: Set[str] = set()
        self._upcoming: List[UpcomingReminder] = []
        self._listeners: List[ReminderListener] = []
        self._stopped = False
        self._started = False

    # ==================== Evaluation ====================

    def tick(self, now: Optional[datetime.datetime] = None) -> List[UpcomingReminder]:
        """
        Evaluate reminders once.

        Args:
            now: Evaluation time (defaults to the clock). Aware values are
                converted to the configured zone.

        Returns:
            The freshly published upcoming-reminders list
        """
        with self._lock:
            if self._stopped:
                self.logger.debug("Tick after stop ignored")
                return []

            now = self._local_now(now)
            today = now.date()

            upcoming = []
            for block in self._todays_blocks(today):
                reminder = self._evaluate_block(block, now)
                if reminder is not None:
                    upcoming.append(reminder)
            for item in self._deadline_items():
                reminder = self._evaluate_deadline(item, now)
                if reminder is not None:
                    upcoming.append(reminder)

            upcoming.sort(key=lambda r: (r.time_to_start, r.id))
            self._upcoming = upcoming
            self._publish(upcoming)
            self._notify_new(upcoming)
            return list(upcoming)

    def _local_now(self, now: Optional[datetime.datetime]) -> datetime.datetime:
        if now is None:
            now = self._clock()
        if now.tzinfo is not None:
            return now.astimezone(self.timezone)
        return now

    def _todays_blocks(self, today: datetime.date) -> List[ScheduleBlock]:
        # Spillover pieces start at 00:00 and never need a reminder
        blocks = [ScheduleBlock.from_time_block(b) for b in self.block_store.get_blocks(today)]
        blocks.extend(expand_for_date(self.template_store.get_templates(), today))
        return blocks

    def _deadline_items(self) -> List[DeadlineItem]:
        if self.deadline_source is None:
            return []
        try:
            return list(self.deadline_source())
        except Exception as e:
            self.logger.error(f"Could not load deadline items: {e}", exc_info=True)
            return []

    def _evaluate_block(self, block: ScheduleBlock, now: datetime.datetime) -> Optional[UpcomingReminder]:
        lead = block.effective_lead_time(self.legacy_lead)
        if lead <= 0:
            return None

        start = datetime.datetime.combine(now.date(), slot_to_clock(block.start_time))
        if now.tzinfo is not None:
            start = self.timezone.localize(start)

        minutes = self._minutes_until(start, now)
        if not 0 < minutes <= lead:
            return None
        return UpcomingReminder(
            id=block.id,
            title=block.title,
            time_to_start=math.ceil(minutes),
            color=block.color,
            kind=ReminderKind.BLOCK,
        )

    def _evaluate_deadline(self, item: DeadlineItem, now: datetime.datetime) -> Optional[UpcomingReminder]:
        if item.deadline is None or item.reminder_lead_time <= 0:
            return None

        deadline = item.deadline
        if deadline.tzinfo is not None and now.tzinfo is None:
            deadline = deadline.astimezone(self.timezone).replace(tzinfo=None)
        elif deadline.tzinfo is None and now.tzinfo is not None:
            deadline = self.timezone.localize(deadline)

        minutes = self._minutes_until(deadline, now)
        if not 0 < minutes <= item.reminder_lead_time:
            return None
        return UpcomingReminder(
            id=item.id,
            title=item.title,
            time_to_start=math.ceil(minutes),
            color=item.color,
            kind=ReminderKind.DEADLINE,
        )

    @staticmethod
    def _minutes_until(moment: datetime.datetime, now: datetime.datetime) -> float:
        return (moment - now).total_seconds() / 60

    def _publish(self, upcoming: List[UpcomingReminder]) -> None:
        for listener in list(self._listeners):
            try:
                listener(list(upcoming))
            except Exception as e:
                self.logger.error(f"Reminder listener failed: {e}", exc_info=True)

    def _notify_new(self, upcoming: List[UpcomingReminder]) -> None:
        fresh = [r for r in upcoming if r.notification_key not in self._notified]
        if not fresh:
            return

        if self._permission(self.notifier.permission_state) != PermissionState.GRANTED:
            self.logger.debug(f"Notifications not permitted; {len(fresh)} reminder(s) kept in-app only")
            return

        for reminder in fresh:
            if reminder.kind == ReminderKind.DEADLINE:
                title = f"Deadline: {reminder.title}"
                body = f"Due in {reminder.time_to_start} minute(s)"
            else:
                title = f"Upcoming: {reminder.title}"
                body = f"Starts in {reminder.time_to_start} minute(s)"

            try:
                delivered = self.notifier.notify(title, body)
            except Exception as e:
                self.logger.error(f"Notifier failed for {reminder.notification_key}: {e}", exc_info=True)
                continue

            if delivered:
                self._notified.add(reminder.notification_key)
                self.logger.info(f"Notified {reminder.notification_key} ({reminder.time_to_start} min)")

    def _permission(self, query: Callable[[], PermissionState]) -> PermissionState:
        """Ask the platform for its permission state; a failing platform counts as denied."""
        try:
            return query()
        except Exception as e:
            self.logger.warning(f"Notification platform unavailable: {e}")
            return PermissionState.DENIED

    # ==================== State ====================

    @property
    def upcoming_reminders(self) -> List[UpcomingReminder]:
        with self._lock:
            return list(self._upcoming)

    @property
    def notified_keys(self) -> Set[str]:
        with self._lock:
            return set(self._notified)

    def reset_notified(self) -> None:
        """Forget which reminders have already been notified."""
        with self._lock:
            count = len(self._notified)
            self._notified.clear()
        self.logger.info(f"Cleared {count} notified reminder(s)")

    def subscribe(self, callback: ReminderListener) -> Callable[[], None]:
        """
        Receive the upcoming list after every tick.

        Returns:
            A function that removes the subscription
        """
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    # ==================== Lifecycle ====================

    def start(self) -> None:
        """Register the periodic tick and the midnight reset, then run."""
        with self._lock:
            self._stopped = False
            self._started = True

        state = self._permission(self.notifier.request_permission)
        if state != PermissionState.GRANTED:
            self.logger.info(f"Notification permission is {state.value}; reminders stay in-app only")

        self._scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=TICK_JOB_ID,
            replace_existing=True,
            next_run_time=datetime.datetime.now(self.timezone),
        )
        self._schedule_midnight_reset()

        if self._owns_scheduler and not self._scheduler.running:
            self._scheduler.start()
        self.logger.info(f"Reminder loop started (every {self.interval_seconds}s)")

    def next_midnight(self) -> datetime.datetime:
        """Start of tomorrow in the configured zone."""
        today = self._local_now(None).date()
        tomorrow = today + datetime.timedelta(days=1)
        return self.timezone.localize(datetime.datetime.combine(tomorrow, datetime.time.min))

    def _schedule_midnight_reset(self) -> None:
        run_date = self.next_midnight()
        self._scheduler.add_job(
            self._on_midnight,
            trigger=DateTrigger(run_date=run_date),
            id=MIDNIGHT_JOB_ID,
            replace_existing=True,
        )
        self.logger.debug(f"Next notified-set reset at {run_date.isoformat()}")

    def _on_midnight(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self.reset_notified()
            self._schedule_midnight_reset()

    def stop(self) -> None:
        """Cancel both jobs. No tick publishes or notifies once this returns."""
        with self._lock:
            self._stopped = True
            was_started = self._started
            self._started = False

        if not was_started:
            return

        for job_id in (TICK_JOB_ID, MIDNIGHT_JOB_ID):
            try:
                self._scheduler.remove_job(job_id)
            except JobLookupError:
                self.logger.debug(f"Job {job_id} already gone")

        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self.logger.info("Reminder loop stopped")

    def __enter__(self) -> 'ReminderScheduler':
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
