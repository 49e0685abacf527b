# File: tests/unit/test_reminder_scheduler.py
"""
Unit tests for ReminderScheduler.
Ticks are driven by hand with fixed clock values; APScheduler is mocked.
"""

import pytest
import pytz
from datetime import datetime, timedelta
from unittest.mock import Mock, patch
from apscheduler.jobstores.base import JobLookupError
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from dayplanner.core.reminder_scheduler import ReminderScheduler, TICK_JOB_ID, MIDNIGHT_JOB_ID
from dayplanner.models import DeadlineItem, PermissionState, ReminderKind


@pytest.fixture
def make_scheduler(block_store, template_store, mock_notifier, mock_scheduler, amsterdam, naive_now):
    """Factory for a ReminderScheduler with mocked collaborators."""
    def _make(**kwargs):
        options = {
            'notifier': mock_notifier,
            'timezone': amsterdam,
            'scheduler': mock_scheduler,
            'clock': lambda: amsterdam.localize(naive_now),
        }
        options.update(kwargs)
        return ReminderScheduler(block_store, template_store, **options)
    return _make


@pytest.fixture
def store_block(repository, make_block, monday):
    """Put blocks straight into the repository."""
    def _store(*blocks, day=None):
        repository.save_blocks_for_date(day or monday, list(blocks))
    return _store


class TestTick:
    """Tests for reminder evaluation."""

    def test_block_within_lead_time_is_upcoming(self, make_scheduler, store_block, make_block, naive_now):
        """Test a block starting in 4 minutes with a 5 minute lead time."""
        store_block(make_block(start_time=54, reminder_lead_time=5))
        reminders = make_scheduler()

        upcoming = reminders.tick(naive_now)

        assert len(upcoming) == 1
        assert upcoming[0].id == "b1"
        assert upcoming[0].time_to_start == 4
        assert upcoming[0].kind == ReminderKind.BLOCK
        assert reminders.upcoming_reminders == upcoming

    def test_time_to_start_rounds_up(self, make_scheduler, store_block, make_block, naive_now):
        store_block(make_block(start_time=54, reminder_lead_time=5))

        upcoming = make_scheduler().tick(naive_now + timedelta(seconds=30))

        assert upcoming[0].time_to_start == 4

    @pytest.mark.parametrize("minutes_before", [0, 6, -3])
    def test_outside_window_is_ignored(self, make_scheduler, store_block, make_block, monday, minutes_before):
        """Test that blocks already started or beyond the lead time do not qualify."""
        store_block(make_block(start_time=54, reminder_lead_time=5))
        now = datetime(monday.year, monday.month, monday.day, 9, 0) - timedelta(minutes=minutes_before)

        assert make_scheduler().tick(now) == []

    def test_exact_lead_time_qualifies(self, make_scheduler, store_block, make_block, monday):
        store_block(make_block(start_time=54, reminder_lead_time=5))
        now = datetime(monday.year, monday.month, monday.day, 8, 55)

        assert [r.time_to_start for r in make_scheduler().tick(now)] == [5]

    def test_legacy_reminder_flag(self, make_scheduler, store_block, make_block, naive_now):
        store_block(make_block(start_time=54, reminder=True))
        assert len(make_scheduler().tick(naive_now)) == 1

    def test_zero_lead_time_disables(self, make_scheduler, store_block, make_block, naive_now):
        store_block(make_block(start_time=54, reminder=True, reminder_lead_time=0))
        assert make_scheduler().tick(naive_now) == []

    def test_recurring_occurrence_is_included(self, make_scheduler, template_store, make_template, naive_now):
        template_store.add_template(make_template(start_time=54, duration=3, reminder_lead_time=10))

        upcoming = make_scheduler().tick(naive_now)

        assert [r.id for r in upcoming] == ["recurring-t1-2025-11-17"]

    def test_sorted_by_time_to_start(self, make_scheduler, store_block, make_block, naive_now):
        store_block(
            make_block("later", start_time=55, reminder_lead_time=30),
            make_block("sooner", start_time=54, reminder_lead_time=30),
        )

        upcoming = make_scheduler().tick(naive_now)

        assert [r.id for r in upcoming] == ["sooner", "later"]
        assert [r.time_to_start for r in upcoming] == [4, 14]

    def test_aware_now_uses_configured_timezone(self, make_scheduler, store_block, make_block, monday):
        """Test that 07:56 UTC is 08:56 in Amsterdam in November."""
        store_block(make_block(start_time=54, reminder_lead_time=5))
        now = pytz.utc.localize(datetime(monday.year, monday.month, monday.day, 7, 56))

        upcoming = make_scheduler().tick(now)

        assert [r.time_to_start for r in upcoming] == [4]

    def test_default_clock(self, make_scheduler, store_block, make_block):
        store_block(make_block(start_time=54, reminder_lead_time=5))
        assert len(make_scheduler().tick()) == 1

    def test_deadline_items(self, make_scheduler, naive_now):
        items = [
            DeadlineItem("i1", "Report", naive_now + timedelta(minutes=20), reminder_lead_time=30),
            DeadlineItem("i2", "Far away", naive_now + timedelta(hours=5), reminder_lead_time=30),
            DeadlineItem("i3", "No deadline", None, reminder_lead_time=30),
        ]

        upcoming = make_scheduler(deadline_source=lambda: items).tick(naive_now)

        assert [r.id for r in upcoming] == ["i1"]
        assert upcoming[0].kind == ReminderKind.DEADLINE
        assert upcoming[0].notification_key == "deadline-i1"

    def test_failing_deadline_source_is_logged(self, make_scheduler, naive_now):
        source = Mock(side_effect=RuntimeError("inbox offline"))
        assert make_scheduler(deadline_source=source).tick(naive_now) == []


class TestNotifications:
    """Tests for platform notification dedup."""

    def test_notifies_once_per_occurrence(self, make_scheduler, store_block, make_block, mock_notifier, naive_now):
        """Test that two ticks inside the lead window notify only once."""
        store_block(make_block(start_time=54, reminder_lead_time=5))
        reminders = make_scheduler()

        reminders.tick(naive_now)
        second = reminders.tick(naive_now + timedelta(minutes=1))

        mock_notifier.notify.assert_called_once_with("Upcoming: Deep Work", "Starts in 4 minute(s)")
        assert [r.time_to_start for r in second] == [3]
        assert reminders.notified_keys == {"block-b1"}

    def test_no_notification_without_permission(self, make_scheduler, store_block, make_block, mock_notifier, naive_now):
        store_block(make_block(start_time=54, reminder_lead_time=5))
        mock_notifier.permission_state.return_value = PermissionState.DENIED
        reminders = make_scheduler()

        upcoming = reminders.tick(naive_now)

        assert len(upcoming) == 1
        mock_notifier.notify.assert_not_called()

        mock_notifier.permission_state.return_value = PermissionState.GRANTED
        reminders.tick(naive_now)
        mock_notifier.notify.assert_called_once()

    def test_failing_permission_query_keeps_list(self, make_scheduler, store_block, make_block, mock_notifier, naive_now):
        """Test that a platform without notification support only loses the notification."""
        store_block(make_block(start_time=54, reminder_lead_time=5))
        mock_notifier.permission_state.side_effect = RuntimeError("platform unsupported")
        reminders = make_scheduler()

        upcoming = reminders.tick(naive_now)

        assert [r.time_to_start for r in upcoming] == [4]
        assert reminders.upcoming_reminders == upcoming
        mock_notifier.notify.assert_not_called()
        assert reminders.notified_keys == set()

    def test_failed_delivery_is_retried(self, make_scheduler, store_block, make_block, mock_notifier, naive_now):
        store_block(make_block(start_time=54, reminder_lead_time=5))
        mock_notifier.notify.return_value = False
        reminders = make_scheduler()

        reminders.tick(naive_now)
        reminders.tick(naive_now)

        assert mock_notifier.notify.call_count == 2
        assert reminders.notified_keys == set()

    def test_notifier_exception_does_not_stop_tick(self, make_scheduler, store_block, make_block, mock_notifier, naive_now):
        store_block(
            make_block("a", start_time=54, reminder_lead_time=5),
            make_block("b", start_time=55, reminder_lead_time=15),
        )
        mock_notifier.notify.side_effect = [RuntimeError("boom"), True]
        reminders = make_scheduler()

        upcoming = reminders.tick(naive_now)

        assert len(upcoming) == 2
        assert reminders.notified_keys == {"block-b"}

    def test_reset_allows_notifying_again(self, make_scheduler, store_block, make_block, mock_notifier, naive_now):
        store_block(make_block(start_time=54, reminder_lead_time=5))
        reminders = make_scheduler()

        reminders.tick(naive_now)
        reminders.reset_notified()
        reminders.tick(naive_now)

        assert mock_notifier.notify.call_count == 2

    def test_midnight_reset_same_id_next_day(
        self, make_scheduler, store_block, make_block, mock_notifier, naive_now, tuesday
    ):
        """Test that a block with the same id notifies again the day after the reset."""
        store_block(make_block(start_time=54, reminder_lead_time=5))
        store_block(make_block(start_time=54, reminder_lead_time=5, day=tuesday), day=tuesday)
        reminders = make_scheduler()

        reminders.tick(naive_now)
        reminders._on_midnight()
        reminders.tick(naive_now + timedelta(days=1))

        assert mock_notifier.notify.call_count == 2

    def test_without_reset_same_id_is_not_renotified(
        self, make_scheduler, store_block, make_block, mock_notifier, naive_now, tuesday
    ):
        store_block(make_block(start_time=54, reminder_lead_time=5))
        store_block(make_block(start_time=54, reminder_lead_time=5, day=tuesday), day=tuesday)
        reminders = make_scheduler()

        reminders.tick(naive_now)
        reminders.tick(naive_now + timedelta(days=1))

        mock_notifier.notify.assert_called_once()


class TestSubscriptions:
    """Tests for subscribe/unsubscribe."""

    def test_subscriber_receives_list(self, make_scheduler, store_block, make_block, naive_now):
        store_block(make_block(start_time=54, reminder_lead_time=5))
        reminders = make_scheduler()
        received = []

        unsubscribe = reminders.subscribe(received.append)
        reminders.tick(naive_now)
        unsubscribe()
        reminders.tick(naive_now)

        assert len(received) == 1
        assert received[0][0].id == "b1"

    def test_failing_subscriber_is_logged(self, make_scheduler, naive_now):
        reminders = make_scheduler()
        reminders.subscribe(Mock(side_effect=RuntimeError("ui gone")))

        assert reminders.tick(naive_now) == []


class TestLifecycle:
    """Tests for start/stop and job registration."""

    def test_start_registers_both_jobs(self, make_scheduler, mock_scheduler, amsterdam, tuesday):
        reminders = make_scheduler(interval_seconds=30)

        reminders.start()

        jobs = {c.kwargs['id']: c for c in mock_scheduler.add_job.call_args_list}
        assert set(jobs) == {TICK_JOB_ID, MIDNIGHT_JOB_ID}

        tick_trigger = jobs[TICK_JOB_ID].kwargs['trigger']
        assert isinstance(tick_trigger, IntervalTrigger)
        assert tick_trigger.interval == timedelta(seconds=30)

        midnight_trigger = jobs[MIDNIGHT_JOB_ID].kwargs['trigger']
        assert isinstance(midnight_trigger, DateTrigger)
        assert midnight_trigger.run_date == amsterdam.localize(datetime(tuesday.year, tuesday.month, tuesday.day))

        mock_scheduler.start.assert_not_called()

    def test_start_requests_permission(self, make_scheduler, mock_notifier):
        make_scheduler().start()
        mock_notifier.request_permission.assert_called_once()

    def test_start_survives_failing_permission_request(self, make_scheduler, mock_scheduler, mock_notifier):
        mock_notifier.request_permission.side_effect = RuntimeError("platform unsupported")
        reminders = make_scheduler()

        reminders.start()

        job_ids = {c.kwargs['id'] for c in mock_scheduler.add_job.call_args_list}
        assert job_ids == {TICK_JOB_ID, MIDNIGHT_JOB_ID}

    def test_midnight_job_reschedules_itself(self, make_scheduler, mock_scheduler):
        reminders = make_scheduler()
        reminders.start()
        mock_scheduler.add_job.reset_mock()

        reminders._on_midnight()

        mock_scheduler.add_job.assert_called_once()
        assert mock_scheduler.add_job.call_args.kwargs['id'] == MIDNIGHT_JOB_ID

    def test_stop_prevents_notifications(self, make_scheduler, store_block, make_block, mock_notifier, naive_now):
        store_block(make_block(start_time=54, reminder_lead_time=5))
        reminders = make_scheduler()
        reminders.start()

        reminders.stop()

        assert reminders.tick(naive_now) == []
        mock_notifier.notify.assert_not_called()

    def test_stop_removes_jobs(self, make_scheduler, mock_scheduler):
        reminders = make_scheduler()
        reminders.start()

        reminders.stop()

        removed = {c.args[0] for c in mock_scheduler.remove_job.call_args_list}
        assert removed == {TICK_JOB_ID, MIDNIGHT_JOB_ID}
        mock_scheduler.shutdown.assert_not_called()

    def test_stop_tolerates_missing_jobs(self, make_scheduler, mock_scheduler):
        mock_scheduler.remove_job.side_effect = JobLookupError(TICK_JOB_ID)
        reminders = make_scheduler()
        reminders.start()

        reminders.stop()

    def test_midnight_after_stop_does_nothing(self, make_scheduler, mock_scheduler):
        reminders = make_scheduler()
        reminders.start()
        reminders.stop()
        mock_scheduler.add_job.reset_mock()

        reminders._on_midnight()

        mock_scheduler.add_job.assert_not_called()

    def test_context_manager(self, make_scheduler, mock_scheduler):
        with make_scheduler():
            assert mock_scheduler.add_job.call_count == 2
        assert mock_scheduler.remove_job.call_count == 2

    def test_owned_scheduler_is_started_and_shut_down(self, block_store, template_store, mock_notifier, amsterdam):
        with patch("dayplanner.core.reminder_scheduler.BackgroundScheduler") as scheduler_cls:
            owned = scheduler_cls.return_value
            owned.running = False
            reminders = ReminderScheduler(block_store, template_store, mock_notifier, amsterdam)

            reminders.start()
            owned.start.assert_called_once()

            owned.running = True
            reminders.stop()
            owned.shutdown.assert_called_once_with(wait=False)
