# File: tests/conftest.py
"""
Pytest configuration and shared fixtures.
Provides reusable blocks, stores and mocks for all tests.
"""

import pytest
from datetime import date, datetime
from pathlib import Path
from unittest.mock import Mock
import sys

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import pytz

from dayplanner.models import TimeBlock, RecurringBlock, PermissionState
from dayplanner.core.block_store import BlockStore
from dayplanner.core.template_store import TemplateStore
from dayplanner.processors.schedule_processor import ScheduleProcessor
from dayplanner.services.repository import InMemoryRepository
from dayplanner.services.notification_service import NotificationPlatform


# ==================== Date Fixtures ====================

@pytest.fixture
def monday():
    """A Monday (weekday index 1)."""
    return date(2025, 11, 17)


@pytest.fixture
def tuesday():
    """The Tuesday after `monday`."""
    return date(2025, 11, 18)


@pytest.fixture
def sunday():
    """The Sunday before `monday` (weekday index 0)."""
    return date(2025, 11, 16)


@pytest.fixture
def amsterdam():
    """Timezone used for reminder tests."""
    return pytz.timezone("Europe/Amsterdam")


# ==================== Block Fixtures ====================

@pytest.fixture
def make_block(monday):
    """Factory for one-off blocks on `monday` unless told otherwise."""
    def _make(block_id="b1", start_time=54, duration=6, title="Deep Work", day=None, **kwargs):
        return TimeBlock(
            id=block_id,
            date=day or monday,
            title=title,
            start_time=start_time,
            duration=duration,
            **kwargs
        )
    return _make


@pytest.fixture
def make_template():
    """Factory for recurring templates (Mon/Wed/Fri by default)."""
    def _make(template_id="t1", start_time=42, duration=3, days=(1, 3, 5), title="Standup", **kwargs):
        return RecurringBlock(
            id=template_id,
            title=title,
            start_time=start_time,
            duration=duration,
            days_of_week=frozenset(days),
            **kwargs
        )
    return _make


# ==================== Store Fixtures ====================

@pytest.fixture
def repository():
    """Empty in-memory repository."""
    return InMemoryRepository()


@pytest.fixture
def processor():
    return ScheduleProcessor()


@pytest.fixture
def template_store(repository):
    return TemplateStore(repository)


@pytest.fixture
def block_store(repository, template_store, processor):
    return BlockStore(repository, template_store, processor)


# ==================== Mock Fixtures ====================

@pytest.fixture
def mock_notifier():
    """Notifier that is granted and always delivers."""
    notifier = Mock(spec=NotificationPlatform)
    notifier.permission_state.return_value = PermissionState.GRANTED
    notifier.request_permission.return_value = PermissionState.GRANTED
    notifier.notify.return_value = True
    return notifier


@pytest.fixture
def mock_scheduler():
    """Stand-in for an APScheduler BackgroundScheduler."""
    scheduler = Mock()
    scheduler.running = False
    return scheduler


@pytest.fixture
def naive_now(monday):
    """Monday 08:56, four minutes before slot 54 (09:00)."""
    return datetime(monday.year, monday.month, monday.day, 8, 56)


# ==================== Temporary Directory Fixtures ====================

@pytest.fixture
def temp_output_dir(tmp_path):
    """Create temporary output directory."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir


# ==================== Pytest Markers ====================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "external: mark test as requiring external services"
    )
