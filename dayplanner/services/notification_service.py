# File: dayplanner/services/notification_service.py
"""
Notification platform adapters.

The Reminder Scheduler only calls `notify` when `permission_state()` is
GRANTED. A platform that is unsupported or denied leaves reminders in the
in-app list only.
"""

from abc import ABC, abstractmethod
from typing import Optional

import requests

from dayplanner.models import PermissionState
from dayplanner.utils.logger import setup_logger

logger = setup_logger(__name__)


class NotificationPlatform(ABC):
    """Interface to whatever shows notifications to the user."""

    @abstractmethod
    def permission_state(self) -> PermissionState:
        """Current permission."""

    @abstractmethod
    def request_permission(self) -> PermissionState:
        """Ask for permission and return the resulting state."""

    @abstractmethod
    def notify(self, title: str, body: str) -> bool:
        """Show a notification. Returns True if it was delivered."""


class LogNotifier(NotificationPlatform):
    """Writes notifications to the log. Useful for terminals and tests."""

    def __init__(self, granted: bool = True):
        self._state = PermissionState.GRANTED if granted else PermissionState.DEFAULT

    def permission_state(self) -> PermissionState:
        return self._state

    def request_permission(self) -> PermissionState:
        if self._state == PermissionState.DEFAULT:
            self._state = PermissionState.GRANTED
        return self._state

    def notify(self, title: str, body: str) -> bool:
        logger.info(f"🔔 {title}: {body}")
        return True


class WebhookNotifier(NotificationPlatform):
    """
    Pushes notifications over HTTP to an ntfy-style endpoint.

    The message body is posted as plain text with the title in a header.
    Without a URL the platform counts as denied.
    """

    def __init__(
        self,
        url: Optional[str],
        timeout: int = 10,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize webhook notifier.

        Args:
            url: Endpoint that accepts POSTed notification text
            timeout: Request timeout in seconds
            session: Optional requests session (injected in tests)
        """
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def permission_state(self) -> PermissionState:
        return PermissionState.GRANTED if self.url else PermissionState.DENIED

    def request_permission(self) -> PermissionState:
        state = self.permission_state()
        if state != PermissionState.GRANTED:
            logger.warning("No NOTIFY_WEBHOOK_URL configured; reminders stay in-app only")
        return state

    def notify(self, title: str, body: str) -> bool:
        if not self.url:
            return False

        try:
            response = self.session.post(
                self.url,
                data=body.encode('utf-8'),
                headers={"Title": title, "Tags": "alarm_clock"},
                timeout=self.timeout
            )
            response.raise_for_status()
            logger.debug(f"Notification sent: {title}")
            return True
        except requests.exceptions.Timeout:
            logger.error(f"Notification request timed out after {self.timeout}s")
            return False
        except requests.exceptions.RequestException as e:
            logger.error(f"Notification request failed: {e}")
            return False
