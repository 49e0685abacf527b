# File: dayplanner/services/service_factory.py

from dayplanner.core.config_manager import Config
from dayplanner.utils.logger import setup_logger
from dayplanner.services.repository import BlockRepository, InMemoryRepository, SqliteRepository
from dayplanner.services.notification_service import NotificationPlatform, LogNotifier, WebhookNotifier

logger = setup_logger(__name__)

class ServiceFactory:
    """Factory for creating service instances from Config."""

    @staticmethod
    def create_repository() -> BlockRepository:
        """
        Create the configured repository.

        Returns:
            SqliteRepository at Config.DB_FILE, or an InMemoryRepository when
            DAYPLANNER_STORAGE=memory
        """
        if Config.STORAGE_BACKEND == "memory":
            logger.info("Using in-memory storage; blocks are lost on exit")
            return InMemoryRepository()

        logger.info(f"Using SQLite storage at {Config.DB_FILE}")
        return SqliteRepository(Config.DB_FILE)

    @staticmethod
    def create_notifier() -> NotificationPlatform:
        """
        Create the notification platform.

        Returns:
            WebhookNotifier when NOTIFY_WEBHOOK_URL is set, otherwise a
            LogNotifier that writes reminders to the log
        """
        if Config.NOTIFY_WEBHOOK_URL:
            return WebhookNotifier(Config.NOTIFY_WEBHOOK_URL, timeout=Config.NOTIFY_TIMEOUT_SECONDS)
        return LogNotifier(granted=True)
