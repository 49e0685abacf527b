# File: tests/unit/test_logger.py
"""
Unit tests for the logging helpers.
"""

import logging
import pytest
from unittest.mock import patch

from dayplanner.core.config_manager import Config
from dayplanner.utils.logger import (
    PACKAGE_LOGGER,
    ConsoleHandler,
    LoggerMixin,
    enable_file_logging,
    log_file_path,
    setup_logger,
)


@pytest.fixture
def package_logger():
    """Package logger with any file handler added by a test removed afterwards."""
    root = logging.getLogger(PACKAGE_LOGGER)
    before = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class TestSetupLogger:
    """Tests for named loggers."""

    def test_module_logger_is_under_package(self, package_logger):
        logger = setup_logger("dayplanner.core.block_store")

        ancestors = []
        while logger is not None:
            ancestors.append(logger)
            logger = logger.parent
        assert ancestors[0].name == "dayplanner.core.block_store"
        assert package_logger in ancestors

    def test_script_logger_is_moved_under_package(self):
        assert setup_logger("__main__").name == "dayplanner.__main__"

    def test_console_handler_attached_once(self, package_logger):
        setup_logger("dayplanner.a")
        setup_logger("dayplanner.b")

        consoles = [h for h in package_logger.handlers if isinstance(h, ConsoleHandler)]
        assert len(consoles) == 1

    def test_mixin_logger(self):
        class Worker(LoggerMixin):
            pass

        worker = Worker()
        assert worker.logger.name == "dayplanner.Worker"
        assert worker.logger is worker.logger


class TestFileLogging:
    """Tests for the daily log file."""

    def test_records_reach_file(self, package_logger, tmp_path):
        log_dir = tmp_path / "logs"

        handler = enable_file_logging(log_dir)
        setup_logger("dayplanner.core.block_store").info("Added 'Gym'")
        handler.flush()

        assert log_dir.is_dir()
        content = log_file_path(log_dir).read_text(encoding='utf-8')
        assert "dayplanner.core.block_store" in content
        assert "Added 'Gym'" in content

    def test_same_directory_reuses_handler(self, package_logger, tmp_path):
        first = enable_file_logging(tmp_path)
        second = enable_file_logging(tmp_path)

        assert first is second
        assert sum(isinstance(h, logging.FileHandler) for h in package_logger.handlers) == 1

    def test_new_directory_replaces_handler(self, package_logger, tmp_path):
        first = enable_file_logging(tmp_path / "a")
        second = enable_file_logging(tmp_path / "b")

        assert first not in package_logger.handlers
        assert second in package_logger.handlers

    def test_debug_level(self, package_logger, tmp_path):
        handler = enable_file_logging(tmp_path, "DEBUG")
        setup_logger("dayplanner.test").debug("tick details")
        handler.flush()

        assert "tick details" in log_file_path(tmp_path).read_text(encoding='utf-8')

    def test_config_uses_logs_dir(self, package_logger, tmp_path):
        with patch.object(Config, "LOGS_DIR", tmp_path / "configured"), \
             patch.object(Config, "LOG_LEVEL", "INFO"):
            Config.setup_logging()

        assert log_file_path(tmp_path / "configured").exists()

    def test_invalid_log_level_fails_validation(self):
        with patch.object(Config, "LOG_LEVEL", "LOUD"):
            assert Config.validate() is False
