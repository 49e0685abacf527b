# File: dayplanner/utils/logger.py
"""
Logging for the day planner.

Every module logs through a child of the ``dayplanner`` logger, which owns
the handlers. Console output is attached on first use. The daily log file is
opened only once a log directory is known, normally ``Config.LOGS_DIR`` via
``Config.setup_logging()``.
"""

import logging
import os
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional, Union

PACKAGE_LOGGER = "dayplanner"

CONSOLE_FORMAT = logging.Formatter(
    '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
    datefmt='%H:%M:%S'
)
FILE_FORMAT = logging.Formatter(
    '%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)


class ConsoleHandler(logging.StreamHandler):
    """Stdout handler owned by the package logger."""

    def __init__(self):
        super().__init__(sys.stdout)
        self.setFormatter(CONSOLE_FORMAT)


def _package_logger() -> logging.Logger:
    root = logging.getLogger(PACKAGE_LOGGER)
    if not any(isinstance(h, ConsoleHandler) for h in root.handlers):
        console_handler = ConsoleHandler()
        root.addHandler(console_handler)
        if root.level == logging.NOTSET:
            root.setLevel(logging.INFO)
    return root


def setup_logger(name: str = PACKAGE_LOGGER, level: Optional[int] = None) -> logging.Logger:
    """
    Return a logger under the ``dayplanner`` hierarchy.

    Args:
        name: Logger name; names outside the package (``__main__``) are
            placed under it
        level: Optional level for this logger only

    Returns:
        Logger whose records reach the package handlers
    """
    _package_logger()
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"

    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def log_file_path(log_dir: Union[str, Path], day: Optional[datetime] = None) -> Path:
    """Daily log file inside `log_dir`."""
    day = day or datetime.now()
    return Path(log_dir) / f"dayplanner_{day.strftime('%Y%m%d')}.log"


def enable_file_logging(log_dir: Union[str, Path], level: Union[int, str] = logging.INFO) -> logging.FileHandler:
    """
    Send package logs to today's file in `log_dir`.

    Calling it again with the same directory returns the existing handler.
    Switching directories closes the previous file.

    Args:
        log_dir: Directory for log files, created if missing
        level: Level for the package logger and the file handler

    Returns:
        The attached file handler
    """
    root = _package_logger()
    log_file = log_file_path(log_dir)

    for handler in list(root.handlers):
        if not isinstance(handler, logging.FileHandler):
            continue
        if handler.baseFilename == os.path.abspath(log_file):
            return handler
        root.removeHandler(handler)
        handler.close()

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(FILE_FORMAT)
    root.addHandler(file_handler)
    root.setLevel(level)

    root.debug(f"Logging to {log_file}")
    return file_handler


class LoggerMixin:
    """Mixin to add logging capability to any class."""

    @property
    def logger(self) -> logging.Logger:
        if not hasattr(self, '_logger'):
            self._logger = setup_logger(f"{PACKAGE_LOGGER}.{self.__class__.__name__}")
        return self._logger
