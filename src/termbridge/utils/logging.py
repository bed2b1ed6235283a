"""Logging setup utilities for termbridge.

Configures logging for the entire application based on the logging
configuration settings, and keeps the most recent records in memory so
the HTTP endpoint can serve them.
"""

from __future__ import annotations

import logging
import sys
from collections import deque
from datetime import datetime
from typing import Any

from termbridge.config.settings import LoggingConfig

_recent_handler: RecentLogHandler | None = None
_installed: list[logging.Handler] = []


class RecentLogHandler(logging.Handler):
    """Ring buffer of the last ``capacity`` log records."""

    def __init__(self, capacity: int = 1000) -> None:
        super().__init__()
        self._records: deque[dict[str, Any]] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._records.append(
                {
                    "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                    "level": record.levelname.lower(),
                    "logger": record.name,
                    "message": record.getMessage(),
                }
            )
        except Exception:
            self.handleError(record)

    def records(self, level: str | None = None) -> list[dict[str, Any]]:
        items = list(self._records)
        if level:
            items = [r for r in items if r["level"] == level.lower()]
        return items

    def clear(self) -> None:
        self._records.clear()


def get_recent_logs(level: str | None = None) -> list[dict[str, Any]]:
    """Records captured since ``setup_logging`` ran (empty if it did not)."""
    if _recent_handler is None:
        return []
    return _recent_handler.records(level)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure logging for the termbridge application.

    Sets up the package logger with the specified level, format, and
    optional file handler, plus the in-memory recent-records buffer.
    Calling it again replaces the handlers from the previous call.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).
    """
    global _recent_handler

    if config is None:
        config = LoggingConfig()

    package_logger = logging.getLogger("termbridge")
    package_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    while _installed:
        handler = _installed.pop()
        package_logger.removeHandler(handler)
        handler.close()
    _recent_handler = None

    formatter = logging.Formatter(config.format)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    for handler in handlers:
        handler.setFormatter(formatter)

    if config.buffer_size > 0:
        _recent_handler = RecentLogHandler(config.buffer_size)
        handlers.append(_recent_handler)

    for handler in handlers:
        package_logger.addHandler(handler)
        _installed.append(handler)

    package_logger.info("Logging initialized at %s level", config.level)
