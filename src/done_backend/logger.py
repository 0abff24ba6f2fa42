"""JSON-formatted logging for Lambda handlers."""

import json
import os
import traceback
from datetime import UTC, datetime
from typing import Any

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


class StructuredLogger:
    """
    JSON-formatted logger for CloudWatch Logs Insights.

    Each call prints one JSON object with the timestamp, level, logger name,
    message, and any keyword context. Entries below ``level`` (default:
    the LOG_LEVEL environment variable) are dropped.
    """

    def __init__(self, name: str, level: str | None = None):
        self._name = name
        self._level = level

    @property
    def threshold(self) -> int:
        level = self._level or os.environ.get("LOG_LEVEL", "INFO")
        return _LEVELS.get(level.upper(), _LEVELS["INFO"])

    def set_level(self, level: str) -> None:
        self._level = level

    def _log(self, level: str, message: str, **extra: Any) -> None:
        if _LEVELS[level] < self.threshold:
            return
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": level,
            "logger": self._name,
            "message": message,
            **extra,
        }
        print(json.dumps(log_entry, default=str))

    def debug(self, message: str, **extra: Any) -> None:
        self._log("DEBUG", message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        self._log("INFO", message, **extra)

    def warning(self, message: str, exc_info: bool = False, **extra: Any) -> None:
        if exc_info:
            extra["exception"] = traceback.format_exc()
        self._log("WARNING", message, **extra)

    def error(self, message: str, exc_info: bool = False, **extra: Any) -> None:
        if exc_info:
            extra["exception"] = traceback.format_exc()
        self._log("ERROR", message, **extra)


def get_logger(name: str) -> StructuredLogger:
    """Create a StructuredLogger for a module."""
    return StructuredLogger(name)
