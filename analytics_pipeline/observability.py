"""
Structured logging for the analytics pipeline service.

Records are JSON objects carrying the message plus key/value context
(``method``, ``path``, ``error``, ``user_id`` ...), emitted through the
standard ``logging`` machinery so handlers and levels still apply.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LogLevel(Enum):
    """Standard log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def configure_logging(level: str = "info") -> None:
    """
    Configure the root logger once at startup.

    Raises:
        ValueError: ``level`` is not a known log level
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level: {level}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT, force=True)


@dataclass
class JSONLogger:
    """
    Structured logger that outputs JSON-formatted records.

    Example output:
        {"timestamp": "2026-01-02T10:30:00+00:00", "level": "error",
         "message": "could not get pipeline", "method": "GET",
         "path": "/pipeline/abc", "error": "..."}
    """

    name: str = "analytics_pipeline"
    extra_context: dict[str, Any] = field(default_factory=dict)
    _python_logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._python_logger = logging.getLogger(self.name)

    def _log(self, level: LogLevel, message: str, context: dict[str, Any]) -> None:
        if not self._python_logger.isEnabledFor(logging.getLevelName(level.name)):
            return
        record = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": level.value,
            "message": message,
            **self.extra_context,
            **context,
        }
        log_method = getattr(self._python_logger, level.value)
        log_method(json.dumps(record, default=str))

    def debug(self, message: str, **context: Any) -> None:
        self._log(LogLevel.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._log(LogLevel.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(LogLevel.WARNING, message, context)

    def error(self, message: str, **context: Any) -> None:
        self._log(LogLevel.ERROR, message, context)

    def with_context(self, **extra: Any) -> JSONLogger:
        """Create a new logger with additional context."""
        return JSONLogger(name=self.name, extra_context={**self.extra_context, **extra})
