"""
Structured logging for the integration harness.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, TextIO
import threading


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def numeric(self) -> int:
        """Get numeric log level."""
        return {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
            "critical": logging.CRITICAL,
        }[self.value]


@dataclass
class LogRecord:
    """A structured log record.

    Attributes:
        level: Log level.
        event: Event name/type.
        message: Human-readable message.
        timestamp: Unix timestamp.
        data: Additional structured data.
    """

    level: str
    event: str
    message: str = ""
    timestamp: float = field(default_factory=time.time)
    data: dict[str, Any] = field(default_factory=dict)

    logger_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        d = asdict(self)
        d.update(d.pop("data", {}))
        return d

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class StructuredLogger:
    """Structured, event-based logging.

    Example:
        logger = StructuredLogger("integration_harness")

        logger.info(
            "test_passed",
            message="Test passed",
            test="Realm constructor opens default path",
            duration_ms=12.5,
        )

        # Output (JSON):
        # {"level": "info", "event": "test_passed",
        #  "message": "Test passed", "test": "...", "duration_ms": 12.5, ...}

        # Bind run-wide context
        run_logger = logger.bind(suite="node integration")
        run_logger.info("run_complete")
    """

    def __init__(
        self,
        name: str = "integration_harness",
        level: LogLevel = LogLevel.INFO,
        output: TextIO | None = None,
        json_format: bool = True,
    ):
        """Initialize the logger.

        Args:
            name: Logger name.
            level: Minimum log level.
            output: Output stream (default: stderr).
            json_format: Output as JSON (vs. human-readable).
        """
        self.name = name
        self._level = level
        self._output = output
        self._json_format = json_format

        self._context: dict[str, Any] = {}

        self._lock = threading.Lock()

    @property
    def level(self) -> LogLevel:
        return self._level

    def bind(self, **context: Any) -> "StructuredLogger":
        """Create a new logger with bound context.

        Args:
            **context: Context to bind to all log records.

        Returns:
            New logger with bound context.
        """
        new_logger = StructuredLogger(
            name=self.name,
            level=self._level,
            output=self._output,
            json_format=self._json_format,
        )
        new_logger._context = {**self._context, **context}
        return new_logger

    def _log(
        self,
        level: LogLevel,
        event: str,
        message: str = "",
        **data: Any,
    ) -> None:
        if level.numeric < self._level.numeric:
            return

        record = LogRecord(
            level=level.value,
            event=event,
            message=message,
            data={**self._context, **data},
            logger_name=self.name,
        )

        self._emit(record)

    def _emit(self, record: LogRecord) -> None:
        """Emit a log record."""
        with self._lock:
            if self._json_format:
                line = record.to_json()
            else:
                line = self._format_human(record)

            # Resolved per write so pytest's capsys sees the current stderr.
            print(line, file=self._output or sys.stderr)

    def _format_human(self, record: LogRecord) -> str:
        """Format record for human reading."""
        timestamp = time.strftime(
            "%Y-%m-%d %H:%M:%S",
            time.localtime(record.timestamp),
        )

        parts = [
            f"[{timestamp}]",
            f"[{record.level.upper()}]",
            f"[{record.event}]",
        ]

        if record.message:
            parts.append(record.message)

        if record.data:
            data_str = " ".join(f"{k}={v}" for k, v in record.data.items())
            parts.append(f"({data_str})")

        return " ".join(parts)

    def debug(self, event: str, message: str = "", **data: Any) -> None:
        """Log at DEBUG level."""
        self._log(LogLevel.DEBUG, event, message, **data)

    def info(self, event: str, message: str = "", **data: Any) -> None:
        """Log at INFO level."""
        self._log(LogLevel.INFO, event, message, **data)

    def warning(self, event: str, message: str = "", **data: Any) -> None:
        """Log at WARNING level."""
        self._log(LogLevel.WARNING, event, message, **data)

    def error(self, event: str, message: str = "", **data: Any) -> None:
        """Log at ERROR level."""
        self._log(LogLevel.ERROR, event, message, **data)

    def critical(self, event: str, message: str = "", **data: Any) -> None:
        """Log at CRITICAL level."""
        self._log(LogLevel.CRITICAL, event, message, **data)

    # Convenience methods for lifecycle events

    def test_start(self, test: str, **extra: Any) -> None:
        """Log test start."""
        self.debug("test_start", test=test, **extra)

    def test_finished(
        self,
        test: str,
        outcome: str,
        duration_ms: float = 0.0,
        **extra: Any,
    ) -> None:
        """Log a concluded test under an event named after its outcome."""
        level = LogLevel.INFO if outcome in ("passed", "skipped") else LogLevel.ERROR
        self._log(
            level,
            f"test_{outcome}",
            f"{test} {outcome} in {duration_ms:.1f}ms",
            test=test,
            outcome=outcome,
            duration_ms=duration_ms,
            **extra,
        )

    def state_reset(self, test: str, **extra: Any) -> None:
        """Log a completed state reset."""
        self.debug("state_reset", test=test, **extra)

    def harness_error(
        self,
        event: str,
        error: Exception,
        **extra: Any,
    ) -> None:
        """Log a harness-level error."""
        self.error(
            event,
            str(error),
            error_type=type(error).__name__,
            **extra,
        )


# Global logger instance
_global_logger: StructuredLogger | None = None


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    output: TextIO | None = None,
    json_format: bool = True,
) -> StructuredLogger:
    """Configure global logging.

    Args:
        level: Log level.
        output: Output stream.
        json_format: Use JSON format.

    Returns:
        Configured logger.
    """
    global _global_logger

    if isinstance(level, str):
        level = LogLevel(level.lower())

    _global_logger = StructuredLogger(
        name="integration_harness",
        level=level,
        output=output,
        json_format=json_format,
    )

    return _global_logger


def get_logger(name: str = "integration_harness") -> StructuredLogger:
    """Get the process-wide logger instance."""
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name)

    return _global_logger
