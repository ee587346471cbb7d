"""
Structured Logging for job-status.

This module provides:
- Structured JSON or text logging with consistent fields
- Store operation records with record/trace correlation
- Timing helpers for operation durations
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import LoggingConfig

# =============================================================================
# Log Record Types
# =============================================================================


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class LogContext:
    """Context information attached to log records."""

    trace_id: str | None = None
    record_id: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in asdict(self).items() if v is not None and k != "extra"}
        d.update(self.extra)
        return d

    def with_update(self, **kwargs) -> LogContext:
        """Create a new context with updated values."""
        return LogContext(
            trace_id=kwargs.get("trace_id", self.trace_id),
            record_id=kwargs.get("record_id", self.record_id),
            operation=kwargs.get("operation", self.operation),
            extra={**self.extra, **kwargs.get("extra", {})},
        )


@dataclass
class OperationLog:
    """Log record for a status store operation."""

    operation: str
    record_id: str | None = None
    status: str | None = None

    timestamp: str = field(default_factory=_utcnow)
    duration_ms: float | None = None

    # Batch operations
    key_count: int | None = None
    found_count: int | None = None
    pruned_statuses: int | None = None
    pruned_kill_requests: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger:
    """
    Logger with structured output and context tracking.

    Example:
        ```python
        logger = StructuredLogger("job_status")

        with logger.trace_context(record_id=record.id):
            logger.log_operation(OperationLog(operation="save", record_id=record.id))
        ```
    """

    def __init__(
        self,
        name: str = "job_status",
        level: str = "INFO",
        json_output: bool = True,
    ):
        self.name = name
        self.json_output = json_output

        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper()))

        self._context: LogContext = LogContext()

        # Configure handler if not already configured
        if not self._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            if json_output:
                handler.setFormatter(JSONFormatter())
            else:
                handler.setFormatter(TextFormatter())
            self._logger.addHandler(handler)

    @property
    def context(self) -> LogContext:
        return self._context

    def set_context(self, **kwargs) -> None:
        """Update the current log context."""
        self._context = self._context.with_update(**kwargs)

    @contextmanager
    def trace_context(
        self,
        trace_id: str | None = None,
        **kwargs,
    ) -> Iterator[str]:
        """
        Context manager for trace correlation.

        Args:
            trace_id: Trace ID (auto-generated if not provided)
            **kwargs: Additional context fields

        Yields:
            The trace ID
        """
        trace_id = trace_id or generate_trace_id()
        old_context = self._context

        try:
            self._context = old_context.with_update(trace_id=trace_id, **kwargs)
            yield trace_id
        finally:
            self._context = old_context

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def _log(
        self,
        level: int,
        message: str,
        event_type: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Internal logging method."""
        if not self._logger.isEnabledFor(level):
            return

        record_data = {
            "message": message,
            **self._context.to_dict(),
        }

        if event_type:
            record_data["event_type"] = event_type

        if data:
            record_data.update(data)

        if self.json_output:
            self._logger.log(level, json.dumps(record_data, default=str))
        else:
            extras = " ".join(f"{k}={v}" for k, v in record_data.items() if k != "message")
            self._logger.log(level, f"{message} {extras}".rstrip())

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, data=kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, data=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, data=kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log(logging.ERROR, message, data=kwargs)

    def log_operation(self, entry: OperationLog, level: int = logging.DEBUG) -> None:
        """Log a status store operation."""
        message = f"Status {entry.operation}"
        if entry.record_id:
            message += f" {entry.record_id}"
        if entry.duration_ms is not None:
            message += f" ({entry.duration_ms:.1f}ms)"
        self._log(level, message, event_type="operation", data=entry.to_dict())

    def log_error(
        self,
        error: Exception,
        message: str | None = None,
        **kwargs,
    ) -> None:
        """Log an error with context."""
        error_data = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            **kwargs,
        }

        # Extract additional info from JobStatusError
        if hasattr(error, "code"):
            error_data["error_code"] = str(error.code.value)
        if hasattr(error, "context") and error.context:
            error_data["error_context"] = error.context.to_dict()

        self._log(
            logging.ERROR,
            message or f"Error: {error}",
            event_type="error",
            data=error_data,
        )


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": _utcnow(),
            "level": record.levelname,
            "logger": record.name,
        }

        # Parse JSON message if present
        try:
            message_data = json.loads(record.getMessage())
            if isinstance(message_data, dict):
                log_data.update(message_data)
            else:
                log_data["message"] = record.getMessage()
        except (json.JSONDecodeError, TypeError):
            log_data["message"] = record.getMessage()

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        color = self.LEVEL_COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""

        return f"{timestamp} {color}{record.levelname:8}{reset} {record.getMessage()}"


# =============================================================================
# Utilities
# =============================================================================


def generate_trace_id() -> str:
    """Generate a unique trace ID."""
    return f"trace_{uuid.uuid4().hex[:16]}"


@dataclass
class Timer:
    """Simple timer for measuring durations."""

    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None

    def stop(self) -> float:
        """Stop the timer and return duration in milliseconds."""
        self.end_time = time.perf_counter()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        """Elapsed time in milliseconds."""
        end = self.end_time or time.perf_counter()
        return (end - self.start_time) * 1000


@contextmanager
def timed() -> Iterator[Timer]:
    """Context manager for timing operations."""
    timer = Timer()
    try:
        yield timer
    finally:
        timer.stop()


# =============================================================================
# Global Logger
# =============================================================================

_default_logger: StructuredLogger | None = None


def get_logger(name: str | None = None) -> StructuredLogger:
    """Get or create a structured logger.

    Without a name, returns the default logger as left by
    ``configure_logging`` (a ``job_status`` logger if none was configured).
    """
    global _default_logger
    if name is None:
        if _default_logger is None:
            _default_logger = StructuredLogger("job_status")
        return _default_logger
    if _default_logger is None or _default_logger.name != name:
        _default_logger = StructuredLogger(name)
    return _default_logger


def configure_logging(
    config: LoggingConfig | None = None,
    *,
    level: str | None = None,
    json_output: bool | None = None,
) -> StructuredLogger:
    """Configure the default logger, optionally from a LoggingConfig."""
    global _default_logger
    name = config.logger_name if config else "job_status"
    if level is None:
        level = config.level if config else "INFO"
    if json_output is None:
        json_output = config.format == "json" if config else True
    _default_logger = StructuredLogger(name, level=level, json_output=json_output)
    return _default_logger


__all__ = [
    # Context
    "LogContext",
    # Log records
    "OperationLog",
    # Logger
    "StructuredLogger",
    # Formatters
    "JSONFormatter",
    "TextFormatter",
    # Timing
    "Timer",
    "timed",
    # Utilities
    "generate_trace_id",
    # Global
    "get_logger",
    "configure_logging",
]
