"""
Logging configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvalidConfigError
from .base import LogFormat, LogLevel


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: LogLevel = "INFO"
    format: LogFormat = "text"

    # Logger name used by the store
    logger_name: str = "job_status"

    # What to log
    log_operations: bool = True

    def __post_init__(self):
        """Validate configuration after initialization."""
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if self.level not in valid_levels:
            raise InvalidConfigError(f"Invalid log level: {self.level}. Must be one of {valid_levels}")
        valid_formats = ("text", "json")
        if self.format not in valid_formats:
            raise InvalidConfigError(f"Invalid log format: {self.format}. Must be one of {valid_formats}")


__all__ = ["LoggingConfig"]
