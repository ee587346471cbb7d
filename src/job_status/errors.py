"""
Error taxonomy for job-status.

This module provides a small exception hierarchy with:
- Error codes for programmatic handling
- Structured context for debugging
- Dual inheritance from the matching builtin (ValueError, LookupError)
  so callers can catch either

Transport failures raised by the Redis client are not wrapped; they
propagate to the caller unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for job-status."""

    # Validation errors (2xxx)
    VALIDATION_ERROR = "ERR_2000"
    INVALID_STATUS = "ERR_2001"
    INVALID_ATTRIBUTE = "ERR_2002"

    # Store errors (3xxx)
    STORE_ERROR = "ERR_3000"
    STATUS_NOT_FOUND = "ERR_3001"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"
    INVALID_CONFIG = "ERR_6002"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    record_id: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "operation": self.operation,
            **self.extra,
        }


class JobStatusError(Exception):
    """
    Base exception for all job-status errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.record_id:
            parts.append(f"(record_id={self.context.record_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(JobStatusError, ValueError):
    """A value assigned to a status record was rejected."""

    code = ErrorCode.VALIDATION_ERROR


class InvalidStatusError(ValidationError):
    """Status name is not one of the recognized statuses."""

    code = ErrorCode.INVALID_STATUS

    def __init__(self, status: Any, **kwargs):
        super().__init__(f"invalid status {status!r}", **kwargs)
        self.status = status


class InvalidAttributeError(ValidationError):
    """Attribute name has no setter on a status record."""

    code = ErrorCode.INVALID_ATTRIBUTE

    def __init__(self, attribute: str, **kwargs):
        super().__init__(f"unknown attribute {attribute!r}", **kwargs)
        self.attribute = attribute


# =============================================================================
# Store Errors
# =============================================================================


class StoreError(JobStatusError):
    """Base class for status store errors."""

    code = ErrorCode.STORE_ERROR


class StatusNotFoundError(StoreError, LookupError):
    """No stored status exists for the requested record id (missing or expired)."""

    code = ErrorCode.STATUS_NOT_FOUND

    def __init__(self, record_id: str, **kwargs):
        kwargs.setdefault("context", ErrorContext(record_id=record_id, operation="load"))
        super().__init__(f"status not found: {record_id}", **kwargs)
        self.record_id = record_id


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(JobStatusError):
    """Base class for configuration errors."""

    code = ErrorCode.CONFIG_ERROR


class InvalidConfigError(ConfigError, ValueError):
    """Invalid configuration value."""

    code = ErrorCode.INVALID_CONFIG


__all__ = [
    "ErrorCode",
    "ErrorContext",
    "JobStatusError",
    "ValidationError",
    "InvalidStatusError",
    "InvalidAttributeError",
    "StoreError",
    "StatusNotFoundError",
    "ConfigError",
    "InvalidConfigError",
]
