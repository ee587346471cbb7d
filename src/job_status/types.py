"""
Status record types for job-status.

This module defines the JobStatus enum and the StatusRecord entity
that the store persists. Nothing here performs I/O.
"""

from __future__ import annotations

import math
from enum import Enum
from numbers import Real
from typing import Any, Callable, Mapping

from .errors import (
    ErrorContext,
    InvalidAttributeError,
    InvalidStatusError,
    ValidationError,
)


class JobStatus(str, Enum):
    """Job execution states.

    State transitions:
    - WAITING -> WORKING (engine picks the job up)
    - WORKING -> COMPLETE | FAILED (engine finishes)
    - WAITING | WORKING -> KILLED (only through the kill flow)

    Transitions are not enforced; the execution engine chooses them.
    """
    WAITING = "waiting"
    WORKING = "working"
    COMPLETE = "complete"
    FAILED = "failed"
    KILLED = "killed"

    @property
    def is_finished(self) -> bool:
        """Check if this is a terminal state."""
        return self in FINISHED_STATUSES

    @property
    def is_pending(self) -> bool:
        """Check if the job has not finished yet."""
        return self in PENDING_STATUSES

    @classmethod
    def parse(cls, value: Any) -> JobStatus:
        """Coerce a status name (or JobStatus) into a JobStatus.

        Raises:
            InvalidStatusError: If the value is not a recognized status
        """
        if isinstance(value, JobStatus):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        raise InvalidStatusError(value)


FINISHED_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.COMPLETE, JobStatus.FAILED, JobStatus.KILLED}
)
PENDING_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.WAITING, JobStatus.WORKING}
)

DEFAULT_TOTAL = 100


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


class StatusRecord:
    """Status of a single job as stored in Redis.

    Fields are assigned through validated setters, so an invalid value
    is rejected at assignment time and the record keeps its previous
    state. ``last_updated_at`` is only written by the store.
    """

    __slots__ = (
        "_id",
        "_status",
        "_args",
        "_at",
        "_total",
        "_message",
        "payload",
        "_last_updated_at",
    )

    def __init__(
        self,
        record_id: str,
        *,
        status: JobStatus | str = JobStatus.WAITING,
        args: list[Any] | tuple[Any, ...] | None = None,
        at: int | float = 0,
        total: int | float = DEFAULT_TOTAL,
        message: str | None = None,
        payload: dict[str, Any] | None = None,
        last_updated_at: int | None = None,
    ):
        self._id = str(record_id)
        self._status = JobStatus.WAITING
        self._args: list[Any] = list(args or [])
        self._at: int | float = 0
        self._total: int | float = DEFAULT_TOTAL
        self._message: str | None = None
        self.payload: dict[str, Any] = dict(payload or {})
        self._last_updated_at = int(last_updated_at) if last_updated_at is not None else None

        self.status = status
        # total before at: an at above total still lifts total
        self.total = total
        self.at = at
        self.message = message

    def __repr__(self) -> str:
        return (
            f"StatusRecord(id={self._id!r}, status={self._status.value!r}, "
            f"at={self._at!r}, total={self._total!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StatusRecord):
            return NotImplemented
        return self._id == other._id and self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]

    # ------------------------------------------------------------------
    # Read-only fields
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def args(self) -> list[Any]:
        return self._args

    @property
    def last_updated_at(self) -> int | None:
        """Epoch seconds of the last successful save, None if never saved."""
        return self._last_updated_at

    # ------------------------------------------------------------------
    # Validated fields
    # ------------------------------------------------------------------

    @property
    def status(self) -> JobStatus:
        return self._status

    @status.setter
    def status(self, value: JobStatus | str) -> None:
        self._status = JobStatus.parse(value)

    @property
    def at(self) -> int | float:
        return self._at

    @at.setter
    def at(self, value: int | float) -> None:
        if not _is_number(value) or value < 0:
            raise ValidationError(
                f"at={value!r} is not a finite non-negative number",
                context=ErrorContext(record_id=self._id, operation="set_at"),
            )
        self._at = value
        if self._total < value:
            self._total = value

    @property
    def total(self) -> int | float:
        return self._total

    @total.setter
    def total(self, value: int | float) -> None:
        if not _is_number(value):
            raise ValidationError(
                f"total={value!r} is not a finite number",
                context=ErrorContext(record_id=self._id, operation="set_total"),
            )
        if value < self._at:
            raise ValidationError(
                f"total={value!r} is lower than at={self._at!r}",
                context=ErrorContext(record_id=self._id, operation="set_total"),
            )
        self._total = value

    @property
    def message(self) -> str | None:
        return self._message

    @message.setter
    def message(self, value: Any) -> None:
        self._message = None if value is None else str(value)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def pct_complete(self) -> int:
        """Progress in percent, rounded half up."""
        if not self._total:
            return 0
        return int(math.floor(self._at / self._total * 100 + 0.5))

    def has_status(self, status: JobStatus | str) -> bool:
        return self._status is JobStatus.parse(status)

    @property
    def is_finished(self) -> bool:
        return self._status.is_finished

    @property
    def is_pending(self) -> bool:
        return self._status.is_pending

    # ------------------------------------------------------------------
    # Bulk assignment
    # ------------------------------------------------------------------

    def apply_attributes(self, attributes: Mapping[str, Any]) -> StatusRecord:
        """Assign several fields at once through their validated setters.

        All or nothing: the values are applied to a scratch copy in the
        order of ``ATTRIBUTE_SETTERS`` (``at`` before ``total``), and the
        record only takes them over if every setter accepts its value.

        Raises:
            InvalidAttributeError: If a name has no setter
            ValidationError: If a value is rejected by its setter
        """
        for name in attributes:
            if name not in ATTRIBUTE_SETTERS:
                raise InvalidAttributeError(
                    str(name),
                    context=ErrorContext(record_id=self._id, operation="apply_attributes"),
                )
        scratch = StatusRecord.from_dict(self._id, self.to_dict())
        for name, setter in ATTRIBUTE_SETTERS.items():
            if name in attributes:
                setter(scratch, attributes[name])
        self._replace_from(scratch)
        return self

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self, *, last_updated_at: int | None = None) -> dict[str, Any]:
        """Serialize to the wire format.

        Args:
            last_updated_at: Timestamp to write instead of the current one
        """
        return {
            "status": self._status.value,
            "at": self._at,
            "total": self._total,
            "message": self._message,
            "args": list(self._args),
            "payload": self.payload,
            "last_updated_at": (
                last_updated_at if last_updated_at is not None else self._last_updated_at
            ),
        }

    @classmethod
    def from_dict(cls, record_id: str, data: Mapping[str, Any]) -> StatusRecord:
        """Build a record from defaults, overridden by the fields present in data.

        Raises:
            ValidationError: If a stored field fails validation
        """
        def pick(name: str, default: Any) -> Any:
            value = data.get(name)
            return default if value is None else value

        return cls(
            record_id,
            status=pick("status", JobStatus.WAITING),
            args=pick("args", []),
            at=pick("at", 0),
            total=pick("total", DEFAULT_TOTAL),
            message=data.get("message"),
            payload=pick("payload", {}),
            last_updated_at=data.get("last_updated_at"),
        )

    def _replace_from(self, other: StatusRecord) -> None:
        """Take over every field of another record with the same id."""
        for slot in self.__slots__:
            setattr(self, slot, getattr(other, slot))

    def _stamp(self, timestamp: int) -> None:
        self._last_updated_at = int(timestamp)


def _set_status(record: StatusRecord, value: Any) -> None:
    record.status = value


def _set_at(record: StatusRecord, value: Any) -> None:
    record.at = value


def _set_total(record: StatusRecord, value: Any) -> None:
    record.total = value


def _set_message(record: StatusRecord, value: Any) -> None:
    record.message = value


def _set_payload(record: StatusRecord, value: Any) -> None:
    if not isinstance(value, Mapping):
        raise ValidationError(
            f"payload={value!r} is not a mapping",
            context=ErrorContext(record_id=record.id, operation="set_payload"),
        )
    record.payload = dict(value)


# Closed dispatch table for apply_attributes, in application order
ATTRIBUTE_SETTERS: dict[str, Callable[[StatusRecord, Any], None]] = {
    "status": _set_status,
    "at": _set_at,
    "total": _set_total,
    "message": _set_message,
    "payload": _set_payload,
}


__all__ = [
    "JobStatus",
    "StatusRecord",
    "FINISHED_STATUSES",
    "PENDING_STATUSES",
    "ATTRIBUTE_SETTERS",
    "DEFAULT_TOTAL",
]
