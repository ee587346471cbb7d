"""
job-status - track asynchronously run jobs in Redis.

This package provides:
- StatusRecord: the status of one job (progress, message, payload)
- StatusStore: atomic create/load/save/delete, batch loads and listing
- StatusIndex: sorted set of tracked ids by last update time
- KillRequestRegistry: cooperative kill requests

Example:
    ```python
    from job_status import StatusStore, Settings

    store = StatusStore.from_settings(Settings.from_env())

    record = await store.create(args=[42])
    await store.request_kill(record.id)

    if await store.is_kill_requested(record.id):
        await store.kill(record)
    ```
"""

from .config import LoggingConfig, Settings, StoreConfig, load_env
from .errors import (
    ErrorCode,
    ErrorContext,
    InvalidAttributeError,
    InvalidConfigError,
    InvalidStatusError,
    JobStatusError,
    StatusNotFoundError,
    ValidationError,
)
from .index import StatusIndex
from .kill import KillRequestRegistry
from .logging import StructuredLogger, configure_logging, get_logger
from .store import StatusStore
from .types import FINISHED_STATUSES, PENDING_STATUSES, JobStatus, StatusRecord

__version__ = "0.1.0"

__all__ = [
    # Types
    "JobStatus",
    "StatusRecord",
    "FINISHED_STATUSES",
    "PENDING_STATUSES",
    # Store
    "StatusStore",
    "StatusIndex",
    "KillRequestRegistry",
    # Config
    "Settings",
    "StoreConfig",
    "LoggingConfig",
    "load_env",
    # Errors
    "ErrorCode",
    "ErrorContext",
    "JobStatusError",
    "ValidationError",
    "InvalidStatusError",
    "InvalidAttributeError",
    "InvalidConfigError",
    "StatusNotFoundError",
    # Logging
    "StructuredLogger",
    "get_logger",
    "configure_logging",
]
