"""
Status store configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from ..errors import InvalidConfigError
from .base import DEFAULT_TTL_SECONDS


@dataclass
class StoreConfig:
    """Configuration for the Redis-backed status store."""

    # Redis connection
    redis_url: str = field(default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379/0"))

    # Key layout
    key_prefix: str = "job_status"
    statuses_key: str = "job_statuses"
    kill_key: str = "job_status_kill"

    # Retention for records, index entries and kill requests
    ttl_seconds: int = DEFAULT_TTL_SECONDS

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.redis_url:
            raise InvalidConfigError("redis_url is required")
        if not self.redis_url.startswith(("redis://", "rediss://", "unix://")):
            raise InvalidConfigError("redis_url must be a valid Redis connection string")
        if isinstance(self.ttl_seconds, bool) or not isinstance(self.ttl_seconds, int):
            raise InvalidConfigError("ttl_seconds must be an integer")
        if self.ttl_seconds <= 0:
            raise InvalidConfigError("ttl_seconds must be positive")
        for name in ("key_prefix", "statuses_key", "kill_key"):
            if not getattr(self, name):
                raise InvalidConfigError(f"{name} cannot be empty")
        if len({self.statuses_key, self.kill_key}) != 2:
            raise InvalidConfigError("statuses_key and kill_key must differ")

    def record_key(self, record_id: str) -> str:
        """Redis key holding the serialized record for record_id."""
        return f"{self.key_prefix}:{record_id}"


__all__ = ["StoreConfig"]
