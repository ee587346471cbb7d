"""
Kill request registry.

A client asks for a running job to stop by adding its id to a sorted set
scored by request time. The execution engine polls ``is_kill_requested``
and, when it sees a request, stops cooperatively and calls
``StatusStore.kill``, which resolves the request in the same transaction
that saves the killed status.

There is no ordering guarantee between a kill request and a save already
in flight from the engine: a stale "working" save can overwrite a freshly
written killed status.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import redis.asyncio as redis_lib
from redis.asyncio.client import Pipeline

from .index import decode_member
from .logging import OperationLog, StructuredLogger, get_logger


class KillRequestRegistry:
    """Redis sorted set mapping record id -> kill request time."""

    def __init__(
        self,
        client: redis_lib.Redis,
        key: str,
        *,
        clock: Callable[[], float] = time.time,
        logger: StructuredLogger | None = None,
        log_operations: bool = True,
    ) -> None:
        self._client = client
        self.key = key
        self._clock = clock
        self._logger = logger or get_logger()
        self._log_operations = log_operations

    async def request_kill(self, record_id: str) -> None:
        """Ask the engine running record_id to stop.

        Repeated requests refresh the request time.
        """
        await self._client.zadd(self.key, {record_id: self._clock()})
        if self._log_operations:
            self._logger.log_operation(
                OperationLog(operation="request_kill", record_id=record_id),
                level=logging.INFO,
            )

    async def is_kill_requested(self, record_id: str) -> bool:
        return await self._client.zrank(self.key, record_id) is not None

    async def requested_at(self, record_id: str) -> float | None:
        value = await self._client.zscore(self.key, record_id)
        return None if value is None else float(value)

    async def pending(self) -> list[tuple[str, float]]:
        """Outstanding kill requests, oldest first."""
        rows = await self._client.zrange(self.key, 0, -1, withscores=True)
        return [(decode_member(member), float(score)) for member, score in rows]

    # Staged commands run inside a caller-owned transaction

    def stage_resolve(self, pipe: Pipeline, record_id: str) -> None:
        pipe.zrem(self.key, record_id)

    def stage_prune(self, pipe: Pipeline, cutoff: float) -> None:
        pipe.zremrangebyscore(self.key, "-inf", cutoff)


__all__ = ["KillRequestRegistry"]
