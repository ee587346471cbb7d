"""
Redis-backed job status store.

The store keeps one JSON document per job under ``{key_prefix}:{id}``
with a native TTL, plus two sorted sets shared by all jobs:

- the status index (``statuses_key``): id -> last save time
- the kill registry (``kill_key``): id -> kill request time

Every multi-key change runs in a single MULTI/EXEC transaction, so other
clients never observe a record without its index entry or a killed
status with its kill request still pending.

Expiry
------
Record keys disappear on their own once ``ttl_seconds`` passes without a
save. Sorted-set members cannot expire individually, so every batch load
also removes index and kill entries older than ``now - ttl_seconds`` in
the same transaction as the read. Entries for jobs that are never batch
loaded again linger until the next batch load, which means ``size`` may
briefly count records whose key has already expired.

Concurrency
-----------
There are no locks. Concurrent saves of the same record are
last-write-wins, and bulk operations such as ``delete_by_status`` work on
a listing that other writers may change underneath them.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, Callable

import redis.asyncio as redis_lib
from redis.asyncio.client import Pipeline

from .config import Settings, StoreConfig
from .errors import StatusNotFoundError
from .index import StatusIndex
from .kill import KillRequestRegistry
from .logging import OperationLog, StructuredLogger, configure_logging, get_logger, timed
from .types import JobStatus, StatusRecord


class StatusStore:
    """Create, load, save and delete job status records in Redis.

    Example:
        ```python
        store = StatusStore.from_url("redis://localhost:6379/0")

        # Producer
        record = await store.create(args=["report.csv"])

        # Execution engine
        record = await store.load(record.id)
        record.status = "working"
        record.at = 10
        await store.save(record)
        if await store.is_kill_requested(record.id):
            await store.kill(record)

        # Poller
        records = await store.list_records(0, 49)
        ```
    """

    def __init__(
        self,
        client: redis_lib.Redis,
        config: StoreConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
        logger: StructuredLogger | None = None,
        log_operations: bool = True,
    ):
        self._client = client
        self.config = config or StoreConfig()
        self._clock = clock
        self._logger = logger or get_logger()
        self._log_operations = log_operations

        self.index = StatusIndex(client, self.config.statuses_key)
        self.kill_requests = KillRequestRegistry(
            client,
            self.config.kill_key,
            clock=clock,
            logger=self._logger,
            log_operations=log_operations,
        )

    @classmethod
    def from_url(
        cls,
        url: str | None = None,
        config: StoreConfig | None = None,
        **kwargs: Any,
    ) -> StatusStore:
        """Create a store with its own Redis connection pool."""
        config = config or StoreConfig()
        client = redis_lib.from_url(url or config.redis_url, decode_responses=True)
        return cls(client, config, **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> StatusStore:
        """Create a store from Settings.

        Unless a logger is passed in, the default logger is (re)configured
        from ``settings.logging`` and used by the store.
        """
        if "logger" not in kwargs:
            kwargs["logger"] = configure_logging(settings.logging)
        kwargs.setdefault("log_operations", settings.logging.log_operations)
        return cls.from_url(settings.store.redis_url, settings.store, **kwargs)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> StatusStore:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @property
    def ttl_seconds(self) -> int:
        return self.config.ttl_seconds

    @property
    def statuses_key(self) -> str:
        return self.config.statuses_key

    @property
    def kill_key(self) -> str:
        return self.config.kill_key

    def record_key(self, record_id: str) -> str:
        return self.config.record_key(record_id)

    # ------------------------------------------------------------------
    # Single-record operations
    # ------------------------------------------------------------------

    async def create(self, args: Iterable[Any] | None = None) -> StatusRecord:
        """Create and save a new waiting record with a fresh id."""
        record = StatusRecord(str(uuid.uuid4()), args=list(args or []))
        await self.save(record)
        return record

    async def load(self, record_id: str) -> StatusRecord:
        """Load a record by id.

        Raises:
            StatusNotFoundError: If the record is missing or has expired
        """
        data = (await self._load_data_multi([record_id]))[str(record_id)]
        if data is None:
            raise StatusNotFoundError(str(record_id))
        return StatusRecord.from_dict(str(record_id), data)

    async def reload(self, record: StatusRecord) -> StatusRecord:
        """Replace the in-memory fields of record with the stored ones.

        Raises:
            StatusNotFoundError: If the record is missing or has expired
        """
        fresh = await self.load(record.id)
        record._replace_from(fresh)
        return record

    async def save(self, record: StatusRecord) -> None:
        """Write the full record and bump its index score, atomically.

        ``last_updated_at`` is always set to the save time, both in the
        stored document and on ``record`` once the write succeeds.
        """
        with timed() as timer:
            async with self._client.pipeline(transaction=True) as pipe:
                stamp = self._stage_save(pipe, record)
                await pipe.execute()
        record._stamp(stamp)
        self._log(
            OperationLog(
                operation="save",
                record_id=record.id,
                status=record.status.value,
                duration_ms=timer.elapsed_ms,
            )
        )

    async def update_attributes(
        self,
        record: StatusRecord,
        attributes: Mapping[str, Any],
    ) -> StatusRecord:
        """Assign several fields through their validated setters, then save."""
        record.apply_attributes(attributes)
        await self.save(record)
        return record

    async def delete(self, record_id: str) -> bool:
        """Remove the record, its index entry and any kill request.

        Deleting an unknown id is not an error.

        Returns:
            True if a stored record was removed
        """
        record_id = str(record_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(self.record_key(record_id))
            self.kill_requests.stage_resolve(pipe, record_id)
            self.index.stage_remove(pipe, record_id)
            removed, _, _ = await pipe.execute()
        self._log(OperationLog(operation="delete", record_id=record_id))
        return bool(removed)

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------

    async def load_multi(
        self,
        record_ids: Iterable[str],
    ) -> dict[str, StatusRecord | None]:
        """Load several records in one round trip.

        Expired index and kill entries are pruned in the same transaction.
        Ids without a stored record map to None instead of raising.
        """
        data = await self._load_data_multi(record_ids)
        return {
            record_id: None if fields is None else StatusRecord.from_dict(record_id, fields)
            for record_id, fields in data.items()
        }

    async def size(self) -> int:
        """Number of ids in the status index."""
        return await self.index.size()

    async def list_ids(self, start: int = 0, stop: int = -1) -> list[tuple[str, float]]:
        """(id, last update time) pairs, oldest update first.

        ``start`` and ``stop`` are inclusive ranks and may be negative.
        """
        return await self.index.range(start, stop)

    async def list_records(self, start: int = 0, stop: int = -1) -> list[StatusRecord]:
        """Records for the given index range, oldest update first.

        Ids whose record key has already expired are left out.
        """
        ids = [record_id for record_id, _ in await self.list_ids(start, stop)]
        loaded = await self.load_multi(ids)
        return [record for record in loaded.values() if record is not None]

    async def delete_by_status(
        self,
        statuses: JobStatus | str | Iterable[JobStatus | str] | None = None,
    ) -> list[str]:
        """Delete every listed record whose status is in statuses.

        ``None`` matches any status. Each record is deleted on its own, so
        records changed by other clients between the listing and the
        deletes may be missed or deleted based on stale state.

        Returns:
            Ids of the deleted records

        Raises:
            InvalidStatusError: If a status name is not recognized
        """
        if statuses is None:
            wanted = set(JobStatus)
        elif isinstance(statuses, (str, JobStatus)):
            wanted = {JobStatus.parse(statuses)}
        else:
            wanted = {JobStatus.parse(status) for status in statuses}

        deleted: list[str] = []
        for record in await self.list_records():
            if record.status in wanted:
                await self.delete(record.id)
                deleted.append(record.id)

        self._log(
            OperationLog(operation="delete_by_status", key_count=len(deleted)),
            level=logging.INFO,
        )
        return deleted

    # ------------------------------------------------------------------
    # Kill flow
    # ------------------------------------------------------------------

    async def request_kill(self, record_id: str) -> None:
        await self.kill_requests.request_kill(str(record_id))

    async def is_kill_requested(self, record_id: str) -> bool:
        return await self.kill_requests.is_kill_requested(str(record_id))

    async def killable(self, record: StatusRecord) -> bool:
        """True if the job has not finished and no kill request is pending."""
        if not record.is_pending:
            return False
        return not await self.is_kill_requested(record.id)

    async def kill(self, record: StatusRecord) -> None:
        """Mark the record killed and resolve its kill request, atomically."""
        record.status = JobStatus.KILLED
        async with self._client.pipeline(transaction=True) as pipe:
            stamp = self._stage_save(pipe, record)
            self.kill_requests.stage_resolve(pipe, record.id)
            await pipe.execute()
        record._stamp(stamp)
        self._log(
            OperationLog(operation="kill", record_id=record.id, status=record.status.value),
            level=logging.INFO,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _stage_save(self, pipe: Pipeline, record: StatusRecord) -> int:
        """Queue the record write and index bump; returns the written timestamp."""
        now = self._clock()
        stamp = int(now)
        document = json.dumps(record.to_dict(last_updated_at=stamp))
        pipe.set(self.record_key(record.id), document, ex=self.config.ttl_seconds)
        self.index.stage_touch(pipe, record.id, now)
        return stamp

    async def _load_data_multi(
        self,
        record_ids: Iterable[str],
    ) -> dict[str, dict[str, Any] | None]:
        ids = [str(record_id) for record_id in record_ids]
        if not ids:
            return {}

        cutoff = self._clock() - self.config.ttl_seconds
        with timed() as timer:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.mget([self.record_key(record_id) for record_id in ids])
                self.kill_requests.stage_prune(pipe, cutoff)
                self.index.stage_prune(pipe, cutoff)
                raw, pruned_kills, pruned_statuses = await pipe.execute()

        documents = [None if value is None else json.loads(value) for value in raw]
        self._log(
            OperationLog(
                operation="load_multi",
                duration_ms=timer.elapsed_ms,
                key_count=len(ids),
                found_count=sum(1 for document in documents if document is not None),
                pruned_statuses=pruned_statuses,
                pruned_kill_requests=pruned_kills,
            )
        )
        return dict(zip(ids, documents))

    def _log(self, entry: OperationLog, level: int = logging.DEBUG) -> None:
        if self._log_operations:
            self._logger.log_operation(entry, level=level)


__all__ = ["StatusStore"]
