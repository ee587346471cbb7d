"""
Shared test fixtures for job-status tests.

This module provides:
- A controllable clock
- An in-memory fake of the async Redis client (strings with expiry,
  sorted sets, transactional pipelines)
- Store fixtures wired to the fake
"""

from __future__ import annotations

from typing import Any

import pytest

from job_status import StatusStore, StoreConfig

# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Callable clock returning a settable epoch time."""

    def __init__(self, now: float = 1_700_000_000.25):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# In-Memory Redis (for testing)
# =============================================================================


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis(decode_responses=True)``.

    Only the commands used by the store are implemented. Expiry follows
    the injected clock. Pipelines apply their queued commands all at once
    on ``execute``; setting ``fail_next_execute`` makes the next execute
    raise before anything is applied.
    """

    COMMANDS = frozenset(
        {
            "get",
            "mget",
            "set",
            "delete",
            "ttl",
            "zadd",
            "zrem",
            "zremrangebyscore",
            "zrange",
            "zcard",
            "zrank",
            "zscore",
        }
    )

    def __init__(self, clock: FakeClock):
        self._clock = clock
        self.strings: dict[str, tuple[str, float | None]] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.transactions = 0
        self.closed = False
        self.fail_next_execute: Exception | None = None

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self, transaction)

    async def aclose(self) -> None:
        self.closed = True

    # -- strings ----------------------------------------------------------

    def _alive(self, key: str) -> str | None:
        entry = self.strings.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self.strings[key]
            return None
        return value

    def _get(self, key: str) -> str | None:
        return self._alive(key)

    def _mget(self, keys: Any, *more: str) -> list[str | None]:
        names = list(keys) if isinstance(keys, (list, tuple)) else [keys]
        names.extend(more)
        return [self._alive(name) for name in names]

    def _set(self, key: str, value: str, ex: int | None = None) -> bool:
        expires_at = self._clock() + ex if ex else None
        self.strings[key] = (value, expires_at)
        return True

    def _delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._alive(key) is not None:
                del self.strings[key]
                removed += 1
            elif self.zsets.pop(key, None) is not None:
                removed += 1
        return removed

    def _ttl(self, key: str) -> int:
        if self._alive(key) is None:
            return -2
        expires_at = self.strings[key][1]
        if expires_at is None:
            return -1
        return int(expires_at - self._clock())

    # -- sorted sets ------------------------------------------------------

    def _sorted(self, key: str) -> list[tuple[str, float]]:
        members = self.zsets.get(key, {})
        return sorted(members.items(), key=lambda item: (item[1], item[0]))

    def _zadd(self, key: str, mapping: dict[str, float]) -> int:
        members = self.zsets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in members)
        members.update({member: float(score) for member, score in mapping.items()})
        return added

    def _zrem(self, key: str, *members: str) -> int:
        current = self.zsets.get(key, {})
        removed = 0
        for member in members:
            if current.pop(member, None) is not None:
                removed += 1
        return removed

    def _zremrangebyscore(self, key: str, low: Any, high: Any) -> int:
        low, high = float(low), float(high)
        current = self.zsets.get(key, {})
        doomed = [member for member, score in current.items() if low <= score <= high]
        for member in doomed:
            del current[member]
        return len(doomed)

    def _zrange(self, key: str, start: int, end: int, withscores: bool = False) -> list[Any]:
        items = self._sorted(key)
        size = len(items)
        if start < 0:
            start += size
        if end < 0:
            end += size
        start = max(start, 0)
        if start >= size or start > end:
            return []
        window = items[start : end + 1]
        if withscores:
            return window
        return [member for member, _ in window]

    def _zcard(self, key: str) -> int:
        return len(self.zsets.get(key, {}))

    def _zrank(self, key: str, member: str) -> int | None:
        for rank, (name, _) in enumerate(self._sorted(key)):
            if name == member:
                return rank
        return None

    def _zscore(self, key: str, member: str) -> float | None:
        return self.zsets.get(key, {}).get(member)

    # -- async command surface -------------------------------------------

    async def get(self, key):
        return self._get(key)

    async def mget(self, keys, *more):
        return self._mget(keys, *more)

    async def set(self, key, value, ex=None):
        return self._set(key, value, ex=ex)

    async def delete(self, *keys):
        return self._delete(*keys)

    async def ttl(self, key):
        return self._ttl(key)

    async def zadd(self, key, mapping):
        return self._zadd(key, mapping)

    async def zrem(self, key, *members):
        return self._zrem(key, *members)

    async def zremrangebyscore(self, key, low, high):
        return self._zremrangebyscore(key, low, high)

    async def zrange(self, key, start, end, withscores=False):
        return self._zrange(key, start, end, withscores=withscores)

    async def zcard(self, key):
        return self._zcard(key)

    async def zrank(self, key, member):
        return self._zrank(key, member)

    async def zscore(self, key, member):
        return self._zscore(key, member)


class FakePipeline:
    """Queues commands and applies them together on execute."""

    def __init__(self, redis: FakeRedis, transaction: bool):
        self._redis = redis
        self.transaction = transaction
        self._queue: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    async def __aenter__(self) -> FakePipeline:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self._queue.clear()

    def __getattr__(self, name: str):
        if name not in FakeRedis.COMMANDS:
            raise AttributeError(name)

        def queue(*args: Any, **kwargs: Any) -> FakePipeline:
            self._queue.append((name, args, kwargs))
            return self

        return queue

    async def execute(self) -> list[Any]:
        queued, self._queue = self._queue, []
        if self._redis.fail_next_execute is not None:
            error, self._redis.fail_next_execute = self._redis.fail_next_execute, None
            raise error
        if self.transaction:
            self._redis.transactions += 1
        return [getattr(self._redis, f"_{name}")(*args, **kwargs) for name, args, kwargs in queued]


# =============================================================================
# Pytest Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_default_logger(monkeypatch):
    """Keep configure_logging/get_logger calls from leaking between tests."""
    monkeypatch.setattr("job_status.logging._default_logger", None)


@pytest.fixture
def clock():
    """Fixture providing a controllable clock."""
    return FakeClock()


@pytest.fixture
def redis_client(clock):
    """Fixture providing an in-memory Redis client."""
    return FakeRedis(clock)


@pytest.fixture
def store_config():
    """Fixture providing a store config with a one hour TTL."""
    return StoreConfig(redis_url="redis://localhost:6379/15", ttl_seconds=3600)


@pytest.fixture
def store(redis_client, store_config, clock):
    """Fixture providing a status store backed by the in-memory client."""
    return StatusStore(redis_client, store_config, clock=clock)
