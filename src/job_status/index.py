"""
Sorted-set index of tracked status records.

Each member is a record id scored by the epoch time of its last save.
The index drives enumeration, counting and expiry pruning; entries do not
expire on their own and are removed by ``prune`` (staged inside the
store's batch loads) or together with the record on delete.
"""

from __future__ import annotations

import redis.asyncio as redis_lib
from redis.asyncio.client import Pipeline


class StatusIndex:
    """Redis sorted set mapping record id -> last update time."""

    def __init__(self, client: redis_lib.Redis, key: str) -> None:
        self._client = client
        self.key = key

    # Staged commands run inside a caller-owned transaction

    def stage_touch(self, pipe: Pipeline, record_id: str, score: float) -> None:
        pipe.zadd(self.key, {record_id: score})

    def stage_remove(self, pipe: Pipeline, record_id: str) -> None:
        pipe.zrem(self.key, record_id)

    def stage_prune(self, pipe: Pipeline, cutoff: float) -> None:
        pipe.zremrangebyscore(self.key, "-inf", cutoff)

    # Direct reads

    async def size(self) -> int:
        return int(await self._client.zcard(self.key))

    async def range(self, start: int = 0, stop: int = -1) -> list[tuple[str, float]]:
        """Ids with scores, oldest update first.

        ``start``/``stop`` are inclusive ranks; negative values count from
        the end, so ``(0, -1)`` is the whole index.
        """
        rows = await self._client.zrange(self.key, start, stop, withscores=True)
        return [(decode_member(member), float(score)) for member, score in rows]

    async def score(self, record_id: str) -> float | None:
        value = await self._client.zscore(self.key, record_id)
        return None if value is None else float(value)


def decode_member(value: str | bytes) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


__all__ = ["StatusIndex"]
