"""
Tests for kill requests and the kill flow.
"""
import json
import logging

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from job_status import JobStatus, KillRequestRegistry, StatusStore


class TestKillRequests:
    """Test the kill request registry."""

    @pytest.mark.asyncio
    async def test_request_kill(self, store, clock):
        record = await store.create()

        await store.request_kill(record.id)

        assert await store.is_kill_requested(record.id)
        assert await store.kill_requests.requested_at(record.id) == clock.now

    @pytest.mark.asyncio
    async def test_not_requested_by_default(self, store):
        record = await store.create()

        assert not await store.is_kill_requested(record.id)

    @pytest.mark.asyncio
    async def test_repeat_request_refreshes_timestamp(self, store, clock):
        record = await store.create()
        await store.request_kill(record.id)
        clock.advance(45)

        await store.request_kill(record.id)

        assert await store.kill_requests.requested_at(record.id) == clock.now
        assert await store.kill_requests.pending() == [(record.id, clock.now)]

    @pytest.mark.asyncio
    async def test_registry_uses_configured_key(self, store, redis_client):
        await store.request_kill("abc")

        assert "abc" in redis_client.zsets[store.kill_key]
        assert isinstance(store.kill_requests, KillRequestRegistry)


class TestKillable:
    """Test killable()."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["waiting", "working"])
    async def test_pending_records_are_killable(self, store, status):
        record = await store.create()
        record.status = status

        assert await store.killable(record)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["complete", "failed", "killed"])
    async def test_finished_records_are_not_killable(self, store, status):
        record = await store.create()
        record.status = status

        assert not await store.killable(record)

    @pytest.mark.asyncio
    async def test_pending_request_blocks_killable(self, store):
        record = await store.create()

        await store.request_kill(record.id)

        assert not await store.killable(record)


class TestKill:
    """Test the kill flow."""

    @pytest.mark.asyncio
    async def test_kill_resolves_request(self, store):
        record = await store.create()
        await store.update_attributes(record, {"status": "working"})
        await store.request_kill(record.id)

        engine_copy = await store.load(record.id)
        await store.kill(engine_copy)

        loaded = await store.load(record.id)
        assert loaded.status is JobStatus.KILLED
        assert not await store.is_kill_requested(record.id)
        assert not await store.killable(loaded)
        assert engine_copy.status is JobStatus.KILLED

    @pytest.mark.asyncio
    async def test_kill_is_one_transaction(self, store, redis_client, clock):
        record = await store.create()
        await store.request_kill(record.id)
        clock.advance(5)
        before = redis_client.transactions

        await store.kill(record)

        assert redis_client.transactions == before + 1
        assert record.last_updated_at == int(clock.now)
        assert await store.index.score(record.id) == clock.now

    @pytest.mark.asyncio
    async def test_failed_kill_keeps_request(self, store, redis_client):
        record = await store.create()
        await store.request_kill(record.id)
        redis_client.fail_next_execute = RedisConnectionError("connection reset")

        with pytest.raises(RedisConnectionError):
            await store.kill(record)

        assert await store.is_kill_requested(record.id)
        assert (await store.load(record.id)).status is JobStatus.WAITING

    @pytest.mark.asyncio
    async def test_kill_without_request(self, store):
        record = await store.create()

        await store.kill(record)

        assert (await store.load(record.id)).status is JobStatus.KILLED


class TestKillLogging:
    """Test kill request logging."""

    @pytest.mark.asyncio
    async def test_request_kill_is_logged(self, store, caplog):
        with caplog.at_level(logging.INFO, logger="job_status"):
            await store.request_kill("abc")

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["operation"] == "request_kill"
        assert payload["record_id"] == "abc"

    @pytest.mark.asyncio
    async def test_request_kill_silent_without_operation_logging(
        self, redis_client, store_config, clock, caplog
    ):
        store = StatusStore(redis_client, store_config, clock=clock, log_operations=False)

        with caplog.at_level(logging.DEBUG, logger="job_status"):
            await store.request_kill("abc")
            await store.kill(await store.create())

        assert not [r for r in caplog.records if r.name == "job_status"]
        assert await store.kill_requests.requested_at("abc") == clock.now
