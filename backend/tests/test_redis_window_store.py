"""
Tests for RedisWindowStore

The redis client is a MagicMock; these tests pin down which Redis
commands each operation issues and how driver errors are typed.
"""

from unittest.mock import AsyncMock, MagicMock, call

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from services.redis_window_store import RedisWindowStore
from vigil.errors import WindowStoreError, WindowStoreTimeout
from vigil.window import DeleteKey, Expire, PushFront, RemoveOne, SetKey, Trim


def make_store():
    store = RedisWindowStore("redis://test")
    store.redis = MagicMock()

    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[True, 1, True, True])
    store.redis.pipeline.return_value.__aenter__ = AsyncMock(return_value=pipe)
    store.redis.pipeline.return_value.__aexit__ = AsyncMock(return_value=False)
    return store, pipe


# =============================================================================
# Reads
# =============================================================================

class TestReads:

    @pytest.mark.asyncio
    async def test_exists(self):
        store, _ = make_store()
        store.redis.exists = AsyncMock(return_value=1)

        assert await store.exists("user:42:file:fp") is True
        store.redis.exists.assert_awaited_once_with("user:42:file:fp")

    @pytest.mark.asyncio
    async def test_missing_key(self):
        store, _ = make_store()
        store.redis.exists = AsyncMock(return_value=0)
        store.redis.get = AsyncMock(return_value=None)

        assert await store.exists("user:42:file:fp") is False
        assert await store.get("user:42:duration:10") is None

    @pytest.mark.asyncio
    async def test_list_reads(self):
        store, _ = make_store()
        store.redis.llen = AsyncMock(return_value=2)
        store.redis.lrange = AsyncMock(return_value=["2", "1"])

        assert await store.list_length("user:42:recent") == 2
        assert await store.list_range("user:42:recent") == ["2", "1"]
        store.redis.lrange.assert_awaited_once_with("user:42:recent", 0, -1)


# =============================================================================
# Commit
# =============================================================================

class TestCommit:

    @pytest.mark.asyncio
    async def test_commit_uses_one_transaction(self):
        store, pipe = make_store()

        await store.commit([
            SetKey("user:42:file:fp", "1", 86400),
            SetKey("user:42:duration:10", "1", 86400),
            PushFront("user:42:recent", "1700000000000"),
            Trim("user:42:recent", 3),
            Expire("user:42:recent", 3600),
        ])

        store.redis.pipeline.assert_called_once_with(transaction=True)
        assert pipe.set.call_args_list == [
            call("user:42:file:fp", "1", ex=86400),
            call("user:42:duration:10", "1", ex=86400),
        ]
        pipe.lpush.assert_called_once_with("user:42:recent", "1700000000000")
        pipe.ltrim.assert_called_once_with("user:42:recent", 0, 2)
        pipe.expire.assert_called_once_with("user:42:recent", 3600)
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_removals_use_del_and_lrem(self):
        store, pipe = make_store()

        await store.commit([
            DeleteKey("user:42:file:fp"),
            DeleteKey("user:42:duration:10"),
            RemoveOne("user:42:recent", "1700000000000"),
        ])

        assert pipe.delete.call_args_list == [
            call("user:42:file:fp"),
            call("user:42:duration:10"),
        ]
        pipe.lrem.assert_called_once_with("user:42:recent", 1, "1700000000000")
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_mutation_is_rejected_before_exec(self):
        store, pipe = make_store()

        with pytest.raises(WindowStoreError):
            await store.commit([SetKey("k", "1", 10), object()])

        pipe.execute.assert_not_awaited()


# =============================================================================
# Error typing
# =============================================================================

class TestErrors:

    @pytest.mark.asyncio
    async def test_connection_error_becomes_store_error(self):
        store, _ = make_store()
        store.redis.exists = AsyncMock(side_effect=RedisConnectionError("refused"))

        with pytest.raises(WindowStoreError) as exc:
            await store.exists("k")

        assert not isinstance(exc.value, WindowStoreTimeout)

    @pytest.mark.asyncio
    async def test_redis_timeout_becomes_store_timeout(self):
        store, _ = make_store()
        store.redis.llen = AsyncMock(side_effect=RedisTimeoutError("slow"))

        with pytest.raises(WindowStoreTimeout):
            await store.list_length("k")

    @pytest.mark.asyncio
    async def test_failed_exec_becomes_store_error(self):
        store, pipe = make_store()
        pipe.execute.side_effect = RedisConnectionError("gone")

        with pytest.raises(WindowStoreError):
            await store.commit([SetKey("k", "1", 10)])


@pytest.mark.asyncio
async def test_close_releases_connection():
    store, _ = make_store()
    store.redis.aclose = AsyncMock()

    await store.close()

    store.redis.aclose.assert_awaited_once()
