"""
Redis-backed duplicate window

Each WindowStore operation maps to one Redis command:
- exists      → EXISTS
- get         → GET
- list_length → LLEN
- list_range  → LRANGE 0 -1
- commit      → MULTI / SET EX, LPUSH, LTRIM, EXPIRE, DEL, LREM / EXEC

commit() runs in a transactional pipeline, so the three window facets of
a novel submission become visible together or not at all.
"""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional, Sequence

import redis.asyncio as redis
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from vigil.errors import WindowStoreError, WindowStoreTimeout
from vigil.window import DeleteKey, Expire, Mutation, PushFront, RemoveOne, SetKey, Trim, WindowStore

logger = logging.getLogger(__name__)


class RedisWindowStore(WindowStore):
    """
    Window backend on a shared Redis instance

    Keys are namespaced per worker by the classifier (user:{id}:...),
    so one instance serves every worker.
    """

    def __init__(self, redis_url: str):
        self.redis = None
        self.redis_url = redis_url

    async def connect(self):
        """Initialize Redis connection"""
        self.redis = await redis.from_url(self.redis_url, decode_responses=True)

    async def close(self):
        """Close Redis connection"""
        if self.redis:
            await self.redis.aclose()

    @asynccontextmanager
    async def _errors(self, what: str):
        try:
            yield
        except RedisTimeoutError as e:
            raise WindowStoreTimeout(f"redis {what} timed out: {e}") from e
        except RedisError as e:
            logger.error(f"Redis {what} failed: {e}")
            raise WindowStoreError(f"redis {what} failed: {e}") from e

    async def exists(self, key: str) -> bool:
        async with self._errors("EXISTS"):
            return bool(await self.redis.exists(key))

    async def get(self, key: str) -> Optional[str]:
        async with self._errors("GET"):
            return await self.redis.get(key)

    async def list_length(self, key: str) -> int:
        async with self._errors("LLEN"):
            return await self.redis.llen(key)

    async def list_range(self, key: str) -> List[str]:
        async with self._errors("LRANGE"):
            return await self.redis.lrange(key, 0, -1)

    async def commit(self, mutations: Sequence[Mutation]) -> None:
        async with self._errors("MULTI/EXEC"):
            async with self.redis.pipeline(transaction=True) as pipe:
                for mutation in mutations:
                    if isinstance(mutation, SetKey):
                        pipe.set(mutation.key, mutation.value, ex=mutation.ttl)
                    elif isinstance(mutation, PushFront):
                        pipe.lpush(mutation.key, mutation.value)
                    elif isinstance(mutation, Trim):
                        # LTRIM bounds are inclusive
                        pipe.ltrim(mutation.key, 0, mutation.max_len - 1)
                    elif isinstance(mutation, Expire):
                        pipe.expire(mutation.key, mutation.ttl)
                    elif isinstance(mutation, DeleteKey):
                        pipe.delete(mutation.key)
                    elif isinstance(mutation, RemoveOne):
                        # LREM with count 1 scans from the head (most recent)
                        pipe.lrem(mutation.key, 1, mutation.value)
                    else:
                        raise WindowStoreError(f"Unknown mutation: {mutation!r}")
                await pipe.execute()
