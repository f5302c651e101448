"""
Redis implementation of the key-value store.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from jobqueue.exceptions import StoreError
from jobqueue.store.base import KeyValueStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _translate_errors(operation: str, key: str) -> AsyncIterator[None]:
    try:
        yield
    except RedisError as e:
        logger.warning(
            "Redis operation failed",
            extra={"operation": operation, "key": key, "error": str(e)}
        )
        raise StoreError(f"Redis {operation} failed for {key}: {e}") from e


class RedisStore(KeyValueStore):
    """
    Key-value store backed by a ``redis.asyncio`` client.

    The client is shared by the worker loop and producers; redis-py's
    connection pool makes it safe for concurrent use from many tasks.
    """

    def __init__(self, client: aioredis.Redis):
        """
        Initialize the store with a client.

        Args:
            client: A redis client created with ``decode_responses=True``.
        """
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        """Create a store for a redis URL, e.g. ``redis://localhost:6379/0``."""
        return cls(aioredis.Redis.from_url(url, decode_responses=True))

    @property
    def client(self) -> aioredis.Redis:
        return self._client

    async def get(self, key: str) -> str | None:
        async with _translate_errors("GET", key):
            return await self._client.get(key)

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        async with _translate_errors("SETEX", key):
            await self._client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        async with _translate_errors("DEL", key):
            await self._client.delete(key)

    async def right_push(self, list_key: str, value: str) -> None:
        async with _translate_errors("RPUSH", list_key):
            await self._client.rpush(list_key, value)

    async def blocking_left_pop(self, list_key: str, wait_seconds: int) -> str | None:
        async with _translate_errors("BLPOP", list_key):
            popped = await self._client.blpop([list_key], timeout=wait_seconds)

        if popped is None:
            return None

        # BLPOP replies with (key, value)
        _, value = popped
        return value

    async def list_range(self, list_key: str, start: int = 0, stop: int = -1) -> list[str]:
        async with _translate_errors("LRANGE", list_key):
            return await self._client.lrange(list_key, start, stop)

    async def ping(self) -> bool:
        """Check connectivity to the server."""
        async with _translate_errors("PING", "-"):
            return await self._client.ping()

    async def close(self) -> None:
        await self._client.aclose()
