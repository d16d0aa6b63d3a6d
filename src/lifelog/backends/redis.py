"""Redis backend: one string key per named record."""

from __future__ import annotations

import redis.asyncio as aioredis
import structlog

from lifelog.backends.base import StorageBackend
from lifelog.exceptions import StorageFailure

logger = structlog.get_logger()


class RedisBackend(StorageBackend):
    """Stores each named record as a plain Redis string."""

    def __init__(self, redis_url: str, client: aioredis.Redis | None = None) -> None:
        self._redis_url = redis_url
        self._client = client

    async def connect(self) -> None:
        """Connect to Redis and verify the connection."""
        if self._client is None:
            self._client = aioredis.from_url(  # type: ignore[no-untyped-call]
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        try:
            await self._client.ping()
        except aioredis.RedisError as exc:
            raise StorageFailure(f"Redis unreachable at {self._redis_url}") from exc
        logger.info("redis_connected", url=self._redis_url)

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> aioredis.Redis:
        if self._client is None:
            msg = "Redis not connected. Call connect() first."
            raise StorageFailure(msg)
        return self._client

    async def get(self, key: str) -> str | None:
        client = self._require_client()
        try:
            value = await client.get(key)
        except aioredis.RedisError as exc:
            raise StorageFailure(f"Redis GET {key} failed") from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        client = self._require_client()
        try:
            await client.set(key, value)
        except aioredis.RedisError as exc:
            raise StorageFailure(f"Redis SET {key} failed") from exc

    async def remove(self, key: str) -> None:
        client = self._require_client()
        try:
            await client.delete(key)
        except aioredis.RedisError as exc:
            raise StorageFailure(f"Redis DEL {key} failed") from exc
