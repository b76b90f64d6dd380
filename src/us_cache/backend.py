"""Cache backend port and its Redis implementation.

The port is deliberately key/value only: get, set-with-TTL, delete by key,
and delete every key under a namespace. A miss is ``None``, not an error.
Transport failures surface as CacheUnavailableError so the layer above can
absorb them without knowing which client library is underneath.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.us_common.redis_client import get_redis

_SCAN_BATCH = 500


class CacheUnavailableError(Exception):
    """The cache could not be reached or refused the command."""


class CacheBackend(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, *keys: str) -> None: ...

    async def delete_namespace(self, namespace: str) -> None: ...


class RedisCacheBackend:
    """CacheBackend over the shared redis.asyncio pool."""

    def __init__(
        self,
        client_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
    ) -> None:
        self._client_factory = client_factory

    async def get(self, key: str) -> str | None:
        try:
            client = await self._client_factory()
            return await client.get(key)
        except (RedisError, OSError) as exc:
            raise CacheUnavailableError(f"GET {key}: {exc}") from exc

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            client = await self._client_factory()
            await client.set(key, value, ex=ttl_seconds)
        except (RedisError, OSError) as exc:
            raise CacheUnavailableError(f"SET {key}: {exc}") from exc

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            client = await self._client_factory()
            await client.delete(*keys)
        except (RedisError, OSError) as exc:
            raise CacheUnavailableError(f"DEL {keys}: {exc}") from exc

    async def delete_namespace(self, namespace: str) -> None:
        """Delete every ``<namespace>:*`` key using SCAN (never KEYS)."""
        try:
            client = await self._client_factory()
            batch: list[str] = []
            async for key in client.scan_iter(match=f"{namespace}:*", count=_SCAN_BATCH):
                batch.append(key)
                if len(batch) >= _SCAN_BATCH:
                    await client.delete(*batch)
                    batch.clear()
            if batch:
                await client.delete(*batch)
        except (RedisError, OSError) as exc:
            raise CacheUnavailableError(f"SCAN/DEL {namespace}:*: {exc}") from exc
