"""Best-effort, schema-typed cache operations.

Every method here swallows cache failures after logging them: a read falls
back to "miss", a write/evict becomes a no-op. The store stays the single
source of truth and no business operation fails because Redis did.

Each CacheRegion fixes one value schema (a pydantic model or a list of one),
so entries are plain JSON without embedded type information and decoding
never needs runtime type discovery. An entry that no longer decodes (schema
drift after a deploy) is treated as a miss and evicted.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from src.us_cache.backend import CacheBackend, CacheUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheRegion(Generic[T]):
    """A named key space with one TTL and one value schema."""

    def __init__(self, name: str, ttl_seconds: int, schema: Any) -> None:
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._adapter: TypeAdapter[T] = TypeAdapter(schema)

    def encode(self, value: T) -> str:
        return self._adapter.dump_json(value).decode("utf-8")

    def decode(self, raw: str) -> T:
        return self._adapter.validate_json(raw)

    def __repr__(self) -> str:
        return f"CacheRegion({self.name!r}, ttl={self.ttl_seconds})"


class CacheLayer:
    def __init__(self, backend: CacheBackend, prefix: str) -> None:
        self._backend = backend
        self._prefix = prefix

    def key(self, region: CacheRegion[Any], key: object) -> str:
        return f"{self.namespace(region)}:{key}"

    def namespace(self, region: CacheRegion[Any]) -> str:
        return f"{self._prefix}:{region.name}"

    async def get(self, region: CacheRegion[T], key: object) -> T | None:
        full_key = self.key(region, key)
        try:
            raw = await self._backend.get(full_key)
        except CacheUnavailableError as exc:
            logger.warning("Cache read skipped: %s", exc)
            return None
        if raw is None:
            return None
        try:
            return region.decode(raw)
        except ValidationError:
            logger.warning("Cache entry %s does not match %r; evicting", full_key, region)
            await self._delete(full_key)
            return None

    async def put(self, region: CacheRegion[T], key: object, value: T) -> None:
        full_key = self.key(region, key)
        try:
            await self._backend.set(full_key, region.encode(value), region.ttl_seconds)
        except CacheUnavailableError as exc:
            # A failed refresh may leave the previous value behind; drop it
            logger.warning("Cache write skipped: %s", exc)
            await self._delete(full_key)

    async def evict(self, region: CacheRegion[Any], *keys: object) -> None:
        if keys:
            await self._delete(*(self.key(region, k) for k in keys))

    async def evict_all(self, region: CacheRegion[Any]) -> None:
        namespace = self.namespace(region)
        try:
            await self._backend.delete_namespace(namespace)
        except CacheUnavailableError as exc:
            logger.warning("Cache namespace eviction skipped: %s", exc)

    async def read_through(
        self,
        region: CacheRegion[T],
        key: object,
        loader: Callable[[], Awaitable[T | None]],
    ) -> T | None:
        """Return the cached value, or load, cache and return it.

        ``None`` from the loader is returned as-is and never cached.
        """
        cached = await self.get(region, key)
        if cached is not None:
            return cached
        value = await loader()
        if value is not None:
            await self.put(region, key, value)
        return value

    async def _delete(self, *full_keys: str) -> None:
        try:
            await self._backend.delete(*full_keys)
        except CacheUnavailableError as exc:
            logger.warning("Cache eviction skipped: %s", exc)
