# src/cache/redis_store.py — v2
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for sharing a cache across ingestion workers. A server running
out of ``maxmemory`` answers writes with an OOM error, which is surfaced
as StorageQuotaExceeded.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from lexingest.cache.base_cache_store import BaseCacheStore
from lexingest.cache.models import CacheEntry
from lexingest.core.exceptions import StorageQuotaExceeded

logger = logging.getLogger(__name__)

_KEY_PREFIX = "lexingest:cache:"
_INDEX_KEY = "lexingest:cache:__index__"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for shared deployments."""

    backend_name = "redis"

    def __init__(
        self, redis_url: str = "", quota_bytes: int | None = None, client: object | None = None,
    ) -> None:
        super().__init__(quota_bytes)
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._response_error = redis.exceptions.ResponseError
        self._client = client or redis.Redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        data = self._client.get(f"{_KEY_PREFIX}{key}")
        if data is None:
            return None
        try:
            return CacheEntry.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store a cache entry."""
        await self._enforce_quota(key, entry)
        try:
            self._client.set(f"{_KEY_PREFIX}{key}", entry.model_dump_json())
            # Maintain a set of all cache keys for list_entries
            self._client.sadd(_INDEX_KEY, key)
        except self._response_error as e:
            if str(e).startswith("OOM"):
                raise StorageQuotaExceeded(f"Redis out of memory: {e}") from e
            raise

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        self._client.delete(f"{_KEY_PREFIX}{key}")
        self._client.srem(_INDEX_KEY, key)

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        entries: list[CacheEntry] = []
        for key in self._client.smembers(_INDEX_KEY):
            entry = await self.get(key)
            if entry is not None:
                entries.append(entry)
        return entries

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
