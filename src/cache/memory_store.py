# src/cache/memory_store.py — v1
"""In-process cache store (CACHE_BACKEND=memory). Lost at exit."""

from __future__ import annotations

from lexingest.cache.base_cache_store import BaseCacheStore
from lexingest.cache.models import CacheEntry


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed store, optionally bounded by a byte quota."""

    backend_name = "memory"

    def __init__(self, quota_bytes: int | None = None) -> None:
        super().__init__(quota_bytes)
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def put(self, key: str, entry: CacheEntry) -> None:
        await self._enforce_quota(key, entry)
        self._entries[key] = entry

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def list_entries(self) -> list[CacheEntry]:
        return list(self._entries.values())
