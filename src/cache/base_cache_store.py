# src/cache/base_cache_store.py — v2
"""Abstract storage medium under the document cache.

Mediums may be quota-bounded; a hard quota failure is signalled with
StorageQuotaExceeded and nothing else.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from lexingest.cache.models import CacheEntry
from lexingest.core.exceptions import StorageQuotaExceeded


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    backend_name = "base"

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._quota_bytes = quota_bytes

    @property
    def quota_bytes(self) -> int | None:
        return self._quota_bytes

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""

    @abstractmethod
    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store cache entry.

        Raises:
            StorageQuotaExceeded: If the medium's hard quota would be exceeded.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove cache entry (no-op when absent)."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """List all stored entries."""

    async def clear(self, prefix: str = "") -> int:
        """Delete every entry whose key starts with ``prefix``."""
        removed = 0
        for entry in await self.list_entries():
            if entry.key.startswith(prefix):
                await self.delete(entry.key)
                removed += 1
        return removed

    async def usage_bytes(self) -> int:
        return sum(e.size_bytes for e in await self.list_entries())

    async def _enforce_quota(self, key: str, entry: CacheEntry) -> None:
        if self._quota_bytes is None:
            return
        used = sum(e.size_bytes for e in await self.list_entries() if e.key != key)
        if used + entry.size_bytes > self._quota_bytes:
            raise StorageQuotaExceeded(
                f"{self.backend_name} quota exceeded: "
                f"{used + entry.size_bytes} > {self._quota_bytes} bytes"
            )

    def close(self) -> None:
        """Release backend resources."""
