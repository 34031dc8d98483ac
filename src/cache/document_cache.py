# src/cache/document_cache.py — v2
"""Quota-aware, TTL-based cache of Processed Documents.

Sits on top of a storage medium (memory, JSON files, SQLite, Redis) and
enforces the per-entry ceiling, the aggregate capacity and expiry. Failures
are absorbed: ``set`` answers False and ``get`` answers a miss, the caller
never sees a cache exception.

Eviction ladder on write:
    capacity pressure → evict oldest 30% → one more pass → reject
    StorageQuotaExceeded → evict oldest 30% → retry → clear all → final try
"""

from __future__ import annotations

import asyncio
import base64
import logging
import math
import time
import weakref
import zlib
from typing import Any, Callable

from pydantic import ValidationError

from lexingest.cache.base_cache_store import BaseCacheStore
from lexingest.cache.models import CacheEntry, CacheEntrySummary, CacheStats
from lexingest.core.exceptions import CacheWriteRejected, StorageQuotaExceeded
from lexingest.core.models import ProcessedDocument

logger = logging.getLogger(__name__)

COMPRESSION_THRESHOLD_BYTES = 1024
EVICTION_FRACTION = 0.3
EXPORT_VERSION = 1


class DocumentCache:
    """Document-id keyed cache over a BaseCacheStore.

    Args:
        store: Storage medium.
        max_size_bytes: Aggregate capacity of live entries.
        max_entry_bytes: Per-entry ceiling; larger entries are rejected.
        ttl_s: Default time-to-live.
        key_prefix: Namespace of this cache's keys inside the medium.
        compression: Compress entries above 1 KB (zlib + base64).
        clock: Epoch-seconds clock, injectable for tests.

    Raises:
        ValueError: If ``ttl_s`` is not positive.
    """

    def __init__(
        self,
        store: BaseCacheStore,
        max_size_bytes: int = 50 * 1024 * 1024,
        max_entry_bytes: int = 500 * 1024,
        ttl_s: float = 1800,
        key_prefix: str = "lex_doc_cache_",
        compression: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_s <= 0:
            raise ValueError(f"ttl_s must be positive, got {ttl_s}")
        self._store = store
        self._max_size_bytes = max_size_bytes
        self._max_entry_bytes = max_entry_bytes
        self._ttl_s = ttl_s
        self._prefix = key_prefix
        self._compression = compression
        self._clock = clock
        self._key_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._capacity_lock = asyncio.Lock()

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    def key_for(self, document_id: str) -> str:
        return f"{self._prefix}{document_id}"

    def _lock_for(self, key: str) -> asyncio.Lock:
        # Held only while some task references it; idle keys drop out.
        lock = self._key_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._key_locks[key] = lock
        return lock

    # --- Public contract ---

    async def get(self, document_id: str) -> ProcessedDocument | None:
        """Cached document, or None on miss. Expired entries are removed."""
        key = self.key_for(document_id)
        async with self._lock_for(key):
            try:
                entry = await self._store.get(key)
                if entry is None:
                    return None
                if entry.is_expired(self._clock()):
                    logger.debug("Cache entry %s expired", document_id)
                    await self._store.delete(key)
                    return None
                return self._decode(entry)
            except (ValueError, zlib.error) as e:
                logger.warning("Dropping unreadable cache entry %s: %s", document_id, e)
                await self._discard(key)
                return None
            except Exception as e:
                logger.warning("Cache read failed for %s: %s", document_id, e)
                return None

    async def has(self, document_id: str) -> bool:
        return await self.get(document_id) is not None

    async def set(
        self, document_id: str, value: ProcessedDocument, ttl_s: float | None = None,
    ) -> bool:
        """Store a document; False when rejected. Never raises."""
        ttl = self._ttl_s if ttl_s is None else ttl_s
        if ttl <= 0:
            logger.warning("Cache write rejected for %s: ttl_s must be positive, got %s",
                           document_id, ttl)
            return False
        try:
            return await self._admit(self._encode(document_id, value, ttl))
        except CacheWriteRejected as e:
            logger.warning("%s", e)
            return False
        except Exception as e:
            logger.warning("Cache write failed for %s: %s", document_id, e)
            return False

    async def remove(self, document_id: str) -> None:
        key = self.key_for(document_id)
        async with self._lock_for(key):
            await self._store.delete(key)

    async def evict_expired(self) -> int:
        """Remove every expired entry. Returns the count removed."""
        now = self._clock()
        removed = 0
        async with self._capacity_lock:
            for entry in await self._own_entries():
                if entry.is_expired(now):
                    await self._store.delete(entry.key)
                    removed += 1
        if removed:
            logger.info("Evicted %d expired cache entries", removed)
        return removed

    async def evict_oldest(self, fraction: float = EVICTION_FRACTION) -> int:
        """Remove the oldest ``fraction`` of entries by creation time."""
        async with self._capacity_lock:
            return await self._evict_oldest_unlocked(fraction)

    async def clear(self) -> int:
        async with self._capacity_lock:
            removed = await self._store.clear(self._prefix)
        logger.info("Cleared %d cache entries", removed)
        return removed

    async def stats(self) -> CacheStats:
        entries = await self._own_entries()
        now = self._clock()
        total_size = sum(e.size_bytes for e in entries)
        expired = sum(1 for e in entries if e.is_expired(now))

        def summary(entry: CacheEntry | None) -> CacheEntrySummary | None:
            if entry is None:
                return None
            return CacheEntrySummary(
                document_id=entry.document_id,
                created_at=entry.created_at,
                size_bytes=entry.size_bytes,
            )

        return CacheStats(
            total_entries=len(entries),
            valid_entries=len(entries) - expired,
            expired_entries=expired,
            total_size_bytes=total_size,
            max_size_bytes=self._max_size_bytes,
            utilization_percent=(
                round(total_size / self._max_size_bytes * 100, 2)
                if self._max_size_bytes else 0.0
            ),
            oldest_entry=summary(min(entries, key=lambda e: e.created_at, default=None)),
            newest_entry=summary(max(entries, key=lambda e: e.created_at, default=None)),
            largest_entry=summary(max(entries, key=lambda e: e.size_bytes, default=None)),
            backend=self._store.backend_name,
            key_prefix=self._prefix,
            extra={"compressed_entries": sum(1 for e in entries if e.compressed)},
        )

    async def export(self) -> dict[str, Any]:
        """Backup of every live entry."""
        now = self._clock()
        entries = [e for e in await self._own_entries() if not e.is_expired(now)]
        return {
            "version": EXPORT_VERSION,
            "exported_at": now,
            "entries": [e.model_dump(mode="json") for e in entries],
        }

    async def import_entries(self, backup: dict[str, Any]) -> int:
        """Restore entries from ``export()`` output; expired ones are skipped."""
        now = self._clock()
        imported = 0
        for raw in backup.get("entries", []):
            try:
                entry = CacheEntry.model_validate(raw)
            except ValidationError as e:
                logger.warning("Skipping invalid backup entry: %s", e)
                continue
            if entry.is_expired(now):
                continue
            entry = entry.model_copy(update={"key": self.key_for(entry.document_id)})
            try:
                if await self._admit(entry):
                    imported += 1
            except CacheWriteRejected as e:
                logger.warning("%s", e)
        logger.info("Imported %d cache entries", imported)
        return imported

    def measure(self, value: ProcessedDocument) -> int:
        """Accounted size in bytes that ``value`` would occupy."""
        data, _ = self._serialize(value)
        return len(data.encode("utf-8"))

    # --- Admission ---

    async def _admit(self, entry: CacheEntry) -> bool:
        if entry.size_bytes > self._max_entry_bytes:
            raise CacheWriteRejected(
                entry.document_id,
                f"entry is {entry.size_bytes} bytes (ceiling {self._max_entry_bytes})",
            )

        async with self._lock_for(entry.key):
            async with self._capacity_lock:
                try:
                    await self._store.delete(entry.key)
                    if not await self._make_room(entry.size_bytes):
                        raise CacheWriteRejected(
                            entry.document_id, "capacity exhausted after eviction",
                        )
                    return await self._write(entry)
                except CacheWriteRejected:
                    raise
                except Exception as e:
                    logger.warning("Cache write failed for %s: %s", entry.document_id, e)
                    return False

    async def _make_room(self, needed: int) -> bool:
        for _ in range(2):
            used = await self._usage()
            if used + needed <= self._max_size_bytes:
                return True
            logger.info(
                "Cache at %d/%d bytes, evicting oldest entries", used, self._max_size_bytes,
            )
            await self._evict_oldest_unlocked(EVICTION_FRACTION)
        return await self._usage() + needed <= self._max_size_bytes

    async def _write(self, entry: CacheEntry) -> bool:
        try:
            await self._store.put(entry.key, entry)
            return True
        except StorageQuotaExceeded:
            logger.warning("Storage quota exceeded, evicting oldest entries")

        await self._evict_oldest_unlocked(EVICTION_FRACTION)
        try:
            await self._store.put(entry.key, entry)
            return True
        except StorageQuotaExceeded:
            logger.warning("Storage quota still exceeded, clearing cache")

        await self._store.clear(self._prefix)
        try:
            await self._store.put(entry.key, entry)
            return True
        except StorageQuotaExceeded:
            logger.warning("Cache write abandoned for %s after full clear", entry.document_id)
            return False

    async def _evict_oldest_unlocked(self, fraction: float) -> int:
        entries = sorted(await self._own_entries(), key=lambda e: e.created_at)
        if not entries:
            return 0
        count = min(len(entries), max(1, math.ceil(len(entries) * fraction)))
        for entry in entries[:count]:
            await self._store.delete(entry.key)
        logger.debug("Evicted %d oldest cache entries", count)
        return count

    async def _usage(self) -> int:
        return sum(e.size_bytes for e in await self._own_entries())

    async def _discard(self, key: str) -> None:
        try:
            await self._store.delete(key)
        except Exception as e:
            logger.warning("Could not remove cache entry %s: %s", key, e)

    async def _own_entries(self) -> list[CacheEntry]:
        return [e for e in await self._store.list_entries() if e.key.startswith(self._prefix)]

    # --- Encoding ---

    def _serialize(self, value: ProcessedDocument) -> tuple[str, bool]:
        data = value.model_dump_json()
        if self._compression and len(data.encode("utf-8")) > COMPRESSION_THRESHOLD_BYTES:
            packed = base64.b64encode(zlib.compress(data.encode("utf-8"))).decode("ascii")
            return packed, True
        return data, False

    def _encode(self, document_id: str, value: ProcessedDocument, ttl: float) -> CacheEntry:
        data, compressed = self._serialize(value)
        now = self._clock()
        return CacheEntry(
            key=self.key_for(document_id),
            document_id=document_id,
            data=data,
            created_at=now,
            expires_at=now + ttl,
            size_bytes=len(data.encode("utf-8")),
            compressed=compressed,
        )

    @staticmethod
    def _decode(entry: CacheEntry) -> ProcessedDocument:
        data = entry.data
        if entry.compressed:
            data = zlib.decompress(base64.b64decode(data)).decode("utf-8")
        return ProcessedDocument.model_validate_json(data)
