# src/cache/json_store.py — v2
"""JSON file-based cache store (default CACHE_BACKEND=json).

Stores cache entries as individual JSON files under CACHE_ROOT.
"""

from __future__ import annotations

import errno
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from lexingest.cache.base_cache_store import BaseCacheStore
from lexingest.cache.models import CacheEntry
from lexingest.core.exceptions import StorageQuotaExceeded

logger = logging.getLogger(__name__)

_QUOTA_ERRNOS = {errno.ENOSPC, errno.EDQUOT}


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    backend_name = "json"

    def __init__(self, cache_root: Path | str, quota_bytes: int | None = None) -> None:
        super().__init__(quota_bytes)
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        path = self._entry_path(key)
        if not path.exists():
            return None
        return self._read(path)

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store a cache entry."""
        await self._enforce_quota(key, entry)
        path = self._entry_path(key)
        try:
            path.write_text(entry.model_dump_json(), encoding="utf-8")
        except OSError as e:
            if e.errno in _QUOTA_ERRNOS:
                path.unlink(missing_ok=True)
                raise StorageQuotaExceeded(f"Disk quota exceeded writing {path}") from e
            raise

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        self._entry_path(key).unlink(missing_ok=True)

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        entries: list[CacheEntry] = []
        if not self._root.is_dir():
            return entries
        for path in sorted(self._root.glob("*.json")):
            entry = self._read(path)
            if entry is not None:
                entries.append(entry)
        return entries

    def _read(self, path: Path) -> CacheEntry | None:
        try:
            return CacheEntry(**json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to read cache entry %s: %s", path.name, e)
            return None

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key."""
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"
