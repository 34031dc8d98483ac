# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3 — no external dependency.
Better performance than JSON for large numbers of documents.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from pydantic import ValidationError

from lexingest.cache.base_cache_store import BaseCacheStore
from lexingest.cache.models import CacheEntry
from lexingest.core.exceptions import StorageQuotaExceeded

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    size_bytes INTEGER NOT NULL,
    created_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_created_at ON cache_entries(created_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store for better performance at scale."""

    backend_name = "sqlite"

    def __init__(self, db_path: Path | str, quota_bytes: int | None = None) -> None:
        super().__init__(quota_bytes)
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        row = self._conn.execute(
            "SELECT data FROM cache_entries WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        return self._deserialize(key, row[0])

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store a cache entry (upsert)."""
        await self._enforce_quota(key, entry)
        try:
            self._conn.execute(
                """INSERT OR REPLACE INTO cache_entries
                   (key, data, size_bytes, created_at) VALUES (?, ?, ?, ?)""",
                (key, entry.model_dump_json(), entry.size_bytes, entry.created_at),
            )
            self._conn.commit()
        except sqlite3.OperationalError as e:
            self._conn.rollback()
            if "full" in str(e).lower():
                raise StorageQuotaExceeded(f"SQLite storage full: {e}") from e
            raise

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        self._conn.commit()

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries, oldest first."""
        cursor = self._conn.execute(
            "SELECT key, data FROM cache_entries ORDER BY created_at"
        )
        entries: list[CacheEntry] = []
        for key, data in cursor.fetchall():
            entry = self._deserialize(key, data)
            if entry is not None:
                entries.append(entry)
        return entries

    async def usage_bytes(self) -> int:
        row = self._conn.execute(
            "SELECT COALESCE(SUM(size_bytes), 0) FROM cache_entries"
        ).fetchone()
        return int(row[0])

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @staticmethod
    def _deserialize(key: str, data: str) -> CacheEntry | None:
        try:
            return CacheEntry.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None
