# src/cache/models.py — v2
"""Cache domain models: CacheEntry, CacheStats.

Timestamps are epoch seconds taken from the cache's clock.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class CacheEntry(BaseModel):
    """Single cache entry holding one serialized Processed Document."""

    key: str
    document_id: str
    data: str
    created_at: float
    expires_at: float
    size_bytes: int
    compressed: bool = False

    @model_validator(mode="after")
    def check_expiry(self) -> CacheEntry:
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")
        return self

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class CacheEntrySummary(BaseModel):
    document_id: str
    created_at: float
    size_bytes: int


class CacheStats(BaseModel):
    """Cache introspection for diagnostics surfaces."""

    total_entries: int = 0
    valid_entries: int = 0
    expired_entries: int = 0
    total_size_bytes: int = 0
    max_size_bytes: int = 0
    utilization_percent: float = 0.0
    oldest_entry: CacheEntrySummary | None = None
    newest_entry: CacheEntrySummary | None = None
    largest_entry: CacheEntrySummary | None = None
    backend: str = ""
    key_prefix: str = ""
    extra: dict[str, int] = Field(default_factory=dict)
