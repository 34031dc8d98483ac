# src/cache/cache_factory.py — v3
"""Factory for cache store and document cache instantiation."""

from __future__ import annotations

from lexingest.cache.base_cache_store import BaseCacheStore
from lexingest.cache.document_cache import DocumentCache
from lexingest.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured storage medium.

    Args:
        settings: Application settings. Defaults to JSON backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "json" if settings is None else settings.cache_backend
    quota = None if settings is None else settings.cache_storage_quota_bytes
    cache_root = "~/.lexingest/cache" if settings is None else str(settings.cache_root)

    if backend == "memory":
        from lexingest.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore(quota_bytes=quota)

    if backend == "json":
        from lexingest.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=cache_root, quota_bytes=quota)

    if backend == "sqlite":
        from lexingest.cache.sqlite_store import SqliteCacheStore
        return SqliteCacheStore(
            db_path=f"{cache_root}/lexingest_cache.db", quota_bytes=quota,
        )

    if backend == "redis":
        from lexingest.cache.redis_store import RedisCacheStore
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(redis_url=settings.cache_redis_url, quota_bytes=quota)

    raise ValueError(f"Unsupported cache backend: {backend!r}")


def create_document_cache(
    settings: Settings | None = None, store: BaseCacheStore | None = None,
) -> DocumentCache:
    """Document cache configured from settings over the given (or configured) medium."""
    settings = settings or Settings(_env_file=None)
    return DocumentCache(
        store=store or create_cache_store(settings),
        max_size_bytes=settings.cache_max_size_bytes,
        max_entry_bytes=settings.cache_max_entry_bytes,
        ttl_s=settings.cache_ttl_s,
        key_prefix=settings.cache_key_prefix,
        compression=settings.cache_compression,
    )
