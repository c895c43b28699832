# src/cache/cache_factory.py — v1
"""Factory for cache store instantiation."""

from __future__ import annotations

from quillpress.cache.base_cache_store import BaseCacheStore
from quillpress.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Build settings. Defaults to the JSON backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "json" if settings is None else settings.cache_backend
    cache_path = (
        ".quillpress-cache/cache.json" if settings is None else str(settings.cache_path)
    )

    if backend == "json":
        from quillpress.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_file=cache_path)

    if backend == "sqlite":
        from quillpress.cache.sqlite_store import SqliteCacheStore
        db_path = cache_path if cache_path.endswith(".db") else f"{cache_path}.db"
        return SqliteCacheStore(db_path=db_path)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
