# src/cache/base_cache_store.py — v1
"""Abstract durable cache store interface.

Stores are synchronous: BuildCache calls them from worker threads while
holding its own lock.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from quillpress.cache.models import CacheEntry


class BaseCacheStore(ABC):
    """Unified interface for durable cache backends."""

    @abstractmethod
    def load(self) -> dict[str, CacheEntry]:
        """Read every entry. Missing or corrupt storage yields an empty dict."""

    @abstractmethod
    def save(self, entries: dict[str, CacheEntry]) -> None:
        """Replace the durable contents with ``entries``."""

    @abstractmethod
    def clear(self) -> None:
        """Remove all durable state."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location for logs."""

    def reinitialize(self) -> None:
        """Reset backend handles after a failed write. No-op by default."""
