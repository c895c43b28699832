# src/cache/build_cache.py — v1
"""Content-addressed build cache.

The in-memory map is the source of truth during a run. It is loaded once
from a BaseCacheStore and written back either after every store
(``per_store``) or once at the end of the build (``batched``).

Worker threads call ``lookup``/``store`` concurrently; a single
``threading.Lock`` serializes access to the map and to durable writes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Literal

from quillpress.cache.base_cache_store import BaseCacheStore
from quillpress.cache.models import CacheEntry, CacheStats
from quillpress.core.errors import CacheError
from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FilePath

logger = logging.getLogger(__name__)

KeyPolicy = Literal["content", "content_and_config"]
FlushMode = Literal["batched", "per_store"]


class BuildCache:
    """Thread-safe (file, content hash) -> ProcessedContent map.

    Args:
        store: Durable backend. None keeps the cache purely in memory.
        key_policy: ``content`` keys on the content hash only;
            ``content_and_config`` additionally requires the transformer
            configuration fingerprint to match.
        config_hash: Fingerprint of the active transformer configuration.
        flush_mode: When durable writes happen.
    """

    def __init__(
        self,
        store: BaseCacheStore | None = None,
        key_policy: KeyPolicy = "content_and_config",
        config_hash: str = "",
        flush_mode: FlushMode = "batched",
    ) -> None:
        self._store = store
        self._key_policy = key_policy
        self._config_hash = config_hash
        self._flush_mode = flush_mode
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._dirty = False
        self._loaded = False
        self._stats = CacheStats()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Reload entries from the durable store. Returns the entry count."""
        with self._lock:
            self._entries = self._store.load() if self._store is not None else {}
            self._dirty = False
            self._loaded = True
            count = len(self._entries)
        if self._store is not None:
            logger.info("Loaded %d cache entries from %s", count, self._store.location)
        return count

    def ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def flush(self) -> bool:
        """Write pending changes to the durable store.

        Returns:
            True if a durable write happened.
        """
        with self._lock:
            return self._flush_locked()

    def _flush_locked(self) -> bool:
        if self._store is None or not self._dirty:
            return False
        self._store.save(self._entries)
        self._dirty = False
        logger.debug("Flushed %d cache entries to %s", len(self._entries), self._store.location)
        return True

    def reinitialize_store(self) -> None:
        """Reset the durable backend and mark everything dirty for rewrite."""
        with self._lock:
            if self._store is not None:
                self._store.reinitialize()
            self._dirty = bool(self._entries)

    def clear(self) -> None:
        """Drop all entries in memory and on disk."""
        with self._lock:
            self._entries.clear()
            self._dirty = False
            if self._store is not None:
                self._store.clear()

    # ------------------------------------------------------------------
    # Lookup / store
    # ------------------------------------------------------------------

    def lookup(
        self,
        file_path: FilePath,
        content_hash: str,
        still_valid: Callable[[ProcessedContent], bool] | None = None,
    ) -> ProcessedContent | None:
        """Return cached content if still valid, else None.

        Args:
            file_path: Source file identity.
            content_hash: Hash of the file's current bytes.
            still_valid: Check for dependencies outside the file's bytes,
                such as link resolutions. Runs outside the lock; False
                counts as a miss.
        """
        with self._lock:
            entry = self._entries.get(file_path)
            if entry is None or not self._is_valid(entry, content_hash):
                self._stats.misses += 1
                return None
            content = entry.content
        valid = still_valid is None or still_valid(content)
        with self._lock:
            if valid:
                self._stats.hits += 1
            else:
                self._stats.misses += 1
        if not valid:
            logger.debug("Cached entry for %s is stale against this build", file_path)
            return None
        return content

    def _is_valid(self, entry: CacheEntry, content_hash: str) -> bool:
        if entry.content_hash != content_hash:
            return False
        if self._key_policy == "content_and_config":
            return entry.config_hash == self._config_hash
        return True

    def store(self, file_path: FilePath, content_hash: str, content: ProcessedContent) -> None:
        """Record processed content. Storing an identical entry is a no-op."""
        with self._lock:
            existing = self._entries.get(file_path)
            if (
                existing is not None
                and existing.content_hash == content_hash
                and existing.config_hash == self._config_hash
                and existing.content == content
            ):
                return
            self._entries[file_path] = CacheEntry(
                file_path=file_path,
                content_hash=content_hash,
                config_hash=self._config_hash,
                content=content,
            )
            self._dirty = True
            self._stats.stores += 1
            if self._flush_mode == "per_store":
                try:
                    self._flush_locked()
                except CacheError as e:
                    # Left dirty; the end-of-build flush retries with recovery.
                    logger.warning("Deferred cache write for %s: %s", file_path, e)

    def prune(self, live: Iterable[str]) -> int:
        """Drop entries for files that no longer exist. Returns the count removed."""
        keep = set(live)
        with self._lock:
            stale = [k for k in self._entries if k not in keep]
            for key in stale:
                del self._entries[key]
            if stale:
                self._dirty = True
        if stale:
            logger.info("Pruned %d stale cache entries", len(stale))
        return len(stale)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def stats(self) -> CacheStats:
        with self._lock:
            return self._stats.model_copy(update={"entries": len(self._entries)})

    def reset_stats(self) -> None:
        with self._lock:
            self._stats = CacheStats()

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def key_policy(self) -> KeyPolicy:
        return self._key_policy

    def set_config_hash(self, config_hash: str) -> None:
        self._config_hash = config_hash

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, file_path: object) -> bool:
        with self._lock:
            return file_path in self._entries
