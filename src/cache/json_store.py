# src/cache/json_store.py — v1
"""JSON file-based cache store (default CACHE_BACKEND=json).

The whole cache lives in one versioned JSON document. Writes go to a
sibling temp file and are moved into place, so a crash mid-write leaves
the previous snapshot intact.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from quillpress.cache.base_cache_store import BaseCacheStore
from quillpress.cache.models import CACHE_SCHEMA_VERSION, CacheEntry, CacheSnapshot
from quillpress.core.errors import CacheError

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """Single-file cache store using JSON."""

    def __init__(self, cache_file: Path | str) -> None:
        self._path = Path(cache_file).expanduser()

    @property
    def location(self) -> str:
        return str(self._path)

    def load(self) -> dict[str, CacheEntry]:
        """Load the snapshot, degrading to empty on any problem."""
        if not self._path.exists():
            logger.debug("No cache file at %s", self._path)
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Discarding unreadable cache %s: %s", self._path, e)
            return {}

        if not isinstance(data, dict) or data.get("schema_version") != CACHE_SCHEMA_VERSION:
            found = data.get("schema_version") if isinstance(data, dict) else None
            logger.warning(
                "Discarding cache %s: schema version %r, expected %d",
                self._path, found, CACHE_SCHEMA_VERSION,
            )
            return {}

        try:
            snapshot = CacheSnapshot.model_validate(data)
        except ValidationError as e:
            logger.warning("Discarding corrupt cache %s: %s", self._path, e)
            return {}
        return dict(snapshot.entries)

    def save(self, entries: dict[str, CacheEntry]) -> None:
        """Write the snapshot atomically.

        Raises:
            CacheError: If the file cannot be written.
        """
        snapshot = CacheSnapshot(entries=dict(sorted(entries.items())))
        tmp_path = self._tmp_path()
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(snapshot.model_dump_json(), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise CacheError(f"Cannot write cache {self._path}: {e}") from e

    def clear(self) -> None:
        """Remove the cache file."""
        if self._path.exists():
            self._path.unlink()

    def reinitialize(self) -> None:
        """Remove a leftover temp file from an interrupted write."""
        tmp_path = self._tmp_path()
        if tmp_path.exists():
            tmp_path.unlink()

    def _tmp_path(self) -> Path:
        return self._path.with_name(f"{self._path.name}.tmp")
