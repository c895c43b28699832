# src/cache/sqlite_store.py — v1
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3. A connection is opened per operation so the store
can be driven from any worker thread.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from pathlib import Path

from pydantic import ValidationError

from quillpress.cache.base_cache_store import BaseCacheStore
from quillpress.cache.models import CACHE_SCHEMA_VERSION, CacheEntry
from quillpress.core.errors import CacheError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS cache_entries (
    file_path TEXT PRIMARY KEY,
    content_hash TEXT NOT NULL,
    config_hash TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_content_hash ON cache_entries(content_hash);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store for large content trees."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()

    @property
    def location(self) -> str:
        return str(self._db_path)

    def _connect(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path))
        conn.executescript(_SCHEMA)
        return conn

    def load(self) -> dict[str, CacheEntry]:
        """Read every entry; wrong schema or corrupt file yields empty."""
        if not self._db_path.exists():
            return {}
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    "SELECT value FROM cache_meta WHERE key = 'schema_version'"
                ).fetchone()
                if row is None or row[0] != str(CACHE_SCHEMA_VERSION):
                    logger.warning(
                        "Discarding cache %s: schema version %r, expected %d",
                        self._db_path, row[0] if row else None, CACHE_SCHEMA_VERSION,
                    )
                    return {}
                rows = conn.execute("SELECT file_path, data FROM cache_entries").fetchall()
        except sqlite3.DatabaseError as e:
            logger.warning("Discarding unreadable cache %s: %s", self._db_path, e)
            return {}

        entries: dict[str, CacheEntry] = {}
        for file_path, data in rows:
            try:
                entries[file_path] = CacheEntry.model_validate_json(data)
            except ValidationError as e:
                logger.warning("Dropping corrupt cache row %s: %s", file_path, e)
        return entries

    def save(self, entries: dict[str, CacheEntry]) -> None:
        """Replace all rows in a single transaction.

        Raises:
            CacheError: If the database cannot be written.
        """
        rows = [
            (key, e.content_hash, e.config_hash, e.model_dump_json())
            for key, e in sorted(entries.items())
        ]
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute("DELETE FROM cache_entries")
                conn.executemany(
                    """INSERT INTO cache_entries
                       (file_path, content_hash, config_hash, data)
                       VALUES (?, ?, ?, ?)""",
                    rows,
                )
                conn.execute(
                    "INSERT OR REPLACE INTO cache_meta (key, value) VALUES ('schema_version', ?)",
                    (str(CACHE_SCHEMA_VERSION),),
                )
        except (OSError, sqlite3.Error) as e:
            raise CacheError(f"Cannot write cache {self._db_path}: {e}") from e

    def clear(self) -> None:
        """Delete the database file."""
        if self._db_path.exists():
            self._db_path.unlink()

    def reinitialize(self) -> None:
        """Recreate a database file that could not be written."""
        logger.warning("Recreating cache database %s", self._db_path)
        self.clear()
