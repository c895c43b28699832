# src/cache/models.py — v1
"""Cache domain models: CacheEntry, CacheSnapshot, CacheStats."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from quillpress.core.models import ProcessedContent

# Bump whenever CacheEntry or ProcessedContent change shape. Snapshots with
# any other version are discarded on load.
CACHE_SCHEMA_VERSION = 2


class CacheEntry(BaseModel):
    """Processed content keyed by (file identity, content hash)."""

    file_path: str
    content_hash: str
    config_hash: str = ""
    content: ProcessedContent
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CacheSnapshot(BaseModel):
    """Durable serialization contract of the whole cache."""

    schema_version: int = CACHE_SCHEMA_VERSION
    entries: dict[str, CacheEntry] = Field(default_factory=dict)


class CacheStats(BaseModel):
    """Counters for one build run."""

    hits: int = 0
    misses: int = 0
    stores: int = 0
    entries: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0
