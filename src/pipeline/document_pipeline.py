# src/pipeline/document_pipeline.py — v1
"""Per-file processing: read, hash, consult the cache, transform, store.

``DocumentProcessor`` is the task the WorkerPool runs for every source
document. It is called from worker threads; the only shared state it
touches is the BuildCache, which locks internally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from quillpress.cache.fingerprint import compute_content_hash
from quillpress.core.errors import ParseError
from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FilePath, slugify_file_path
from quillpress.logging.context import file_context

if TYPE_CHECKING:
    from quillpress.cache.build_cache import BuildCache
    from quillpress.pipeline.context import BuildContext
    from quillpress.pipeline.registry import PluginManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileResult:
    """Outcome of processing one file."""

    file_path: FilePath
    content: ProcessedContent
    cache_hit: bool


def initial_content(file_path: FilePath, raw: bytes) -> ProcessedContent:
    """Build the untransformed ProcessedContent for a source file.

    Raises:
        ParseError: If the bytes are not valid UTF-8.
    """
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError(f"Not valid UTF-8: {exc}", file_path=file_path) from exc
    return ProcessedContent(
        file_path=file_path,
        slug=slugify_file_path(file_path),
        content_hash=compute_content_hash(raw),
        raw_text=text.replace("\r\n", "\n"),
        title=PurePosixPath(file_path).stem,
    )


class DocumentProcessor:
    """Callable run once per source document.

    Args:
        ctx: Build context handed to transformers.
        manager: Plugin manager holding the transformer chain.
        content_root: Directory the FilePaths are relative to.
        cache: Build cache, or None when caching is disabled.
        use_lookup: False forces recomputation (results are still stored).
    """

    def __init__(
        self,
        ctx: BuildContext,
        manager: PluginManager,
        content_root: Path,
        cache: BuildCache | None = None,
        use_lookup: bool = True,
    ) -> None:
        self._ctx = ctx
        self._manager = manager
        self._root = Path(content_root)
        self._cache = cache
        self._use_lookup = use_lookup

    def __call__(self, file_path: FilePath) -> FileResult:
        with file_context(file_path):
            raw = (self._root / file_path).read_bytes()
            content_hash = compute_content_hash(raw)

            if self._cache is not None and self._use_lookup:
                cached = self._cache.lookup(
                    file_path, content_hash, still_valid=self._ctx.resolutions_hold
                )
                if cached is not None:
                    logger.debug("Cache hit")
                    return FileResult(file_path, cached, cache_hit=True)

            content = self._manager.transform(self._ctx, initial_content(file_path, raw))

            if self._cache is not None:
                self._cache.store(file_path, content_hash, content)
            return FileResult(file_path, content, cache_hit=False)
