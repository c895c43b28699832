# src/batch/scanner.py — v1
"""Content scanner: file discovery under the content root.

Walks the content root, drops anything matching an ignore glob, and
splits the rest into markdown documents and assets. Globs are matched
against the full relative path and against every path segment, so
``private`` excludes a whole directory and ``*.tmp`` a file anywhere.
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from quillpress.batch.models import ScanResult
from quillpress.core.models import SourceFile
from quillpress.core.paths import is_markdown_path, to_file_path

if TYPE_CHECKING:
    from quillpress.config.settings import Settings

logger = logging.getLogger(__name__)


class ContentScanner:
    """Discover source files.

    Args:
        content_root: Directory to scan.
        ignore_patterns: fnmatch globs to exclude.
        include_hidden: Keep dot-files and dot-directories.
    """

    def __init__(
        self,
        content_root: Path,
        ignore_patterns: list[str] | None = None,
        include_hidden: bool = False,
    ) -> None:
        self._root = Path(content_root)
        self._patterns = list(ignore_patterns or [])
        self._include_hidden = include_hidden

    @classmethod
    def from_settings(cls, settings: Settings) -> ContentScanner:
        return cls(
            content_root=settings.content_root,
            ignore_patterns=settings.ignore_patterns_list,
            include_hidden=settings.include_hidden,
        )

    def is_ignored(self, relative: str) -> bool:
        """True if ``relative`` (POSIX, relative to the root) is excluded."""
        parts = PurePosixPath(relative).parts
        if not self._include_hidden and any(p.startswith(".") for p in parts):
            return True
        for pattern in self._patterns:
            if fnmatch.fnmatch(relative, pattern):
                return True
            if any(fnmatch.fnmatch(part, pattern) for part in parts):
                return True
        return False

    def scan(self) -> ScanResult:
        """List every non-ignored file, sorted by relative path.

        Raises:
            ValueError: If the content root is not a directory.
        """
        if not self._root.is_dir():
            raise ValueError(f"Content root is not a directory: {self._root}")

        documents: list[SourceFile] = []
        assets: list[SourceFile] = []
        ignored = 0

        for path in sorted(self._root.rglob("*")):
            if not path.is_file():
                continue
            relative = path.relative_to(self._root).as_posix()
            if self.is_ignored(relative):
                ignored += 1
                continue
            fp = to_file_path(relative)
            entry = SourceFile(
                file_path=fp,
                absolute_path=str(path.resolve()),
                size_bytes=path.stat().st_size,
                is_markdown=is_markdown_path(fp),
            )
            (documents if entry.is_markdown else assets).append(entry)

        documents.sort(key=lambda s: s.file_path)
        assets.sort(key=lambda s: s.file_path)
        logger.info(
            "Scanned %s: %d documents, %d assets, %d ignored",
            self._root, len(documents), len(assets), ignored,
        )
        return ScanResult(
            content_root=str(self._root),
            documents=documents,
            assets=assets,
            ignored=ignored,
        )
