# src/storage/local_writer.py — v2
"""Local filesystem output writer (default backend)."""

from __future__ import annotations

import logging
import posixpath
import shutil
import uuid
from pathlib import Path

from quillpress.core.errors import BuildAbortError
from quillpress.storage.base_output_writer import BaseOutputWriter

logger = logging.getLogger(__name__)


class LocalWriter(BaseOutputWriter):
    """Write artifacts under a local output directory."""

    def __init__(self, base_path: str | Path) -> None:
        """Initialize with the output root.

        Args:
            base_path: Root directory for all writes.
        """
        self._base = Path(base_path)

    @property
    def root(self) -> str:
        return str(self._base)

    def _resolve(self, path: str) -> Path:
        """Resolve a relative artifact path, refusing escapes from the root."""
        resolved = (self._base / path).resolve()
        base = self._base.resolve()
        if resolved != base and base not in resolved.parents:
            raise ValueError(f"Artifact path escapes output directory: {path!r}")
        return resolved

    def ensure_writable(self) -> None:
        marker = self._base / f".write-check-{uuid.uuid4().hex[:8]}"
        try:
            self._base.mkdir(parents=True, exist_ok=True)
            marker.write_bytes(b"")
            marker.unlink()
        except OSError as exc:
            raise BuildAbortError(
                f"Output directory {self._base} is not writable: {exc}"
            ) from exc

    async def write(self, path: str, content: bytes | str) -> None:
        """Write content to a local file path."""
        p = self._resolve(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            p.write_bytes(content)
        else:
            p.write_text(content, encoding="utf-8")
        logger.debug("Wrote %s", path)

    async def read(self, path: str) -> bytes:
        """Read content from a local file path."""
        return self._resolve(path).read_bytes()

    async def exists(self, path: str) -> bool:
        """Check if a local path exists."""
        return self._resolve(path).exists()

    async def copy_from(self, source: str, path: str) -> None:
        """Copy a file byte-for-byte (metadata excluded)."""
        dst_path = self._resolve(path)
        dst_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, dst_path)

    async def list_dir(self, path: str) -> list[str]:
        """List directory contents."""
        p = self._resolve(path)
        if not p.is_dir():
            return []
        return [entry.name for entry in sorted(p.iterdir())]

    async def remove(self, path: str) -> bool:
        """Delete a file and prune directories left empty up to the root."""
        p = self._resolve(path)
        if not p.is_file():
            return False
        p.unlink()
        logger.debug("Removed %s", path)
        parent = posixpath.dirname(posixpath.normpath(path))
        while parent and not await self.list_dir(parent):
            self._resolve(parent).rmdir()
            parent = posixpath.dirname(parent)
        return True
