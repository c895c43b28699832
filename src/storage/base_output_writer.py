# src/storage/base_output_writer.py — v1
"""Abstract output writer interface.

Emitters never touch the filesystem directly; every artifact goes
through a writer, addressed by its path relative to the output root.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseOutputWriter(ABC):
    """Unified interface for output storage backends."""

    @property
    @abstractmethod
    def root(self) -> str:
        """Human-readable location of the output root."""

    @abstractmethod
    def ensure_writable(self) -> None:
        """Create the output root if needed and verify it accepts writes.

        Raises:
            BuildAbortError: If the output root cannot be written.
        """

    @abstractmethod
    async def write(self, path: str, content: bytes | str) -> None:
        """Write content to the given relative path."""

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Read content from the given relative path."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if a relative path exists."""

    @abstractmethod
    async def copy_from(self, source: str, path: str) -> None:
        """Copy an absolute source file to a relative output path."""

    @abstractmethod
    async def list_dir(self, path: str) -> list[str]:
        """List directory contents."""

    @abstractmethod
    async def remove(self, path: str) -> bool:
        """Delete a file, then any parent directories it leaves empty.

        Returns:
            False if nothing existed at the path.
        """
