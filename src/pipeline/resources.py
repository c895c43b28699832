# src/pipeline/resources.py — v1
"""Emitter resources: named text blobs an emitter declares it needs.

Built-in resources ship with the package. A ``resources_dir`` may
override any of them or add new ones by file name.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from quillpress.core.errors import ResourceLoadError

logger = logging.getLogger(__name__)

BUILTIN_RESOURCES: dict[str, str] = {
    "page.css": """\
body { font-family: system-ui, sans-serif; max-width: 46rem; margin: 2rem auto; padding: 0 1rem; line-height: 1.6; }
a.internal { text-decoration: none; border-bottom: 1px dotted; }
a.internal.broken { opacity: 0.5; }
.tags { list-style: none; padding: 0; display: flex; gap: 0.5rem; }
.backlinks { border-top: 1px solid #ddd; margin-top: 2rem; padding-top: 1rem; }
.backlinks .excerpt { color: #666; font-size: 0.9em; }
""",
}


class ResourceLoader:
    """Load and cache resources by name.

    Args:
        resources_dir: Optional directory whose files override built-ins.
    """

    def __init__(self, resources_dir: Path | None = None) -> None:
        self._dir = Path(resources_dir) if resources_dir else None
        self._loaded: dict[str, str] = {}

    def load(self, name: str) -> str:
        """Return the resource text, loading it on first use.

        Raises:
            ResourceLoadError: If the resource is unknown or unreadable.
        """
        if name in self._loaded:
            return self._loaded[name]
        text = self._read(name)
        self._loaded[name] = text
        return text

    def load_many(self, names: Iterable[str]) -> dict[str, str]:
        return {name: self.load(name) for name in names}

    def reload(self, name: str) -> str:
        """Drop the cached copy and load ``name`` again."""
        self._loaded.pop(name, None)
        logger.info("Reloading resource %s", name)
        return self.load(name)

    @property
    def loaded(self) -> dict[str, str]:
        """Every resource loaded so far, by name."""
        return dict(sorted(self._loaded.items()))

    def _read(self, name: str) -> str:
        if self._dir is not None:
            candidate = self._dir / name
            if candidate.is_file():
                try:
                    return candidate.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    raise ResourceLoadError(name, str(exc)) from exc
        if name in BUILTIN_RESOURCES:
            return BUILTIN_RESOURCES[name]
        raise ResourceLoadError(name, "not found")
