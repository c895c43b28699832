# src/core/errors.py — v1
"""Build error taxonomy.

Every failure the pipeline knows how to attribute derives from
QuillpressError. ``error_kind`` is the stable tag used in build summaries
and by the recovery policy.
"""

from __future__ import annotations

from typing import Literal

Phase = Literal["discover", "transform", "filter", "emit", "finalize"]


class QuillpressError(Exception):
    """Base class for all pipeline errors."""

    error_kind: str = "internal"


class PluginExecutionError(QuillpressError):
    """A named plugin failed while transforming, filtering or emitting."""

    error_kind = "plugin"

    def __init__(
        self,
        plugin: str,
        phase: Phase,
        cause: BaseException,
        file_path: str | None = None,
    ) -> None:
        self.plugin = plugin
        self.phase = phase
        self.cause = cause
        self.file_path = file_path
        where = f" on {file_path}" if file_path else ""
        super().__init__(f"Plugin '{plugin}' failed during {phase}{where}: {cause}")


class ParseError(QuillpressError):
    """Malformed document content. Never retried."""

    error_kind = "parse"

    def __init__(self, message: str, file_path: str | None = None) -> None:
        self.file_path = file_path
        super().__init__(message)


class LinkResolutionError(QuillpressError):
    """A reference that does not resolve to any known document.

    Recorded as a build warning; broken links never fail a build.
    """

    error_kind = "link"

    def __init__(self, source: str, target: str, raw: str = "") -> None:
        self.source = source
        self.target = target
        self.raw = raw
        super().__init__(f"Unresolved link in '{source}': {raw or target!r} -> {target}")


class ResourceLoadError(QuillpressError):
    """An emitter's declared resource could not be loaded."""

    error_kind = "resource_load"

    def __init__(self, resource: str, reason: str = "") -> None:
        self.resource = resource
        super().__init__(f"Cannot load resource '{resource}'" + (f": {reason}" if reason else ""))


class CacheError(QuillpressError):
    """Durable cache could not be read or written."""

    error_kind = "cache"


class BuildAbortError(QuillpressError):
    """Unrecoverable condition; the run transitions to Aborted."""

    error_kind = "abort"
