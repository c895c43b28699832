# src/pipeline/plugin_kit/base_plugin.py — v1
"""Standard plugin interfaces: Transformer, Filter, Emitter.

A plugin instance exposes only the operations of its capability. The
``kind`` class attribute is the tag the PluginManager dispatches on.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from quillpress.pipeline.plugin_kit.models import PluginKind

if TYPE_CHECKING:
    from quillpress.core.models import ProcessedContent
    from quillpress.core.paths import FilePath
    from quillpress.pipeline.context import BuildContext


class BasePlugin(ABC):
    """Common plugin surface: identity plus an options mapping."""

    kind: ClassVar[PluginKind]
    default_options: ClassVar[dict[str, Any]] = {}

    def __init__(self, **options: Any) -> None:
        unknown = set(options) - set(self.default_options)
        if unknown:
            raise TypeError(
                f"{type(self).__name__} got unknown options: {sorted(unknown)}"
            )
        self._options: dict[str, Any] = {**self.default_options, **options}

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique plugin identifier within its kind (e.g., 'frontmatter')."""

    @property
    def version(self) -> str:
        """Plugin version; participates in the cache config fingerprint."""
        return "1.0.0"

    @property
    def options(self) -> dict[str, Any]:
        return dict(self._options)

    def __repr__(self) -> str:
        return f"<{self.kind.value}:{self.name} v{self.version}>"


class Transformer(BasePlugin):
    """Converts content into a richer representation."""

    kind = PluginKind.TRANSFORMER

    @abstractmethod
    def transform(self, ctx: BuildContext, content: ProcessedContent) -> ProcessedContent:
        """Return the transformed content.

        Args:
            ctx: Build context (settings, known slugs).
            content: Output of the previous transformer.

        Returns:
            New ProcessedContent; the input must not be mutated.
        """


class Filter(BasePlugin):
    """Pure predicate deciding whether content is published."""

    kind = PluginKind.FILTER

    @abstractmethod
    def should_publish(self, ctx: BuildContext, content: ProcessedContent) -> bool:
        """Return True to keep the document."""


class Emitter(BasePlugin):
    """Produces output artifacts from the published content set."""

    kind = PluginKind.EMITTER

    @property
    def required_resources(self) -> list[str]:
        """Names of resources this emitter needs loaded before it runs."""
        return []

    @abstractmethod
    async def emit(
        self,
        ctx: BuildContext,
        contents: Sequence[ProcessedContent],
        resources: Mapping[str, str],
    ) -> list[FilePath]:
        """Write artifacts and return their paths relative to the output dir."""
