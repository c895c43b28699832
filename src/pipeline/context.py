# src/pipeline/context.py — v1
"""BuildContext: the explicit value every stage and plugin receives.

One context per build run. It owns the run's cache, graph, writer and
plugin manager, so several builds can run side by side without sharing
any registry. The orchestrator fills ``all_slugs``/``assets`` after
discovery and ``graph`` before emitting; plugins only read it.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import unquote

from quillpress.core.models import LinkResolution, ProcessedContent
from quillpress.core.paths import (
    FilePath,
    FullSlug,
    LinkStrategy,
    resolve_link,
    slugify_file_path,
)

if TYPE_CHECKING:
    from quillpress.cache.build_cache import BuildCache
    from quillpress.config.settings import Settings
    from quillpress.graph.dependency_graph import DependencyGraph
    from quillpress.pipeline.registry import PluginManager
    from quillpress.storage.base_output_writer import BaseOutputWriter
    from quillpress.tracking.build_stats import BuildStatsCollector


class BuildCancelled(Exception):
    """Raised inside a chunk when the run's cancellation signal is set."""


class CancellationToken:
    """Single cancellation signal for one run, safe to share with threads."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise BuildCancelled("Build cancelled")


@dataclass
class BuildContext:
    """Per-run state shared by the orchestrator and the plugins."""

    settings: Settings
    build_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    all_slugs: frozenset[FullSlug] = frozenset()
    assets: tuple[FilePath, ...] = ()
    graph: DependencyGraph | None = None
    writer: BaseOutputWriter | None = None
    cache: BuildCache | None = None
    manager: PluginManager | None = None
    stats: BuildStatsCollector | None = None
    cancel_token: CancellationToken = field(default_factory=CancellationToken)

    @property
    def link_strategy(self) -> LinkStrategy:
        return self.settings.link_resolution

    @property
    def asset_slugs(self) -> frozenset[FullSlug]:
        return frozenset(slugify_file_path(a, exclude_ext=False) for a in self.assets)

    def resolver(self) -> Callable[[FullSlug, str], LinkResolution | None]:
        """Return a link resolver bound to this build's slugs, assets and strategy.

        The resolver returns None for external URLs and bare anchors.
        """
        assets = self.asset_slugs
        known = self.all_slugs | assets
        strategy = self.link_strategy

        def resolve(source: FullSlug, href: str) -> LinkResolution | None:
            target = resolve_link(source, unquote(href), strategy, known)
            if target is None:
                return None
            return LinkResolution(href=href, target=target, asset=target in assets)

        return resolve

    def resolutions_hold(self, content: ProcessedContent) -> bool:
        """True if every link recorded on ``content`` resolves the same way now."""
        if not content.resolutions:
            return True
        resolve = self.resolver()
        return all(resolve(content.slug, r.href) == r for r in content.resolutions)

    def require_graph(self) -> DependencyGraph:
        if self.graph is None:
            raise RuntimeError("Dependency graph is only available while emitting")
        return self.graph

    def require_writer(self) -> BaseOutputWriter:
        if self.writer is None:
            raise RuntimeError("No output writer attached to this build")
        return self.writer
