# src/graph/dependency_graph.py — v1
"""Cross-document dependency graph: links, backlinks and tags.

Nodes live in an arena: ``_slugs[i]`` is the identity of node ``i`` and
``_index`` maps identities back to indices. Edges are stored in a
NetworkX MultiDiGraph over those integer indices, keyed by edge kind, so
no edge ever holds a reference to a document object.

The graph is rebuilt from scratch for every build (``DependencyGraph.build``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

import networkx as nx

from quillpress.core.errors import LinkResolutionError
from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FullSlug

logger = logging.getLogger(__name__)

EdgeKind = Literal["link", "tag"]
NodeKind = Literal["document", "tag"]


@dataclass(frozen=True)
class Backlink:
    """A reverse reference: ``source`` links to the queried document."""

    source: FullSlug
    excerpt: str


class DependencyGraph:
    """Directed graph of documents and tags addressed by arena index."""

    def __init__(self) -> None:
        self._slugs: list[str] = []
        self._kinds: list[NodeKind] = []
        self._index: dict[tuple[NodeKind, str], int] = {}
        self._graph = nx.MultiDiGraph()
        self._unresolved: list[LinkResolutionError] = []

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def build(cls, contents: Iterable[ProcessedContent]) -> DependencyGraph:
        """Build a fresh graph from a published content set.

        Documents are registered first so forward references between
        them resolve regardless of iteration order.
        """
        graph = cls()
        ordered = sorted(contents, key=lambda c: c.slug)
        for content in ordered:
            graph.add_document(content.slug)
        for content in ordered:
            for link in content.links:
                graph.add_edge(content.slug, link.target, excerpt=link.excerpt, raw=link.raw)
            for tag in content.tags:
                graph.add_edge(content.slug, tag, kind="tag")

        logger.info(
            "Dependency graph: %d documents, %d tags, %d edges, %d unresolved links",
            len(graph.documents()),
            len(graph.tags()),
            graph.edge_count,
            len(graph.unresolved),
        )
        return graph

    def add_document(self, slug: FullSlug) -> int:
        """Register a document node; returns its arena index."""
        return self._intern(slug, "document")

    def _intern(self, key: str, kind: NodeKind) -> int:
        idx = self._index.get((kind, key))
        if idx is not None:
            return idx
        idx = len(self._slugs)
        self._slugs.append(key)
        self._kinds.append(kind)
        self._index[(kind, key)] = idx
        self._graph.add_node(idx)
        return idx

    def add_edge(
        self,
        source: FullSlug,
        target_ref: str,
        excerpt: str = "",
        kind: EdgeKind = "link",
        raw: str = "",
    ) -> bool:
        """Add a ``links to`` or ``tagged with`` edge.

        A link whose target is not a known document is recorded in
        ``unresolved`` and no edge is added.

        Returns:
            True if an edge was added.
        """
        src_idx = self.add_document(source)

        if kind == "tag":
            tag_idx = self._intern(target_ref, "tag")
            if not self._graph.has_edge(src_idx, tag_idx, key="tag"):
                self._graph.add_edge(src_idx, tag_idx, key="tag", excerpt="")
            return True

        tgt_idx = self._index.get(("document", target_ref))
        if tgt_idx is None:
            warning = LinkResolutionError(source, target_ref, raw)
            self._unresolved.append(warning)
            logger.warning("%s", warning)
            return False
        if tgt_idx == src_idx:
            return False
        if self._graph.has_edge(src_idx, tgt_idx, key="link"):
            return False
        self._graph.add_edge(src_idx, tgt_idx, key="link", excerpt=excerpt)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def backlinks_of(self, doc: FullSlug) -> list[Backlink]:
        """Every document with a forward link to ``doc``, sorted by source."""
        idx = self._index.get(("document", doc))
        if idx is None:
            return []
        backlinks = [
            Backlink(source=FullSlug(self._slugs[src]), excerpt=data.get("excerpt", ""))
            for src, _, key, data in self._graph.in_edges(idx, keys=True, data=True)
            if key == "link"
        ]
        return sorted(backlinks, key=lambda b: b.source)

    def forward_links(self, doc: FullSlug) -> list[FullSlug]:
        """Resolved link targets of ``doc``, sorted."""
        idx = self._index.get(("document", doc))
        if idx is None:
            return []
        return sorted(
            FullSlug(self._slugs[tgt])
            for _, tgt, key in self._graph.out_edges(idx, keys=True)
            if key == "link"
        )

    def documents_tagged(self, tag: str) -> list[FullSlug]:
        """Documents carrying ``tag``, sorted."""
        idx = self._index.get(("tag", tag))
        if idx is None:
            return []
        return sorted(
            FullSlug(self._slugs[src])
            for src, _, key in self._graph.in_edges(idx, keys=True)
            if key == "tag"
        )

    def tags(self) -> list[str]:
        return sorted(
            slug
            for slug, kind in zip(self._slugs, self._kinds)
            if kind == "tag"
        )

    def documents(self) -> list[FullSlug]:
        return sorted(
            FullSlug(slug) for slug, kind in zip(self._slugs, self._kinds) if kind == "document"
        )

    def __contains__(self, slug: object) -> bool:
        return isinstance(slug, str) and ("document", slug) in self._index

    @property
    def unresolved(self) -> list[LinkResolutionError]:
        return list(self._unresolved)

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def to_networkx(self) -> nx.MultiDiGraph:
        """Copy of the graph relabelled with slugs (tags as ``#name``)."""
        labels = {
            i: (f"#{name}" if kind == "tag" else name)
            for i, (name, kind) in enumerate(zip(self._slugs, self._kinds))
        }
        graph = nx.relabel_nodes(self._graph, labels, copy=True)
        for i, label in labels.items():
            graph.nodes[label]["kind"] = self._kinds[i]
        return graph
