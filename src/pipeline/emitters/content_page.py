# src/pipeline/emitters/content_page.py — v1
"""One HTML page per published document, with tags and backlinks."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from html import escape
from typing import TYPE_CHECKING

from quillpress.core.errors import ResourceLoadError
from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FilePath, FullSlug
from quillpress.pipeline.emitters.layout import link_to, render_page, tag_list
from quillpress.pipeline.plugin_kit.base_plugin import Emitter

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext

logger = logging.getLogger(__name__)


class ContentPageEmitter(Emitter):
    """Write ``<slug>.html`` for every published document.

    Options:
        show_backlinks: Render the backlinks section.
    """

    default_options = {"show_backlinks": True}

    @property
    def name(self) -> str:
        return "content_page"

    @property
    def required_resources(self) -> list[str]:
        return ["page.css"]

    async def emit(
        self,
        ctx: BuildContext,
        contents: Sequence[ProcessedContent],
        resources: Mapping[str, str],
    ) -> list[FilePath]:
        if "page.css" not in resources:
            raise ResourceLoadError("page.css", "not provided to emitter")
        writer = ctx.require_writer()
        graph = ctx.require_graph()
        titles = {c.slug: c.title for c in contents}

        written: list[FilePath] = []
        for content in contents:
            parts = [f"      <h1>{escape(content.title)}</h1>"]
            tags = tag_list(content.slug, content.tags)
            if tags:
                parts.append(f"      {tags}")
            parts.append(content.html)
            if self._options["show_backlinks"]:
                parts.append(self._backlinks(ctx, content.slug, titles))
            page = render_page(
                content.slug,
                content.title,
                "\n".join(p for p in parts if p),
                description=content.description,
            )
            path = FilePath(f"{content.slug}.html")
            await writer.write(path, page)
            written.append(path)
        logger.debug("Rendered %d content pages (%d graph edges)", len(written), graph.edge_count)
        return written

    @staticmethod
    def _backlinks(
        ctx: BuildContext, slug: FullSlug, titles: Mapping[FullSlug, str]
    ) -> str:
        backlinks = ctx.require_graph().backlinks_of(slug)
        if not backlinks:
            return '      <section class="backlinks"><h2>Backlinks</h2><p>No backlinks found</p></section>'
        items = "".join(
            f"<li>{link_to(slug, b.source, titles.get(b.source, b.source))}"
            f'<p class="excerpt">{escape(b.excerpt)}</p></li>'
            for b in backlinks
        )
        return f'      <section class="backlinks"><h2>Backlinks</h2><ul>{items}</ul></section>'
