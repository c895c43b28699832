# src/pipeline/emitters/tag_page.py — v1
"""Tag listing pages: ``tags/<tag>.html`` plus ``tags/index.html``."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from html import escape
from typing import TYPE_CHECKING

from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FilePath, FullSlug
from quillpress.pipeline.emitters.layout import link_to, render_page, tag_slug
from quillpress.pipeline.plugin_kit.base_plugin import Emitter

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext


class TagPageEmitter(Emitter):
    @property
    def name(self) -> str:
        return "tag_page"

    async def emit(
        self,
        ctx: BuildContext,
        contents: Sequence[ProcessedContent],
        resources: Mapping[str, str],
    ) -> list[FilePath]:
        graph = ctx.require_graph()
        writer = ctx.require_writer()
        titles = {c.slug: c.title for c in contents}
        tags = graph.tags()
        if not tags:
            return []

        written: list[FilePath] = []
        for tag in tags:
            slug = tag_slug(tag)
            items = "".join(
                f"<li>{link_to(slug, doc, titles.get(doc, doc))}</li>"
                for doc in graph.documents_tagged(tag)
            )
            body = f"      <h1>#{escape(tag)}</h1>\n      <ul>{items}</ul>"
            path = FilePath(f"{slug}.html")
            await writer.write(path, render_page(slug, f"#{tag}", body))
            written.append(path)

        index_slug = FullSlug("tags/index")
        items = "".join(
            f"<li>{link_to(index_slug, tag_slug(t), '#' + t, 'tag')} "
            f"({len(graph.documents_tagged(t))})</li>"
            for t in tags
        )
        index_path = FilePath(f"{index_slug}.html")
        await writer.write(
            index_path, render_page(index_slug, "Tags", f"      <h1>Tags</h1>\n      <ul>{items}</ul>")
        )
        written.append(index_path)
        return written
