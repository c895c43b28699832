# src/pipeline/emitters/content_index.py — v1
"""Site-wide JSON index consumed by search and graph views."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FilePath
from quillpress.pipeline.plugin_kit.base_plugin import Emitter

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext


class ContentIndexEmitter(Emitter):
    """Write ``static/contentIndex.json`` keyed by slug.

    Options:
        include_text: Embed each document's plain text.
    """

    default_options = {"include_text": True}

    @property
    def name(self) -> str:
        return "content_index"

    async def emit(
        self,
        ctx: BuildContext,
        contents: Sequence[ProcessedContent],
        resources: Mapping[str, str],
    ) -> list[FilePath]:
        graph = ctx.require_graph()
        index: dict[str, dict[str, Any]] = {}
        for content in contents:
            entry: dict[str, Any] = {
                "title": content.title,
                "filePath": content.file_path,
                "description": content.description,
                "tags": list(content.tags),
                "aliases": list(content.aliases),
                "links": graph.forward_links(content.slug),
            }
            if self._options["include_text"]:
                entry["content"] = content.text
            index[content.slug] = entry

        path = FilePath("static/contentIndex.json")
        payload = json.dumps(index, indent=2, sort_keys=True, ensure_ascii=False)
        await ctx.require_writer().write(path, payload + "\n")
        return [path]
