# src/pipeline/transformers/inline_tags.py — v1
"""Collect ``#tag`` tokens written in the document body."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from quillpress.core.models import ProcessedContent
from quillpress.pipeline.plugin_kit.base_plugin import Transformer
from quillpress.pipeline.transformers.text_utils import normalize_tag, split_code, unique

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext

# A tag starts after whitespace/punctuation, never inside a word, URL or heading marker.
_TAG_RE = re.compile(r"(?<![\w/#&\[\]\)(\"'`])#([^\s#.,;:!?()\[\]{}\"'`<>|*]+)")
_NUMERIC_RE = re.compile(r"^\d+$")


class InlineTagsTransformer(Transformer):
    """Append inline tags to the tags already set by front matter."""

    @property
    def name(self) -> str:
        return "inline_tags"

    def transform(self, ctx: BuildContext, content: ProcessedContent) -> ProcessedContent:
        found: list[str] = []
        for is_code, segment in split_code(content.raw_text):
            if is_code:
                continue
            for match in _TAG_RE.finditer(segment):
                tag = normalize_tag(match.group(1))
                if tag and not _NUMERIC_RE.match(tag):
                    found.append(tag)
        if not found:
            return content
        return content.with_updates(tags=unique([*content.tags, *found]))
