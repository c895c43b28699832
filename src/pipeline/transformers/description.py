# src/pipeline/transformers/description.py — v1
"""Description transformer: short summary used in page meta and the index."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from quillpress.core.models import ProcessedContent
from quillpress.pipeline.plugin_kit.base_plugin import Transformer

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext

_MARKUP_RE = re.compile(r"[*_`~]|!?\[([^\]]*)\]\([^)]*\)")
_SPACE_RE = re.compile(r"\s+")


def truncate(text: str, max_length: int) -> str:
    """Cut at a word boundary and append '...' when shortened."""
    if len(text) <= max_length:
        return text
    cut = text[:max_length].rsplit(" ", 1)[0].rstrip(" ,;:.")
    return f"{cut}..."


class DescriptionTransformer(Transformer):
    """Front matter ``description`` wins; otherwise the first paragraph.

    Options:
        max_length: Maximum description length in characters.
    """

    default_options = {"max_length": 150}

    @property
    def name(self) -> str:
        return "description"

    def transform(self, ctx: BuildContext, content: ProcessedContent) -> ProcessedContent:
        source = content.frontmatter.get("description")
        if not isinstance(source, str) or not source.strip():
            source = content.tree.first_paragraph or content.text.split("\n\n", 1)[0]
        plain = _MARKUP_RE.sub(lambda m: m.group(1) or "", source)
        plain = _SPACE_RE.sub(" ", plain).strip()
        return content.with_updates(
            description=truncate(plain, int(self._options["max_length"]))
        )
