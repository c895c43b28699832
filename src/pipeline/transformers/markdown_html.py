# src/pipeline/transformers/markdown_html.py — v1
"""Markdown transformer: DocumentTree, rendered HTML and plain text.

The block tree is built by a small line scanner (headings, fences,
lists, quotes, rules, paragraphs); HTML comes from Python-Markdown.
A fresh ``markdown.Markdown`` instance is created per document because
instances are not thread-safe.
"""

from __future__ import annotations

import html
import logging
import re
from typing import TYPE_CHECKING

import markdown as md

from quillpress.core.models import Block, DocumentTree, ProcessedContent
from quillpress.pipeline.plugin_kit.base_plugin import Transformer

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_FENCE_RE = re.compile(r"^(```|~~~)\s*([\w+\-]*)")
_LIST_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+")
_RULE_RE = re.compile(r"^\s*(?:(?:-\s*){3,}|(?:\*\s*){3,}|(?:_\s*){3,})$")
_TAG_STRIP_RE = re.compile(r"<[^>]+>")
_BLANK_LINES_RE = re.compile(r"\n{3,}")
_INTERNAL_HREF_RE = re.compile(r'<a href="(\.[^"]*)"')


def parse_blocks(text: str) -> DocumentTree:
    """Split markdown source into a flat sequence of typed blocks."""
    blocks: list[Block] = []
    lines = text.split("\n")
    i = 0
    while i < len(lines):
        line = lines[i]
        stripped = line.strip()

        if not stripped:
            i += 1
            continue

        fence = _FENCE_RE.match(stripped)
        if fence:
            marker, language = fence.group(1), fence.group(2) or None
            body: list[str] = []
            i += 1
            while i < len(lines) and not lines[i].strip().startswith(marker):
                body.append(lines[i])
                i += 1
            i += 1  # closing fence
            blocks.append(Block(kind="code", text="\n".join(body), language=language))
            continue

        heading = _HEADING_RE.match(stripped)
        if heading:
            blocks.append(
                Block(kind="heading", text=heading.group(2), level=len(heading.group(1)))
            )
            i += 1
            continue

        if _RULE_RE.match(stripped):
            blocks.append(Block(kind="rule"))
            i += 1
            continue

        kind = "quote" if stripped.startswith(">") else "list" if _LIST_RE.match(line) else "paragraph"
        body = []
        while i < len(lines) and lines[i].strip():
            current = lines[i].strip()
            if body and (_HEADING_RE.match(current) or _FENCE_RE.match(current)):
                break
            if kind == "quote":
                current = current.lstrip(">").strip()
            body.append(current)
            i += 1
        blocks.append(Block(kind=kind, text=" ".join(body) if kind == "paragraph" else "\n".join(body)))

    return DocumentTree(blocks=tuple(blocks))


def html_to_text(markup: str) -> str:
    """Strip tags and unescape entities."""
    text = html.unescape(_TAG_STRIP_RE.sub("", markup))
    return _BLANK_LINES_RE.sub("\n\n", text).strip()


class MarkdownTransformer(Transformer):
    """Render markdown to HTML.

    Options:
        extensions: Python-Markdown extension names.
        smart_quotes: Enable typographic quotes and dashes (``smarty``).
    """

    default_options = {
        "extensions": ["extra", "sane_lists", "toc"],
        "smart_quotes": True,
    }

    @property
    def name(self) -> str:
        return "markdown"

    def _extensions(self) -> list[str]:
        extensions = list(self._options["extensions"])
        if self._options["smart_quotes"] and "smarty" not in extensions:
            extensions.append("smarty")
        return extensions

    def transform(self, ctx: BuildContext, content: ProcessedContent) -> ProcessedContent:
        renderer = md.Markdown(extensions=self._extensions(), output_format="html")
        rendered = renderer.convert(content.raw_text)
        rendered = _INTERNAL_HREF_RE.sub(r'<a class="internal" href="\1"', rendered)
        return content.with_updates(
            tree=parse_blocks(content.raw_text),
            html=rendered,
            text=html_to_text(rendered),
        )
