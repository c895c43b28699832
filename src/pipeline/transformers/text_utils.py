# src/pipeline/transformers/text_utils.py — v1
"""Helpers shared by the markdown-aware transformers."""

from __future__ import annotations

import re
from collections.abc import Iterable

_CODE_RE = re.compile(r"(^```.*?^```[^\n]*$|^~~~.*?^~~~[^\n]*$|`[^`\n]+`)", re.MULTILINE | re.DOTALL)
_SPACE_RE = re.compile(r"\s+")


def split_code(text: str) -> list[tuple[bool, str]]:
    """Split text into (is_code, segment) pairs.

    Fenced blocks and inline code spans are code; everything else is
    prose. Joining the segments gives back the original text.
    """
    segments: list[tuple[bool, str]] = []
    pos = 0
    for match in _CODE_RE.finditer(text):
        if match.start() > pos:
            segments.append((False, text[pos:match.start()]))
        segments.append((True, match.group(0)))
        pos = match.end()
    if pos < len(text):
        segments.append((False, text[pos:]))
    return segments


def excerpt_around(text: str, start: int, end: int, width: int = 160) -> str:
    """Return the line containing ``text[start:end]``, whitespace-collapsed.

    Long lines are cut to ``width`` characters centred on the match.
    """
    line_start = text.rfind("\n", 0, start) + 1
    line_end = text.find("\n", end)
    if line_end == -1:
        line_end = len(text)
    line = text[line_start:line_end]
    if len(line) > width:
        centre = (start - line_start + end - line_start) // 2
        lo = max(0, min(centre - width // 2, len(line) - width))
        line = line[lo:lo + width]
    return _SPACE_RE.sub(" ", line).strip()


def unique(items: Iterable[str]) -> tuple[str, ...]:
    """De-duplicate, keeping first occurrence order and dropping blanks."""
    seen: dict[str, None] = {}
    for item in items:
        if item and item not in seen:
            seen[item] = None
    return tuple(seen)


def normalize_tag(tag: str) -> str:
    """'#Project Notes' -> 'Project-Notes'."""
    return _SPACE_RE.sub("-", tag.strip().lstrip("#").strip()).strip("/")
