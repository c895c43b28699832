# src/pipeline/filters/remove_drafts.py — v1
"""Drop documents marked ``draft: true`` in front matter."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from quillpress.core.models import ProcessedContent
from quillpress.pipeline.plugin_kit.base_plugin import Filter

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext

_TRUTHY = {"true", "yes", "on", "1"}


def is_truthy(value: Any) -> bool:
    """YAML booleans plus the usual string spellings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return False


class RemoveDraftsFilter(Filter):
    @property
    def name(self) -> str:
        return "remove_drafts"

    def should_publish(self, ctx: BuildContext, content: ProcessedContent) -> bool:
        return not is_truthy(content.frontmatter.get("draft"))
