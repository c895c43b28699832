# src/pipeline/filters/explicit_publish.py — v1
"""Publish only documents that opt in with ``publish: true``.

Disabled in DEFAULT_PLUGINS; enable it for vaults where most notes are
private.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from quillpress.core.models import ProcessedContent
from quillpress.pipeline.filters.remove_drafts import is_truthy
from quillpress.pipeline.plugin_kit.base_plugin import Filter

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext


class ExplicitPublishFilter(Filter):
    """Options:
        key: Front matter key that must be truthy.
    """

    default_options = {"key": "publish"}

    @property
    def name(self) -> str:
        return "explicit_publish"

    def should_publish(self, ctx: BuildContext, content: ProcessedContent) -> bool:
        return is_truthy(content.frontmatter.get(self._options["key"]))
