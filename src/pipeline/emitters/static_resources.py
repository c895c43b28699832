# src/pipeline/emitters/static_resources.py — v1
"""Copy loaded text resources (stylesheets) into ``static/``."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FilePath
from quillpress.pipeline.plugin_kit.base_plugin import Emitter

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext


class StaticResourcesEmitter(Emitter):
    """Options:
        resources: Resource names to publish under ``static/``.
    """

    default_options = {"resources": ["page.css"]}

    @property
    def name(self) -> str:
        return "static_resources"

    @property
    def required_resources(self) -> list[str]:
        return list(self._options["resources"])

    async def emit(
        self,
        ctx: BuildContext,
        contents: Sequence[ProcessedContent],
        resources: Mapping[str, str],
    ) -> list[FilePath]:
        writer = ctx.require_writer()
        written: list[FilePath] = []
        for name in sorted(self.required_resources):
            path = FilePath(f"static/{name}")
            await writer.write(path, resources[name])
            written.append(path)
        return written
