# src/pipeline/emitters/assets.py — v1
"""Copy non-markdown files from the content root to their slugged paths."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FilePath, slugify_file_path
from quillpress.pipeline.plugin_kit.base_plugin import Emitter

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext

logger = logging.getLogger(__name__)


class AssetsEmitter(Emitter):
    @property
    def name(self) -> str:
        return "assets"

    async def emit(
        self,
        ctx: BuildContext,
        contents: Sequence[ProcessedContent],
        resources: Mapping[str, str],
    ) -> list[FilePath]:
        writer = ctx.require_writer()
        root = ctx.settings.content_root
        written: list[FilePath] = []
        for asset in ctx.assets:
            ctx.cancel_token.raise_if_cancelled()
            dest = FilePath(slugify_file_path(asset, exclude_ext=False))
            await writer.copy_from(str(root / asset), dest)
            written.append(dest)
        if written:
            logger.info("Copied %d assets", len(written))
        return written
