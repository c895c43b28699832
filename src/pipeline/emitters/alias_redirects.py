# src/pipeline/emitters/alias_redirects.py — v1
"""Redirect pages for front matter aliases."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from html import escape
from typing import TYPE_CHECKING

from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FilePath, FullSlug, resolve_relative, slugify_file_path
from quillpress.pipeline.plugin_kit.base_plugin import Emitter

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext

logger = logging.getLogger(__name__)

# Output prefixes owned by the tag page and static emitters.
RESERVED_PREFIXES = ("tags/", "static/")


def redirect_page(target_url: str, title: str) -> str:
    url = escape(target_url)
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "  <head>\n"
        '    <meta charset="utf-8">\n'
        f"    <title>{escape(title)}</title>\n"
        f'    <link rel="canonical" href="{url}">\n'
        f'    <meta http-equiv="refresh" content="0; url={url}">\n'
        "  </head>\n"
        "</html>\n"
    )


class AliasRedirectsEmitter(Emitter):
    """Write ``<alias-slug>.html`` redirecting to the aliased page.

    An alias that collides with a real document, an earlier alias or a
    path under RESERVED_PREFIXES is skipped with a warning.
    """

    @property
    def name(self) -> str:
        return "alias_redirects"

    async def emit(
        self,
        ctx: BuildContext,
        contents: Sequence[ProcessedContent],
        resources: Mapping[str, str],
    ) -> list[FilePath]:
        writer = ctx.require_writer()
        taken: set[FullSlug] = {c.slug for c in contents}
        written: list[FilePath] = []
        for content in contents:
            for alias in content.aliases:
                alias_slug = slugify_file_path(FilePath(alias.strip("/")), exclude_ext=False)
                if (
                    not alias_slug
                    or alias_slug in taken
                    or alias_slug.startswith(RESERVED_PREFIXES)
                ):
                    logger.warning(
                        "Alias %r of %s collides with an existing page, skipped",
                        alias, content.slug,
                    )
                    continue
                taken.add(alias_slug)
                target = resolve_relative(alias_slug, content.slug)
                path = FilePath(f"{alias_slug}.html")
                await writer.write(path, redirect_page(target, content.title))
                written.append(path)
        return written
