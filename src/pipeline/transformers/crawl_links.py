# src/pipeline/transformers/crawl_links.py — v1
"""Link crawler: collect outgoing links and rewrite wikilinks.

Recognises ``[[Target]]``, ``[[Target#Heading|Label]]``, embeds
``![[image.png]]`` and markdown links ``[label](href)``. Each internal
target is resolved to a FullSlug with the build's link strategy and
recorded with an excerpt of its surrounding line. Links inside code are
ignored. Links to assets are rewritten but not recorded, so they never
show up as unresolved document links.

Every resolution, assets included, is also kept in
``ProcessedContent.resolutions`` so a cached copy can be checked against
a later build's slugs and strategy.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from quillpress.core.models import LinkResolution, OutgoingLink, ProcessedContent
from quillpress.core.paths import FullSlug, resolve_relative
from quillpress.pipeline.plugin_kit.base_plugin import Transformer
from quillpress.pipeline.transformers.text_utils import excerpt_around, split_code

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext

logger = logging.getLogger(__name__)

_LINK_RE = re.compile(
    r"(?P<wiki>(?P<embed>!?)\[\[(?P<body>[^\[\]|#]*)(?P<anchor>#[^\[\]|]*)?"
    r"(?:\|(?P<label>[^\[\]]*))?\]\])"
    r"|(?<!!)\[(?P<mdlabel>[^\[\]]*)\]\(<?(?P<href>[^)\s>]+)>?(?:\s+\"[^\"]*\")?\)"
)


class CrawlLinksTransformer(Transformer):
    """Extract links, resolve them and rewrite them to output URLs.

    Options:
        markdown_links: Also collect ``[label](href)`` links.
        rewrite_links: Replace wikilinks with markdown links and point
            internal hrefs at the emitted pages.
    """

    default_options = {
        "markdown_links": True,
        "rewrite_links": True,
    }

    @property
    def name(self) -> str:
        return "crawl_links"

    def transform(self, ctx: BuildContext, content: ProcessedContent) -> ProcessedContent:
        resolve = ctx.resolver()
        links: dict[FullSlug, OutgoingLink] = {}
        resolutions: dict[str, LinkResolution] = {}
        text = content.raw_text

        def record(href: str, label: str, start: int, end: int) -> FullSlug | None:
            resolution = resolve(content.slug, href)
            if resolution is None:
                return None
            resolutions.setdefault(href, resolution)
            target = resolution.target
            if resolution.asset:
                return target
            if target not in links:
                links[target] = OutgoingLink(
                    target=target,
                    raw=href,
                    label=label,
                    excerpt=excerpt_around(text, start, end),
                )
            return target

        def rewrite_wikilink(match: re.Match[str], start: int, end: int) -> str:
            embed, body, anchor, label = match.group("embed", "body", "anchor", "label")
            body = body.strip()
            anchor = (anchor or "").strip()
            rewrite = self._options["rewrite_links"]
            if not body:
                if not anchor or not rewrite:
                    return match.group(0)
                shown = (label or anchor.lstrip("#")).strip()
                return f"[{shown}]({_anchor_fragment(anchor)})"
            target = record(body, (label or body).strip(), start, end)
            if not rewrite or target is None:
                return match.group(0)
            url = resolve_relative(content.slug, target)
            shown = (label or body).strip()
            return f"{embed}[{shown}]({url}{_anchor_fragment(anchor)})"

        def rewrite_mdlink(match: re.Match[str], start: int, end: int) -> str:
            label, href = match.group("mdlabel", "href")
            if not self._options["markdown_links"]:
                return match.group(0)
            target = record(href, label, start, end)
            if target is None or not self._options["rewrite_links"]:
                return match.group(0)
            anchor = href.split("#", 1)[1] if "#" in href else ""
            url = resolve_relative(content.slug, target)
            return f"[{label}]({url}{_anchor_fragment(anchor)})"

        def rewrite(match: re.Match[str], base: int) -> str:
            start, end = base + match.start(), base + match.end()
            if match.group("wiki") is not None:
                return rewrite_wikilink(match, start, end)
            return rewrite_mdlink(match, start, end)

        pieces: list[str] = []
        offset = 0
        for is_code, segment in split_code(text):
            length = len(segment)
            if not is_code:
                segment = _LINK_RE.sub(lambda m, base=offset: rewrite(m, base), segment)
            pieces.append(segment)
            offset += length

        ordered = tuple(links.values())
        if ordered:
            logger.debug("Found %d outgoing links", len(ordered))
        return content.with_updates(
            raw_text="".join(pieces),
            links=ordered,
            resolutions=tuple(resolutions.values()),
        )


def _anchor_fragment(anchor: str) -> str:
    """'#My Heading' -> '#my-heading'."""
    if not anchor:
        return ""
    slug = re.sub(r"[^\w\- ]", "", anchor.lstrip("#")).strip().lower()
    return "#" + re.sub(r"\s+", "-", slug)
