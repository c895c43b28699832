# src/pipeline/emitters/layout.py — v1
"""Minimal HTML page shell shared by the page-producing emitters.

Pages are plain documents with no timestamps or build ids, so an
unchanged site always renders to identical bytes.
"""

from __future__ import annotations

from html import escape

from quillpress.core.paths import FullSlug, join_segments, path_to_root, resolve_relative

STYLESHEET = "static/page.css"


def render_page(
    slug: FullSlug,
    title: str,
    body: str,
    description: str = "",
    head_extra: str = "",
) -> str:
    """Wrap ``body`` in a complete HTML document for the page at ``slug``."""
    css = join_segments(path_to_root(slug), STYLESHEET)
    meta = (
        f'    <meta name="description" content="{escape(description)}">\n'
        if description
        else ""
    )
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "  <head>\n"
        '    <meta charset="utf-8">\n'
        f"    <title>{escape(title)}</title>\n"
        f"{meta}"
        f'    <link rel="stylesheet" href="{css}">\n'
        f"{head_extra}"
        "  </head>\n"
        "  <body>\n"
        f"    <article>\n{body}\n    </article>\n"
        "  </body>\n"
        "</html>\n"
    )


def link_to(current: FullSlug, target: FullSlug, label: str, css_class: str = "internal") -> str:
    href = resolve_relative(current, target)
    return f'<a class="{css_class}" href="{escape(href)}">{escape(label)}</a>'


def tag_slug(tag: str) -> FullSlug:
    return FullSlug(f"tags/{tag}")


def tag_list(current: FullSlug, tags: tuple[str, ...] | list[str]) -> str:
    if not tags:
        return ""
    items = "".join(
        f"<li>{link_to(current, tag_slug(t), '#' + t, 'tag')}</li>" for t in tags
    )
    return f'<ul class="tags">{items}</ul>'
