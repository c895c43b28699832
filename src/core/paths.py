# src/core/paths.py — v1
"""Branded path identifiers and slug arithmetic.

Four path spaces flow through the pipeline and must never be mixed:

  FilePath     source file relative to the content root ("notes/My Note.md")
  FullSlug     canonical page identifier ("notes/My-Note", "notes/index")
  SimpleSlug   FullSlug with trailing "index" removed ("notes/", "/")
  RelativeURL  link from one page to another ("../notes/My-Note")

Each is a ``typing.NewType`` over ``str``, so type checkers flag a FilePath
passed where a FullSlug is expected while runtime cost stays zero.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Iterable
from pathlib import PurePosixPath
from typing import Literal, NewType

FilePath = NewType("FilePath", str)
FullSlug = NewType("FullSlug", str)
SimpleSlug = NewType("SimpleSlug", str)
RelativeURL = NewType("RelativeURL", str)

LinkStrategy = Literal["absolute", "relative", "shortest"]

MARKDOWN_EXTENSIONS: frozenset[str] = frozenset({".md", ".markdown"})

_EXTERNAL_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")
_WHITESPACE_RE = re.compile(r"\s")


def to_file_path(path: str | PurePosixPath) -> FilePath:
    """Normalize a relative path into a FilePath (POSIX separators, no leading ./)."""
    text = str(path).replace("\\", "/")
    normalized = posixpath.normpath(text)
    if normalized in (".", ""):
        raise ValueError(f"Not a file path: {path!r}")
    return FilePath(normalized.lstrip("/"))


def is_markdown_path(fp: str) -> bool:
    """True when the path has a markdown extension."""
    return PurePosixPath(fp).suffix.lower() in MARKDOWN_EXTENSIONS


def _slugify_segment(segment: str) -> str:
    segment = _WHITESPACE_RE.sub("-", segment)
    segment = segment.replace("&", "-and-").replace("%", "-percent")
    return segment.replace("?", "").replace("#", "")


def slugify_file_path(fp: FilePath, exclude_ext: bool = True) -> FullSlug:
    """Derive the FullSlug for a source file.

    Markdown extensions are always stripped. Other extensions are kept
    unless ``exclude_ext`` is True, so assets keep their suffix.

    Args:
        fp: Source path relative to the content root.
        exclude_ext: Strip non-markdown extensions as well.

    Returns:
        FullSlug such as ``notes/My-Note`` or ``notes/index``.
    """
    path = PurePosixPath(fp)
    suffix = path.suffix
    if suffix.lower() in MARKDOWN_EXTENSIONS or (exclude_ext and suffix):
        stem_path = str(path.with_suffix(""))
    else:
        stem_path = str(path)

    slug = "/".join(_slugify_segment(s) for s in stem_path.split("/") if s)
    if slug.endswith("_index"):
        slug = slug[: -len("_index")] + "index"
    return FullSlug(slug.rstrip("/"))


def simplify_slug(slug: FullSlug) -> SimpleSlug:
    """Drop a trailing ``index`` segment; the site root becomes ``/``."""
    if slug == "index":
        return SimpleSlug("/")
    if slug.endswith("/index"):
        return SimpleSlug(slug[: -len("index")])
    return SimpleSlug(slug)


def folder_of(slug: FullSlug) -> str:
    """Return the folder portion of a slug ("" at the root)."""
    parent = posixpath.dirname(slug)
    return parent


def join_segments(*parts: str) -> str:
    """Join path segments with single slashes, dropping empty parts."""
    cleaned = [p.strip("/") for p in parts if p and p.strip("/")]
    return "/".join(cleaned)


def path_to_root(slug: FullSlug) -> RelativeURL:
    """Relative URL from a page back to the site root."""
    depth = slug.count("/")
    if depth == 0:
        return RelativeURL(".")
    return RelativeURL("/".join([".."] * depth))


def resolve_relative(current: FullSlug, target: FullSlug | SimpleSlug) -> RelativeURL:
    """Relative URL from ``current`` to ``target``."""
    simple = simplify_slug(FullSlug(target))
    root = path_to_root(current)
    if simple == "/":
        return RelativeURL(f"{root}/")
    return RelativeURL(f"{root}/{simple}")


def is_external(href: str) -> bool:
    return bool(_EXTERNAL_RE.match(href)) or href.startswith("//")


def _strip_anchor(href: str) -> str:
    return href.split("#", 1)[0].split("?", 1)[0]


def _href_to_slug(href: str) -> FullSlug:
    """Slugify a link target the same way source files are slugified."""
    target = href.strip()
    if target.endswith("/"):
        target = target + "index"
    return slugify_file_path(FilePath(target), exclude_ext=False)


def resolve_link(
    source: FullSlug,
    href: str,
    strategy: LinkStrategy,
    all_slugs: Iterable[FullSlug],
) -> FullSlug | None:
    """Resolve a raw link target to an absolute FullSlug.

    External URLs and pure anchors return None. The returned slug may not
    exist in ``all_slugs``; callers decide whether that is a broken link.

    Args:
        source: Slug of the linking document.
        href: Raw target as written (wikilink body or markdown href).
        strategy: absolute, relative or shortest.
        all_slugs: Every slug known to the current build.

    Returns:
        Resolved FullSlug or None.
    """
    if is_external(href):
        return None
    target = _strip_anchor(href).strip()
    if not target:
        return None
    known = set(all_slugs)

    if target.startswith("/"):
        return _normalize(_href_to_slug(target.lstrip("/")))

    if strategy == "relative" or target.startswith("./") or target.startswith("../"):
        joined = posixpath.join(folder_of(source), target)
        return _normalize(_href_to_slug(joined))

    candidate = _normalize(_href_to_slug(target))
    if strategy == "shortest" and "/" not in target:
        matches = sorted(
            s for s in known
            if s == candidate or s.endswith("/" + candidate)
        )
        if len(matches) == 1:
            return matches[0]
        if candidate in matches:
            return candidate
        if not matches:
            folder_index = FullSlug(f"{candidate}/index")
            if folder_index in known:
                return folder_index
    return candidate


def _normalize(slug: str) -> FullSlug:
    normalized = posixpath.normpath(slug) if slug else ""
    if normalized in (".", ""):
        return FullSlug("index")
    return FullSlug(normalized)
