# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types. All imports come from core.models.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from quillpress.core.paths import FilePath, FullSlug


# === DOCUMENT TREE ===


class Block(BaseModel):
    """One top-level block of a parsed document."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["heading", "paragraph", "code", "list", "quote", "rule"]
    text: str = ""
    level: int = 0
    language: str | None = None


class DocumentTree(BaseModel):
    """Flat, ordered block sequence of a parsed document.

    Grammar-agnostic: any transformer that understands the source format
    may produce it.
    """

    model_config = ConfigDict(frozen=True)

    blocks: tuple[Block, ...] = ()

    @property
    def headings(self) -> list[Block]:
        return [b for b in self.blocks if b.kind == "heading"]

    @property
    def first_paragraph(self) -> str:
        for block in self.blocks:
            if block.kind == "paragraph" and block.text.strip():
                return block.text
        return ""


# === LINKS ===


class OutgoingLink(BaseModel):
    """A forward reference extracted from a document."""

    model_config = ConfigDict(frozen=True)

    target: FullSlug
    raw: str
    label: str = ""
    excerpt: str = ""


class LinkResolution(BaseModel):
    """How one raw link target resolved when the content was produced.

    Resolution depends on the build's slug set, asset set and link
    strategy, none of which is part of the file's bytes. A cached document
    is only reusable while every recorded resolution still holds.
    """

    model_config = ConfigDict(frozen=True)

    href: str
    target: FullSlug
    asset: bool = False


# === PROCESSED CONTENT ===


class ProcessedContent(BaseModel):
    """Result of running one source file through the transformer stage.

    Frozen: transformers produce a new instance with ``model_copy(update=...)``
    instead of mutating the one they received.
    """

    model_config = ConfigDict(frozen=True)

    # --- Identity ---
    file_path: FilePath
    slug: FullSlug
    content_hash: str

    # --- Content ---
    raw_text: str
    frontmatter: dict[str, Any] = Field(default_factory=dict)
    title: str = ""
    tree: DocumentTree = Field(default_factory=DocumentTree)
    html: str = ""
    text: str = ""
    description: str = ""

    # --- Relations ---
    links: tuple[OutgoingLink, ...] = ()
    resolutions: tuple[LinkResolution, ...] = ()
    tags: tuple[str, ...] = ()
    aliases: tuple[str, ...] = ()

    def with_updates(self, **changes: Any) -> ProcessedContent:
        """Return a copy with ``changes`` applied and re-validated."""
        data = self.model_dump()
        data.update(changes)
        return ProcessedContent.model_validate(data)


# === CHUNKING ===


class BuildChunk(BaseModel):
    """Partition of the file set assigned to one concurrent task."""

    model_config = ConfigDict(frozen=True)

    index: int
    files: tuple[FilePath, ...]

    def __len__(self) -> int:
        return len(self.files)


# === DISCOVERY ===


class SourceFile(BaseModel):
    """A file discovered under the content root."""

    model_config = ConfigDict(frozen=True)

    file_path: FilePath
    absolute_path: str
    size_bytes: int
    is_markdown: bool
