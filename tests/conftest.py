# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides settings rooted in tmp_path, a content-tree writer, a
ProcessedContent factory and a ready BuildContext. No network, all I/O
under tmp_path.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from quillpress.cache.fingerprint import compute_content_hash
from quillpress.config.settings import Settings, load_settings
from quillpress.core.models import OutgoingLink, ProcessedContent
from quillpress.core.paths import FilePath, FullSlug, slugify_file_path
from quillpress.pipeline.context import BuildContext
from quillpress.storage.local_writer import LocalWriter


# === FIXTURES: Settings & filesystem ===


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    root = tmp_path / "content"
    root.mkdir()
    return root


@pytest.fixture
def make_settings(tmp_path: Path, content_root: Path) -> Callable[..., Settings]:
    """Settings factory rooted in tmp_path; keyword args override fields."""

    def _make(**overrides: Any) -> Settings:
        base: dict[str, Any] = {
            "content_root": content_root,
            "output_dir": tmp_path / "public",
            "cache_path": tmp_path / ".cache" / "cache.json",
            "concurrency": 4,
        }
        base.update(overrides)
        return load_settings(**base)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture
def write_tree(content_root: Path) -> Callable[[dict[str, str | bytes]], None]:
    """Write {relative_path: text} under the content root."""

    def _write(files: dict[str, str | bytes]) -> None:
        for rel, body in files.items():
            path = content_root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(body, bytes):
                path.write_bytes(body)
            else:
                path.write_text(body, encoding="utf-8")

    return _write


# === FIXTURES: Domain objects ===


def make_content(
    file_path: str,
    raw_text: str = "",
    links: tuple[str, ...] = (),
    **fields: Any,
) -> ProcessedContent:
    """Build a ProcessedContent with a derived slug and hash."""
    fp = FilePath(file_path)
    return ProcessedContent(
        file_path=fp,
        slug=slugify_file_path(fp),
        content_hash=compute_content_hash(raw_text.encode("utf-8")),
        raw_text=raw_text,
        links=tuple(
            OutgoingLink(target=FullSlug(t), raw=t, excerpt=f"see {t}") for t in links
        ),
        **fields,
    )


@pytest.fixture
def content_factory() -> Callable[..., ProcessedContent]:
    return make_content


@pytest.fixture
def build_ctx(settings: Settings) -> BuildContext:
    """BuildContext with a local writer and no cache/graph attached."""
    return BuildContext(settings=settings, writer=LocalWriter(settings.output_dir))
