# tests/unit/pipeline/test_unit_document_pipeline.py — v1
"""Tests for pipeline/document_pipeline.py: per-file processing."""

from __future__ import annotations

import pytest

from quillpress.cache.build_cache import BuildCache
from quillpress.core.errors import ParseError, PluginExecutionError
from quillpress.core.paths import FilePath
from quillpress.pipeline.document_pipeline import DocumentProcessor, initial_content
from quillpress.pipeline.plugin_kit.base_plugin import Transformer
from quillpress.pipeline.registry import PluginManager


class UpperTransformer(Transformer):
    name = "upper"

    def __init__(self, **options):
        super().__init__(**options)
        self.calls = 0

    def transform(self, ctx, content):
        self.calls += 1
        return content.with_updates(html=content.raw_text.upper())


@pytest.fixture
def upper():
    return UpperTransformer()


@pytest.fixture
def manager(upper):
    pm = PluginManager()
    pm.register(upper)
    return pm


class TestInitialContent:
    def test_fields(self):
        content = initial_content(FilePath("notes/My Note.md"), b"hello\r\nworld")
        assert content.slug == "notes/My-Note"
        assert content.title == "My Note"
        assert content.raw_text == "hello\nworld"
        assert len(content.content_hash) == 64

    def test_bom_stripped(self):
        content = initial_content(FilePath("a.md"), b"\xef\xbb\xbfhi")
        assert content.raw_text == "hi"

    def test_invalid_utf8(self):
        with pytest.raises(ParseError) as exc_info:
            initial_content(FilePath("a.md"), b"\xff\xfe\x00bad")
        assert exc_info.value.file_path == "a.md"


class TestDocumentProcessor:
    def test_transform_without_cache(self, build_ctx, manager, content_root, write_tree):
        write_tree({"a.md": "hi"})
        result = DocumentProcessor(build_ctx, manager, content_root)(FilePath("a.md"))
        assert result.content.html == "HI"
        assert result.cache_hit is False

    def test_cache_hit_skips_transform(self, build_ctx, manager, upper, content_root, write_tree):
        write_tree({"a.md": "hi"})
        cache = BuildCache()
        process = DocumentProcessor(build_ctx, manager, content_root, cache)
        first = process(FilePath("a.md"))
        second = process(FilePath("a.md"))
        assert upper.calls == 1
        assert second.cache_hit is True
        assert second.content == first.content

    def test_changed_file_recomputed(self, build_ctx, manager, upper, content_root, write_tree):
        write_tree({"a.md": "hi"})
        cache = BuildCache()
        process = DocumentProcessor(build_ctx, manager, content_root, cache)
        process(FilePath("a.md"))
        write_tree({"a.md": "bye"})
        result = process(FilePath("a.md"))
        assert result.cache_hit is False
        assert result.content.html == "BYE"
        assert upper.calls == 2

    def test_use_lookup_false_forces_recompute(self, build_ctx, manager, upper, content_root, write_tree):
        write_tree({"a.md": "hi"})
        cache = BuildCache()
        DocumentProcessor(build_ctx, manager, content_root, cache)(FilePath("a.md"))
        result = DocumentProcessor(build_ctx, manager, content_root, cache, use_lookup=False)(
            FilePath("a.md")
        )
        assert result.cache_hit is False
        assert upper.calls == 2
        assert FilePath("a.md") in cache

    def test_transform_failure_not_cached(self, build_ctx, content_root, write_tree):
        class Boom(Transformer):
            name = "boom"

            def transform(self, ctx, content):
                raise ValueError("nope")

        write_tree({"a.md": "hi"})
        pm = PluginManager()
        pm.register(Boom())
        cache = BuildCache()
        with pytest.raises(PluginExecutionError):
            DocumentProcessor(build_ctx, pm, content_root, cache)(FilePath("a.md"))
        assert FilePath("a.md") not in cache

    def test_missing_file_raises(self, build_ctx, manager, content_root):
        with pytest.raises(FileNotFoundError):
            DocumentProcessor(build_ctx, manager, content_root)(FilePath("gone.md"))
