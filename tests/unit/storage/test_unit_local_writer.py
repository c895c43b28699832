# tests/unit/storage/test_unit_local_writer.py — v1
"""Tests for storage/local_writer.py and storage/writer_factory.py."""

from __future__ import annotations

import pytest

from quillpress.core.errors import BuildAbortError
from quillpress.storage.local_writer import LocalWriter
from quillpress.storage.writer_factory import create_writer


@pytest.fixture
def writer(tmp_path):
    return LocalWriter(tmp_path / "out")


class TestLocalWriter:
    @pytest.mark.asyncio
    async def test_write_text_and_read(self, writer):
        await writer.write("a/b/c.html", "héllo")
        assert await writer.read("a/b/c.html") == "héllo".encode("utf-8")
        assert await writer.exists("a/b/c.html")

    @pytest.mark.asyncio
    async def test_write_bytes(self, writer):
        await writer.write("x.bin", b"\x00\x01")
        assert await writer.read("x.bin") == b"\x00\x01"

    @pytest.mark.asyncio
    async def test_escape_refused(self, writer):
        with pytest.raises(ValueError):
            await writer.write("../outside.html", "x")

    @pytest.mark.asyncio
    async def test_copy_from(self, writer, tmp_path):
        src = tmp_path / "src.png"
        src.write_bytes(b"png-bytes")
        await writer.copy_from(str(src), "img/copy.png")
        assert await writer.read("img/copy.png") == b"png-bytes"

    @pytest.mark.asyncio
    async def test_list_dir(self, writer):
        await writer.write("d/b.txt", "b")
        await writer.write("d/a.txt", "a")
        assert await writer.list_dir("d") == ["a.txt", "b.txt"]
        assert await writer.list_dir("missing") == []

    @pytest.mark.asyncio
    async def test_remove_prunes_empty_parents(self, writer, tmp_path):
        await writer.write("a/b/c.html", "c")
        await writer.write("a/keep.html", "k")
        assert await writer.remove("a/b/c.html") is True
        assert not (tmp_path / "out" / "a" / "b").exists()
        assert await writer.list_dir("a") == ["keep.html"]

        assert await writer.remove("a/keep.html") is True
        assert not (tmp_path / "out" / "a").exists()
        assert (tmp_path / "out").is_dir()

    @pytest.mark.asyncio
    async def test_remove_missing_or_directory(self, writer):
        await writer.write("d/x.txt", "x")
        assert await writer.remove("nope.html") is False
        assert await writer.remove("d") is False
        assert await writer.exists("d/x.txt")

    @pytest.mark.asyncio
    async def test_remove_escape_refused(self, writer):
        with pytest.raises(ValueError):
            await writer.remove("../outside.html")

    def test_ensure_writable_creates_root(self, writer, tmp_path):
        writer.ensure_writable()
        assert (tmp_path / "out").is_dir()
        assert list((tmp_path / "out").iterdir()) == []

    def test_ensure_writable_aborts_when_root_is_a_file(self, tmp_path):
        blocker = tmp_path / "out"
        blocker.write_text("not a directory", encoding="utf-8")
        with pytest.raises(BuildAbortError):
            LocalWriter(blocker).ensure_writable()


class TestWriterFactory:
    def test_local_writer_at_output_dir(self, settings):
        writer = create_writer(settings)
        assert isinstance(writer, LocalWriter)
        assert writer.root == str(settings.output_dir)
