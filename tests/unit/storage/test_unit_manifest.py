# tests/unit/storage/test_unit_manifest.py — v1
"""Tests for storage/manifest.py."""

from __future__ import annotations

import json

import pytest

from quillpress.storage.local_writer import LocalWriter
from quillpress.storage.manifest import (
    MANIFEST_NAME,
    OutputManifest,
    load_manifest,
    remove_stale,
    save_manifest,
)


@pytest.fixture
def writer(tmp_path):
    return LocalWriter(tmp_path / "out")


class TestMerge:
    def test_written_replaces_previous(self):
        previous = OutputManifest(artifacts={"pages": ["a.html", "b.html"]})
        merged = previous.merged({"pages": ["c.html", "a.html"]})
        assert merged.artifacts == {"pages": ["a.html", "c.html"]}

    def test_failed_emitter_keeps_previous_entry(self):
        previous = OutputManifest(artifacts={"pages": ["a.html"], "tags": ["tags/x.html"]})
        merged = previous.merged({"pages": ["a.html"]}, carry_over={"tags", "unknown"})
        assert merged.artifacts == {"pages": ["a.html"], "tags": ["tags/x.html"]}

    def test_emitter_that_stopped_running_is_dropped(self):
        previous = OutputManifest(artifacts={"old": ["x.html"]})
        assert previous.merged({}).artifacts == {}


class TestLoadSave:
    @pytest.mark.asyncio
    async def test_missing_is_empty(self, writer):
        assert (await load_manifest(writer)).artifacts == {}

    @pytest.mark.asyncio
    async def test_roundtrip_is_sorted(self, writer, tmp_path):
        manifest = OutputManifest(artifacts={"b": ["z.html"], "a": ["y.html"]})
        await save_manifest(writer, manifest)
        raw = (tmp_path / "out" / MANIFEST_NAME).read_text(encoding="utf-8")
        assert list(json.loads(raw)["artifacts"]) == ["a", "b"]
        assert (await load_manifest(writer)).artifacts == manifest.artifacts

    @pytest.mark.asyncio
    async def test_corrupt_is_empty(self, writer):
        await writer.write(MANIFEST_NAME, "{not json")
        assert (await load_manifest(writer)).artifacts == {}

    @pytest.mark.asyncio
    async def test_other_schema_version_is_empty(self, writer):
        await writer.write(
            MANIFEST_NAME, json.dumps({"schema_version": 99, "artifacts": {"p": ["a.html"]}})
        )
        assert (await load_manifest(writer)).artifacts == {}


class TestRemoveStale:
    @pytest.mark.asyncio
    async def test_only_dropped_paths_removed(self, writer):
        for path in ("a.html", "notes/b.html", "user.txt"):
            await writer.write(path, path)
        previous = OutputManifest(artifacts={"pages": ["a.html", "notes/b.html"]})
        current = OutputManifest(artifacts={"pages": ["a.html"]})

        assert await remove_stale(writer, previous, current) == ["notes/b.html"]
        assert await writer.exists("a.html")
        assert await writer.exists("user.txt")
        assert not await writer.exists("notes")

    @pytest.mark.asyncio
    async def test_path_moved_between_emitters_is_kept(self, writer):
        await writer.write("shared.html", "x")
        previous = OutputManifest(artifacts={"aliases": ["shared.html"]})
        current = OutputManifest(artifacts={"pages": ["shared.html"]})
        assert await remove_stale(writer, previous, current) == []
        assert await writer.exists("shared.html")

    @pytest.mark.asyncio
    async def test_already_gone_and_unsafe_paths_skipped(self, writer):
        previous = OutputManifest(artifacts={"pages": ["gone.html", "../escape.html"]})
        assert await remove_stale(writer, previous, OutputManifest()) == []
