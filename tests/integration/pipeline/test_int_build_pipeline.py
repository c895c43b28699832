# tests/integration/pipeline/test_int_build_pipeline.py — v1
"""End-to-end builds over a real content tree with the default plugin set.

Covers failure isolation, caching across runs, determinism across
scheduling modes, cross-document backlinks, filtering, cancellation and
abort on an unwritable output directory.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from quillpress.config.plugins import DEFAULT_PLUGINS, default_plugins
from quillpress.core.errors import BuildAbortError
from quillpress.pipeline.build_pipeline import BuildPipeline
from quillpress.pipeline.plugin_kit.base_plugin import Emitter, Transformer
from quillpress.pipeline.registry import PluginManager
from quillpress.pipeline.state import BuildPhase


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FailOnFile(Transformer):
    """Raise for one specific document."""

    default_options = {"target": ""}

    @property
    def name(self) -> str:
        return "fail_on"

    def transform(self, ctx, content):
        if content.file_path == self._options["target"]:
            raise ValueError(f"cannot handle {content.file_path}")
        return content


class CancelOnFile(Transformer):
    """Cancel the owning pipeline when a given document is reached."""

    def __init__(self, pipeline_ref: list, target: str) -> None:
        super().__init__()
        self._ref = pipeline_ref
        self._target = target

    @property
    def name(self) -> str:
        return "cancel_on"

    def transform(self, ctx, content):
        if content.file_path == self._target:
            self._ref[0].cancel()
        return content


class AbortingEmitter(Emitter):
    name = "aborting"

    async def emit(self, ctx, contents, resources):
        raise BuildAbortError("disk vanished")


def _manager(*extra) -> PluginManager:
    pm = PluginManager()
    pm.load(DEFAULT_PLUGINS)
    for plugin in extra:
        pm.register(plugin)
    return pm


def _snapshot(out: Path) -> dict[str, bytes]:
    return {
        p.relative_to(out).as_posix(): p.read_bytes()
        for p in sorted(out.rglob("*"))
        if p.is_file()
    }


def _many_docs(n: int) -> dict[str, str]:
    files = {
        f"docs/doc_{i:03d}.md": (
            f"---\ntitle: Doc {i}\ntags: [batch]\n---\n"
            f"Body of doc {i} links to [[doc_{(i + 1) % n:03d}]] #t{i % 5}\n"
        )
        for i in range(n)
    }
    files["index.md"] = "# Home\n\nSee [[doc_000]]."
    return files


SITE = {
    "index.md": "---\ntitle: Home\n---\nWelcome. Start with [[alpha]] or [[notes/beta|Beta]].\n",
    "notes/alpha.md": "---\ntitle: Alpha\ntags: [greek]\naliases: [first]\n---\nAlpha links [[beta]]. #letters\n",
    "notes/beta.md": "# Beta\n\nBeta is second. See [[Missing Page]].\n",
    "notes/draft.md": "---\ndraft: true\n---\nSecret plans linking [[alpha]].\n",
    "img/logo.png": b"\x89PNG\r\n\x1a\nlogo",
}


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_one_failing_document_of_two_hundred(self, make_settings, write_tree):
        files = _many_docs(200)
        del files["index.md"]
        write_tree(files)
        settings = make_settings()
        target = "docs/doc_042.md"
        pipeline = BuildPipeline(settings, manager=_manager(FailOnFile(target=target)))

        result = await pipeline.run()

        pages = [a for a in result.artifacts if a.startswith("docs/") and a.endswith(".html")]
        assert len(pages) == 199
        assert "docs/doc_042.html" not in pages
        assert result.status == "partial"
        assert result.exit_code == 1
        [failure] = result.failures
        assert failure.file_path == target
        assert failure.phase == "transform"
        assert failure.plugin == "fail_on"
        assert target not in {c.file_path for c in result.published}
        assert pipeline.phase is BuildPhase.IDLE

    @pytest.mark.asyncio
    async def test_failing_emitter_is_partial(self, make_settings, write_tree):
        class Broken(Emitter):
            name = "broken"

            async def emit(self, ctx, contents, resources):
                raise RuntimeError("template bug")

        write_tree(SITE)
        result = await BuildPipeline(make_settings(), manager=_manager(Broken())).run()
        assert result.status == "partial"
        assert "index.html" in result.artifacts
        assert [(f.phase, f.plugin) for f in result.failures] == [("emit", "broken")]

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_attributed(self, make_settings, write_tree):
        write_tree({"good.md": "fine", "bad.md": b"\xff\xfe broken"})
        result = await BuildPipeline(make_settings()).run()
        [failure] = result.failures
        assert (failure.file_path, failure.phase, failure.error_kind) == (
            "bad.md", "transform", "parse",
        )
        assert "good.html" in result.artifacts


# ---------------------------------------------------------------------------
# Site output
# ---------------------------------------------------------------------------


class TestSiteOutput:
    @pytest.mark.asyncio
    async def test_full_site(self, settings, write_tree):
        write_tree(SITE)
        result = await BuildPipeline(settings).run()
        out = settings.output_dir

        assert result.status == "success"
        assert result.exit_code == 0
        assert set(result.artifacts) >= {
            "index.html",
            "notes/alpha.html",
            "notes/beta.html",
            "tags/greek.html",
            "tags/letters.html",
            "tags/index.html",
            "first.html",
            "static/contentIndex.json",
            "static/page.css",
            "img/logo.png",
        }
        assert (out / "img" / "logo.png").read_bytes() == SITE["img/logo.png"]

        home = (out / "index.html").read_text(encoding="utf-8")
        assert 'href="./notes/alpha"' in home
        assert ">Beta</a>" in home

        alpha = (out / "notes" / "alpha.html").read_text(encoding="utf-8")
        assert "Backlinks" in alpha
        assert ">Home</a>" in alpha

        assert any("Missing-Page" in w for w in result.summary.warnings)

    @pytest.mark.asyncio
    async def test_filtered_document_never_emitted(self, settings, write_tree):
        write_tree(SITE)
        seen: list[str] = []

        class Recorder(Emitter):
            name = "recorder"

            async def emit(self, ctx, contents, resources):
                seen.extend(c.file_path for c in contents)
                return []

        result = await BuildPipeline(settings, manager=_manager(Recorder())).run()

        assert "notes/draft.md" in result.processed
        assert "notes/draft.md" not in seen
        assert "notes/draft.html" not in result.artifacts
        index = json.loads(
            (settings.output_dir / "static" / "contentIndex.json").read_text(encoding="utf-8")
        )
        assert "notes/draft" not in index
        alpha = (settings.output_dir / "notes" / "alpha.html").read_text(encoding="utf-8")
        assert "Secret plans" not in alpha

    @pytest.mark.asyncio
    async def test_backlinks_follow_new_document(self, settings, write_tree):
        write_tree({"a.md": "Page A", "b.md": "Page B"})
        pipeline = BuildPipeline(settings)
        await pipeline.run()
        page_a = settings.output_dir / "a.html"
        assert "No backlinks found" in page_a.read_text(encoding="utf-8")

        write_tree({"c.md": "Points at [[a]]"})
        result = await pipeline.run()

        assert result.summary.cache_hits == 2
        assert result.summary.cache_misses == 1
        html = page_a.read_text(encoding="utf-8")
        assert "No backlinks found" not in html
        assert "Points at [[a]]" in html

    @pytest.mark.asyncio
    async def test_explicit_publish_plugin_set(self, make_settings, write_tree):
        write_tree({"pub.md": "---\npublish: true\n---\nyes", "priv.md": "no"})
        descriptors = [
            d.model_copy(update={"enabled": True}) if d.name == "explicit_publish" else d
            for d in DEFAULT_PLUGINS
        ]
        result = await BuildPipeline(make_settings(), plugins=descriptors).run()
        assert "pub.html" in result.artifacts
        assert "priv.html" not in result.artifacts


# ---------------------------------------------------------------------------
# Stale output
# ---------------------------------------------------------------------------


class ReportEmitter(Emitter):
    """Write one file, or fail when ``broken`` is set."""

    name = "report"

    def __init__(self, broken: bool = False) -> None:
        super().__init__()
        self._broken = broken

    async def emit(self, ctx, contents, resources):
        if self._broken:
            raise RuntimeError("report template missing")
        path = "reports/summary.txt"
        await ctx.require_writer().write(path, f"{len(contents)} pages")
        return [path]


class TestStaleOutput:
    @pytest.mark.asyncio
    async def test_page_turned_draft_is_removed(self, settings, write_tree):
        write_tree(SITE)
        pipeline = BuildPipeline(settings)
        await pipeline.run()
        page = settings.output_dir / "notes" / "beta.html"
        assert page.exists()

        write_tree({"notes/beta.md": "---\ndraft: true\n---\n# Beta\n"})
        result = await pipeline.run()

        assert "notes/beta.html" not in result.artifacts
        assert not page.exists()
        assert (settings.output_dir / "notes" / "alpha.html").exists()

    @pytest.mark.asyncio
    async def test_deleted_document_outputs_removed(self, settings, write_tree, content_root):
        write_tree(SITE)
        pipeline = BuildPipeline(settings)
        await pipeline.run()
        out = settings.output_dir
        (out / "CNAME").write_text("example.org", encoding="utf-8")

        (content_root / "notes" / "alpha.md").unlink()
        result = await pipeline.run()

        for gone in ("notes/alpha.html", "first.html", "tags/greek.html", "tags/letters.html"):
            assert gone not in result.artifacts
            assert not (out / gone).exists()
        assert (out / "notes" / "beta.html").exists()
        assert (out / "CNAME").read_text(encoding="utf-8") == "example.org"

    @pytest.mark.asyncio
    async def test_output_matches_clean_build(
        self, make_settings, write_tree, content_root, tmp_path
    ):
        write_tree(SITE)
        settings = make_settings()
        await BuildPipeline(settings).run()
        (content_root / "notes" / "beta.md").unlink()
        write_tree({"notes/gamma.md": "# Gamma\n\nNew. #fresh"})
        await BuildPipeline(settings).run()

        clean_out = tmp_path / "clean"
        await BuildPipeline(make_settings(cache_enabled=False, output_dir=clean_out)).run()
        assert _snapshot(settings.output_dir) == _snapshot(clean_out)

    @pytest.mark.asyncio
    async def test_failed_emitter_keeps_previous_artifacts(self, settings, write_tree):
        write_tree({"a.md": "A"})
        report = settings.output_dir / "reports" / "summary.txt"

        await BuildPipeline(settings, manager=_manager(ReportEmitter())).run()
        assert report.exists()

        result = await BuildPipeline(settings, manager=_manager(ReportEmitter(broken=True))).run()
        assert result.status == "partial"
        assert report.exists()

        await BuildPipeline(settings, manager=_manager()).run()
        assert not report.exists()
        assert not (settings.output_dir / "reports").exists()


# ---------------------------------------------------------------------------
# Empty input
# ---------------------------------------------------------------------------


class TestEmptyInput:
    @pytest.mark.asyncio
    async def test_empty_directory(self, settings):
        result = await BuildPipeline(settings).run()
        assert result.status == "success"
        assert result.artifacts == []
        assert result.summary.total_files == 0
        assert not settings.cache_path.exists()

    @pytest.mark.asyncio
    async def test_missing_content_root_aborts(self, make_settings, tmp_path):
        result = await BuildPipeline(make_settings(content_root=tmp_path / "nope")).run()
        assert result.status == "aborted"
        assert result.exit_code == 2
        assert result.summary.final_phase == "discovering"


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------


class TestCaching:
    @pytest.mark.asyncio
    async def test_back_to_back_builds_hit_and_match(self, settings, write_tree):
        write_tree(SITE)
        first = await BuildPipeline(settings).run()
        before = _snapshot(settings.output_dir)
        assert first.summary.cache_misses == 4
        assert settings.cache_path.exists()

        second = await BuildPipeline(settings).run()
        assert second.summary.cache_hits == 4
        assert second.summary.cache_misses == 0
        assert second.summary.cache_hit_rate == 1.0
        assert second.processed == first.processed
        assert _snapshot(settings.output_dir) == before

    @pytest.mark.asyncio
    async def test_cache_hit_skips_transformers(self, settings, write_tree):
        calls: list[str] = []

        class Counting(Transformer):
            name = "counting"

            def transform(self, ctx, content):
                calls.append(content.file_path)
                return content

        write_tree(SITE)
        pipeline = BuildPipeline(settings, manager=_manager(Counting()))
        await pipeline.run()
        assert sorted(calls) == ["index.md", "notes/alpha.md", "notes/beta.md", "notes/draft.md"]

        calls.clear()
        result = await pipeline.run()
        assert calls == []
        assert result.summary.cache_hits == 4

    @pytest.mark.asyncio
    async def test_link_strategy_change_recomputes_linking_documents(
        self, make_settings, write_tree, tmp_path
    ):
        write_tree({"a.md": "See [[b]]", "notes/b.md": "Page B"})
        await BuildPipeline(make_settings()).run()

        relative = make_settings(link_resolution="relative")
        result = await BuildPipeline(relative).run()
        clean = await BuildPipeline(
            make_settings(
                link_resolution="relative",
                cache_enabled=False,
                output_dir=tmp_path / "clean",
            )
        ).run()

        assert result.summary.cache_hits == 1
        assert result.summary.cache_misses == 1
        assert [link.target for link in result.processed["a.md"].links] == ["b"]
        assert result.processed == clean.processed

    @pytest.mark.asyncio
    async def test_new_document_resolves_cached_link(
        self, settings, make_settings, write_tree, tmp_path
    ):
        write_tree({"a.md": "see [[beta]]"})
        pipeline = BuildPipeline(settings)
        first = await pipeline.run()
        assert any("beta" in w for w in first.summary.warnings)

        write_tree({"notes/beta.md": "Beta page"})
        result = await pipeline.run()
        clean = await BuildPipeline(
            make_settings(cache_enabled=False, output_dir=tmp_path / "clean")
        ).run()

        assert result.summary.cache_misses == 2
        assert [b.source for b in result.graph.backlinks_of("notes/beta")] == ["a"]
        assert result.graph.backlinks_of("notes/beta") == clean.graph.backlinks_of("notes/beta")
        assert not any("beta" in w for w in result.summary.warnings)
        page = (settings.output_dir / "notes" / "beta.html").read_text(encoding="utf-8")
        assert "No backlinks found" not in page

    @pytest.mark.asyncio
    async def test_changed_file_recomputed(self, settings, write_tree):
        write_tree(SITE)
        pipeline = BuildPipeline(settings)
        await pipeline.run()
        write_tree({"notes/beta.md": "# Beta\n\nRewritten."})
        result = await pipeline.run()
        assert result.summary.cache_hits == 3
        assert result.summary.cache_misses == 1
        assert "Rewritten." in (settings.output_dir / "notes" / "beta.html").read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_config_change_with_content_and_config_policy(self, make_settings, write_tree):
        write_tree(SITE)
        settings = make_settings(cache_key_policy="content_and_config")
        await BuildPipeline(settings).run()
        changed = default_plugins(description={"max_length": 10})
        result = await BuildPipeline(settings, plugins=changed).run()
        assert result.summary.cache_hits == 0
        assert result.summary.cache_misses == 4
        assert all(len(c.description) <= 13 for c in result.processed.values())

    @pytest.mark.asyncio
    async def test_config_change_with_content_policy(self, make_settings, write_tree):
        write_tree(SITE)
        settings = make_settings(cache_key_policy="content")
        await BuildPipeline(settings).run()
        changed = default_plugins(description={"max_length": 10})
        result = await BuildPipeline(settings, plugins=changed).run()
        assert result.summary.cache_hits == 4
        assert result.summary.cache_misses == 0

    @pytest.mark.asyncio
    async def test_force_full_build_recomputes(self, settings, write_tree):
        write_tree(SITE)
        pipeline = BuildPipeline(settings)
        await pipeline.run()
        result = await pipeline.run(mode="full", force=True)
        assert result.summary.cache_hits == 0
        assert result.summary.cache_misses == 4
        assert result.summary.mode == "full"

    @pytest.mark.asyncio
    async def test_force_ignored_in_incremental(self, settings, write_tree):
        write_tree(SITE)
        pipeline = BuildPipeline(settings)
        await pipeline.run()
        result = await pipeline.run(mode="incremental", force=True)
        assert result.summary.cache_hits == 4

    @pytest.mark.asyncio
    async def test_deleted_file_pruned(self, settings, write_tree, content_root):
        write_tree(SITE)
        pipeline = BuildPipeline(settings)
        await pipeline.run()
        (content_root / "notes" / "beta.md").unlink()
        await pipeline.run()
        data = json.loads(settings.cache_path.read_text(encoding="utf-8"))
        assert "notes/beta.md" not in data["entries"]
        assert "notes/alpha.md" in data["entries"]

    @pytest.mark.asyncio
    async def test_corrupt_cache_degrades_to_misses(self, settings, write_tree):
        write_tree(SITE)
        settings.cache_path.parent.mkdir(parents=True, exist_ok=True)
        settings.cache_path.write_text("{ definitely not json", encoding="utf-8")
        result = await BuildPipeline(settings).run()
        assert result.status == "success"
        assert result.summary.cache_misses == 4

    @pytest.mark.asyncio
    async def test_cache_disabled(self, make_settings, write_tree):
        write_tree(SITE)
        settings = make_settings(cache_enabled=False)
        pipeline = BuildPipeline(settings)
        assert pipeline.cache is None
        result = await pipeline.run()
        assert result.status == "success"
        assert not settings.cache_path.exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("backend,flush_mode", [
        ("sqlite", "batched"),
        ("json", "per_store"),
    ])
    async def test_other_backends_and_flush_modes(self, make_settings, write_tree, backend, flush_mode):
        write_tree(SITE)
        settings = make_settings(cache_backend=backend, cache_flush_mode=flush_mode)
        await BuildPipeline(settings).run()
        result = await BuildPipeline(settings).run()
        assert result.summary.cache_hits == 4


# ---------------------------------------------------------------------------
# Determinism across scheduling modes
# ---------------------------------------------------------------------------


class TestDeterminism:
    @pytest.mark.asyncio
    async def test_sequential_and_parallel_identical(self, make_settings, write_tree, tmp_path):
        write_tree(_many_docs(40))
        sequential = make_settings(
            parallel_threshold=10_000,
            output_dir=tmp_path / "seq",
            cache_path=tmp_path / "seq-cache" / "c.json",
        )
        parallel = make_settings(
            parallel_threshold=1,
            chunk_size=3,
            concurrency=4,
            output_dir=tmp_path / "par",
            cache_path=tmp_path / "par-cache" / "c.json",
        )
        seq_result = await BuildPipeline(sequential).run()
        par_result = await BuildPipeline(parallel).run()

        assert seq_result.processed == par_result.processed
        assert seq_result.artifacts == par_result.artifacts
        assert _snapshot(tmp_path / "seq") == _snapshot(tmp_path / "par")


# ---------------------------------------------------------------------------
# Abort paths
# ---------------------------------------------------------------------------


class TestAbort:
    @pytest.mark.asyncio
    async def test_cancel_during_processing(self, make_settings, write_tree):
        write_tree(_many_docs(20))
        settings = make_settings(parallel_threshold=10_000, chunk_size=5)
        ref: list[BuildPipeline] = []
        manager = _manager(CancelOnFile(ref, "docs/doc_003.md"))
        pipeline = BuildPipeline(settings, manager=manager)
        ref.append(pipeline)

        result = await pipeline.run()

        assert result.status == "aborted"
        assert result.exit_code == 2
        assert result.summary.final_phase == "processing"
        assert result.artifacts == []
        assert pipeline.phase is BuildPhase.ABORTED
        assert not (settings.output_dir / "index.html").exists()

    @pytest.mark.asyncio
    async def test_unwritable_output_aborts(self, make_settings, write_tree, tmp_path):
        write_tree(SITE)
        blocker = tmp_path / "blocked"
        blocker.write_text("a file where the output dir should be", encoding="utf-8")
        result = await BuildPipeline(make_settings(output_dir=blocker)).run()
        assert result.status == "aborted"
        assert result.exit_code == 2
        assert result.summary.final_phase == "emitting"
        [failure] = result.failures
        assert failure.error_kind == "abort"

    @pytest.mark.asyncio
    async def test_emitter_abort_keeps_cache(self, settings, write_tree):
        write_tree(SITE)
        result = await BuildPipeline(settings, manager=_manager(AbortingEmitter())).run()
        assert result.status == "aborted"
        assert settings.cache_path.exists()
        rebuilt = await BuildPipeline(settings).run()
        assert rebuilt.summary.cache_hits == 4

    @pytest.mark.asyncio
    async def test_pipeline_reusable_after_abort(self, settings, write_tree):
        write_tree(SITE)
        pipeline = BuildPipeline(settings, manager=_manager(AbortingEmitter()))
        await pipeline.run()
        pipeline.manager.unregister(AbortingEmitter.kind, "aborting")
        result = await pipeline.run()
        assert result.status == "success"
        assert pipeline.phase is BuildPhase.IDLE
