# src/pipeline/build_pipeline.py — v1
"""Build pipeline: top-level orchestrator for one site build.

Drives the state machine

    Idle -> Discovering -> Processing -> Filtering -> Emitting -> Finalizing -> Idle

delegating per-file work to the WorkerPool, plugin stages to the
PluginManager and persistence to the BuildCache. Errors scoped to one
file or one plugin are recorded and the build continues; BuildAbortError
and cancellation move the run to Aborted.

Usage:
    pipeline = BuildPipeline(load_settings(content_root="notes"))
    result = await pipeline.run(mode="incremental")
    sys.exit(result.exit_code)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from quillpress.batch.models import ScanResult
from quillpress.batch.scanner import ContentScanner
from quillpress.cache.base_cache_store import BaseCacheStore
from quillpress.cache.build_cache import BuildCache
from quillpress.cache.cache_factory import create_cache_store
from quillpress.config.plugins import DEFAULT_PLUGINS
from quillpress.config.settings import Settings, load_settings
from quillpress.core.errors import BuildAbortError, CacheError
from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FilePath, slugify_file_path
from quillpress.graph.dependency_graph import DependencyGraph
from quillpress.logging.context import clear_context, set_build_context
from quillpress.pipeline.context import BuildCancelled, BuildContext, CancellationToken
from quillpress.pipeline.document_pipeline import DocumentProcessor
from quillpress.pipeline.plugin_kit.models import PluginDescriptor
from quillpress.pipeline.recovery import run_with_recovery
from quillpress.pipeline.registry import PluginManager
from quillpress.pipeline.resources import ResourceLoader
from quillpress.pipeline.state import PHASE_STAGE, BuildPhase, BuildStateMachine
from quillpress.pipeline.worker_pool import WorkerPool
from quillpress.storage.base_output_writer import BaseOutputWriter
from quillpress.storage.manifest import load_manifest, remove_stale, save_manifest
from quillpress.storage.writer_factory import create_writer
from quillpress.tracking.build_stats import BuildStatsCollector, failure_from_exception
from quillpress.tracking.models import BuildSummary, FailureRecord

logger = logging.getLogger(__name__)

BuildMode = Literal["full", "incremental"]

EXIT_CODES: dict[str, int] = {"success": 0, "partial": 1, "aborted": 2}


@dataclass
class BuildResult:
    """Everything a build produced."""

    summary: BuildSummary
    processed: dict[FilePath, ProcessedContent] = field(default_factory=dict)
    published: list[ProcessedContent] = field(default_factory=list)
    graph: DependencyGraph | None = None
    artifacts: list[FilePath] = field(default_factory=list)

    @property
    def status(self) -> str:
        return self.summary.status

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.summary.status]

    @property
    def failures(self) -> list[FailureRecord]:
        return self.summary.failures


@dataclass
class _RunState:
    """Mutable per-run bookkeeping, local to one ``run()`` call."""

    ctx: BuildContext
    stats: BuildStatsCollector
    scan: ScanResult | None = None
    processed: dict[FilePath, ProcessedContent] = field(default_factory=dict)
    published: list[ProcessedContent] = field(default_factory=list)
    artifacts: list[FilePath] = field(default_factory=list)
    cache_hits: int = 0
    cache_misses: int = 0
    cache_touched: bool = False


class BuildPipeline:
    """Top-level orchestrator.

    Args:
        settings: Build settings (defaults to ``load_settings()``).
        plugins: Descriptor list loaded into a fresh PluginManager when
            ``manager`` is not given (defaults to DEFAULT_PLUGINS).
        manager: Pre-populated PluginManager.
        cache_store: Durable cache backend override.
        writer: Output writer override.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        plugins: Sequence[PluginDescriptor] | None = None,
        manager: PluginManager | None = None,
        cache_store: BaseCacheStore | None = None,
        writer: BaseOutputWriter | None = None,
    ) -> None:
        self._settings = settings or load_settings()

        if manager is None:
            manager = PluginManager()
            manager.load(DEFAULT_PLUGINS if plugins is None else plugins)
        self._manager = manager

        self._cache: BuildCache | None = None
        if self._settings.cache_enabled:
            self._cache = BuildCache(
                store=cache_store or create_cache_store(self._settings),
                key_policy=self._settings.cache_key_policy,
                flush_mode=self._settings.cache_flush_mode,
            )

        self._writer = writer or create_writer(self._settings)
        self._machine = BuildStateMachine()
        self._cancel_token: CancellationToken | None = None
        self._running = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def manager(self) -> PluginManager:
        return self._manager

    @property
    def cache(self) -> BuildCache | None:
        return self._cache

    @property
    def phase(self) -> BuildPhase:
        return self._machine.phase

    def cancel(self) -> None:
        """Signal the running build to stop.

        In-flight chunks finish their current file; no new file or chunk
        starts, and the run ends Aborted.
        """
        if self._cancel_token is not None:
            logger.warning("Cancellation requested")
            self._cancel_token.cancel()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, mode: BuildMode = "incremental", force: bool = False) -> BuildResult:
        """Execute one build.

        Args:
            mode: ``full`` or ``incremental``. Both reuse the cache for
                unchanged files unless ``force`` is set in full mode.
            force: In full mode, skip cache lookups (results are still stored).

        Returns:
            BuildResult; ``exit_code`` is 0 (success), 1 (partial) or 2 (aborted).
        """
        if self._running:
            raise RuntimeError("A build is already running on this pipeline")
        if force and mode == "incremental":
            logger.warning("force has no effect in incremental mode")

        self._running = True
        self._machine.reset()
        self._cancel_token = CancellationToken()
        stats = BuildStatsCollector()
        ctx = BuildContext(
            settings=self._settings,
            writer=self._writer,
            cache=self._cache,
            manager=self._manager,
            stats=stats,
            cancel_token=self._cancel_token,
        )
        run = _RunState(ctx=ctx, stats=stats)
        set_build_context(ctx.build_id)
        started = time.monotonic()
        logger.info("Build %s started (mode=%s, force=%s)", ctx.build_id, mode, force)

        aborted = False
        try:
            scan = run.scan = self._discover(run)
            if scan.documents or scan.assets:
                await self._process(
                    run, scan.document_paths, use_lookup=not (mode == "full" and force)
                )
                self._filter(run)
                await self._emit(run)
                self._finalize(run, scan.document_paths)
            else:
                logger.info("No source files found; nothing to build")
                for phase in (
                    BuildPhase.PROCESSING,
                    BuildPhase.FILTERING,
                    BuildPhase.EMITTING,
                    BuildPhase.FINALIZING,
                ):
                    self._machine.transition(phase)
            final_phase = self._machine.phase.value
            self._machine.transition(BuildPhase.IDLE)
        except (BuildAbortError, BuildCancelled) as exc:
            aborted = True
            final_phase = self._abort(run, exc)
        except Exception:
            logger.exception("Build %s failed in %s", ctx.build_id, self._machine.phase.value)
            self._abort(run, None)
            self._running = False
            clear_context()
            raise

        if aborted:
            status = "aborted"
        elif stats.has_failures():
            status = "partial"
        else:
            status = "success"

        summary = stats.summarize(
            build_id=ctx.build_id,
            mode=mode,
            status=status,  # type: ignore[arg-type]
            final_phase=final_phase,
            total_files=run.scan.total if run.scan else 0,
            cache_hits=run.cache_hits,
            cache_misses=run.cache_misses,
            elapsed_seconds=time.monotonic() - started,
            artifacts=list(run.artifacts),
        )
        logger.info(
            "Build %s %s: %d files, %d artifacts, cache %d/%d hits, %.2fs",
            ctx.build_id, status, summary.total_files, len(summary.artifacts),
            summary.cache_hits, summary.cache_hits + summary.cache_misses,
            summary.elapsed_seconds,
        )

        self._running = False
        self._cancel_token = None
        clear_context()
        return BuildResult(
            summary=summary,
            processed=run.processed,
            published=run.published,
            graph=ctx.graph,
            artifacts=run.artifacts,
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _discover(self, run: _RunState) -> ScanResult:
        self._machine.transition(BuildPhase.DISCOVERING)
        try:
            scan = ContentScanner.from_settings(self._settings).scan()
        except ValueError as exc:
            raise BuildAbortError(str(exc)) from exc

        run.ctx.all_slugs = frozenset(
            slugify_file_path(d.file_path) for d in scan.documents
        )
        run.ctx.assets = tuple(a.file_path for a in scan.assets)
        run.stats.record_success("discover", scan.total)
        return scan

    async def _process(
        self, run: _RunState, documents: Sequence[FilePath], use_lookup: bool
    ) -> None:
        self._machine.transition(BuildPhase.PROCESSING)

        if self._cache is not None:
            self._cache.set_config_hash(self._manager.config_fingerprint())
            self._cache.ensure_loaded()
            self._cache.reset_stats()
            run.cache_touched = True

        processor = DocumentProcessor(
            run.ctx,
            self._manager,
            self._settings.content_root,
            cache=self._cache,
            use_lookup=use_lookup,
        )
        pool = WorkerPool(
            concurrency=self._settings.concurrency,
            parallel_threshold=self._settings.parallel_threshold,
            chunk_size=self._settings.chunk_size,
            cancel_token=run.ctx.cancel_token,
        )
        outcomes = await pool.run(documents, processor)

        processed: dict[FilePath, ProcessedContent] = {}
        for outcome in outcomes:
            for file_path, result in outcome.results.items():
                processed[file_path] = result.content
                if result.cache_hit:
                    run.cache_hits += 1
                else:
                    run.cache_misses += 1
            for file_path, exc in outcome.errors.items():
                run.cache_misses += 1
                run.stats.record_failure(
                    failure_from_exception(exc, "transform", file_path=file_path)
                )
            if outcome.error is not None:
                run.stats.record_failure(failure_from_exception(outcome.error, "transform"))

        run.processed = dict(sorted(processed.items()))
        run.stats.record_success("transform", len(processed))
        run.ctx.cancel_token.raise_if_cancelled()

    def _filter(self, run: _RunState) -> None:
        self._machine.transition(BuildPhase.FILTERING)
        outcome = self._manager.filter(run.ctx, list(run.processed.values()))
        for failure in outcome.failures:
            run.stats.record_failure(failure)
        for rejected in outcome.rejected:
            logger.debug("Not publishing %s", rejected)
        run.published = outcome.published
        run.stats.record_success("filter", len(outcome.published))
        run.ctx.cancel_token.raise_if_cancelled()

    async def _emit(self, run: _RunState) -> None:
        self._machine.transition(BuildPhase.EMITTING)
        self._writer.ensure_writable()

        graph = DependencyGraph.build(run.published)
        for warning in graph.unresolved:
            run.stats.record_warning(str(warning))
        run.ctx.graph = graph

        previous = await load_manifest(self._writer)
        loader = ResourceLoader(self._settings.resources_dir)
        outcome = await self._manager.emit(run.ctx, run.published, loader)
        for failure in outcome.failures:
            run.stats.record_failure(failure)
        run.artifacts = outcome.artifacts
        run.stats.record_success("emit", len(outcome.per_plugin))

        # Artifacts of emitters that failed this run are kept.
        current = previous.merged(
            outcome.per_plugin, carry_over={f.plugin for f in outcome.failures if f.plugin}
        )
        await remove_stale(self._writer, previous, current)
        try:
            await save_manifest(self._writer, current)
        except OSError as exc:
            run.stats.record_warning(f"Output manifest not saved: {exc}")

    def _finalize(self, run: _RunState, documents: Sequence[FilePath]) -> None:
        self._machine.transition(BuildPhase.FINALIZING)
        if self._flush_cache(run, documents):
            run.stats.record_success("finalize")

    def _flush_cache(self, run: _RunState, documents: Sequence[FilePath]) -> bool:
        """Prune and persist the cache. Returns False if the write failed."""
        cache = self._cache
        if cache is None or not run.cache_touched:
            return True
        if self._settings.cache_prune_stale:
            cache.prune(documents)
        try:
            run_with_recovery(
                cache.flush,
                unit="cache flush",
                on_retry=lambda _exc: cache.reinitialize_store(),
                max_retries=self._settings.max_retries,
            )
        except CacheError as exc:
            run.stats.record_failure(failure_from_exception(exc, "finalize"))
            return False
        return True

    def _abort(self, run: _RunState, exc: BaseException | None) -> str:
        """Move to Aborted, record the cause and persist the cache best-effort.

        Returns:
            Name of the phase the build was in when it aborted.
        """
        phase = self._machine.phase
        if exc is not None:
            stage = PHASE_STAGE.get(phase, "finalize")
            run.stats.record_failure(failure_from_exception(exc, stage))  # type: ignore[arg-type]
            logger.error("Build aborted during %s: %s", phase.value, exc)
        if phase is not BuildPhase.IDLE:
            self._machine.abort()
        if exc is not None:
            # Cache is flushed without pruning so unprocessed files keep their entries.
            self._flush_cache_after_abort(run)
        return phase.value

    def _flush_cache_after_abort(self, run: _RunState) -> None:
        if self._cache is None or not run.cache_touched:
            return
        try:
            self._cache.flush()
        except CacheError as exc:
            run.stats.record_failure(failure_from_exception(exc, "finalize"))
