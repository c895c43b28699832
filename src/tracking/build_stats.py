# src/tracking/build_stats.py — v1
"""Per-build statistics collector.

Collects stage counts, per-plugin counts, attributed failures and
warnings while a build runs, then freezes them into a BuildSummary.
Worker threads record transform results, so every mutation takes the
collector's lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Literal

from quillpress.core.errors import PluginExecutionError, QuillpressError
from quillpress.tracking.models import (
    BuildStatus,
    BuildSummary,
    FailureRecord,
    PluginStats,
    Stage,
    StageStats,
)

logger = logging.getLogger(__name__)

STAGES: tuple[Stage, ...] = ("discover", "transform", "filter", "emit", "finalize")


def failure_from_exception(
    exc: BaseException,
    phase: Stage,
    file_path: str | None = None,
    plugin: str | None = None,
) -> FailureRecord:
    """Build a FailureRecord, pulling attribution out of pipeline errors."""
    if isinstance(exc, PluginExecutionError):
        return FailureRecord(
            file_path=exc.file_path or file_path,
            phase=exc.phase,
            plugin=exc.plugin,
            error_kind=_kind_of(exc.cause),
            message=str(exc.cause),
        )
    return FailureRecord(
        file_path=getattr(exc, "file_path", None) or file_path,
        phase=phase,
        plugin=plugin,
        error_kind=_kind_of(exc),
        message=str(exc) or type(exc).__name__,
    )


def _kind_of(exc: BaseException) -> str:
    if isinstance(exc, QuillpressError):
        return exc.error_kind
    return type(exc).__name__


class BuildStatsCollector:
    """Thread-safe accumulator for one build run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stages: dict[str, StageStats] = {s: StageStats() for s in STAGES}
        self._plugins: dict[str, PluginStats] = {}
        self._failures: list[FailureRecord] = []
        self._warnings: list[str] = []

    def record_success(self, stage: Stage, count: int = 1) -> None:
        with self._lock:
            self._stages[stage].succeeded += count

    def record_failure(self, failure: FailureRecord) -> None:
        with self._lock:
            self._stages[failure.phase].failed += 1
            self._failures.append(failure)
        logger.error(
            "%s failed for %s (%s): %s",
            failure.phase,
            failure.file_path or "-",
            failure.plugin or "-",
            failure.message,
        )

    def record_plugin(
        self,
        name: str,
        kind: Literal["transformer", "filter", "emitter"],
        ok: bool,
    ) -> None:
        with self._lock:
            stats = self._plugins.setdefault(name, PluginStats(kind=kind))
            if ok:
                stats.succeeded += 1
            else:
                stats.failed += 1

    def record_warning(self, message: str) -> None:
        with self._lock:
            self._warnings.append(message)

    @property
    def failures(self) -> list[FailureRecord]:
        with self._lock:
            return list(self._failures)

    def has_failures(self) -> bool:
        with self._lock:
            return bool(self._failures)

    def summarize(
        self,
        build_id: str,
        mode: Literal["full", "incremental"],
        status: BuildStatus,
        final_phase: str,
        total_files: int,
        cache_hits: int,
        cache_misses: int,
        elapsed_seconds: float,
        artifacts: list[str],
    ) -> BuildSummary:
        """Freeze collected data into a BuildSummary."""
        lookups = cache_hits + cache_misses
        with self._lock:
            failures = sorted(
                self._failures,
                key=lambda f: (STAGES.index(f.phase), f.file_path or "", f.plugin or ""),
            )
            return BuildSummary(
                build_id=build_id,
                mode=mode,
                status=status,
                final_phase=final_phase,
                total_files=total_files,
                cache_hits=cache_hits,
                cache_misses=cache_misses,
                cache_hit_rate=(cache_hits / lookups) if lookups else 0.0,
                elapsed_seconds=round(elapsed_seconds, 3),
                stages={k: v.model_copy() for k, v in self._stages.items()},
                plugins={k: v.model_copy() for k, v in self._plugins.items()},
                failures=failures,
                warnings=list(self._warnings),
                artifacts=sorted(artifacts),
            )
