# src/tracking/models.py — v1
"""Build tracking models: FailureRecord, StageStats, PluginStats, BuildSummary."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

Stage = Literal["discover", "transform", "filter", "emit", "finalize"]
BuildStatus = Literal["success", "partial", "aborted"]


class FailureRecord(BaseModel):
    """One attributed failure: which file, which phase, which plugin."""

    file_path: str | None = None
    phase: Stage
    plugin: str | None = None
    error_kind: str
    message: str


class StageStats(BaseModel):
    """Per-stage success/failure counts (units are files, or plugins for emit)."""

    succeeded: int = 0
    failed: int = 0


class PluginStats(BaseModel):
    """Per-plugin success/failure counts."""

    kind: str
    succeeded: int = 0
    failed: int = 0


class BuildSummary(BaseModel):
    """Consolidated view of a full build run."""

    build_id: str
    mode: Literal["full", "incremental"]
    status: BuildStatus
    final_phase: str
    total_files: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    cache_hit_rate: float = 0.0
    elapsed_seconds: float = 0.0
    stages: dict[str, StageStats] = Field(default_factory=dict)
    plugins: dict[str, PluginStats] = Field(default_factory=dict)
    failures: list[FailureRecord] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    artifacts: list[str] = Field(default_factory=list)

    def format_report(self) -> str:
        """Render a human-readable multi-line summary."""
        lines = [
            f"Build {self.build_id} ({self.mode}): {self.status} at {self.final_phase}",
            f"  Files:      {self.total_files}",
            f"  Cache:      {self.cache_hits} hits / {self.cache_misses} misses "
            f"({self.cache_hit_rate:.0%})",
            f"  Artifacts:  {len(self.artifacts)}",
            f"  Elapsed:    {self.elapsed_seconds:.2f}s",
        ]
        for stage, stats in self.stages.items():
            lines.append(f"  [{stage}] ok={stats.succeeded} failed={stats.failed}")
        for name, stats in sorted(self.plugins.items()):
            lines.append(
                f"  <{stats.kind}:{name}> ok={stats.succeeded} failed={stats.failed}"
            )
        for failure in self.failures:
            where = failure.file_path or "-"
            plugin = failure.plugin or "-"
            lines.append(
                f"  FAIL {failure.phase} {where} ({plugin}, {failure.error_kind}): "
                f"{failure.message}"
            )
        if self.warnings:
            lines.append(f"  Warnings:   {len(self.warnings)}")
        return "\n".join(lines)
