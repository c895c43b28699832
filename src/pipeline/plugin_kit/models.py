# src/pipeline/plugin_kit/models.py — v1
"""Plugin models: PluginKind, PluginDescriptor, stage outcomes."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FilePath
from quillpress.tracking.models import FailureRecord


class PluginKind(str, Enum):
    """Closed set of plugin capabilities."""

    TRANSFORMER = "transformer"
    FILTER = "filter"
    EMITTER = "emitter"


class PluginDescriptor(BaseModel):
    """Side-effect-free configuration record for one plugin."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: PluginKind
    class_path: str
    options: dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True


class FilterOutcome(BaseModel):
    """Result of running every filter over a content set."""

    published: list[ProcessedContent] = Field(default_factory=list)
    rejected: list[FilePath] = Field(default_factory=list)
    failures: list[FailureRecord] = Field(default_factory=list)


class EmitOutcome(BaseModel):
    """Result of running every emitter over the published content set."""

    artifacts: list[FilePath] = Field(default_factory=list)
    per_plugin: dict[str, list[FilePath]] = Field(default_factory=dict)
    failures: list[FailureRecord] = Field(default_factory=list)


class ExecutionOutcome(BaseModel):
    """Result of running transform, filter and emit over one content set."""

    transformed: list[ProcessedContent] = Field(default_factory=list)
    filtered: FilterOutcome = Field(default_factory=FilterOutcome)
    emitted: EmitOutcome = Field(default_factory=EmitOutcome)
    failures: list[FailureRecord] = Field(default_factory=list)
