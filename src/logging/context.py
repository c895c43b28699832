# src/logging/context.py — v1
"""Contextual logging support: attach build_id, file, plugin, phase to records.

Context variables are copied into ``asyncio.to_thread`` workers, so a
value set inside a chunk task is visible to the code it runs.
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

_build_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "build_id", default=None
)
_file_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "file_path", default=None
)
_plugin: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "plugin", default=None
)
_phase: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "phase", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    build_id: str | None = None
    file_path: str | None = None
    plugin: str | None = None
    phase: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        build_id=_build_id.get(),
        file_path=_file_path.get(),
        plugin=_plugin.get(),
        phase=_phase.get(),
    )


def set_build_context(build_id: str) -> None:
    """Set build-level context (called once per pipeline run)."""
    _build_id.set(build_id)


def set_phase(phase: str | None) -> None:
    _phase.set(phase)


@contextmanager
def file_context(file_path: str) -> Iterator[None]:
    """Scope log records to one source file."""
    token = _file_path.set(file_path)
    try:
        yield
    finally:
        _file_path.reset(token)


@contextmanager
def plugin_context(plugin: str) -> Iterator[None]:
    """Scope log records to one plugin invocation."""
    token = _plugin.set(plugin)
    try:
        yield
    finally:
        _plugin.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    _build_id.set(None)
    _file_path.set(None)
    _plugin.set(None)
    _phase.set(None)
