# src/pipeline/state.py — v1
"""Build state machine.

    Idle -> Discovering -> Processing -> Filtering -> Emitting -> Finalizing -> Idle

Any non-Idle state may move to Aborted. Aborted is terminal for a run;
``reset()`` returns the machine to Idle before the next run.
"""

from __future__ import annotations

import logging
import time
from enum import Enum

from quillpress.logging.context import set_phase

logger = logging.getLogger(__name__)


class BuildPhase(str, Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    PROCESSING = "processing"
    FILTERING = "filtering"
    EMITTING = "emitting"
    FINALIZING = "finalizing"
    ABORTED = "aborted"


_FORWARD: dict[BuildPhase, BuildPhase] = {
    BuildPhase.IDLE: BuildPhase.DISCOVERING,
    BuildPhase.DISCOVERING: BuildPhase.PROCESSING,
    BuildPhase.PROCESSING: BuildPhase.FILTERING,
    BuildPhase.FILTERING: BuildPhase.EMITTING,
    BuildPhase.EMITTING: BuildPhase.FINALIZING,
    BuildPhase.FINALIZING: BuildPhase.IDLE,
}

# Log-context label for each working phase.
PHASE_STAGE: dict[BuildPhase, str] = {
    BuildPhase.DISCOVERING: "discover",
    BuildPhase.PROCESSING: "transform",
    BuildPhase.FILTERING: "filter",
    BuildPhase.EMITTING: "emit",
    BuildPhase.FINALIZING: "finalize",
}


class InvalidTransition(Exception):
    """Raised on a transition the state machine does not allow."""

    def __init__(self, current: BuildPhase, target: BuildPhase) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current.value} to {target.value}")


def allowed_transitions(phase: BuildPhase) -> set[BuildPhase]:
    """Targets reachable from ``phase`` in one step."""
    allowed: set[BuildPhase] = set()
    if phase in _FORWARD:
        allowed.add(_FORWARD[phase])
    if phase not in (BuildPhase.IDLE, BuildPhase.ABORTED):
        allowed.add(BuildPhase.ABORTED)
    return allowed


class BuildStateMachine:
    """Tracks the current phase and how long each phase took."""

    def __init__(self) -> None:
        self._phase = BuildPhase.IDLE
        self._entered_at = time.monotonic()
        self._history: list[BuildPhase] = [BuildPhase.IDLE]
        self._durations: dict[str, float] = {}

    @property
    def phase(self) -> BuildPhase:
        return self._phase

    @property
    def history(self) -> list[BuildPhase]:
        return list(self._history)

    @property
    def durations(self) -> dict[str, float]:
        return dict(self._durations)

    @property
    def last_working_phase(self) -> BuildPhase:
        """Most recent phase other than Idle/Aborted (Idle if none)."""
        for phase in reversed(self._history):
            if phase not in (BuildPhase.IDLE, BuildPhase.ABORTED):
                return phase
        return BuildPhase.IDLE

    def transition(self, target: BuildPhase) -> None:
        """Move to ``target`` or raise InvalidTransition."""
        if target not in allowed_transitions(self._phase):
            raise InvalidTransition(self._phase, target)
        now = time.monotonic()
        self._durations[self._phase.value] = (
            self._durations.get(self._phase.value, 0.0) + now - self._entered_at
        )
        logger.debug("Phase %s -> %s", self._phase.value, target.value)
        self._phase = target
        self._entered_at = now
        self._history.append(target)
        set_phase(PHASE_STAGE.get(target))

    def abort(self) -> None:
        """Move to Aborted from any non-Idle phase; no-op if already aborted."""
        if self._phase is BuildPhase.ABORTED:
            return
        self.transition(BuildPhase.ABORTED)

    def reset(self) -> None:
        self._phase = BuildPhase.IDLE
        self._entered_at = time.monotonic()
        self._history = [BuildPhase.IDLE]
        self._durations = {}
        set_phase(None)
