# src/pipeline/recovery.py — v1
"""Kind-specific bounded recovery for pipeline failures.

resource_load and cache failures get one retry after a recovery action
(reload the resource, reinitialize the store). parse and abort failures
are never retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from quillpress.core.errors import PluginExecutionError, QuillpressError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RecoveryPolicy:
    """Retry budget for one error kind."""

    max_retries: int
    delay_s: float = 0.0


DEFAULT_RECOVERY_POLICIES: dict[str, RecoveryPolicy] = {
    "resource_load": RecoveryPolicy(max_retries=1),
    "cache": RecoveryPolicy(max_retries=1),
    "parse": RecoveryPolicy(max_retries=0),
    "abort": RecoveryPolicy(max_retries=0),
}


def classify_error(error: BaseException) -> str:
    """Map an exception onto a recovery kind.

    Pipeline errors carry their own ``error_kind``; a PluginExecutionError
    is classified by its cause. Anything else is ``unknown``.
    """
    if isinstance(error, PluginExecutionError):
        return classify_error(error.cause)
    if isinstance(error, QuillpressError):
        return error.error_kind
    return "unknown"


def policy_for(
    kind: str,
    policies: dict[str, RecoveryPolicy] | None = None,
    max_retries: int | None = None,
) -> RecoveryPolicy:
    """Resolve the policy for ``kind``, capped by ``max_retries`` if given."""
    policy = (policies or DEFAULT_RECOVERY_POLICIES).get(kind, RecoveryPolicy(max_retries=0))
    if max_retries is not None and policy.max_retries > max_retries:
        return RecoveryPolicy(max_retries=max_retries, delay_s=policy.delay_s)
    return policy


async def with_recovery(
    fn: Callable[[], Awaitable[T]],
    *,
    unit: str,
    on_retry: Callable[[BaseException], Awaitable[None] | None] | None = None,
    policies: dict[str, RecoveryPolicy] | None = None,
    max_retries: int | None = None,
) -> T:
    """Run ``fn`` and retry it according to the policy of the error it raises.

    Args:
        fn: Zero-argument coroutine factory for the unit of work.
        unit: Label used in log messages (plugin name, "cache flush").
        on_retry: Recovery action run before each retry; may be async.
        policies: Override DEFAULT_RECOVERY_POLICIES.
        max_retries: Global cap from settings.

    Raises:
        The last exception once the policy's budget is spent.
    """
    attempts = 0
    while True:
        try:
            return await fn()
        except Exception as exc:
            kind = classify_error(exc)
            policy = policy_for(kind, policies, max_retries)
            if attempts >= policy.max_retries:
                raise
            attempts += 1
            logger.warning(
                "%s failed (%s), recovering (attempt %d/%d): %s",
                unit, kind, attempts, policy.max_retries, exc,
            )
            if on_retry is not None:
                result = on_retry(exc)
                if asyncio.iscoroutine(result):
                    await result
            if policy.delay_s:
                await asyncio.sleep(policy.delay_s)


def run_with_recovery(
    fn: Callable[[], T],
    *,
    unit: str,
    on_retry: Callable[[BaseException], Any] | None = None,
    policies: dict[str, RecoveryPolicy] | None = None,
    max_retries: int | None = None,
) -> T:
    """Synchronous counterpart of ``with_recovery`` (no delay support)."""
    attempts = 0
    while True:
        try:
            return fn()
        except Exception as exc:
            kind = classify_error(exc)
            policy = policy_for(kind, policies, max_retries)
            if attempts >= policy.max_retries:
                raise
            attempts += 1
            logger.warning(
                "%s failed (%s), recovering (attempt %d/%d): %s",
                unit, kind, attempts, policy.max_retries, exc,
            )
            if on_retry is not None:
                on_retry(exc)
