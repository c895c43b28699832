# src/cache/fingerprint.py — v1
"""Content and configuration fingerprints used as cache validity tokens."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from typing import Any


def compute_content_hash(raw_bytes: bytes) -> str:
    """SHA-256 on raw file bytes."""
    return hashlib.sha256(raw_bytes).hexdigest()


def compute_config_hash(plugins: Iterable[tuple[str, str, dict[str, Any]]]) -> str:
    """Stable digest of an ordered transformer configuration.

    Args:
        plugins: (name, version, options) per transformer, in execution order.

    Returns:
        Hex digest; identical configurations always hash equal.
    """
    payload = [
        {"name": name, "version": version, "options": options}
        for name, version, options in plugins
    ]
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
