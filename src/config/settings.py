# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all build settings. Cross-field rules are
checked by ``validate_config_consistency``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


def _default_concurrency() -> int:
    return os.cpu_count() or 1


class Settings(BaseSettings):
    """Build settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Input / output ===
    content_root: Path = Path("content")
    output_dir: Path = Path("public")
    ignore_patterns: str = "private,templates,.obsidian"
    include_hidden: bool = False
    resources_dir: Path | None = None

    # === Links ===
    link_resolution: Literal["absolute", "relative", "shortest"] = "shortest"

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["json", "sqlite"] = "json"
    cache_path: Path = Path(".quillpress-cache/cache.json")
    cache_key_policy: Literal["content", "content_and_config"] = "content_and_config"
    cache_flush_mode: Literal["batched", "per_store"] = "batched"
    cache_prune_stale: bool = True

    # === Worker pool ===
    parallel_threshold: int = 128
    chunk_size: int = 128
    concurrency: int = _default_concurrency()

    # === Recovery ===
    max_retries: int = 1

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("chunk_size", "concurrency", "parallel_threshold")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:  # noqa: N805
        """Recovery is bounded: at most one retry per unit of work."""
        if v < 0 or v > 1:
            raise ValueError("max_retries must be 0 or 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        content = self.content_root.expanduser().resolve()
        output = self.output_dir.expanduser().resolve()
        if content == output:
            errors.append("OUTPUT_DIR must differ from CONTENT_ROOT")
        elif content in output.parents:
            errors.append("OUTPUT_DIR must not live inside CONTENT_ROOT")

        if self.cache_enabled:
            cache = self.cache_path.expanduser().resolve()
            if output == cache or output in cache.parents:
                errors.append(
                    "CACHE_PATH must live outside OUTPUT_DIR so cleaning output keeps the cache"
                )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def ignore_patterns_list(self) -> list[str]:
        """Parse comma-separated ignore globs."""
        return [p.strip() for p in self.ignore_patterns.split(",") if p.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-build config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
