# src/main.py — v1
"""CLI entry point: build, clean-cache commands.

Usage:
    quillpress build [content_root] [options]
    quillpress clean-cache [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from quillpress.config.settings import ConfigurationError, Settings, load_settings
from quillpress.logging.logger import setup_logging
from quillpress.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = load_settings(**_settings_overrides(args))
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="quillpress",
        description=f"quillpress v{__version__}: incremental static content builder",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- build ---
    p_build = subparsers.add_parser("build", help="Build the site")
    p_build.add_argument(
        "content_root", type=Path, nargs="?", default=None,
        help="Content directory (default: CONTENT_ROOT or ./content)",
    )
    p_build.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output directory (default: OUTPUT_DIR or ./public)",
    )
    p_build.add_argument(
        "--mode", choices=["full", "incremental"], default="incremental",
        help="Build mode (default: incremental)",
    )
    p_build.add_argument(
        "--force", action="store_true",
        help="Full mode only: recompute every file, ignoring cached results",
    )
    p_build.add_argument(
        "--no-cache", action="store_true",
        help="Disable the build cache entirely",
    )
    p_build.add_argument(
        "--cache-path", type=Path, default=None,
        help="Cache file location",
    )
    p_build.add_argument(
        "--concurrency", type=int, default=None,
        help="Maximum chunks processed in parallel",
    )
    p_build.set_defaults(func=_cmd_build)

    # --- clean-cache ---
    p_clean = subparsers.add_parser("clean-cache", help="Delete the build cache")
    p_clean.add_argument(
        "--cache-path", type=Path, default=None,
        help="Cache file location",
    )
    p_clean.set_defaults(func=_cmd_clean_cache)

    return parser


def _settings_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Map CLI flags onto Settings fields; unset flags keep .env values."""
    overrides: dict[str, Any] = {}
    if getattr(args, "content_root", None) is not None:
        overrides["content_root"] = args.content_root
    if getattr(args, "output", None) is not None:
        overrides["output_dir"] = args.output
    if getattr(args, "cache_path", None) is not None:
        overrides["cache_path"] = args.cache_path
    if getattr(args, "concurrency", None) is not None:
        overrides["concurrency"] = args.concurrency
    if getattr(args, "no_cache", False):
        overrides["cache_enabled"] = False
    return overrides


async def _cmd_build(args: argparse.Namespace, settings: Settings) -> int:
    """Run one build and print its summary."""
    from quillpress.pipeline.build_pipeline import BuildPipeline

    if not settings.content_root.is_dir():
        logger.error("Content directory not found: %s", settings.content_root)
        return 2

    pipeline = BuildPipeline(settings)
    result = await pipeline.run(mode=args.mode, force=args.force)
    print(result.summary.format_report())
    return result.exit_code


async def _cmd_clean_cache(args: argparse.Namespace, settings: Settings) -> int:
    """Delete the durable cache."""
    from quillpress.cache.cache_factory import create_cache_store

    store = create_cache_store(settings)
    store.clear()
    print(f"Cache cleared: {store.location}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
