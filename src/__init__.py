# src/__init__.py — v1
"""quillpress: incremental, plugin-driven content build pipeline."""

from quillpress.version import __version__

__all__ = ["__version__"]
