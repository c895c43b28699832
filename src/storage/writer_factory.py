# src/storage/writer_factory.py — v2
"""Factory: instantiate output writer from configuration."""

from __future__ import annotations

from quillpress.config.settings import Settings
from quillpress.storage.base_output_writer import BaseOutputWriter
from quillpress.storage.local_writer import LocalWriter


def create_writer(settings: Settings) -> BaseOutputWriter:
    """Create the output writer rooted at ``settings.output_dir``."""
    return LocalWriter(settings.output_dir)
