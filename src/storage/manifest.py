# src/storage/manifest.py — v1
"""Output manifest: which artifacts each emitter wrote in the last build.

The manifest lives next to the site in the output root. After emitting,
the pipeline diffs it against what the current build wrote and removes
the leftovers, so pages of deleted or newly unpublished documents do not
linger. Files the build never wrote are not tracked and never touched.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence

from pydantic import BaseModel, Field, ValidationError

from quillpress.storage.base_output_writer import BaseOutputWriter

logger = logging.getLogger(__name__)

MANIFEST_NAME = ".quillpress-manifest.json"
MANIFEST_SCHEMA_VERSION = 1


class OutputManifest(BaseModel):
    """Artifacts per emitter name, each list sorted."""

    schema_version: int = MANIFEST_SCHEMA_VERSION
    artifacts: dict[str, list[str]] = Field(default_factory=dict)

    def paths(self) -> set[str]:
        return {path for paths in self.artifacts.values() for path in paths}

    def merged(
        self,
        written: Mapping[str, Sequence[str]],
        carry_over: Iterable[str] = (),
    ) -> OutputManifest:
        """Manifest for the next build.

        Args:
            written: Artifacts per emitter from the build that just ran.
            carry_over: Emitters that failed this build; their previous
                artifacts stay recorded and on disk.
        """
        artifacts = {name: sorted(paths) for name, paths in written.items()}
        for name in carry_over:
            if name not in artifacts and name in self.artifacts:
                artifacts[name] = list(self.artifacts[name])
        return OutputManifest(artifacts=dict(sorted(artifacts.items())))


async def load_manifest(writer: BaseOutputWriter) -> OutputManifest:
    """Read the previous manifest; missing or unreadable means empty."""
    if not await writer.exists(MANIFEST_NAME):
        return OutputManifest()
    try:
        data = json.loads((await writer.read(MANIFEST_NAME)).decode("utf-8"))
        manifest = OutputManifest.model_validate(data)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        logger.warning("Ignoring unreadable output manifest: %s", e)
        return OutputManifest()
    if manifest.schema_version != MANIFEST_SCHEMA_VERSION:
        logger.warning(
            "Ignoring output manifest with schema version %d, expected %d",
            manifest.schema_version, MANIFEST_SCHEMA_VERSION,
        )
        return OutputManifest()
    return manifest


async def save_manifest(writer: BaseOutputWriter, manifest: OutputManifest) -> None:
    payload = json.dumps(manifest.model_dump(), indent=2, sort_keys=True)
    await writer.write(MANIFEST_NAME, payload + "\n")


async def remove_stale(
    writer: BaseOutputWriter,
    previous: OutputManifest,
    current: OutputManifest,
) -> list[str]:
    """Delete artifacts recorded in ``previous`` but absent from ``current``.

    A path that cannot be removed is logged and left in place.

    Returns:
        Sorted paths actually removed.
    """
    removed: list[str] = []
    for path in sorted(previous.paths() - current.paths()):
        try:
            if await writer.remove(path):
                removed.append(path)
        except (OSError, ValueError) as e:
            logger.warning("Could not remove stale artifact %s: %s", path, e)
    if removed:
        logger.info("Removed %d stale artifacts", len(removed))
    return removed
