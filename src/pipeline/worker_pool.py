# src/pipeline/worker_pool.py — v1
"""Bounded-concurrency chunk scheduler.

Below ``parallel_threshold`` files everything runs inline in the calling
task. At or above it, each chunk runs in a worker thread via
``asyncio.to_thread`` with at most ``concurrency`` chunks in flight.

Per-file exceptions are caught and attributed inside the chunk, so one
bad file never drops the rest of its chunk or any sibling chunk.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from quillpress.core.models import BuildChunk
from quillpress.core.paths import FilePath
from quillpress.pipeline.context import BuildCancelled, CancellationToken

logger = logging.getLogger(__name__)

R = TypeVar("R")

DEFAULT_PARALLEL_THRESHOLD = 128
DEFAULT_CHUNK_SIZE = 128


@dataclass
class ChunkOutcome(Generic[R]):
    """Everything one chunk produced, including what went wrong."""

    chunk_index: int
    results: dict[FilePath, R] = field(default_factory=dict)
    errors: dict[FilePath, BaseException] = field(default_factory=dict)
    error: BaseException | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors and self.error is None and not self.cancelled


def make_chunks(items: Sequence[FilePath], chunk_size: int) -> list[BuildChunk]:
    """Partition ``items`` into consecutive chunks of at most ``chunk_size``.

    Every item lands in exactly one chunk, in its original order.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    return [
        BuildChunk(index=i, files=tuple(items[start:start + chunk_size]))
        for i, start in enumerate(range(0, len(items), chunk_size))
    ]


class WorkerPool:
    """Schedule per-file work over chunks.

    Args:
        concurrency: Maximum chunks running at once.
        parallel_threshold: File count at which threads are used.
        chunk_size: Files per chunk.
        cancel_token: Checked before each file and each chunk.
    """

    def __init__(
        self,
        concurrency: int,
        parallel_threshold: int = DEFAULT_PARALLEL_THRESHOLD,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._concurrency = concurrency
        self._threshold = parallel_threshold
        self._chunk_size = chunk_size
        self._cancel = cancel_token or CancellationToken()

    def is_parallel(self, file_count: int) -> bool:
        return file_count >= self._threshold

    async def run(
        self, items: Sequence[FilePath], task: Callable[[FilePath], R]
    ) -> list[ChunkOutcome[R]]:
        """Chunk ``items`` and schedule ``task`` over them."""
        return await self.schedule(make_chunks(items, self._chunk_size), task)

    async def schedule(
        self, chunks: Sequence[BuildChunk], task: Callable[[FilePath], R]
    ) -> list[ChunkOutcome[R]]:
        """Run ``task`` for every file of every chunk.

        Returns:
            One ChunkOutcome per chunk, ordered by chunk index.
        """
        total = sum(len(c) for c in chunks)
        if not self.is_parallel(total):
            logger.info("Processing %d files sequentially", total)
            return [self._run_chunk(chunk, task) for chunk in chunks]

        logger.info(
            "Processing %d files in %d chunks (concurrency=%d)",
            total, len(chunks), self._concurrency,
        )
        semaphore = asyncio.Semaphore(self._concurrency)

        async def run_one(chunk: BuildChunk) -> ChunkOutcome[R]:
            async with semaphore:
                if self._cancel.cancelled:
                    return ChunkOutcome(chunk_index=chunk.index, cancelled=True)
                return await asyncio.to_thread(self._run_chunk, chunk, task)

        gathered = await asyncio.gather(
            *(run_one(chunk) for chunk in chunks), return_exceptions=True
        )
        outcomes: list[ChunkOutcome[R]] = []
        for chunk, item in zip(chunks, gathered):
            if isinstance(item, BaseException):
                logger.error("Chunk %d failed: %s", chunk.index, item)
                outcomes.append(ChunkOutcome(chunk_index=chunk.index, error=item))
            else:
                outcomes.append(item)
        return sorted(outcomes, key=lambda o: o.chunk_index)

    def _run_chunk(
        self, chunk: BuildChunk, task: Callable[[FilePath], R]
    ) -> ChunkOutcome[R]:
        outcome: ChunkOutcome[R] = ChunkOutcome(chunk_index=chunk.index)
        for file_path in chunk.files:
            try:
                self._cancel.raise_if_cancelled()
            except BuildCancelled:
                outcome.cancelled = True
                logger.info(
                    "Chunk %d cancelled after %d/%d files",
                    chunk.index, len(outcome.results) + len(outcome.errors), len(chunk),
                )
                break
            try:
                outcome.results[file_path] = task(file_path)
            except Exception as exc:
                outcome.errors[file_path] = exc
        return outcome
