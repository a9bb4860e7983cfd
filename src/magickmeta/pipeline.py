"""Parallel, fault-isolating batch pipeline.

Workers share one inbound channel of file paths. Each worker groups what it
receives into batches, runs every batch as a single ImageMagick call, and
streams the decoded results and any errors onto two shared outbound channels.

A failed multi-file batch is retried one file at a time, so a single bad
input only costs its own result: the other files in the batch still come
through, and the bad one is reported with its own ParserError.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING

from magickmeta.errors import ChannelClosed, ParserError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from magickmeta._channel import Channel
    from magickmeta.details import ImageResult

    BatchProcessor = Callable[..., Awaitable[list[ImageResult]]]

logger = logging.getLogger(__name__)


@dataclass
class ParallelReport:
    """Everything a finished pipeline run produced, in arrival order."""

    results: list[ImageResult] = field(default_factory=list)
    errors: list[ParserError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when no file failed."""
        return not self.errors

    def failed_files(self) -> list[str]:
        """Files named by the collected errors, in arrival order."""
        return [err.file for err in self.errors]


async def run_pipeline(
    files: Channel[str],
    results: Channel[ImageResult],
    errors: Channel[ParserError],
    *,
    process: BatchProcessor,
    batch_size: int,
    workers: int,
) -> None:
    """Process every path received on *files* until it is closed and drained.

    *process* is called with one batch of paths as positional arguments and
    must either return the decoded results or raise ParserError.

    Both *results* and *errors* are closed once every worker has finished,
    including when this coroutine is cancelled or a worker fails with an
    unexpected exception. Such exceptions cancel the remaining workers and
    propagate as an ExceptionGroup.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    if workers < 1:
        raise ValueError("workers must be >= 1")

    logger.debug("Starting %d worker(s) batch_size=%d", workers, batch_size)
    try:
        async with asyncio.TaskGroup() as tg:
            for worker_id in range(workers):
                tg.create_task(
                    _worker(
                        worker_id,
                        files,
                        results,
                        errors,
                        process=process,
                        batch_size=batch_size,
                    ),
                    name=f"magickmeta-worker-{worker_id}",
                )
    finally:
        results.close()
        errors.close()
    logger.debug("All %d worker(s) finished", workers)


async def _worker(
    worker_id: int,
    files: Channel[str],
    results: Channel[ImageResult],
    errors: Channel[ParserError],
    *,
    process: BatchProcessor,
    batch_size: int,
) -> None:
    batch: list[str] = []
    while True:
        try:
            path = await files.receive()
        except ChannelClosed:
            break
        batch.append(path)
        if len(batch) == batch_size:
            await _send_batch(worker_id, batch, results, errors, process=process)
            batch = []

    if batch:
        await _send_batch(worker_id, batch, results, errors, process=process)


async def _send_batch(
    worker_id: int,
    batch: Sequence[str],
    results: Channel[ImageResult],
    errors: Channel[ParserError],
    *,
    process: BatchProcessor,
) -> None:
    logger.debug("Worker %d processing batch of %d file(s)", worker_id, len(batch))
    try:
        details = await process(*batch)
    except ParserError as err:
        if len(batch) == 1:
            await errors.send(err)
            return

        # One bad file sinks the whole call; retry file by file to isolate it.
        logger.warning(
            "Batch of %d file(s) failed, retrying individually: %s",
            len(batch),
            err.msg,
        )
        details = []
        for path in batch:
            try:
                details.extend(await process(path))
            except ParserError as file_err:
                await errors.send(file_err)

    for result in details:
        await results.send(result)
