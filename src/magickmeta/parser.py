"""Parser: high-level access to ImageMagick's ``convert`` and its JSON output."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable
import logging
import os
from typing import TYPE_CHECKING, TypeVar

from magickmeta._channel import Channel
from magickmeta.config import Config
from magickmeta.decode import decode_image_results
from magickmeta.errors import DecodeError, ParserError
from magickmeta.invoke import CommandOutput, join_command, run_command
from magickmeta.pipeline import ParallelReport, run_pipeline

if TYPE_CHECKING:
    from collections.abc import Iterable

    from magickmeta.details import ImageResult
    from magickmeta.invoke import CommandRunner

logger = logging.getLogger(__name__)

#: Output argument that makes ``convert`` print JSON to stdout instead of
#: writing a file.
JSON_OUTPUT_ARG = "json:-"

_CONVERT_FAILED = "ImageMagick convert command failed"
_MISSING_COMMAND_HINT = "Check that ImageMagick is installed and convert_command is correct."
_BAD_ARGUMENT_HINT = "File paths and arguments must not contain NUL bytes."

T = TypeVar("T")


class Parser:
    """Wrapper around the ImageMagick ``convert`` command.

    The command runner is injectable so tests (or sandboxed callers) can
    replace the real subprocess with a deterministic stand-in.

    Example:
        parser = Parser(Config(workers=4))
        results = await parser.get_image_details("a.jpg", "b.png")
        print(results[0].image.geometry)
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        runner: CommandRunner | None = None,
    ) -> None:
        self._config = config if config is not None else Config()
        self._runner: CommandRunner = runner if runner is not None else run_command

    @property
    def config(self) -> Config:
        return self._config

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    def __repr__(self) -> str:
        return f"Parser(config={self._config!r})"

    async def _invoke(self, args: list[str], *, files: Iterable[str] = ()) -> CommandOutput:
        command = self._config.convert_command
        file_list = ", ".join(files)
        try:
            output = await self._runner(command, args)
        except (OSError, ValueError) as e:
            # ValueError: the OS rejected an argument, e.g. an embedded NUL byte.
            raise ParserError(
                f"{_CONVERT_FAILED}: {e}",
                file_list,
                join_command(command, args),
                hint=_BAD_ARGUMENT_HINT if isinstance(e, ValueError) else _MISSING_COMMAND_HINT,
            ) from e

        if not output.ok:
            raise ParserError(
                f"{_CONVERT_FAILED}: {output.failure_reason()}",
                file_list,
                join_command(command, args),
                output.stdout,
                output.stderr,
            )
        return output

    async def convert(self, *args: str) -> CommandOutput:
        """Run the configured convert command with arbitrary arguments.

        Raises:
            ParserError: The command could not be started or exited non-zero.
                The error carries the full command line and captured output.
        """
        return await self._invoke(list(args))

    async def get_image_details(self, *files: str) -> list[ImageResult]:
        """Compute ImageResults for one or more files with one convert call.

        Runs ``convert file1 file2 ... json:-``. A failure of any file fails
        the whole call.

        Raises:
            ParserError: The command failed, or its output could not be
                decoded. Decode failures carry no command or output.
        """
        if not files:
            raise ValueError("get_image_details() requires at least one file")

        output = await self._invoke([*files, JSON_OUTPUT_ARG], files=files)
        try:
            return self.get_image_details_from_json(output.stdout)
        except DecodeError as e:
            raise ParserError(str(e), ", ".join(files)) from e

    def get_image_details_from_json(self, blob: bytes) -> list[ImageResult]:
        """Decode previously captured ``json:-`` output.

        Raises:
            DecodeError: The payload is not valid ImageMagick JSON.
        """
        return decode_image_results(blob)

    def get_image_details_parallel(
        self,
        files: Channel[str],
        results: Channel[ImageResult],
        errors: Channel[ParserError],
    ) -> asyncio.Task[None]:
        """Start computing ImageResults for every path sent on *files*.

        ``config.workers`` workers pull paths from *files*, in batches of
        ``config.batch_size``. When a batch fails it is split up and each file
        is sent individually, so the bad file lands on *errors* and the rest
        on *results*.

        The producer must close *files* when done. The pipeline closes both
        *results* and *errors* when every worker has finished, and the
        returned task completes right after. Read both channels concurrently
        (or give them no capacity limit) so workers never block on a full one.

        Must be called from a running event loop.
        """
        return asyncio.create_task(
            run_pipeline(
                files,
                results,
                errors,
                process=self.get_image_details,
                batch_size=self._config.batch_size,
                workers=self._config.workers,
            ),
            name="magickmeta-pipeline",
        )

    async def collect_image_details(
        self, paths: Iterable[str | os.PathLike[str]] | AsyncIterable[str]
    ) -> ParallelReport:
        """Run the parallel pipeline over *paths* and gather everything.

        Convenience wrapper around :meth:`get_image_details_parallel` for
        callers that want lists instead of channels.
        """
        files: Channel[str] = Channel()
        results: Channel[ImageResult] = Channel()
        errors: Channel[ParserError] = Channel()
        report = ParallelReport()

        async with asyncio.TaskGroup() as tg:
            tg.create_task(_feed(paths, files))
            tg.create_task(_drain(results, report.results))
            tg.create_task(_drain(errors, report.errors))
            tg.create_task(
                run_pipeline(
                    files,
                    results,
                    errors,
                    process=self.get_image_details,
                    batch_size=self._config.batch_size,
                    workers=self._config.workers,
                )
            )

        logger.debug(
            "Collected %d result(s) and %d error(s)",
            len(report.results),
            len(report.errors),
        )
        return report


async def _feed(
    paths: Iterable[str | os.PathLike[str]] | AsyncIterable[str],
    files: Channel[str],
) -> None:
    try:
        if isinstance(paths, AsyncIterable):
            async for path in paths:
                await files.send(path)
        else:
            for p in paths:
                await files.send(os.fspath(p))
    finally:
        files.close()


async def _drain(channel: Channel[T], sink: list[T]) -> None:
    async for item in channel:
        sink.append(item)
