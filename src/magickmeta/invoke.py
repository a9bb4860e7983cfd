"""Subprocess invocation of the external ImageMagick command.

The runner is a plain async callable so callers (and tests) can swap in a
deterministic stand-in without touching the Parser.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandOutput:
    """Captured outcome of one external command run."""

    command: str
    args: tuple[str, ...]
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        """Whether the command exited successfully."""
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        """The command and its arguments, space-joined."""
        return join_command(self.command, self.args)

    def failure_reason(self) -> str:
        """Describe a non-zero exit the way shells report it."""
        if self.returncode < 0:
            return f"terminated by signal {-self.returncode}"
        return f"exit status {self.returncode}"


@runtime_checkable
class CommandRunner(Protocol):
    """Strategy that runs one command and captures its output.

    Implementations must capture stdout/stderr in full and must not raise for
    a non-zero exit status. Spawn failures surface as ``OSError``, and
    arguments the OS cannot pass (an embedded NUL byte) as ``ValueError``.
    """

    async def __call__(self, command: str, args: Sequence[str]) -> CommandOutput:
        """Run *command* with *args* and return the captured output."""
        ...


def join_command(command: str, args: Sequence[str]) -> str:
    return " ".join([command, *args])


async def run_command(command: str, args: Sequence[str]) -> CommandOutput:
    """Run *command* as a subprocess and wait for it to finish.

    Exactly one OS process is spawned per call. Both output streams are read
    into memory without truncation.
    """
    argv = tuple(args)
    logger.debug("Running %s (%d arg(s))", command, len(argv))
    proc = await asyncio.create_subprocess_exec(
        command,
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise

    returncode = proc.returncode if proc.returncode is not None else -1
    if returncode != 0:
        logger.debug("%s exited with %d", command, returncode)
    return CommandOutput(
        command=command,
        args=argv,
        returncode=returncode,
        stdout=stdout or b"",
        stderr=stderr or b"",
    )
