"""Test helpers (small, reusable runner doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off runner classes as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from magickmeta.invoke import CommandOutput
from tests.conftest import FakeRunner, Run

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass
class ScriptedRunner(FakeRunner):
    """FakeRunner that answers from a scripted sequence of outputs/exceptions.

    Each script item is either a ``(returncode, stdout, stderr)`` tuple or an
    exception to raise. Once the script runs out, FakeRunner behavior applies.
    """

    script: list[tuple[int, bytes, bytes] | BaseException] = field(default_factory=list)

    async def __call__(self, command: str, args: Sequence[str]) -> CommandOutput:
        if not self.script:
            return await super().__call__(command, args)
        self.runs.append(Run(command=command, args=tuple(args)))
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        returncode, stdout, stderr = item
        return CommandOutput(
            command=command,
            args=tuple(args),
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
        )


@dataclass
class ConcurrencyRunner(FakeRunner):
    """FakeRunner that measures how many calls are in flight at once."""

    in_flight: int = 0
    max_in_flight: int = 0
    hold_s: float = 0.01

    async def __call__(self, command: str, args: Sequence[str]) -> CommandOutput:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.hold_s)
            return await super().__call__(command, args)
        finally:
            self.in_flight -= 1
