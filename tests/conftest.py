"""Pytest configuration and fixtures.

Provides the fake ``convert`` runner, environment isolation, logging
configuration, and automatic skipping of tests that need a real ImageMagick.
All fixtures here are autouse unless noted.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from dataclasses import dataclass, field
import json
import logging
import os
from pathlib import Path
import shutil
from typing import TYPE_CHECKING, Any

import pytest

from magickmeta.invoke import CommandOutput
from magickmeta.parser import JSON_OUTPUT_ARG

if TYPE_CHECKING:
    from collections.abc import Sequence

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "json_output"

# =============================================================================
# Test Doubles
# =============================================================================

# json.dumps cannot emit the tool's bare NaN spelling; swap it in afterwards.
_NAN_PLACEHOLDER = '"__nan__"'


def image_record(name: str, **fields: Any) -> dict[str, Any]:
    """Build one ``{"image": {...}}`` entry the way convert prints it."""
    image: dict[str, Any] = {
        "name": name,
        "baseName": Path(name).name,
        "format": "JPEG",
        "mimeType": "image/jpeg",
        "geometry": {"width": 640, "height": 480, "x": 0, "y": 0},
        "channelStatistics": {
            "Alpha": {
                "min": 255,
                "max": 255,
                "mean": 255,
                "standardDeviation": "__nan__",
            },
        },
        "properties": {"exif:Make": "Canon"},
        "profiles": {"exif": {"length": 256}},
        "filesize": "1200B",
        "numberPixels": "307200",
    }
    image.update(fields)
    return {"image": image}


def render_output(names: Sequence[str]) -> bytes:
    """Render convert's ``json:-`` stdout for *names*, NaN quirk included."""
    text = json.dumps([image_record(n) for n in names], indent=2)
    return text.replace(_NAN_PLACEHOLDER, "-nan").encode("utf-8")


@dataclass(frozen=True)
class Run:
    """One recorded invocation."""

    command: str
    args: tuple[str, ...]

    @property
    def files(self) -> tuple[str, ...]:
        return tuple(a for a in self.args if a != JSON_OUTPUT_ARG)


@dataclass
class FakeRunner:
    """Runner test double standing in for the convert subprocess.

    Records every call and answers with synthetic JSON: one record per input
    file. Files listed in ``failing`` make the whole call exit non-zero, just
    like a real unreadable image does; files in ``garbled`` make it print
    undecodable output. An argument containing a NUL byte raises ValueError,
    as the real subprocess spawn does.
    """

    failing: set[str] = field(default_factory=set)
    garbled: set[str] = field(default_factory=set)
    runs: list[Run] = field(default_factory=list)

    @property
    def run_count(self) -> int:
        return len(self.runs)

    @property
    def last_run(self) -> Run | None:
        return self.runs[-1] if self.runs else None

    async def __call__(self, command: str, args: Sequence[str]) -> CommandOutput:
        run = Run(command=command, args=tuple(args))
        self.runs.append(run)
        if any("\x00" in a for a in run.args):
            # Same rejection asyncio.create_subprocess_exec applies.
            raise ValueError("embedded null byte")
        # Yield so concurrent workers genuinely interleave.
        await asyncio.sleep(0)

        bad = [f for f in run.files if f in self.failing]
        if bad:
            return CommandOutput(
                command=command,
                args=run.args,
                returncode=1,
                stdout=b"",
                stderr=f"convert: unable to open image '{bad[0]}'".encode(),
            )
        if any(f in self.garbled for f in run.files):
            return CommandOutput(
                command=command,
                args=run.args,
                returncode=0,
                stdout=b'[{"image": {"name": ',
            )
        return CommandOutput(
            command=command,
            args=run.args,
            returncode=0,
            stdout=render_output(run.files),
        )


@pytest.fixture
def fake_runner() -> FakeRunner:
    """A fresh FakeRunner (not autouse)."""
    return FakeRunner()


@pytest.fixture
def fixture_bytes():
    """Return a loader for files under tests/fixtures/json_output (not autouse)."""

    def _load(name: str) -> bytes:
        return (FIXTURES_DIR / name).read_bytes()

    return _load


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "magickmeta.config.load_dotenv",
            lambda *_args, **_kwargs: False,
            raising=False,
        )


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch):
    """Clear MAGICKMETA_* variables so the host environment cannot leak in."""
    for key in list(os.environ.keys()):
        if key.startswith("MAGICKMETA_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy loggers."""
    logging.getLogger("asyncio").setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================

IMAGEMAGICK_REASON = "requires ImageMagick `convert` on PATH"


def pytest_collection_modifyitems(items):
    """Automatically skip real-ImageMagick tests when convert is missing."""
    if shutil.which("convert"):
        return
    skip_im = pytest.mark.skip(reason=IMAGEMAGICK_REASON)
    for item in items:
        if "imagemagick" in item.keywords:
            item.add_marker(skip_im)
