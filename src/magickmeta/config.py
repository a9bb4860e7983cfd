"""Configuration: Frozen Config for a single Parser and its pipeline runs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import os
from typing import Any

from dotenv import load_dotenv

from magickmeta.errors import ConfigurationError

ENV_PREFIX = "MAGICKMETA_"

DEFAULT_CONVERT_COMMAND = "convert"
DEFAULT_BATCH_SIZE = 20


def _default_workers() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class Config:
    """Immutable configuration for a Parser.

    Each Parser owns its Config, so several parsers with different commands or
    pool sizes can run side by side without sharing state.

    Example:
        config = Config(convert_command="/usr/local/bin/convert", workers=4)
    """

    convert_command: str = DEFAULT_CONVERT_COMMAND
    #: Number of files passed to one ``convert`` invocation by the pipeline.
    batch_size: int = DEFAULT_BATCH_SIZE
    #: Number of concurrent pipeline workers. Defaults to the CPU count.
    workers: int = field(default_factory=_default_workers)

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not isinstance(self.convert_command, str) or not self.convert_command.strip():
            raise ConfigurationError(
                f"convert_command must be a non-empty string, got {self.convert_command!r}",
                hint="Point this at ImageMagick's `convert` (or `magick`) executable.",
            )
        if self.batch_size < 1:
            raise ConfigurationError(
                f"batch_size must be ≥ 1, got {self.batch_size}",
                hint="This controls how many files are passed to one convert call.",
            )
        if self.workers < 1:
            raise ConfigurationError(
                f"workers must be ≥ 1, got {self.workers}",
                hint="This controls how many convert calls run in parallel.",
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Build a Config from ``MAGICKMETA_*`` environment variables.

        A project ``.env`` file is loaded first (without overriding variables
        already set). Explicit keyword overrides win over the environment.
        """
        load_dotenv()

        values: dict[str, Any] = {}
        command = os.environ.get(f"{ENV_PREFIX}CONVERT_COMMAND")
        if command:
            values["convert_command"] = command
        for name in ("batch_size", "workers"):
            raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None or not raw.strip():
                continue
            try:
                values[name] = int(raw)
            except ValueError:
                raise ConfigurationError(
                    f"{ENV_PREFIX}{name.upper()} must be an integer, got {raw!r}",
                ) from None

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def with_overrides(self, **changes: Any) -> Config:
        """Return a copy of this Config with *changes* applied (and validated)."""
        return replace(self, **changes)
