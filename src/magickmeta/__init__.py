"""magickmeta: structured image metadata from ImageMagick's ``convert``.

Public API:
    - Parser: runs ``convert ... json:-`` singly or through a parallel pipeline
    - Config: Configuration dataclass
    - Channel: close-able async channel used by the parallel pipeline
    - ImageResult / ImageDetails: typed model of the tool's JSON output
"""

from __future__ import annotations

import logging

from magickmeta._channel import Channel
from magickmeta.config import Config
from magickmeta.decode import decode_image_results
from magickmeta.details import (
    ChannelStatistics,
    Dimensions,
    Geometry,
    ImageDetails,
    ImageResult,
    Point,
    PointFloat,
)
from magickmeta.errors import (
    ChannelClosed,
    ConfigurationError,
    DecodeError,
    MagickMetaError,
    ParserError,
    describe_error,
)
from magickmeta.invoke import CommandOutput, CommandRunner, run_command
from magickmeta.parser import JSON_OUTPUT_ARG, Parser
from magickmeta.pipeline import ParallelReport
from magickmeta.sanitize import sanitize_json

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("magickmeta")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("magickmeta").addHandler(logging.NullHandler())

# Re-export for convenience
__all__ = [
    "JSON_OUTPUT_ARG",
    "Channel",
    "ChannelClosed",
    "ChannelStatistics",
    "CommandOutput",
    "CommandRunner",
    "Config",
    "ConfigurationError",
    "DecodeError",
    "Dimensions",
    "Geometry",
    "ImageDetails",
    "ImageResult",
    "MagickMetaError",
    "ParallelReport",
    "Parser",
    "ParserError",
    "Point",
    "PointFloat",
    "decode_image_results",
    "describe_error",
    "run_command",
    "sanitize_json",
]
