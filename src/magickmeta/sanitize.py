"""Repair of non-standard numbers in ImageMagick's JSON output.

``convert`` leaks C++ NaN/infinity spellings into otherwise valid JSON, mostly
in channel statistics: ``{"standardDeviation": -nan}`` on Linux and
``{"entropy": -1.#IND}`` on Windows. They are rewritten to ``null`` before the
payload is decoded.
"""

from __future__ import annotations

import re

# Whole tokens only: "-infinity" becomes "null", never "nullinity".
_INVALID_NUMBER_RE = re.compile(rb": [-+]?(?:1\.#IN[DF]\d*|nan|inf(?:inity)?)(?![A-Za-z])")
_NULL_REPLACEMENT = b": null"


def sanitize_json(blob: bytes) -> bytes:
    """Return *blob* with invalid numeric literals replaced by ``null``."""
    return _INVALID_NUMBER_RE.sub(_NULL_REPLACEMENT, blob)
