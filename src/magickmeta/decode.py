"""Decoding of sanitized ImageMagick JSON into ImageResult models."""

from __future__ import annotations

from pydantic import TypeAdapter, ValidationError

from magickmeta.details import ImageResult
from magickmeta.errors import DecodeError
from magickmeta.sanitize import sanitize_json

DECODE_ERROR_PREFIX = "Unable to decode ImageMagick JSON"

_RESULTS_ADAPTER: TypeAdapter[list[ImageResult]] = TypeAdapter(list[ImageResult])


def decode_image_results(blob: bytes) -> list[ImageResult]:
    """Decode ``convert ... json:-`` output into ImageResults, in order.

    The payload is sanitized first, so NaN/infinity spellings leaked by the
    tool decode as ``None``. Bytes that are not valid UTF-8 (raw Latin-1 EXIF
    or IPTC values, typically) become U+FFFD instead of failing the batch.
    An empty array is valid and yields ``[]``.

    Raises:
        DecodeError: The payload is not a JSON array of image records.
    """
    try:
        text = sanitize_json(blob).decode("utf-8", errors="replace")
        return _RESULTS_ADAPTER.validate_json(text)
    except ValidationError as e:
        raise DecodeError(f"{DECODE_ERROR_PREFIX}: {e}") from e
