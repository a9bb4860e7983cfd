"""Typed model of ImageMagick's ``json:-`` output.

The tool emits a JSON array with one ``{"image": {...}}`` object per decoded
image (multi-frame inputs produce several). Field names follow ImageMagick's
camelCase keys on the wire and snake_case in Python.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)

# ImageMagick prints sizes with decimal prefixes ("2.1MB"); binary prefixes
# ("2MiB") show up with some policy settings.
_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGTP]?)(i?)B\s*$")
_SIZE_EXPONENTS = {"": 0, "K": 1, "M": 2, "G": 3, "T": 4, "P": 5}


class _Model(BaseModel):
    model_config = _MODEL_CONFIG

    @model_validator(mode="before")
    @classmethod
    def null_means_default(cls, data: Any) -> Any:
        # Explicit nulls (including sanitized NaNs) fall back to the field default.
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class Point(_Model):
    """An integer X, Y coordinate."""

    x: int = 0
    y: int = 0

    def __str__(self) -> str:
        return f"{{X: {self.x}, Y: {self.y}}}"


class PointFloat(_Model):
    """A float X, Y coordinate (resolution, print size, chromaticity)."""

    x: float | None = None
    y: float | None = None

    def __str__(self) -> str:
        return f"{{X: {self.x}, Y: {self.y}}}"


class Dimensions(_Model):
    """Box dimensions."""

    width: int = 0
    height: int = 0

    def __str__(self) -> str:
        return f"{{Width: {self.width}, Height: {self.height}}}"


class Geometry(_Model):
    """Image geometry: a ``width`` x ``height`` box at offset ``x``, ``y``."""

    width: int = 0
    height: int = 0
    x: int = 0
    y: int = 0

    def canvas(self) -> Dimensions:
        """Total canvas size: the box dimensions plus its offset."""
        return Dimensions(width=self.width + self.x, height=self.height + self.y)

    def offset(self) -> Point:
        """Offset of the box on the canvas."""
        return Point(x=self.x, y=self.y)

    def dimensions(self) -> Dimensions:
        return Dimensions(width=self.width, height=self.height)


class ChannelStatistics(_Model):
    """Statistics for one color channel.

    Any value may be ``None``: ImageMagick emits NaN for some channels (an
    opaque alpha channel's standard deviation, for example), and those are
    sanitized to ``null`` before decoding.
    """

    min: float | None = None
    max: float | None = None
    mean: float | None = None
    standard_deviation: float | None = None
    kurtosis: float | None = None
    skewness: float | None = None
    entropy: float | None = None


class ImageDetails(_Model):
    """Detailed information on one image, with helpers for common queries."""

    alpha: str | None = None
    background_color: str | None = None
    base_depth: int | None = None
    base_name: str | None = None
    base_type: str | None = None
    border_color: str | None = None
    channel_depth: dict[str, int] = Field(default_factory=dict)
    channel_statistics: dict[str, ChannelStatistics | None] = Field(default_factory=dict)
    chromaticity: dict[str, PointFloat | None] = Field(default_factory=dict)
    class_: str | None = Field(default=None, alias="class")
    colormap: list[str] = Field(default_factory=list)
    colormap_entries: int | None = None
    colorspace: str | None = None
    compose: str | None = None
    compression: str | None = None
    depth: int | None = None
    dispose: str | None = None
    elapsed_time: str | None = None
    endianess: str | None = None
    filesize: str | None = None
    format: str | None = None
    format_description: str | None = None
    gamma: float | None = None
    geometry: Geometry | None = None
    image_statistics: dict[str, ChannelStatistics | None] = Field(default_factory=dict)
    intensity: str | None = None
    interlace: str | None = None
    iterations: int | None = None
    matte_color: str | None = None
    mime_type: str | None = None
    name: str | None = None
    #: ImageMagick encodes this one as a string ("211750").
    number_pixels: int | None = None
    orientation: str | None = None
    page_geometry: Geometry | None = None
    pixels: int | None = None
    pixels_per_second: str | None = None
    print_size: PointFloat | None = None
    profiles: dict[str, dict[str, Any]] = Field(default_factory=dict)
    properties: dict[str, str] = Field(default_factory=dict)
    quality: int | None = None
    rendering_intent: str | None = None
    resolution: PointFloat | None = None
    scene: int | None = None
    scenes: int | None = None
    tainted: bool | None = None
    transparent_color: str | None = None
    type: str | None = None
    units: str | None = None
    user_time: str | None = None
    version: str | None = None

    def size(self) -> int:
        """Size of the image file in bytes, parsed from ``filesize``.

        Returns 0 when the field is missing or not a recognizable size.
        """
        if not self.filesize:
            return 0
        match = _SIZE_RE.match(self.filesize)
        if match is None:
            return 0
        number, prefix, binary = match.groups()
        base = 1024 if binary else 1000
        return int(float(number) * base ** _SIZE_EXPONENTS[prefix])

    def profile_sizes(self) -> dict[str, int]:
        """Map of embedded profile names to their size in bytes.

        The ``length`` value arrives as whatever JSON number the tool printed;
        floats are truncated toward zero and non-numeric values are skipped.
        """
        lengths: dict[str, int] = {}
        for name, props in self.profiles.items():
            raw = props.get("length") if isinstance(props, dict) else None
            if isinstance(raw, bool):
                continue
            if isinstance(raw, int):
                lengths[name] = raw
            elif isinstance(raw, float):
                lengths[name] = int(raw)
        return lengths

    def profile_total_size(self) -> int:
        """Total byte size of all embedded profiles."""
        return sum(self.profile_sizes().values())

    def profile_size_percent(self) -> float:
        """Fraction of the combined file and profile size used by profiles.

        Returns 0.0 when both sizes are zero.
        """
        total = self.profile_total_size()
        denominator = total + self.size()
        if denominator == 0:
            return 0.0
        return total / denominator

    def profile_names(self) -> list[str]:
        """Sorted names of the embedded profiles, including zero-length ones."""
        return sorted(self.profiles)

    def has_profile(self, name: str) -> bool:
        """True if the image embeds a non-empty profile called *name*.

        Common names include 8bim, exif, iptc, xmp, icc, app1 and app12.
        """
        return self.profile_sizes().get(name, 0) > 0

    def properties_map(self, *tag_filter: str) -> dict[str, dict[str, str]]:
        """Group ``properties`` by tag type.

        Keys are split on the first ``:``; the prefix becomes the outer key::

            {
                "icc": {"brand": "Canon", "model": "EOS 5D Mark IV"},
                "exif": {"Software": "Adobe Photoshop CC 2017 (Macintosh)"},
            }

        When *tag_filter* is given only those tag types are included. A key
        without a ``:`` yields an empty group for its tag type.
        """
        wanted = set(tag_filter)
        props: dict[str, dict[str, str]] = {}
        for key, value in self.properties.items():
            tag_type, sep, tag = key.partition(":")
            if wanted and tag_type not in wanted:
                continue
            group = props.setdefault(tag_type, {})
            if sep:
                group[tag] = value
        return props

    def exif_tags(self) -> dict[str, str]:
        """EXIF tags with the ``exif:`` prefix removed, or ``{}`` if none."""
        return self.properties_map("exif").get("exif", {})

    def to_json(self, *, pretty: bool = False) -> str:
        """Serialize back to ImageMagick-style camelCase JSON."""
        return self.model_dump_json(by_alias=True, indent=2 if pretty else None)


class ImageResult(_Model):
    """One top-level entry of the tool's output array.

    Almost everything of interest lives on :attr:`image`; the wrapper mirrors
    the wire format so other entry kinds can be added later.
    """

    image: ImageDetails | None = None

    def to_json(self, *, pretty: bool = False) -> str:
        """Serialize back to ImageMagick-style camelCase JSON."""
        return self.model_dump_json(by_alias=True, indent=2 if pretty else None)
