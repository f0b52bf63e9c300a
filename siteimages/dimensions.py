"""Read pixel dimensions from raster and vector images."""

from __future__ import annotations

import enum
import math
import re
import struct
import xml.etree.ElementTree as etree
from collections.abc import Callable
from pathlib import Path
from typing import NamedTuple

from PIL import Image, UnidentifiedImageError

from siteimages.errors import InvalidSvgDimensionsError, UnsupportedImageError

# A length is a number with an optional absolute unit; percentages are relative
# to a viewport we do not know, so they never count as a size.
_LENGTH_RE = re.compile(
    r"^\s*(\+?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)\s*"
    r"(px|pt|pc|mm|cm|in|em|ex)?\s*$"
)
_VIEWBOX_SEPARATOR_RE = re.compile(r"[\s,]+")


class ImageDimensions(NamedTuple):
    """Pixel size of an image, height first."""

    height: int
    width: int

    def as_dict(self) -> dict[str, int]:
        return {"height": self.height, "width": self.width}


class ImageFormat(enum.Enum):
    """Format families that store their size differently."""

    RASTER = "raster"
    VECTOR = "vector"

    @classmethod
    def from_path(cls, path: Path) -> ImageFormat:
        if path.suffix.lower() == ".svg":
            return cls.VECTOR
        return cls.RASTER


def parse_svg_length(value: str | None) -> float | None:
    """Parse an SVG ``width``/``height`` attribute into a number."""
    if value is None:
        return None
    match = _LENGTH_RE.match(value)
    if not match:
        return None
    length = float(match.group(1))
    if not math.isfinite(length):
        return None
    return length


def parse_svg_viewbox(value: str | None) -> tuple[float, float] | None:
    """Return ``(width, height)`` of a ``viewBox`` attribute."""
    if value is None:
        return None
    parts = [part for part in _VIEWBOX_SEPARATOR_RE.split(value.strip()) if part]
    if len(parts) != 4:
        return None
    try:
        _min_x, _min_y, width, height = (float(part) for part in parts)
    except ValueError:
        return None
    if not (math.isfinite(width) and math.isfinite(height)):
        return None
    if width < 0 or height < 0:
        return None
    return width, height


def _svg_dimensions(path: Path) -> ImageDimensions:
    try:
        root = etree.parse(path).getroot()
    except (etree.ParseError, OSError) as exc:
        raise UnsupportedImageError(f"Failed to process SVG: {path}", path) from exc

    height = parse_svg_length(root.get("height"))
    width = parse_svg_length(root.get("width"))
    if height is not None and width is not None:
        return ImageDimensions(height=int(height), width=int(width))

    view_box = parse_svg_viewbox(root.get("viewBox"))
    if view_box is not None:
        vb_width, vb_height = view_box
        return ImageDimensions(height=int(vb_height), width=int(vb_width))

    raise InvalidSvgDimensionsError(path)


def _read_header_size(path: Path) -> tuple[int, int]:
    """Read the size with Pillow's format plugins, bypassing the pixel limit.

    ``Image.open`` refuses images over ``Image.MAX_IMAGE_PIXELS`` before any
    pixel is decoded; the plugin factories only parse the header.
    """
    Image.init()
    with path.open("rb") as fp:
        prefix = fp.read(16)
        for format_id in Image.ID:
            factory, accept = Image.OPEN[format_id]
            if accept is not None and not accept(prefix):
                continue
            fp.seek(0)
            try:
                img = factory(fp, str(path))
            except (SyntaxError, IndexError, TypeError, struct.error):
                continue
            width, height = img.size
            return int(width), int(height)
    raise UnidentifiedImageError(f"cannot identify image file {str(path)!r}")


def _raster_dimensions(path: Path) -> ImageDimensions:
    # Image.open only reads the header; pixel data is never decoded here.
    try:
        try:
            with Image.open(path) as img:
                width, height = img.size
        except Image.DecompressionBombError:
            width, height = _read_header_size(path)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise UnsupportedImageError(f"Failed to process image: {path}", path) from exc
    return ImageDimensions(height=int(height), width=int(width))


_READERS: dict[ImageFormat, Callable[[Path], ImageDimensions]] = {
    ImageFormat.RASTER: _raster_dimensions,
    ImageFormat.VECTOR: _svg_dimensions,
}


def image_dimensions(path: Path) -> ImageDimensions:
    """Return the dimensions of the image at ``path``.

    Raises:
        UnsupportedImageError: if the file cannot be decoded
        InvalidSvgDimensionsError: if an SVG has no usable size
    """
    return _READERS[ImageFormat.from_path(path)](path)


__all__ = [
    "ImageDimensions",
    "ImageFormat",
    "image_dimensions",
    "parse_svg_length",
    "parse_svg_viewbox",
]
