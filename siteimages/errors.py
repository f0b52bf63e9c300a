"""Exceptions raised by the template image functions."""

from __future__ import annotations

from pathlib import Path


class ImageFunctionError(Exception):
    """Base class for all image function errors."""


class MissingArgumentError(ImageFunctionError, TypeError):
    """A required template argument was not given."""


class InvalidArgumentTypeError(ImageFunctionError, TypeError):
    """A template argument is unknown or has the wrong type."""


class InvalidRangeError(ImageFunctionError, ValueError):
    """A numeric template argument is outside its allowed range."""


class AbsolutePathError(ImageFunctionError, ValueError):
    """Logical image paths must be relative to the site."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Absolute paths are not supported: {path}")
        self.path = path


class ImageFileNotFoundError(ImageFunctionError, FileNotFoundError):
    """No candidate location holds the requested image."""


class UnsupportedImageError(ImageFunctionError):
    """The image could not be decoded."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path


class InvalidSvgDimensionsError(ImageFunctionError, ValueError):
    """An SVG carries neither a usable width/height nor a viewBox."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            f"Invalid dimensions: SVG width/height and viewbox not set: {path}"
        )
        self.path = path


class ProcessorError(ImageFunctionError):
    """The image processor rejected or failed an operation."""


__all__ = [
    "AbsolutePathError",
    "ImageFileNotFoundError",
    "ImageFunctionError",
    "InvalidArgumentTypeError",
    "InvalidRangeError",
    "InvalidSvgDimensionsError",
    "MissingArgumentError",
    "ProcessorError",
    "UnsupportedImageError",
]
