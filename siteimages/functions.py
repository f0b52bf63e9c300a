"""Template functions for image metadata and resizing.

Both functions are called from templates with keyword arguments only, e.g.
``resize_image(path="@/gallery/photo.jpg", width=640, op="fit_width")``.
"""

from __future__ import annotations

import logging
import threading
import weakref
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from siteimages.dimensions import image_dimensions
from siteimages.errors import (
    ImageFileNotFoundError,
    InvalidArgumentTypeError,
    InvalidRangeError,
    MissingArgumentError,
    ProcessorError,
)
from siteimages.processor import ImageProcessor
from siteimages.resolver import search_for_file

logger = logging.getLogger(__name__)

DEFAULT_OP = "fill"
DEFAULT_FORMAT = "auto"

_registry_lock = threading.Lock()
_processor_locks: weakref.WeakKeyDictionary[ImageProcessor, threading.Lock] = (
    weakref.WeakKeyDictionary()
)


def processor_lock(processor: ImageProcessor) -> threading.Lock:
    """Return the lock serializing all resize calls against ``processor``."""
    with _registry_lock:
        lock = _processor_locks.get(processor)
        if lock is None:
            lock = threading.Lock()
            _processor_locks[processor] = lock
        return lock


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _unexpected_arguments(
    function: str, given: dict[str, Any], known: set[str]
) -> None:
    unknown = sorted(set(given) - known)
    if unknown:
        raise InvalidArgumentTypeError(
            f"`{function}`: unexpected argument(s): {', '.join(unknown)}"
        )


def _required_str(function: str, kwargs: dict[str, Any], key: str) -> str:
    value = kwargs.get(key)
    if value is None:
        raise MissingArgumentError(
            f"`{function}` requires a `{key}` argument with a string value"
        )
    if not isinstance(value, str):
        raise InvalidArgumentTypeError(f"`{function}`: `{key}` must be a string")
    return value


def _optional_uint(function: str, kwargs: dict[str, Any], key: str) -> int | None:
    value = kwargs.get(key)
    if value is None:
        return None
    if not _is_int(value) or value < 0:
        raise InvalidArgumentTypeError(
            f"`{function}`: `{key}` must be a non-negative integer"
        )
    return int(value)


def _optional_str(
    function: str, kwargs: dict[str, Any], key: str, default: str
) -> str:
    value = kwargs.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidArgumentTypeError(f"`{function}`: `{key}` must be a string")
    return value


@dataclass(frozen=True)
class ResizeImageArgs:
    """Validated arguments of ``resize_image``.

    Attributes:
        path: Logical path of the source image (required)
        width: Target width in pixels
        height: Target height in pixels
        op: Resize operation, ``fill`` unless given
        format: Output format, ``auto`` unless given
        quality: Encoder quality in 1-100
    """

    path: str
    width: int | None = None
    height: int | None = None
    op: str = DEFAULT_OP
    format: str = DEFAULT_FORMAT
    quality: int | None = None

    @classmethod
    def from_kwargs(cls, kwargs: dict[str, Any]) -> ResizeImageArgs:
        """Build the arguments from a template call.

        Raises:
            MissingArgumentError: if ``path`` is missing
            InvalidArgumentTypeError: for unknown keys or wrong types
            InvalidRangeError: if ``quality`` is outside 1-100
        """
        function = "resize_image"
        _unexpected_arguments(function, kwargs, {f.name for f in fields(cls)})

        path = _required_str(function, kwargs, "path")
        width = _optional_uint(function, kwargs, "width")
        height = _optional_uint(function, kwargs, "height")
        op = _optional_str(function, kwargs, "op", DEFAULT_OP)
        format = _optional_str(function, kwargs, "format", DEFAULT_FORMAT)

        quality = kwargs.get("quality")
        if quality is not None:
            if not _is_int(quality):
                raise InvalidArgumentTypeError(
                    f"`{function}`: `quality` must be a number"
                )
            if not 1 <= quality <= 100:
                raise InvalidRangeError(
                    f"`{function}`: `quality` must be in range 1-100"
                )

        return cls(
            path=path,
            width=width,
            height=height,
            op=op,
            format=format,
            quality=quality,
        )


@dataclass(frozen=True)
class ResizeImageResponse:
    """Where a processed image will be written and served from."""

    url: str
    static_path: str


class ResizeImage:
    """``resize_image`` template function."""

    def __init__(
        self,
        base_path: Path,
        processor: ImageProcessor,
        lock: threading.Lock | None = None,
    ) -> None:
        self.base_path = base_path
        self.processor = processor
        self.lock = lock if lock is not None else processor_lock(processor)

    def __call__(self, **kwargs: Any) -> dict[str, str]:
        args = ResizeImageArgs.from_kwargs(kwargs)

        with self.lock:
            file_path = search_for_file(self.base_path, args.path)
            if file_path is None:
                raise ImageFileNotFoundError(
                    f"`resize_image`: Cannot find file: {args.path}"
                )

            try:
                operation = self.processor.build_operation(
                    args.path,
                    file_path,
                    args.op,
                    args.width,
                    args.height,
                    args.format,
                    args.quality,
                )
                static_path, url = self.processor.insert(operation)
            except ProcessorError as exc:
                raise ProcessorError(f"`resize_image`: {exc}") from exc

        response = ResizeImageResponse(url=url, static_path=str(static_path))
        return asdict(response)


class GetImageMetadata:
    """``get_image_metadata`` template function."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path

    def __call__(self, **kwargs: Any) -> dict[str, int] | None:
        function = "get_image_metadata"
        _unexpected_arguments(function, kwargs, {"path", "allow_missing"})
        path = _required_str(function, kwargs, "path")
        allow_missing = kwargs.get("allow_missing", False)
        if not isinstance(allow_missing, bool):
            raise InvalidArgumentTypeError(
                f"`{function}`: `allow_missing` must be a boolean (true or false)"
            )

        src_path = search_for_file(self.base_path, path)
        if src_path is None:
            if allow_missing:
                logger.warning("Image at path %s could not be found or loaded", path)
                return None
            raise ImageFileNotFoundError(f"`{function}`: Cannot find path: {path}")

        return image_dimensions(src_path).as_dict()


__all__ = [
    "DEFAULT_FORMAT",
    "DEFAULT_OP",
    "GetImageMetadata",
    "ResizeImage",
    "ResizeImageArgs",
    "ResizeImageResponse",
    "processor_lock",
]
