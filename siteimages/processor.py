"""Content-addressed image processing queue.

Operations are registered by templates while a site renders and written to
``static/processed_images`` afterwards. The output name of an operation is a
hash of its inputs, so identical requests share one output file and one URL.
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from PIL import Image, ImageOps

from siteimages.config import PROCESSED_IMAGES_DIR, STATIC_DIR, config
from siteimages.errors import ProcessorError

logger = logging.getLogger(__name__)

_HASH_LENGTH = 16


class ResizeOperation(enum.Enum):
    """How the requested width/height are applied to the source image."""

    SCALE = "scale"
    FIT_WIDTH = "fit_width"
    FIT_HEIGHT = "fit_height"
    FIT = "fit"
    FILL = "fill"

    @classmethod
    def from_args(
        cls, op: str, width: int | None, height: int | None
    ) -> ResizeOperation:
        """Validate ``op`` together with the dimensions it needs."""
        try:
            operation = cls(op)
        except ValueError:
            raise ProcessorError(f"Invalid image resize operation: {op}") from None

        if operation is cls.FIT_WIDTH:
            if width is None:
                raise ProcessorError('op="fit_width" requires a `width` argument')
        elif operation is cls.FIT_HEIGHT:
            if height is None:
                raise ProcessorError('op="fit_height" requires a `height` argument')
        elif width is None or height is None:
            raise ProcessorError(
                f'op="{operation.value}" requires a `width` and `height` argument'
            )
        return operation


class OutputFormat(enum.Enum):
    """Encoding of a processed image."""

    AUTO = "auto"
    JPEG = "jpg"
    PNG = "png"
    WEBP = "webp"

    @classmethod
    def parse(cls, value: str) -> OutputFormat:
        normalized = value.lower()
        if normalized == "jpeg":
            return cls.JPEG
        try:
            return cls(normalized)
        except ValueError:
            raise ProcessorError(f"Invalid image format: {value}") from None

    def resolve(self, source: Path) -> OutputFormat:
        """Pick a concrete format for ``auto`` based on the source file."""
        if self is not OutputFormat.AUTO:
            return self
        suffix = source.suffix.lower()
        if suffix in {".jpg", ".jpeg"}:
            return OutputFormat.JPEG
        if suffix == ".webp":
            return OutputFormat.WEBP
        return OutputFormat.PNG

    @property
    def extension(self) -> str:
        return self.value

    @property
    def pil_format(self) -> str:
        return {
            OutputFormat.JPEG: "JPEG",
            OutputFormat.PNG: "PNG",
            OutputFormat.WEBP: "WEBP",
        }[self]


@dataclass(frozen=True)
class ImageOp:
    """A single resize request, ready to be queued."""

    logical_path: str
    source: Path
    op: ResizeOperation
    width: int | None
    height: int | None
    format: OutputFormat
    quality: int | None

    @property
    def hash(self) -> str:
        """Stable digest of the request; the site location is not part of it."""
        payload = json.dumps(
            [
                self.logical_path,
                self.op.value,
                self.width,
                self.height,
                self.format.value,
                self.quality,
            ]
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:_HASH_LENGTH]

    @property
    def file_name(self) -> str:
        return f"{self.hash}.{self.format.extension}"


class ImageProcessor(Protocol):
    """Interface the resize function needs from a processor."""

    def build_operation(
        self,
        logical_path: str,
        source: Path,
        op: str,
        width: int | None,
        height: int | None,
        format: str,
        quality: int | None,
    ) -> Any: ...

    def insert(self, operation: Any) -> tuple[Path, str]: ...


def _target_size(
    op: ImageOp, original_width: int, original_height: int
) -> tuple[int, int]:
    width, height = op.width, op.height
    if op.op is ResizeOperation.FIT_WIDTH and width is not None:
        return width, max(1, round(original_height * width / original_width))
    if op.op is ResizeOperation.FIT_HEIGHT and height is not None:
        return max(1, round(original_width * height / original_height)), height
    if width is None or height is None:
        raise ProcessorError(
            f'op="{op.op.value}" requires a `width` and `height` argument'
        )

    if op.op is ResizeOperation.FIT:
        if original_width <= width and original_height <= height:
            return original_width, original_height
        ratio = min(width / original_width, height / original_height)
        return (
            max(1, round(original_width * ratio)),
            max(1, round(original_height * ratio)),
        )
    return width, height


def render_image(op: ImageOp, target: Path, default_quality: int) -> None:
    """Resize ``op.source`` and write the result to ``target``."""
    with Image.open(op.source) as img:
        img = ImageOps.exif_transpose(img)
        size = _target_size(op, img.width, img.height)
        if op.op is ResizeOperation.FILL:
            resized = ImageOps.fit(img, size, Image.Resampling.LANCZOS)
        else:
            resized = (
                img if size == img.size else img.resize(size, Image.Resampling.LANCZOS)
            )

        save_kwargs: dict[str, Any] = {}
        if op.format is OutputFormat.JPEG:
            # Convert RGBA to RGB if necessary
            if resized.mode not in ("RGB", "L"):
                resized = resized.convert("RGB")
            save_kwargs["quality"] = op.quality or default_quality
        elif op.format is OutputFormat.WEBP:
            if op.quality is None:
                save_kwargs["lossless"] = True
            else:
                save_kwargs["quality"] = op.quality

        target.parent.mkdir(parents=True, exist_ok=True)
        resized.save(target, op.format.pil_format, **save_kwargs)


class Processor:
    """Queue of resize operations for one site."""

    def __init__(
        self,
        base_path: Path,
        base_url: str | None = None,
        default_quality: int | None = None,
    ) -> None:
        if base_url is None:
            base_url = config.BASE_URL
        self.base_path = base_path
        self.base_url = base_url.rstrip("/")
        self.default_quality = default_quality or config.DEFAULT_IMAGE_QUALITY
        self.output_dir = config.processed_images_dir(base_path)
        self._ops: dict[str, ImageOp] = {}
        self._lock = threading.Lock()

    def build_operation(
        self,
        logical_path: str,
        source: Path,
        op: str,
        width: int | None,
        height: int | None,
        format: str,
        quality: int | None,
    ) -> ImageOp:
        """Validate resize arguments into an :class:`ImageOp`.

        Raises:
            ProcessorError: if the operation or format is invalid
        """
        operation = ResizeOperation.from_args(op, width, height)
        output_format = OutputFormat.parse(format).resolve(source)
        return ImageOp(
            logical_path=logical_path,
            source=source,
            op=operation,
            width=width,
            height=height,
            format=output_format,
            quality=quality,
        )

    def insert(self, operation: ImageOp) -> tuple[Path, str]:
        """Queue ``operation`` and return its ``(static_path, url)``."""
        file_name = operation.file_name
        with self._lock:
            if file_name not in self._ops:
                self._ops[file_name] = operation
                logger.debug("Queued %s for %s", file_name, operation.logical_path)

        static_path = Path(STATIC_DIR) / PROCESSED_IMAGES_DIR / file_name
        url = f"{self.base_url}/{PROCESSED_IMAGES_DIR}/{file_name}"
        return static_path, url

    @property
    def pending(self) -> dict[str, ImageOp]:
        with self._lock:
            return dict(self._ops)

    def process_all(self) -> int:
        """Write every queued image that is not on disk yet.

        Returns:
            Number of images written

        Raises:
            ProcessorError: if an image cannot be rendered
        """
        written = 0
        for file_name, op in sorted(self.pending.items()):
            target = self.output_dir / file_name
            if target.exists():
                continue
            try:
                render_image(op, target, self.default_quality)
            except (OSError, ValueError, Image.DecompressionBombError) as exc:
                raise ProcessorError(
                    f"Failed to process image: {op.source}"
                ) from exc
            logger.debug("Wrote %s", target)
            written += 1
        return written

    def prune(self) -> int:
        """Delete processed images no queued operation produces."""
        if not self.output_dir.is_dir():
            return 0
        known = set(self.pending)
        removed = 0
        for entry in self.output_dir.iterdir():
            if entry.is_file() and entry.name not in known:
                entry.unlink()
                logger.info("Removed stale processed image %s", entry.name)
                removed += 1
        return removed


__all__ = [
    "ImageOp",
    "ImageProcessor",
    "OutputFormat",
    "Processor",
    "ResizeOperation",
    "render_image",
]
