"""Tests for the processed image queue."""

from pathlib import Path
from typing import Any

import pytest
from PIL import Image

from siteimages.errors import ProcessorError
from siteimages.processor import (
    ImageOp,
    OutputFormat,
    Processor,
    ResizeOperation,
    render_image,
)


def _queue(processor: Processor, site_dir: Path, **kwargs: Any) -> Path:
    arguments: dict[str, Any] = {
        "op": "fill",
        "width": None,
        "height": None,
        "format": "auto",
        "quality": None,
    }
    arguments.update(kwargs)
    source = site_dir / "content" / "gutenberg.jpg"
    operation = processor.build_operation("@/gutenberg.jpg", source, **arguments)
    static_path, _url = processor.insert(operation)
    return site_dir / static_path


@pytest.mark.parametrize(
    ("op", "width", "height"),
    [
        ("scale", 10, None),
        ("fit", None, 10),
        ("fill", None, None),
        ("fit_width", None, 10),
        ("fit_height", 10, None),
    ],
)
def test_operation_requires_dimensions(
    op: str, width: int | None, height: int | None
) -> None:
    with pytest.raises(ProcessorError, match="requires"):
        ResizeOperation.from_args(op, width, height)


def test_unknown_operation() -> None:
    with pytest.raises(ProcessorError, match="Invalid image resize operation: crop"):
        ResizeOperation.from_args("crop", 10, 10)


def test_output_format_parsing() -> None:
    assert OutputFormat.parse("JPEG") is OutputFormat.JPEG
    assert OutputFormat.parse("webp") is OutputFormat.WEBP
    with pytest.raises(ProcessorError, match="Invalid image format: gif"):
        OutputFormat.parse("gif")


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("a.jpg", OutputFormat.JPEG),
        ("a.JPEG", OutputFormat.JPEG),
        ("a.webp", OutputFormat.WEBP),
        ("a.png", OutputFormat.PNG),
        ("a.gif", OutputFormat.PNG),
    ],
)
def test_auto_format(name: str, expected: OutputFormat) -> None:
    assert OutputFormat.AUTO.resolve(Path(name)) is expected
    assert OutputFormat.PNG.resolve(Path(name)) is OutputFormat.PNG


def test_hash_ignores_site_location() -> None:
    kwargs: dict[str, Any] = {
        "logical_path": "@/a.jpg",
        "op": ResizeOperation.FILL,
        "width": 1,
        "height": 2,
        "format": OutputFormat.JPEG,
        "quality": None,
    }
    first = ImageOp(source=Path("/one/content/a.jpg"), **kwargs)
    second = ImageOp(source=Path("/two/content/a.jpg"), **kwargs)
    assert first.hash == second.hash
    assert len(first.hash) == 16
    assert first.file_name == f"{first.hash}.jpg"


def test_insert_returns_static_path_and_url(site_dir: Path) -> None:
    processor = Processor(site_dir, base_url="https://example.org/")
    operation = processor.build_operation(
        "@/gutenberg.jpg",
        site_dir / "content" / "gutenberg.jpg",
        "fill",
        40,
        40,
        "auto",
        None,
    )
    static_path, url = processor.insert(operation)

    assert static_path == Path("static") / "processed_images" / operation.file_name
    assert url == f"https://example.org/processed_images/{operation.file_name}"


@pytest.mark.parametrize(
    ("kwargs", "size"),
    [
        ({"op": "scale", "width": 50, "height": 20}, (50, 20)),
        ({"op": "fit_width", "width": 150}, (150, 190)),
        ({"op": "fit_height", "height": 190}, (150, 190)),
        ({"op": "fit", "width": 150, "height": 150}, (118, 150)),
        ({"op": "fit", "width": 1000, "height": 1000}, (300, 380)),
        ({"op": "fill", "width": 40, "height": 40}, (40, 40)),
    ],
)
def test_process_all_writes_resized_images(
    site_dir: Path, processor: Processor, kwargs: dict[str, Any], size: tuple[int, int]
) -> None:
    target = _queue(processor, site_dir, **kwargs)

    assert processor.process_all() == 1
    with Image.open(target) as img:
        assert img.size == size
        assert img.format == "JPEG"


def test_process_all_formats(site_dir: Path, processor: Processor) -> None:
    png = _queue(processor, site_dir, width=10, height=10, format="png")
    webp = _queue(processor, site_dir, width=10, height=10, format="webp", quality=50)

    assert processor.process_all() == 2
    with Image.open(png) as img:
        assert img.format == "PNG"
    with Image.open(webp) as img:
        assert img.format == "WEBP"


def test_process_all_skips_existing_outputs(
    site_dir: Path, processor: Processor
) -> None:
    _queue(processor, site_dir, width=40, height=40)

    assert processor.process_all() == 1
    assert processor.process_all() == 0


def test_process_all_reports_broken_sources(site_dir: Path) -> None:
    broken = site_dir / "content" / "broken.jpg"
    broken.write_bytes(b"not an image")
    processor = Processor(site_dir)
    processor.insert(
        processor.build_operation("@/broken.jpg", broken, "fill", 4, 4, "auto", 90)
    )

    with pytest.raises(ProcessorError, match="broken.jpg"):
        processor.process_all()


def test_prune_removes_stale_outputs(site_dir: Path, processor: Processor) -> None:
    kept = _queue(processor, site_dir, width=40, height=40)
    processor.process_all()
    stale = processor.output_dir / "0123456789abcdef.jpg"
    stale.write_bytes(b"old")

    assert processor.prune() == 1
    assert kept.exists()
    assert not stale.exists()


def test_prune_without_output_dir(tmp_path: Path) -> None:
    assert Processor(tmp_path).prune() == 0


def test_render_rejects_operation_without_dimensions(
    site_dir: Path, tmp_path: Path
) -> None:
    operation = ImageOp(
        logical_path="@/gutenberg.jpg",
        source=site_dir / "content" / "gutenberg.jpg",
        op=ResizeOperation.FILL,
        width=40,
        height=None,
        format=OutputFormat.JPEG,
        quality=None,
    )
    with pytest.raises(ProcessorError, match="requires a `width` and `height`"):
        render_image(operation, tmp_path / "out.jpg", 75)


def test_process_all_wraps_pixel_limit_errors(
    site_dir: Path, processor: Processor, monkeypatch: pytest.MonkeyPatch
) -> None:
    _queue(processor, site_dir, width=40, height=40)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

    with pytest.raises(ProcessorError, match="gutenberg.jpg"):
        processor.process_all()
