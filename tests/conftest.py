import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from PIL import Image

from siteimages.processor import Processor

GUTENBERG_SIZE = (300, 380)  # (width, height)

ImageFactory = Callable[..., Path]


def _write_image(path: Path, size: tuple[int, int] = GUTENBERG_SIZE) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.new("RGB", size, color=(200, 120, 40))
    image_format = {".jpg": "JPEG", ".jpeg": "JPEG", ".png": "PNG", ".webp": "WEBP"}
    image.save(path, image_format.get(path.suffix.lower(), "PNG"))
    return path


@pytest.fixture
def make_image() -> ImageFactory:
    """Write a solid-color image, 300x380 unless a size is given."""
    return _write_image


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A site with the same image in content/, content/gallery/ and static/."""
    _write_image(tmp_path / "content" / "gutenberg.jpg")
    _write_image(tmp_path / "content" / "gallery" / "asset.jpg")
    _write_image(tmp_path / "static" / "gutenberg.jpg")
    return tmp_path


@pytest.fixture
def processor(site_dir: Path) -> Processor:
    return Processor(site_dir, base_url="http://a-website.com")


@pytest.fixture
def app_logger() -> Iterator[logging.Logger]:
    """The package logger, restored after the test."""
    logger = logging.getLogger("siteimages")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
