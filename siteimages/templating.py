"""Jinja2 templating helpers.

Registers the image functions as template globals so pages can write
``{{ get_image_metadata(path="@/cover.jpg").width }}``.
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from siteimages.config import config
from siteimages.functions import GetImageMetadata, ResizeImage, processor_lock
from siteimages.logging_config import configure_logging
from siteimages.processor import ImageProcessor, Processor


def install_image_functions(
    env: Environment, base_path: Path, processor: ImageProcessor
) -> None:
    """Install image functions into Jinja2 environment.

    Args:
        env: Jinja2 environment
        base_path: Root directory of the site
        processor: Processor receiving resize operations
    """
    env.globals["resize_image"] = ResizeImage(base_path, processor)
    env.globals["get_image_metadata"] = GetImageMetadata(base_path)


def create_environment(
    base_path: Path | None = None, processor: ImageProcessor | None = None
) -> Environment:
    """Create a Jinja2 environment loading templates from ``<site>/templates``."""
    if base_path is None:
        base_path = config.SITE_ROOT
    if processor is None:
        processor = Processor(base_path)

    configure_logging()

    env = Environment(
        loader=FileSystemLoader(str(base_path / "templates")),
        autoescape=select_autoescape(["html", "xml"]),
    )
    install_image_functions(env, base_path, processor)
    return env


__all__ = ["create_environment", "install_image_functions", "processor_lock"]
