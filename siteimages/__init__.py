"""Image functions for site templates."""

from __future__ import annotations

from .dimensions import ImageDimensions, ImageFormat, image_dimensions
from .functions import GetImageMetadata, ResizeImage, ResizeImageArgs
from .processor import Processor
from .resolver import search_for_file
from .templating import create_environment, install_image_functions

__all__ = [
    "GetImageMetadata",
    "ImageDimensions",
    "ImageFormat",
    "Processor",
    "ResizeImage",
    "ResizeImageArgs",
    "create_environment",
    "image_dimensions",
    "install_image_functions",
    "search_for_file",
]
