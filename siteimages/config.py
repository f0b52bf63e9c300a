"""Configuration management for siteimages."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

CONTENT_DIR = "content"
STATIC_DIR = "static"
PROCESSED_IMAGES_DIR = "processed_images"


class Config:
    """Image function configuration."""

    # Site
    SITE_ROOT: Path = Path(os.getenv("SITE_ROOT", "."))
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:1111").rstrip("/")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Processing
    DEFAULT_IMAGE_QUALITY: int = int(os.getenv("DEFAULT_IMAGE_QUALITY", "75"))

    @classmethod
    def processed_images_dir(cls, base_path: Path | None = None) -> Path:
        """Directory processed images are written to."""
        root = cls.SITE_ROOT if base_path is None else base_path
        return root / STATIC_DIR / PROCESSED_IMAGES_DIR


config = Config()
