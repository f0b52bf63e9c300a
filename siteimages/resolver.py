"""Resolve logical image paths, as written in templates, to files on disk."""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath, PureWindowsPath

from siteimages.config import CONTENT_DIR, STATIC_DIR
from siteimages.errors import AbsolutePathError

CONTENT_SHORTHAND = "@/"


def is_absolute_logical_path(path: str) -> bool:
    """Return True for paths anchored at a root or drive."""
    if path.startswith(("/", os.sep)):
        return True
    return PurePosixPath(path).is_absolute() or bool(PureWindowsPath(path).anchor)


def candidate_paths(base_path: Path, path: str) -> list[Path]:
    """List the locations tried for ``path``, in priority order.

    Raises:
        AbsolutePathError: if ``path`` is absolute
    """
    if is_absolute_logical_path(path):
        raise AbsolutePathError(path)

    if path.startswith(CONTENT_SHORTHAND):
        return [base_path / CONTENT_DIR / path[len(CONTENT_SHORTHAND) :]]

    if path.startswith((f"{CONTENT_DIR}/", f"{STATIC_DIR}/")):
        return [base_path / path]

    return [
        base_path / CONTENT_DIR / path,
        base_path / STATIC_DIR / path,
        base_path / path,
    ]


def _within(candidate: Path, root: Path) -> bool:
    normalized = Path(os.path.normpath(candidate))
    return normalized == root or root in normalized.parents


def search_for_file(base_path: Path, path: str) -> Path | None:
    """Find the first existing file ``path`` refers to under ``base_path``.

    Args:
        base_path: Root directory of the site
        path: Logical path as authored in a template

    Returns:
        The resolved file, or None when no candidate exists

    Raises:
        AbsolutePathError: if ``path`` is absolute
    """
    root = Path(os.path.normpath(base_path.absolute()))
    for candidate in candidate_paths(root, path):
        if not _within(candidate, root):
            continue
        if candidate.is_file():
            return Path(os.path.normpath(candidate))
    return None


__all__ = ["candidate_paths", "is_absolute_logical_path", "search_for_file"]
