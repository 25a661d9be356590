"""Filesystem helpers for resolving group references inside a project."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from favtree.store.models import Group

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DirectoryEntry:
    """A single child of a listed directory."""

    name: str
    path: Path
    is_dir: bool


def relative_to_root(root: Path, path: Path) -> str:
    """Return ``path`` relative to ``root`` using forward slashes.

    Args:
        root: Project root.
        path: Absolute or root-relative path.

    Returns:
        str: Relative path suitable for storing in a group.
    """
    candidate = path if path.is_absolute() else root / path
    relative = os.path.relpath(candidate, root)
    return relative.replace("\\", "/")


def resolve_in_root(root: Path, relative_path: str) -> Path:
    """Return the absolute path of a stored relative path."""
    return root / Path(relative_path)


def list_directory(path: Path) -> list[DirectoryEntry]:
    """Return the entries of ``path`` sorted by name; unreadable folders yield nothing."""
    try:
        children = sorted(path.iterdir(), key=lambda child: child.name.casefold())
    except OSError as exc:
        LOGGER.error("Error reading folder %s: %s", path, exc)
        return []
    return [
        DirectoryEntry(name=child.name, path=child, is_dir=child.is_dir()) for child in children
    ]


def collect_group_files(group: "Group", root: Path) -> list[Path]:
    """Return every file a bulk open of ``group`` would consider.

    Direct file references come first, then the files directly inside each
    referenced folder (nested directories are not entered), then the same
    collection for every subgroup in turn.
    """
    files = [resolve_in_root(root, file.relative_path) for file in group.files]
    for folder in group.folders:
        entries = list_directory(resolve_in_root(root, folder.relative_path))
        files.extend(entry.path for entry in entries if not entry.is_dir)
    for subgroup in group.subgroups:
        files.extend(collect_group_files(subgroup, root))
    return files


__all__ = [
    "DirectoryEntry",
    "relative_to_root",
    "resolve_in_root",
    "list_directory",
    "collect_group_files",
]
