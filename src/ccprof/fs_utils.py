"""Filesystem primitives shared by the profile store, backups and switcher."""

import json
import logging
import os
import shutil
from pathlib import Path

from ccprof.errors import InvalidInputError, IoFailureError, NotFoundError

logger = logging.getLogger(__name__)


def copy_tree(src: Path, dst: Path) -> None:
    """Recursively copy a directory.

    Symlinks inside the tree are copied as links. File contents are copied
    without preserving timestamps so the copy is stamped with the time it
    was made.

    Raises:
        NotFoundError: If src is not a directory
        IoFailureError: If any copy step fails
    """
    if not src.is_dir():
        raise NotFoundError(f"Source directory does not exist: {src}")
    try:
        shutil.copytree(src, dst, symlinks=True, copy_function=shutil.copy)
    except (OSError, shutil.Error) as e:
        raise IoFailureError(f"Failed to copy {src} -> {dst}: {e}") from e


def copy_component(src: Path, dst: Path) -> None:
    """Copy a file or a directory tree from src to dst."""
    if src.is_dir():
        copy_tree(src, dst)
        return
    if not src.exists():
        raise NotFoundError(f"Source does not exist: {src}")
    try:
        shutil.copy(src, dst)
    except OSError as e:
        raise IoFailureError(f"Failed to copy {src} -> {dst}: {e}") from e


def tree_size(path: Path) -> int:
    """Total size in bytes of a file or directory tree. Links are not followed."""
    if path.is_symlink():
        return 0
    if path.is_file():
        return path.stat().st_size

    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            file_path = Path(root) / name
            if not file_path.is_symlink():
                total += file_path.stat().st_size
    return total


def format_size(num_bytes: int) -> str:
    units = ["B", "KB", "MB", "GB"]
    size = float(num_bytes)
    for unit in units:
        if size < 1024 or unit == units[-1]:
            if unit == "B":
                return f"{int(size)} B"
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"


def remove_path(path: Path) -> None:
    """Remove whatever occupies path.

    A symlink (to anything, or dangling) is unlinked without touching its
    target; a real directory is removed recursively; anything else is
    unlinked. A missing path is a no-op.
    """
    try:
        if path.is_symlink():
            path.unlink()
        elif path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()
        else:
            return
    except OSError as e:
        raise IoFailureError(f"Failed to remove {path}: {e}") from e
    logger.debug(f"Removed: {path}")


def make_symlink(target: Path, link: Path) -> None:
    """Create link -> target, creating parent directories as needed."""
    try:
        link.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(target, link, target_is_directory=target.is_dir())
    except OSError as e:
        raise IoFailureError(f"Failed to create symlink from {link} to {target}: {e}") from e
    logger.debug(f"Linked {link} -> {target}")


def validate_json_file(path: Path) -> None:
    """Raise InvalidInputError if path does not contain valid JSON."""
    try:
        json.loads(path.read_text())
    except ValueError as e:
        raise InvalidInputError(f"Invalid JSON in file: {path}: {e}") from e
    except OSError as e:
        raise IoFailureError(f"Failed to read file: {path}: {e}") from e


__all__ = [
    "copy_component",
    "copy_tree",
    "format_size",
    "make_symlink",
    "remove_path",
    "tree_size",
    "validate_json_file",
]
