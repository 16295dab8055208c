"""
Test utilities for ccprof tests.

This module provides helper functions that populate and inspect the live
~/.claude tree of an isolated home directory.
"""

import json
import os
from pathlib import Path

from ccprof.paths import Paths


def write_settings(paths: Paths, data: dict | None = None) -> Path:
    """Write ~/.claude/settings.json, replacing a link if one is there."""
    target = paths.claude_settings
    if target.is_symlink():
        target.unlink()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(data if data is not None else {"model": "sonnet"}))
    return target


def write_component_dir(paths: Paths, name: str, files: dict[str, str]) -> Path:
    """Create ~/.claude/<name>/ holding the given files."""
    directory = paths.claude_dir / name
    directory.mkdir(parents=True, exist_ok=True)
    for file_name, content in files.items():
        (directory / file_name).write_text(content)
    return directory


def read_json(path: Path) -> dict:
    return json.loads(path.read_text())


def set_mtime(path: Path, seconds: float) -> None:
    """Set a path's mtime without following a link."""
    os.utime(path, (seconds, seconds), follow_symlinks=False)


def backup_names(paths: Paths, prefix: str) -> list[str]:
    """Names of backup entries for one component prefix, sorted."""
    if not paths.backups_dir.is_dir():
        return []
    return sorted(
        entry.name
        for entry in paths.backups_dir.iterdir()
        if entry.name.startswith(prefix + ".") and entry.name.endswith(".bak")
    )
