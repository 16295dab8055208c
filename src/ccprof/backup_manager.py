"""Backup and rotation of live components.

Before ccprof replaces a live component that is not already a storage link,
it archives it into ~/.claude-profiles/backups/ as

    <prefix>.<YYYYMMDD_HHMMSS>.bak

where prefix is the component's backup prefix (settings.json, agents, ...).
A file component is archived as a file, a directory component as a full
directory copy. After each backup the entries for that component are
rotated: only the newest max_backups (by modification time) are kept.

Rotation failures are logged and never undo the backup just taken.
"""

import logging
import os
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from ccprof.components import Component
from ccprof.errors import InvalidInputError, IoFailureError, NotFoundError
from ccprof.fs_utils import copy_component, remove_path, tree_size
from ccprof.paths import Paths

logger = logging.getLogger(__name__)

DEFAULT_MAX_BACKUPS = 10
BACKUP_SUFFIX = ".bak"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
_COLLISION_PATTERN = re.compile(r"^(?P<base>.+?)(?:-(?P<counter>\d+))?\.bak$")


@dataclass
class BackupInfo:
    """One entry in the backups directory.

    Attributes:
        id: File name of the entry (used to restore it)
        component: Component the entry belongs to
        path: Full path of the entry
        modified: Modification time of the entry
        size: Size in bytes (whole tree for directories)
    """

    id: str
    component: Component
    path: Path
    modified: datetime
    size: int


def component_for_backup(name: str) -> Component | None:
    """Identify which component a backup entry name belongs to."""
    if not name.endswith(BACKUP_SUFFIX):
        return None
    for component in Component.all():
        if name.startswith(component.backup_prefix + "."):
            return component
    return None


class BackupManager:
    """Create, rotate, list and restore component backups."""

    def __init__(self, paths: Paths, max_backups: int = DEFAULT_MAX_BACKUPS):
        if max_backups < 1:
            raise InvalidInputError(f"max_backups must be at least 1 (got {max_backups})")
        self.paths = paths
        self.backups_dir = paths.backups_dir
        self.max_backups = max_backups

    def _backup_path(self, component: Component) -> Path:
        timestamp = datetime.now(UTC).strftime(TIMESTAMP_FORMAT)
        base = f"{component.backup_prefix}.{timestamp}"
        candidate = self.backups_dir / f"{base}{BACKUP_SUFFIX}"
        counter = 1
        # Same-second backups get a numeric suffix instead of overwriting
        while candidate.exists() or candidate.is_symlink():
            candidate = self.backups_dir / f"{base}-{counter}{BACKUP_SUFFIX}"
            counter += 1
        return candidate

    def backup(self, component: Component, live_path: Path) -> Path:
        """Archive live_path as a new backup entry for component.

        The live path is never modified. A partially written entry is
        removed before the error propagates.

        Returns:
            Path of the new backup entry

        Raises:
            NotFoundError: If live_path does not exist
            IoFailureError: If the copy fails
        """
        if not live_path.exists():
            raise NotFoundError(f"Nothing to back up: {live_path} does not exist")

        try:
            self.backups_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IoFailureError(
                f"Failed to create backups directory {self.backups_dir}: {e}"
            ) from e

        backup_path = self._backup_path(component)
        try:
            copy_component(live_path, backup_path)
            # Stamp the entry with backup time; rotation orders by mtime
            os.utime(backup_path)
        except (IoFailureError, OSError) as e:
            if backup_path.exists() or backup_path.is_symlink():
                try:
                    remove_path(backup_path)
                except IoFailureError as cleanup_error:
                    logger.warning(f"Could not remove partial backup: {cleanup_error}")
            if isinstance(e, IoFailureError):
                raise
            raise IoFailureError(f"Failed to back up {live_path}: {e}") from e

        logger.info(f"Backed up {live_path} to {backup_path}")

        try:
            self.rotate(component)
        except (IoFailureError, OSError) as e:
            logger.warning(f"Backup rotation for {component.short_name} failed: {e}")

        return backup_path

    def _entries_for(self, component: Component) -> list[Path]:
        if not self.backups_dir.is_dir():
            return []
        return [
            entry
            for entry in self.backups_dir.iterdir()
            if component_for_backup(entry.name) is component
        ]

    @staticmethod
    def _sort_key(entry: Path) -> tuple[int, str, int]:
        """Order by mtime, then backup timestamp, then same-second counter."""
        match = _COLLISION_PATTERN.match(entry.name)
        if match is None:
            return (entry.lstat().st_mtime_ns, entry.name, 0)
        counter = int(match.group("counter")) if match.group("counter") else 0
        return (entry.lstat().st_mtime_ns, match.group("base"), counter)

    def rotate(self, component: Component, keep: int | None = None) -> list[Path]:
        """Delete the oldest backups of component beyond keep (default max_backups).

        Returns:
            Paths that were removed
        """
        keep = self.max_backups if keep is None else keep
        if keep < 0:
            raise InvalidInputError(f"keep must not be negative (got {keep})")

        entries = sorted(self._entries_for(component), key=self._sort_key)
        excess = len(entries) - keep
        if excess <= 0:
            return []

        removed = []
        for entry in entries[:excess]:
            remove_path(entry)
            removed.append(entry)
            logger.debug(f"Rotated out old backup: {entry.name}")
        return removed

    def clean(self, keep: int) -> list[Path]:
        """Keep only the newest keep backups of every component."""
        removed: list[Path] = []
        for component in Component.all():
            removed.extend(self.rotate(component, keep=keep))
        if removed:
            logger.info(f"Removed {len(removed)} old backup(s), keeping {keep} per component")
        return removed

    def list_backups(self) -> list[BackupInfo]:
        """List all recognizable backup entries, newest first."""
        if not self.backups_dir.is_dir():
            return []

        backups = []
        for entry in self.backups_dir.iterdir():
            component = component_for_backup(entry.name)
            if component is None:
                continue
            try:
                stat = entry.lstat()
                size = tree_size(entry)
            except OSError as e:
                logger.warning(f"Skipping unreadable backup {entry}: {e}")
                continue
            backups.append(
                BackupInfo(
                    id=entry.name,
                    component=component,
                    path=entry,
                    modified=datetime.fromtimestamp(stat.st_mtime, UTC),
                    size=size,
                )
            )

        backups.sort(key=lambda b: (b.modified, b.id), reverse=True)
        return backups

    def get_backup(self, backup_id: str) -> BackupInfo:
        """Find a backup by id.

        Raises:
            InvalidInputError: If backup_id is not a plain backup file name
            NotFoundError: If no such backup exists
        """
        if not backup_id or "/" in backup_id or backup_id in (".", ".."):
            raise InvalidInputError(f"Invalid backup id: '{backup_id}'")

        component = component_for_backup(backup_id)
        path = self.backups_dir / backup_id
        if not (path.exists() or path.is_symlink()):
            raise NotFoundError(
                f"Backup '{backup_id}' not found.",
                hint="Use 'ccprof backup list' to see available backups.",
            )
        if component is None:
            raise InvalidInputError(
                f"Cannot determine component type from backup name: {backup_id}",
                hint=(
                    "Backup names start with 'settings.json.', 'agents.', "
                    "'hooks.' or 'commands.'."
                ),
            )

        stat = path.lstat()
        return BackupInfo(
            id=backup_id,
            component=component,
            path=path,
            modified=datetime.fromtimestamp(stat.st_mtime, UTC),
            size=tree_size(path),
        )

    def restore(self, backup_id: str) -> Path:
        """Copy a backup entry back over its component's live path.

        Whatever currently occupies the live path is removed first without
        taking a new backup, so restoring never creates backup chains.

        Returns:
            The live path that was restored
        """
        info = self.get_backup(backup_id)
        target = info.component.live_path(self.paths)

        remove_path(target)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IoFailureError(f"Failed to create {target.parent}: {e}") from e
        copy_component(info.path, target)

        logger.info(f"Restored '{backup_id}' to {target}")
        return target


__all__ = [
    "BACKUP_SUFFIX",
    "DEFAULT_MAX_BACKUPS",
    "BackupInfo",
    "BackupManager",
    "component_for_backup",
]
