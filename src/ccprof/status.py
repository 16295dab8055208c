"""Classification of a live component path.

The link check must come before any existence check: Path.exists() follows
symlinks, so a dangling link would otherwise look missing and a link to a
directory would look like a real directory.
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ccprof.paths import Paths


class StatusKind(Enum):
    MISSING = "missing"
    REGULAR_FILE = "regular file"
    REGULAR_DIRECTORY = "directory"
    SYMLINK = "symlink"
    BROKEN_SYMLINK = "broken symlink"


@dataclass(frozen=True)
class ComponentStatus:
    """State of a live path.

    Attributes:
        kind: Classification of the path
        target: Absolute link target for SYMLINK/BROKEN_SYMLINK, else None
    """

    kind: StatusKind
    target: Path | None = None

    @property
    def is_link(self) -> bool:
        return self.kind in (StatusKind.SYMLINK, StatusKind.BROKEN_SYMLINK)

    def describe(self) -> str:
        if self.is_link:
            return f"{self.kind.value} -> {self.target}"
        return self.kind.value


def detect_status(path: Path) -> ComponentStatus:
    """Classify path without following it if it is a link."""
    try:
        raw_target = os.readlink(path)
    except (FileNotFoundError, NotADirectoryError):
        return ComponentStatus(StatusKind.MISSING)
    except OSError:
        # EINVAL: exists but is not a symlink
        raw_target = None

    if raw_target is not None:
        target = Path(raw_target)
        if not target.is_absolute():
            target = Path(path).parent / target
        target = Path(os.path.normpath(target))
        if Path(path).exists():
            return ComponentStatus(StatusKind.SYMLINK, target)
        return ComponentStatus(StatusKind.BROKEN_SYMLINK, target)

    if Path(path).is_dir():
        return ComponentStatus(StatusKind.REGULAR_DIRECTORY)
    if Path(path).exists():
        return ComponentStatus(StatusKind.REGULAR_FILE)
    return ComponentStatus(StatusKind.MISSING)


def is_profile_symlink(status: ComponentStatus, paths: Paths) -> bool:
    """True if status is a live link whose target resolves into profile storage."""
    return (
        status.kind == StatusKind.SYMLINK
        and status.target is not None
        and paths.is_in_profiles_dir(status.target)
    )


def needs_backup(status: ComponentStatus, paths: Paths) -> bool:
    """Decide whether replacing this live path would lose user data.

    Missing paths and dangling links hold nothing worth keeping. Real files
    and directories always do. A live link is archived only when it points
    outside managed storage, since repointing a storage link leaves the
    stored copy untouched.
    """
    if status.kind in (StatusKind.MISSING, StatusKind.BROKEN_SYMLINK):
        return False
    if status.kind in (StatusKind.REGULAR_FILE, StatusKind.REGULAR_DIRECTORY):
        return True
    return not is_profile_symlink(status, paths)


def linked_profile_name(status: ComponentStatus, paths: Paths) -> str | None:
    """Name of the profile a storage link points into, if any."""
    if not is_profile_symlink(status, paths) or status.target is None:
        return None
    for root in (paths.profiles_dir, paths.profiles_dir.resolve()):
        for candidate in (status.target, status.target.resolve()):
            try:
                relative = candidate.relative_to(root)
            except ValueError:
                continue
            if relative.parts:
                return relative.parts[0]
    return None


__all__ = [
    "ComponentStatus",
    "StatusKind",
    "detect_status",
    "is_profile_symlink",
    "linked_profile_name",
    "needs_backup",
]
