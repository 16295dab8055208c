"""Profile activation.

This module implements the core mechanism of ccprof: making the live
~/.claude paths resolve to a profile's stored components. For each managed
component:

1. Detect what currently occupies the live path (without following links)
2. Back it up if replacing it would lose user data
3. Remove it (unlink a link, rmtree a directory, unlink a file)
4. Symlink the live path to the profile's stored copy

Only after every component is switched is the state ledger updated.

Preconditions are checked before any mutation: the profile exists, its
manifest parses, and every managed copy is on disk. The per-component loop
is not transactional: if a later component fails, earlier ones stay
switched (each was backed up first) and the error says which component
failed. Re-running activation after fixing the problem converges.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ccprof.backup_manager import BackupManager
from ccprof.components import Component, sorted_components
from ccprof.errors import CcprofError, NotFoundError, PartialActivationError
from ccprof.fs_utils import make_symlink, remove_path
from ccprof.paths import Paths
from ccprof.state_manager import StateManager
from ccprof.status import detect_status, needs_backup

if TYPE_CHECKING:
    from ccprof.profile_manager import ProfileManager

logger = logging.getLogger(__name__)


@dataclass
class ActivationResult:
    """Outcome of a successful activation.

    Attributes:
        profile: Activated profile name
        switched: Components now linked into the profile
        backups: Backup entries created along the way
    """

    profile: str
    switched: list[Component] = field(default_factory=list)
    backups: list[Path] = field(default_factory=list)


def link_component(
    paths: Paths,
    backup_manager: BackupManager,
    component: Component,
    profile_name: str,
) -> Path | None:
    """Point a component's live path at a profile's stored copy.

    Returns:
        Path of the backup taken, or None if none was needed

    Raises:
        IoFailureError: If backup, removal or link creation fails. A failed
            backup leaves the live path untouched.
    """
    live_path = component.live_path(paths)
    storage_path = component.storage_path(paths, profile_name)

    status = detect_status(live_path)
    logger.debug(f"{component.short_name}: {live_path} is {status.describe()}")

    backup_path = None
    if needs_backup(status, paths):
        backup_path = backup_manager.backup(component, live_path)

    remove_path(live_path)
    make_symlink(storage_path, live_path)
    return backup_path


class ProfileSwitcher:
    """Activate profiles.

    Examples:
        >>> switcher = ProfileSwitcher(paths, profile_manager, backup_manager, state_manager)
        >>> result = switcher.activate("work")
        >>> [c.short_name for c in result.switched]
        ['settings', 'agents']
    """

    def __init__(
        self,
        paths: Paths,
        profile_manager: "ProfileManager",
        backup_manager: BackupManager,
        state_manager: StateManager,
    ):
        self.paths = paths
        self.profile_manager = profile_manager
        self.backup_manager = backup_manager
        self.state_manager = state_manager

    def activate(self, name: str) -> ActivationResult:
        """Switch the live configuration to profile name.

        Raises:
            InvalidInputError: If name is not a valid profile name
            NotFoundError: If the profile does not exist
            CorruptedError: If the manifest or a managed copy is bad (nothing changed)
            PartialActivationError: If a component failed after others were switched
            IoFailureError: If the first component or the state update fails
        """
        if not self.profile_manager.profile_exists(name):
            raise NotFoundError(
                f"Profile '{name}' does not exist.",
                hint="Use 'ccprof list' to see available profiles.",
            )

        metadata = self.profile_manager.verify_profile(name)
        self.paths.ensure_dirs()

        result = ActivationResult(profile=name)
        for component in sorted_components(metadata.managed_components):
            try:
                backup_path = link_component(
                    self.paths, self.backup_manager, component, name
                )
            except CcprofError as e:
                if not result.switched:
                    raise
                raise PartialActivationError(
                    profile=name,
                    component=component.short_name,
                    switched=[c.short_name for c in result.switched],
                    reason=e.message,
                ) from e

            result.switched.append(component)
            if backup_path is not None:
                result.backups.append(backup_path)

        self.state_manager.set_active(name)
        logger.info(f"Active profile: {name}")
        return result


__all__ = ["ActivationResult", "ProfileSwitcher", "link_component"]
