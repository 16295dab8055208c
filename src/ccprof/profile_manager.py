"""Profile store.

This module provides CRUD operations for profiles stored under
~/.claude-profiles/profiles/<name>/. A profile directory holds a copy of
each component it manages plus a metadata.json manifest.

Profile Layout:
    profiles/<name>/
        metadata.json     # version, timestamps, managed_components, migration?
        settings.json     # present iff settings is managed
        agents/ hooks/ commands/

Profiles created before manifests existed contain only settings.json. They
are recognized by that marker file and silently upgraded: a manifest is
synthesized and persisted the first time they are listed or read.

Security:
- Profile name validation (alphanumeric + dash/underscore only)
- Path traversal prevention
- Invariant: every managed component has a stored copy on disk
"""

import logging
import re
import shutil
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from ccprof.backup_manager import BackupManager
from ccprof.components import (
    METADATA_FILE,
    Component,
    ProfileMetadata,
    sorted_components,
)
from ccprof.errors import (
    AlreadyExistsError,
    CorruptedError,
    InvalidInputError,
    IoFailureError,
    NotFoundError,
    ProfileActiveError,
)
from ccprof.fs_utils import copy_component, remove_path, tree_size, validate_json_file
from ccprof.paths import Paths
from ccprof.state_manager import State, StateManager
from ccprof.status import StatusKind, detect_status
from ccprof.switcher import link_component

logger = logging.getLogger(__name__)

PROFILE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")
LEGACY_MARKER = Component.SETTINGS


def validate_profile_name(name: str) -> None:
    """Validate profile name for security.

    Profile names must be:
    - 1-64 characters
    - ASCII alphanumeric, dash, or underscore only
    - Not starting with a dash (or dot, which is excluded anyway)

    Raises:
        InvalidInputError: If name is invalid
    """
    if not name or not name.strip():
        raise InvalidInputError("Profile name cannot be empty")

    if len(name) > 64:
        raise InvalidInputError(f"Profile name too long: {len(name)} characters (max 64)")

    if not PROFILE_NAME_PATTERN.match(name):
        raise InvalidInputError(
            f"Invalid profile name '{name}'.",
            hint=(
                "Only alphanumeric characters, hyphens (-), and underscores (_) are "
                "allowed, and the name must start with a letter or digit."
            ),
        )


@dataclass
class ProfileInfo:
    """Profile summary used by list and inspect.

    Attributes:
        name: Profile name
        metadata: Parsed manifest (None if it could not be read)
        active: Whether the state ledger marks this profile active
        error: Why the manifest could not be read, if it could not
    """

    name: str
    metadata: ProfileMetadata | None
    active: bool = False
    error: str | None = None

    @property
    def components(self) -> list[Component]:
        if self.metadata is None:
            return []
        return sorted_components(self.metadata.managed_components)

    @property
    def migrated(self) -> bool:
        return self.metadata is not None and self.metadata.migration is not None


@dataclass
class ComponentInfo:
    """A managed component's stored copy."""

    component: Component
    path: Path
    exists: bool
    size: int | None


class ProfileManager:
    """Manage profiles on disk.

    Examples:
        >>> manager = ProfileManager(Paths.default(), StateManager(paths.state_file))
        >>> manager.create_profile("work", {Component.SETTINGS})
        >>> [p.name for p in manager.list_profiles()]
        ['work']
    """

    def __init__(
        self,
        paths: Paths,
        state_manager: StateManager,
        backup_manager: BackupManager | None = None,
    ):
        self.paths = paths
        self.state_manager = state_manager
        self.backup_manager = backup_manager or BackupManager(paths)

    def profile_dir(self, name: str) -> Path:
        validate_profile_name(name)
        return self.paths.profile_dir(name)

    def profile_exists(self, name: str) -> bool:
        return self.profile_dir(name).is_dir()

    def _require_profile(self, name: str) -> Path:
        profile_dir = self.profile_dir(name)
        if not profile_dir.is_dir():
            raise NotFoundError(
                f"Profile '{name}' does not exist.",
                hint="Use 'ccprof list' to see available profiles.",
            )
        return profile_dir

    def _is_legacy(self, profile_dir: Path) -> bool:
        marker = profile_dir / LEGACY_MARKER.spec.entry_name
        return not (profile_dir / METADATA_FILE).exists() and marker.exists()

    def _upgrade_legacy(self, name: str, profile_dir: Path) -> ProfileMetadata:
        """Synthesize and persist a manifest for a pre-manifest profile."""
        marker = profile_dir / LEGACY_MARKER.spec.entry_name
        created_at = datetime.fromtimestamp(marker.stat().st_mtime, UTC)
        metadata = ProfileMetadata.legacy(created_at=created_at)
        metadata.write(profile_dir)
        logger.warning(f"Migrated legacy profile '{name}' (manifest created)")
        return metadata

    def read_metadata(self, name: str) -> ProfileMetadata:
        """Read a profile's manifest, upgrading legacy profiles on the spot.

        Raises:
            NotFoundError: If the profile does not exist
            CorruptedError: If the manifest is missing or unreadable
        """
        profile_dir = self._require_profile(name)
        metadata = ProfileMetadata.read(profile_dir)
        if metadata is not None:
            return metadata
        if self._is_legacy(profile_dir):
            return self._upgrade_legacy(name, profile_dir)
        raise CorruptedError(
            f"Profile '{name}' has no manifest and no settings.json.",
            hint="Run 'ccprof doctor' for details.",
        )

    def missing_components(self, name: str, metadata: ProfileMetadata) -> list[Component]:
        """Managed components whose stored copy is missing on disk."""
        return [
            component
            for component in sorted_components(metadata.managed_components)
            if not component.storage_path(self.paths, name).exists()
        ]

    def verify_profile(self, name: str) -> ProfileMetadata:
        """Read a profile's manifest and check every managed copy exists.

        Raises:
            NotFoundError: If the profile does not exist
            CorruptedError: If the manifest is bad or a managed copy is missing
        """
        metadata = self.read_metadata(name)
        if not metadata.managed_components:
            raise CorruptedError(
                f"Profile '{name}' manages no components.",
                hint="Run 'ccprof doctor' for details.",
            )
        missing = self.missing_components(name, metadata)
        if missing:
            names = ", ".join(c.short_name for c in missing)
            raise CorruptedError(
                f"Profile '{name}' is corrupted: missing component(s): {names}",
                hint="Run 'ccprof doctor' for details.",
            )
        return metadata

    def list_profiles(self) -> list[ProfileInfo]:
        """List profiles, sorted by name.

        A directory counts as a profile if it has a manifest or the legacy
        settings.json marker; legacy profiles are upgraded as they are found.
        """
        if not self.paths.profiles_dir.is_dir():
            return []

        active = self.state_manager.active_profile()
        profiles = []

        for profile_dir in sorted(self.paths.profiles_dir.iterdir()):
            name = profile_dir.name
            if not profile_dir.is_dir() or not PROFILE_NAME_PATTERN.match(name):
                continue

            try:
                metadata = ProfileMetadata.read(profile_dir)
                if metadata is None:
                    if not self._is_legacy(profile_dir):
                        logger.debug(f"Skipping non-profile directory: {profile_dir}")
                        continue
                    metadata = self._upgrade_legacy(name, profile_dir)
            except (CorruptedError, IoFailureError) as e:
                logger.warning(f"Failed to load profile '{name}': {e.message}")
                profiles.append(
                    ProfileInfo(name=name, metadata=None, active=name == active, error=e.message)
                )
                continue

            profiles.append(ProfileInfo(name=name, metadata=metadata, active=name == active))

        return profiles

    def get_profile(self, name: str) -> ProfileInfo:
        metadata = self.read_metadata(name)
        return ProfileInfo(
            name=name,
            metadata=metadata,
            active=self.state_manager.active_profile() == name,
        )

    def component_details(self, name: str) -> list[ComponentInfo]:
        metadata = self.read_metadata(name)
        details = []
        for component in sorted_components(metadata.managed_components):
            path = component.storage_path(self.paths, name)
            exists = path.exists()
            details.append(
                ComponentInfo(
                    component=component,
                    path=path,
                    exists=exists,
                    size=tree_size(path) if exists else None,
                )
            )
        return details

    def _check_sources(self, components: set[Component]) -> None:
        missing = [
            c for c in sorted_components(components) if not c.live_path(self.paths).exists()
        ]
        if missing:
            names = ", ".join(f"{c.short_name} ({c.live_path(self.paths)})" for c in missing)
            raise NotFoundError(
                f"Selected component(s) not found: {names}",
                hint="Deselect them, or create them under ~/.claude first.",
            )
        if Component.SETTINGS in components:
            validate_json_file(Component.SETTINGS.live_path(self.paths))

    def _copy_in(self, name: str, component: Component) -> None:
        source = component.live_path(self.paths)
        target = component.storage_path(self.paths, name)
        copy_component(source, target)
        if component is Component.SETTINGS:
            validate_json_file(target)
        logger.debug(f"Copied {source} into profile '{name}'")

    def create_profile(self, name: str, components: set[Component]) -> ProfileMetadata:
        """Create a profile from the current live components.

        Args:
            name: Profile name
            components: Components the profile manages (non-empty)

        Raises:
            InvalidInputError: If name or selection is invalid, or settings.json is not JSON
            AlreadyExistsError: If the profile exists
            NotFoundError: If a selected component is absent under ~/.claude
        """
        validate_profile_name(name)
        if not components:
            raise InvalidInputError(
                "At least one component must be selected.",
                hint="Valid components are settings, agents, hooks, commands.",
            )

        profile_dir = self.paths.profile_dir(name)
        if profile_dir.exists():
            raise AlreadyExistsError(
                f"Profile '{name}' already exists.",
                hint=f"Use 'ccprof edit {name}' to modify it, or choose a different name.",
            )

        self._check_sources(components)

        try:
            self.paths.ensure_dirs()
            profile_dir.mkdir()
        except OSError as e:
            raise IoFailureError(f"Failed to create profile directory {profile_dir}: {e}") from e

        try:
            for component in sorted_components(components):
                self._copy_in(name, component)
            metadata = ProfileMetadata(managed_components=set(components))
            metadata.write(profile_dir)
        except Exception:
            # Clean up on error
            shutil.rmtree(profile_dir, ignore_errors=True)
            raise

        logger.info(f"Created profile '{name}' at: {profile_dir}")
        return metadata

    def update_components(self, name: str, new_components: set[Component]) -> ProfileMetadata:
        """Change which components a profile manages.

        Added components are copied in from the live paths (they must
        exist); removed components have their stored copy deleted. When the
        profile is active, added components are linked right away, and a
        removed component's live link is replaced with a plain copy of the
        stored content so the live configuration keeps working.

        Raises:
            InvalidInputError: If new_components is empty
            NotFoundError: If the profile or an added live component is absent
        """
        if not new_components:
            raise InvalidInputError(
                "At least one component must be selected.",
                hint="Use 'ccprof remove' to delete the whole profile.",
            )

        profile_dir = self._require_profile(name)
        metadata = self.read_metadata(name)
        added = set(new_components) - metadata.managed_components
        removed = metadata.managed_components - set(new_components)

        if not added and not removed:
            logger.debug(f"Profile '{name}' components unchanged")
            return metadata

        self._check_sources(added)
        is_active = self.state_manager.active_profile() == name

        try:
            for component in sorted_components(added):
                self._copy_in(name, component)
                logger.info(f"Profile '{name}' now manages {component.short_name}")
        except Exception:
            # Clean up partial additions
            for component in added:
                remove_path(component.storage_path(self.paths, name))
            raise

        for component in sorted_components(removed):
            storage = component.storage_path(self.paths, name)
            if is_active:
                self._detach_live(name, component)
            remove_path(storage)
            logger.info(f"Profile '{name}' no longer manages {component.short_name}")

        metadata.managed_components = set(new_components)
        metadata.updated_at = datetime.now(UTC)
        metadata.write(profile_dir)

        if is_active:
            for component in sorted_components(added):
                link_component(self.paths, self.backup_manager, component, name)

        return metadata

    def _detach_live(self, name: str, component: Component) -> None:
        """Replace a live link into this profile's storage with a real copy."""
        live = component.live_path(self.paths)
        storage = component.storage_path(self.paths, name)
        status = detect_status(live)
        if status.kind != StatusKind.SYMLINK or status.target is None:
            return
        if status.target.resolve() != storage.resolve():
            return
        remove_path(live)
        copy_component(storage, live)
        logger.info(f"Replaced live {component.short_name} link with a copy of '{name}'")

    def remove_profile(self, name: str) -> None:
        """Delete a profile directory.

        Raises:
            NotFoundError: If the profile does not exist
            ProfileActiveError: If the profile is currently active
        """
        profile_dir = self._require_profile(name)

        if self.state_manager.active_profile() == name:
            raise ProfileActiveError(
                f"Cannot remove '{name}' because it is the currently active profile.",
                hint="Switch to another profile first with 'ccprof use <other-profile>'.",
            )

        try:
            shutil.rmtree(profile_dir)
        except OSError as e:
            raise IoFailureError(f"Failed to remove profile directory {profile_dir}: {e}") from e
        logger.info(f"Removed profile '{name}'")

    def rename_profile(self, old_name: str, new_name: str) -> bool:
        """Rename a profile.

        If the profile is active, the state ledger is updated and every
        live link into the old storage location is repointed.

        Returns:
            True if the renamed profile was active (links updated)

        Raises:
            NotFoundError: If old_name does not exist
            AlreadyExistsError: If new_name exists
        """
        old_dir = self._require_profile(old_name)
        new_dir = self.profile_dir(new_name)
        if new_dir.exists():
            raise AlreadyExistsError(
                f"Profile '{new_name}' already exists.",
                hint="Choose a different name or remove the existing profile first.",
            )

        is_active = self.state_manager.active_profile() == old_name

        try:
            old_dir.rename(new_dir)
        except OSError as e:
            raise IoFailureError(f"Failed to rename '{old_dir}' to '{new_dir}': {e}") from e
        logger.info(f"Renamed profile '{old_name}' to '{new_name}'")

        if not is_active:
            return False

        def _rename_active(state: State) -> None:
            if state.default_profile == old_name:
                state.default_profile = new_name

        self.state_manager.with_lock(_rename_active)

        metadata = self.read_metadata(new_name)
        for component in sorted_components(metadata.managed_components):
            status = detect_status(component.live_path(self.paths))
            if not status.is_link or status.target is None:
                continue
            if status.target == old_dir or old_dir in status.target.parents:
                link_component(self.paths, self.backup_manager, component, new_name)

        return True


__all__ = [
    "ComponentInfo",
    "ProfileInfo",
    "ProfileManager",
    "validate_profile_name",
]
