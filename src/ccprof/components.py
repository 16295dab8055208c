"""Component registry and profile manifest.

A component is one unit of Claude Code configuration that a profile can
manage. The set is closed: each member has a fixed live path under ~/.claude
and a fixed storage path under ~/.claude-profiles/profiles/<name>/.

The manifest (metadata.json) records which components a profile manages,
plus timestamps, schema version and an optional legacy-migration stamp.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, NamedTuple

from ccprof import __version__
from ccprof.errors import CorruptedError, InvalidInputError, IoFailureError
from ccprof.paths import Paths

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
LEGACY_VERSION = "0.1.0"


class Component(Enum):
    """Types of components that can be managed by a profile."""

    SETTINGS = "settings"
    AGENTS = "agents"
    HOOKS = "hooks"
    COMMANDS = "commands"

    @classmethod
    def all(cls) -> list["Component"]:
        return list(cls)

    @property
    def spec(self) -> "ComponentSpec":
        return _COMPONENT_SPECS[self]

    @property
    def short_name(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        return self.spec.display_name

    @property
    def is_file(self) -> bool:
        return self.spec.is_file

    @property
    def backup_prefix(self) -> str:
        return self.spec.backup_prefix

    def live_path(self, paths: Paths) -> Path:
        """Location Claude Code reads this component from."""
        return paths.claude_dir / self.spec.entry_name

    def storage_path(self, paths: Paths, profile_name: str) -> Path:
        """Location of this component's copy inside a profile."""
        return paths.profile_dir(profile_name) / self.spec.entry_name

    @classmethod
    def parse(cls, value: str) -> "Component":
        """Parse a component name as typed by a user.

        Raises:
            InvalidInputError: If value names no known component
        """
        key = value.strip().lower()
        for component, spec in _COMPONENT_SPECS.items():
            if key in (component.value, spec.entry_name):
                return component
        valid = ", ".join(c.value for c in cls)
        raise InvalidInputError(
            f"Invalid component name: '{value}'", hint=f"Valid components are {valid}"
        )


class ComponentSpec(NamedTuple):
    display_name: str
    entry_name: str
    is_file: bool
    backup_prefix: str


_COMPONENT_SPECS: dict[Component, ComponentSpec] = {
    Component.SETTINGS: ComponentSpec("Settings", "settings.json", True, "settings.json"),
    Component.AGENTS: ComponentSpec("Agents", "agents", False, "agents"),
    Component.HOOKS: ComponentSpec("Hooks", "hooks", False, "hooks"),
    Component.COMMANDS: ComponentSpec("Commands", "commands", False, "commands"),
}


def parse_components(values: list[str]) -> set[Component]:
    """Parse a list of component names (comma-separated items allowed)."""
    selected: set[Component] = set()
    for value in values:
        for item in value.split(","):
            if item.strip():
                selected.add(Component.parse(item))
    return selected


def sorted_components(components: set[Component] | list[Component]) -> list[Component]:
    """Order components the way they are declared."""
    order = Component.all()
    return sorted(components, key=order.index)


def _now() -> datetime:
    return datetime.now(UTC)


def _parse_timestamp(value: str, field_name: str, path: Path) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise CorruptedError(
            f"Invalid {field_name} '{value}' in manifest: {path}",
            hint="Run 'ccprof doctor' for details.",
        ) from e


@dataclass
class MigrationInfo:
    """Stamp left on a manifest synthesized for a legacy profile."""

    original_version: str
    migration_date: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_version": self.original_version,
            "migration_date": self.migration_date.isoformat(),
        }


@dataclass
class ProfileMetadata:
    """Per-profile manifest stored in <profile>/metadata.json."""

    managed_components: set[Component]
    version: str = __version__
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    migration: MigrationInfo | None = None

    @classmethod
    def legacy(cls, created_at: datetime | None = None) -> "ProfileMetadata":
        """Manifest for a pre-manifest profile: only settings.json was managed."""
        now = _now()
        return cls(
            managed_components={Component.SETTINGS},
            created_at=created_at or now,
            updated_at=now,
            migration=MigrationInfo(original_version=LEGACY_VERSION, migration_date=now),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "managed_components": [c.value for c in sorted_components(self.managed_components)],
        }
        if self.migration is not None:
            data["migration"] = self.migration.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: Path) -> "ProfileMetadata":
        """Build a manifest from parsed JSON.

        Raises:
            CorruptedError: If required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise CorruptedError(f"Manifest is not a JSON object: {path}")

        raw_components = data.get("managed_components")
        if not isinstance(raw_components, list):
            raise CorruptedError(f"Manifest missing managed_components: {path}")

        try:
            components = {Component(value) for value in raw_components}
        except ValueError as e:
            raise CorruptedError(f"Unknown component in manifest {path}: {e}") from e

        migration = None
        raw_migration = data.get("migration")
        if raw_migration is not None and not isinstance(raw_migration, dict):
            raise CorruptedError(f"Manifest migration is not a JSON object: {path}")
        if raw_migration:
            migration = MigrationInfo(
                original_version=str(raw_migration.get("original_version", LEGACY_VERSION)),
                migration_date=_parse_timestamp(
                    raw_migration.get("migration_date"), "migration_date", path
                ),
            )

        return cls(
            managed_components=components,
            version=str(data.get("version", LEGACY_VERSION)),
            created_at=_parse_timestamp(data.get("created_at"), "created_at", path),
            updated_at=_parse_timestamp(data.get("updated_at"), "updated_at", path),
            migration=migration,
        )

    @classmethod
    def read(cls, profile_dir: Path) -> "ProfileMetadata | None":
        """Read a profile's manifest.

        Returns:
            ProfileMetadata, or None if the profile has no manifest yet

        Raises:
            CorruptedError: If the manifest exists but cannot be parsed
        """
        path = profile_dir / METADATA_FILE
        if not path.exists():
            return None

        try:
            data = json.loads(path.read_bytes().decode("utf-8"))
        except ValueError as e:
            raise CorruptedError(
                f"Failed to parse manifest: {path}: {e}",
                hint="Run 'ccprof doctor' for details.",
            ) from e
        except OSError as e:
            raise IoFailureError(f"Failed to read manifest: {path}: {e}") from e

        return cls.from_dict(data, path)

    def write(self, profile_dir: Path) -> None:
        """Write the manifest atomically (temp file + rename)."""
        path = profile_dir / METADATA_FILE
        temp_path = path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            temp_path.replace(path)
            logger.debug(f"Wrote manifest: {path}")
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise IoFailureError(f"Failed to write manifest: {path}: {e}") from e


__all__ = [
    "METADATA_FILE",
    "Component",
    "ComponentSpec",
    "MigrationInfo",
    "ProfileMetadata",
    "parse_components",
    "sorted_components",
]
