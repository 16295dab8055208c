"""Configuration management module.

This module handles persistent configuration storage using TOML format at
~/.claude-profiles/config.toml. A missing file means all defaults.

Example config.toml:
    # Backups kept per component kind
    max_backups = 10

    # Seconds to wait for the state lock (0 = wait forever)
    lock_timeout = 30.0

    editor = "code --wait"

Security:
- Config file permissions: 0600 (owner read/write only)
- Atomic file writes (temp file + rename)
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Fallback for older Python versions
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

try:
    import tomlkit
except ImportError as e:
    raise ImportError("tomlkit library not available. Install with: pip install tomlkit") from e

from ccprof.backup_manager import DEFAULT_MAX_BACKUPS
from ccprof.errors import InvalidInputError, IoFailureError

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 30.0


class ConfigError(InvalidInputError):
    """Raised when configuration is malformed or has invalid values."""


@dataclass
class CcprofConfig:
    """ccprof configuration data."""

    max_backups: int = DEFAULT_MAX_BACKUPS
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    editor: str | None = None

    def __post_init__(self):
        if isinstance(self.max_backups, bool) or not isinstance(self.max_backups, int):
            raise ConfigError(f"max_backups must be an integer (got {self.max_backups!r})")
        if self.max_backups < 1:
            raise ConfigError(f"max_backups must be at least 1 (got {self.max_backups})")
        if isinstance(self.lock_timeout, bool) or not isinstance(self.lock_timeout, int | float):
            raise ConfigError(f"lock_timeout must be a number (got {self.lock_timeout!r})")
        if self.lock_timeout < 0:
            raise ConfigError(f"lock_timeout must not be negative (got {self.lock_timeout})")
        if self.editor is not None and not isinstance(self.editor, str):
            raise ConfigError(f"editor must be a string (got {self.editor!r})")

    @property
    def effective_lock_timeout(self) -> float | None:
        """Lock timeout to pass to the state manager (None = block forever)."""
        return float(self.lock_timeout) or None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # TOML has no null
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CcprofConfig":
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning(f"Unknown config key: {key}")
        return cls(
            max_backups=data.get("max_backups", DEFAULT_MAX_BACKUPS),
            lock_timeout=data.get("lock_timeout", DEFAULT_LOCK_TIMEOUT),
            editor=data.get("editor"),
        )


def coerce_value(key: str, value: str) -> Any:
    """Convert a CLI string into the type a config key expects."""
    try:
        if key == "max_backups":
            return int(value)
        if key == "lock_timeout":
            return float(value)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {key}: {value!r}") from e
    if key == "editor":
        return value
    known = ", ".join(f.name for f in fields(CcprofConfig))
    raise ConfigError(f"Unknown config key: {key}", hint=f"Known keys: {known}")


class ConfigManager:
    """Manage the ccprof configuration file."""

    @classmethod
    def load_config(cls, config_path: Path) -> CcprofConfig:
        """Load configuration from file.

        Raises:
            ConfigError: If the file is not valid TOML or has invalid values
        """
        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return CcprofConfig()

        try:
            with open(config_path, "rb") as f:
                data = tomli.load(f)  # type: ignore[attr-defined]
        except OSError as e:
            raise IoFailureError(f"Failed to read config {config_path}: {e}") from e
        except tomli.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse config {config_path}: {e}") from e

        logger.debug(f"Loaded config from: {config_path}")
        return CcprofConfig.from_dict(data)

    @classmethod
    def save_config(cls, config: CcprofConfig, config_path: Path) -> None:
        """Save configuration, preserving comments in an existing file."""
        temp_path = config_path.with_suffix(".tmp")
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)

            # Load existing file if it exists (preserves comments/formatting)
            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()

            config_dict = config.to_dict()
            for key, value in config_dict.items():
                doc[key] = value
            for key in [k for k in doc if k not in config_dict]:
                if key in {f.name for f in fields(CcprofConfig)}:
                    del doc[key]

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            # Set secure permissions before moving
            os.chmod(temp_path, 0o600)

            # Atomic rename
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")

        except OSError as e:
            # Cleanup temp file on error
            if temp_path.exists():
                temp_path.unlink()
            raise IoFailureError(f"Failed to save config {config_path}: {e}") from e

    @classmethod
    def update_config(cls, config_path: Path, **updates: Any) -> CcprofConfig:
        """Update configuration values.

        Raises:
            ConfigError: If a key is unknown or a value is invalid
        """
        data = cls.load_config(config_path).to_dict()
        known = {f.name for f in fields(CcprofConfig)}
        for key, value in updates.items():
            if key not in known:
                raise ConfigError(f"Unknown config key: {key}")
            data[key] = value

        config = CcprofConfig(**data)
        cls.save_config(config, config_path)
        return config


__all__ = [
    "CcprofConfig",
    "ConfigError",
    "ConfigManager",
    "coerce_value",
]
