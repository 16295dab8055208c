"""Filesystem locations used by ccprof.

All paths derive from a single home directory so tests (and users with
unusual setups) can relocate everything with CCPROF_HOME:

    <home>/.claude-profiles/
        config.toml
        state.json
        profiles/<name>/
        backups/
    <home>/.claude/
        settings.json agents/ hooks/ commands/
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ccprof.errors import IoFailureError

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "CCPROF_HOME"


def get_home() -> Path:
    """Return the home directory, honoring CCPROF_HOME."""
    env_home = os.environ.get(HOME_ENV_VAR)
    return Path(env_home).expanduser() if env_home else Path.home()


@dataclass(frozen=True)
class Paths:
    """All computed paths used by ccprof.

    Attributes:
        home: Root every other path derives from
        base_dir: ~/.claude-profiles
        profiles_dir: ~/.claude-profiles/profiles
        backups_dir: ~/.claude-profiles/backups
        state_file: ~/.claude-profiles/state.json
        config_file: ~/.claude-profiles/config.toml
        claude_dir: ~/.claude (live configuration root)
    """

    home: Path
    base_dir: Path
    profiles_dir: Path
    backups_dir: Path
    state_file: Path
    config_file: Path
    claude_dir: Path

    @classmethod
    def from_home(cls, home: Path) -> "Paths":
        home = Path(home).expanduser().absolute()
        base_dir = home / ".claude-profiles"
        return cls(
            home=home,
            base_dir=base_dir,
            profiles_dir=base_dir / "profiles",
            backups_dir=base_dir / "backups",
            state_file=base_dir / "state.json",
            config_file=base_dir / "config.toml",
            claude_dir=home / ".claude",
        )

    @classmethod
    def default(cls) -> "Paths":
        return cls.from_home(get_home())

    @property
    def claude_settings(self) -> Path:
        return self.claude_dir / "settings.json"

    def ensure_dirs(self) -> None:
        """Create base, profiles and backups directories if missing."""
        for directory in (self.base_dir, self.profiles_dir, self.backups_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise IoFailureError(f"Failed to create directory {directory}: {e}") from e
        logger.debug(f"Storage directories ready under: {self.base_dir}")

    def profile_dir(self, name: str) -> Path:
        return self.profiles_dir / name

    def is_in_profiles_dir(self, path: Path) -> bool:
        """Check whether path lives inside managed profile storage.

        Both the lexical form of the path and its fully resolved form are
        checked, so a chain of links that ends inside storage still counts.
        """
        path = Path(path)
        if not path.is_absolute():
            path = Path.cwd() / path

        lexical = Path(os.path.normpath(path))
        roots = {self.profiles_dir, self.profiles_dir.resolve()}
        candidates = {lexical, path.resolve()}

        return any(
            candidate == root or root in candidate.parents
            for candidate in candidates
            for root in roots
        )


__all__ = ["HOME_ENV_VAR", "Paths", "get_home"]
