"""Persistent state ledger.

This module handles ~/.claude-profiles/state.json, the single record of
which profile is active and when it was last switched:

    {"default_profile": "work", "updated_at": "2026-01-15T10:30:45+00:00"}

Reads take no lock. Updates go through with_lock(), which holds an exclusive
advisory lock on state.json for the whole read-modify-write cycle. Because
the lock is pinned to the file's inode, a locked update cannot use
temp-file-plus-rename; it truncates and rewrites the locked file instead.
Unlocked writes (write()) use temp file + fsync + atomic rename.
"""

import json
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ccprof.errors import CorruptedError, IoFailureError
from ccprof.file_lock_manager import acquire_file_lock

logger = logging.getLogger(__name__)


@dataclass
class State:
    """Contents of state.json.

    Attributes:
        default_profile: Name of the currently active profile
        updated_at: Timestamp of the last profile switch
    """

    default_profile: str | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.default_profile is not None:
            data["default_profile"] = self.default_profile
        if self.updated_at is not None:
            data["updated_at"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "State":
        if not isinstance(data, dict):
            raise ValueError("state must be a JSON object")
        updated_at = data.get("updated_at")
        default_profile = data.get("default_profile")
        if updated_at is not None and not isinstance(updated_at, str):
            raise ValueError("updated_at must be a string")
        if default_profile is not None and not isinstance(default_profile, str):
            raise ValueError("default_profile must be a string")
        return cls(
            default_profile=default_profile,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )

    @classmethod
    def parse(cls, content: str) -> "State":
        """Parse state.json content. Empty content is the default state.

        Raises:
            ValueError: If content is not a valid state record
        """
        if not content.strip():
            return cls()
        return cls.from_dict(json.loads(content))

    def serialize(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"

    def mark_active(self, name: str) -> None:
        self.default_profile = name
        self.updated_at = datetime.now(UTC)


class StateManager:
    """Read and update the state ledger.

    Attributes:
        state_file: Path to state.json
        lock_timeout: Seconds to wait for the exclusive lock (None/0 blocks)
    """

    def __init__(self, state_file: Path, lock_timeout: float | None = 30.0):
        self.state_file = state_file
        self.lock_timeout = lock_timeout

    def read_strict(self) -> State:
        """Read state, raising CorruptedError on unparseable content."""
        if not self.state_file.exists():
            return State()
        try:
            raw = self.state_file.read_bytes()
        except OSError as e:
            raise IoFailureError(f"Failed to read state file: {self.state_file}: {e}") from e
        try:
            return State.parse(raw.decode("utf-8"))
        except ValueError as e:
            raise CorruptedError(
                f"Failed to parse state file: {self.state_file}: {e}",
                hint="Run 'ccprof doctor', then 'ccprof use <profile>' to rewrite it.",
            ) from e

    def read(self) -> State:
        """Read state. Never fails: missing, empty or corrupt content yields the default."""
        try:
            return self.read_strict()
        except CorruptedError as e:
            logger.warning(f"Ignoring corrupt state file: {e.message}")
            return State()
        except IoFailureError as e:
            logger.warning(str(e))
            return State()

    def write(self, state: State) -> None:
        """Write state atomically without taking the lock."""
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.state_file.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w") as f:
                f.write(state.serialize())
                f.flush()
                os.fsync(f.fileno())
            temp_path.replace(self.state_file)
            logger.debug(f"Saved state to: {self.state_file}")
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise IoFailureError(f"Failed to write state file: {self.state_file}: {e}") from e

    def with_lock(self, mutator: Callable[[State], State | None]) -> State:
        """Run a read-modify-write cycle under the exclusive lock.

        The mutator receives the current state and may modify it in place
        or return a replacement. The lock is released on every exit path.

        Returns:
            The state as written

        Raises:
            LockTimeoutError: If the lock cannot be obtained in time
            IoFailureError: If the state file cannot be read or written
        """
        with acquire_file_lock(
            self.state_file, timeout=self.lock_timeout, operation="state update"
        ) as f:
            # UnicodeDecodeError is a ValueError, so undecodable bytes count as corrupt
            try:
                state = State.parse(f.read())
            except OSError as e:
                raise IoFailureError(f"Failed to read state file: {self.state_file}: {e}") from e
            except ValueError as e:
                logger.warning(f"State file {self.state_file} is corrupt ({e}); overwriting")
                state = State()

            result = mutator(state)
            if result is not None:
                state = result

            try:
                f.seek(0)
                f.truncate(0)
                f.write(state.serialize())
                f.flush()
                os.fsync(f.fileno())
            except OSError as e:
                raise IoFailureError(f"Failed to write state file: {self.state_file}: {e}") from e

        logger.debug(f"Updated state: {state.to_dict()}")
        return state

    def set_active(self, name: str) -> State:
        """Mark name as the active profile with a fresh timestamp."""
        return self.with_lock(lambda state: state.mark_active(name))

    def active_profile(self) -> str | None:
        return self.read().default_profile


__all__ = ["State", "StateManager"]
