"""Cross-platform exclusive file locking for the state ledger.

Two ccprof invocations running at the same time (say, `ccprof use` in two
terminals) must not interleave read-modify-write cycles on state.json. This
module provides the advisory lock that serializes them.

Philosophy:
- Standard library only (fcntl/msvcrt are standard library)
- Context manager for guaranteed release, including on exceptions
- Bounded wait with exponential backoff, or an unbounded blocking wait

Public API:
    acquire_file_lock: Context manager yielding the locked, open file handle
    LockTimeoutError: Raised when the lock cannot be acquired within timeout

Example:
    >>> from ccprof.file_lock_manager import acquire_file_lock
    >>> with acquire_file_lock(state_file, timeout=30.0, operation="state update") as f:
    ...     content = f.read()
    ...     # Only this process can update the state here
"""

import logging
import platform
import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from ccprof.errors import IoFailureError

_system = platform.system()
if TYPE_CHECKING or _system == "Windows":
    import msvcrt  # type: ignore[import-not-found]
if TYPE_CHECKING or _system != "Windows":
    import fcntl  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)

__all__ = ["LockTimeoutError", "acquire_file_lock"]


class LockTimeoutError(IoFailureError):
    """Raised when file lock cannot be acquired within timeout period."""


@contextmanager
def acquire_file_lock(
    file_path: Path,
    timeout: float | None = 30.0,
    operation: str = "file operation",
) -> Generator[TextIO, None, None]:
    """Acquire an exclusive lock on file_path and yield the open handle.

    The file is created if missing and opened read/write without truncation.
    The handle stays positioned at the start of the file.

    Args:
        file_path: Path to file to lock
        timeout: Seconds to wait for the lock; None or 0 blocks until obtained
        operation: Description of operation (used in error messages)

    Yields:
        Open text handle on the locked file

    Raises:
        LockTimeoutError: If lock cannot be acquired within timeout
        IoFailureError: If the file cannot be opened or locked
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.touch(exist_ok=True)
        file_handle = open(file_path, "r+")
    except OSError as e:
        raise IoFailureError(f"Cannot open {file_path} for {operation}: {e}") from e

    with file_handle:
        try:
            if timeout:
                _acquire_lock_with_backoff(file_handle, file_path, timeout, operation)
            else:
                _acquire_lock_blocking(file_handle, file_path, operation)
            logger.debug(f"Acquired lock on {file_path} for {operation}")

            yield file_handle

        finally:
            _release_lock(file_handle)
            logger.debug(f"Released lock on {file_path}")


def _acquire_lock_blocking(file_handle: TextIO, file_path: Path, operation: str) -> None:
    try:
        if _system == "Windows":
            msvcrt.locking(file_handle.fileno(), msvcrt.LK_LOCK, 1)  # type: ignore[attr-defined]
        else:
            fcntl.flock(file_handle.fileno(), fcntl.LOCK_EX)
    except OSError as e:
        raise IoFailureError(f"Failed to lock {file_path} for {operation}: {e}") from e


def _acquire_lock_with_backoff(
    file_handle: TextIO,
    file_path: Path,
    timeout: float,
    operation: str,
) -> None:
    """Acquire file lock with exponential backoff: 0.1s, 0.2s, 0.4s ... capped at 2s.

    Raises:
        LockTimeoutError: If lock cannot be acquired within timeout
    """
    start_time = time.time()
    delay = 0.1
    attempt = 0

    while True:
        elapsed = time.time() - start_time

        if elapsed >= timeout:
            raise LockTimeoutError(
                f"Failed to acquire file lock for {operation} after {timeout} seconds. "
                f"File: {file_path}.",
                hint=(
                    "Another ccprof process may be running, or a crashed one left "
                    "the lock held. Check for running ccprof processes, or raise "
                    "'lock_timeout' with 'ccprof config set lock_timeout <seconds>'."
                ),
            )

        try:
            if _system == "Windows":
                _acquire_lock_windows(file_handle)
            else:
                _acquire_lock_unix(file_handle)
            return

        except (BlockingIOError, PermissionError) as e:
            if isinstance(e, PermissionError) and attempt == 0 and _system != "Windows":
                raise IoFailureError(f"Permission denied locking {file_path}: {e}") from e

            remaining = timeout - elapsed
            sleep_time = min(delay, remaining)
            if sleep_time > 0:
                time.sleep(sleep_time)

            delay = min(delay * 2, 2.0)
            attempt += 1


def _acquire_lock_unix(file_handle: TextIO) -> None:
    fcntl.flock(file_handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)


def _acquire_lock_windows(file_handle: TextIO) -> None:
    # Lock first byte of file (mandatory lock)
    msvcrt.locking(file_handle.fileno(), msvcrt.LK_NBLCK, 1)  # type: ignore[attr-defined]


def _release_lock(file_handle: TextIO) -> None:
    """Release file lock (platform-specific). Failures are only logged."""
    try:
        if _system == "Windows":
            file_handle.seek(0)
            msvcrt.locking(file_handle.fileno(), msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
        else:
            fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)
    except Exception as e:
        logger.debug(f"Error during lock cleanup: {e}")
