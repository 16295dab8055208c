"""
Shared test fixtures for ccprof tests.

This module provides common fixtures used across all test modules:
- An isolated home directory with ~/.claude and ~/.claude-profiles
- Wired-up state, backup and profile managers plus the switcher
- Live settings and agents fixtures
"""

import pytest

from ccprof.backup_manager import BackupManager
from ccprof.paths import Paths
from ccprof.profile_manager import ProfileManager
from ccprof.state_manager import StateManager
from ccprof.switcher import ProfileSwitcher
from tests.utils import write_component_dir, write_settings

# ============================================================================
# DIRECTORY FIXTURES
# ============================================================================


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Temporary home directory.

    Sets CCPROF_HOME so that anything calling Paths.default() (the CLI)
    sees the same directory as the fixtures below.
    """
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("CCPROF_HOME", str(home_dir))
    return home_dir


@pytest.fixture
def paths(home):
    """Paths rooted at the temporary home, with storage directories created."""
    result = Paths.from_home(home)
    result.ensure_dirs()
    result.claude_dir.mkdir()
    return result


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def state_manager(paths):
    return StateManager(paths.state_file, lock_timeout=5.0)


@pytest.fixture
def backup_manager(paths):
    return BackupManager(paths, max_backups=10)


@pytest.fixture
def profile_manager(paths, state_manager, backup_manager):
    return ProfileManager(paths, state_manager, backup_manager)


@pytest.fixture
def switcher(paths, profile_manager, backup_manager, state_manager):
    return ProfileSwitcher(paths, profile_manager, backup_manager, state_manager)


# ============================================================================
# LIVE COMPONENT FIXTURES
# ============================================================================


@pytest.fixture
def live_settings(paths):
    """Live settings.json with a known model."""
    return write_settings(paths, {"model": "opus"})


@pytest.fixture
def live_agents(paths):
    """Live agents/ directory with one agent."""
    return write_component_dir(paths, "agents", {"reviewer.md": "# Reviewer"})
