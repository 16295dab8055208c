"""Unit tests for path computation."""

import os
from unittest.mock import patch

import pytest

from ccprof.errors import IoFailureError
from ccprof.paths import HOME_ENV_VAR, Paths, get_home


class TestGetHome:
    """Test home directory resolution."""

    def test_env_override(self, tmp_path, monkeypatch):
        """Test CCPROF_HOME takes precedence over the user's home."""
        monkeypatch.setenv(HOME_ENV_VAR, str(tmp_path))
        assert get_home() == tmp_path

    def test_falls_back_to_user_home(self, tmp_path, monkeypatch):
        """Test the user's home is used when CCPROF_HOME is unset."""
        monkeypatch.delenv(HOME_ENV_VAR, raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_home() == tmp_path


class TestPaths:
    """Test the Paths layout."""

    def test_layout(self, tmp_path):
        """Test every path derives from the home directory."""
        paths = Paths.from_home(tmp_path)

        assert paths.base_dir == tmp_path / ".claude-profiles"
        assert paths.profiles_dir == tmp_path / ".claude-profiles" / "profiles"
        assert paths.backups_dir == tmp_path / ".claude-profiles" / "backups"
        assert paths.state_file == tmp_path / ".claude-profiles" / "state.json"
        assert paths.config_file == tmp_path / ".claude-profiles" / "config.toml"
        assert paths.claude_dir == tmp_path / ".claude"
        assert paths.claude_settings == tmp_path / ".claude" / "settings.json"

    def test_default_uses_env(self, tmp_path, monkeypatch):
        """Test Paths.default() honors CCPROF_HOME."""
        monkeypatch.setenv(HOME_ENV_VAR, str(tmp_path))
        assert Paths.default().home == tmp_path

    def test_ensure_dirs_idempotent(self, tmp_path):
        """Test ensure_dirs creates storage directories and can run twice."""
        paths = Paths.from_home(tmp_path)

        paths.ensure_dirs()
        paths.ensure_dirs()

        assert paths.profiles_dir.is_dir()
        assert paths.backups_dir.is_dir()

    def test_ensure_dirs_wraps_os_error(self, tmp_path):
        """Test mkdir failures surface as IoFailureError."""
        paths = Paths.from_home(tmp_path)

        with patch("pathlib.Path.mkdir", side_effect=PermissionError("denied")):
            with pytest.raises(IoFailureError, match="Failed to create directory"):
                paths.ensure_dirs()


class TestIsInProfilesDir:
    """Test storage containment checks."""

    def test_inside_storage(self, tmp_path):
        """Test paths under profiles/ are inside storage."""
        paths = Paths.from_home(tmp_path)
        assert paths.is_in_profiles_dir(paths.profiles_dir / "work" / "settings.json")

    def test_outside_storage(self, tmp_path):
        """Test paths elsewhere are outside storage."""
        paths = Paths.from_home(tmp_path)
        assert not paths.is_in_profiles_dir(tmp_path / "dotfiles" / "settings.json")

    def test_dotdot_escape_is_outside(self, tmp_path):
        """Test a lexical '..' that leaves storage is outside."""
        paths = Paths.from_home(tmp_path)
        assert not paths.is_in_profiles_dir(paths.profiles_dir / ".." / "backups" / "x")

    def test_link_into_storage_counts(self, tmp_path):
        """Test a path that resolves into storage through a link is inside."""
        paths = Paths.from_home(tmp_path)
        paths.ensure_dirs()
        (paths.profiles_dir / "work").mkdir()
        alias = tmp_path / "alias"
        os.symlink(paths.profiles_dir, alias)

        assert paths.is_in_profiles_dir(alias / "work")
