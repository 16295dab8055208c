"""Unit tests for live path classification and the backup decision."""

import os

from ccprof.status import (
    ComponentStatus,
    StatusKind,
    detect_status,
    is_profile_symlink,
    linked_profile_name,
    needs_backup,
)


class TestDetectStatus:
    """Test detect_status classification."""

    def test_missing(self, paths):
        """Test a nonexistent path is missing."""
        assert detect_status(paths.claude_dir / "nothing").kind is StatusKind.MISSING

    def test_missing_under_file_parent(self, paths):
        """Test a path below a regular file is missing, not an error."""
        parent = paths.claude_dir / "file"
        parent.write_text("x")
        assert detect_status(parent / "child").kind is StatusKind.MISSING

    def test_regular_file(self, paths, live_settings):
        """Test a plain file is a regular file."""
        status = detect_status(live_settings)
        assert status.kind is StatusKind.REGULAR_FILE
        assert status.target is None

    def test_regular_directory(self, paths, live_agents):
        """Test a plain directory is a directory."""
        assert detect_status(live_agents).kind is StatusKind.REGULAR_DIRECTORY

    def test_symlink_to_directory_is_symlink(self, paths, tmp_path):
        """Test a link to a directory is a symlink, not a directory."""
        target = tmp_path / "real-agents"
        target.mkdir()
        link = paths.claude_dir / "agents"
        os.symlink(target, link)

        status = detect_status(link)

        assert status.kind is StatusKind.SYMLINK
        assert status.target == target

    def test_broken_symlink(self, paths, tmp_path):
        """Test a dangling link is broken, not missing."""
        link = paths.claude_dir / "settings.json"
        os.symlink(tmp_path / "gone.json", link)

        status = detect_status(link)

        assert status.kind is StatusKind.BROKEN_SYMLINK
        assert status.target == tmp_path / "gone.json"

    def test_relative_target_resolved_against_link_parent(self, paths):
        """Test relative link targets are made absolute from the link's directory."""
        (paths.claude_dir / "real.json").write_text("{}")
        link = paths.claude_dir / "settings.json"
        os.symlink("real.json", link)

        status = detect_status(link)

        assert status.kind is StatusKind.SYMLINK
        assert status.target == paths.claude_dir / "real.json"

    def test_describe(self, tmp_path):
        """Test describe includes the target for links only."""
        assert ComponentStatus(StatusKind.REGULAR_FILE).describe() == "regular file"
        link = ComponentStatus(StatusKind.SYMLINK, tmp_path / "x")
        assert link.describe() == f"symlink -> {tmp_path / 'x'}"


class TestNeedsBackup:
    """Test the backup decision for each status."""

    def test_missing_needs_no_backup(self, paths):
        """Test nothing to lose when the path is missing."""
        assert not needs_backup(ComponentStatus(StatusKind.MISSING), paths)

    def test_broken_symlink_needs_no_backup(self, paths, tmp_path):
        """Test a dangling link holds nothing worth keeping."""
        status = ComponentStatus(StatusKind.BROKEN_SYMLINK, tmp_path / "gone")
        assert not needs_backup(status, paths)

    def test_regular_file_and_directory_need_backup(self, paths):
        """Test real files and directories are always backed up."""
        assert needs_backup(ComponentStatus(StatusKind.REGULAR_FILE), paths)
        assert needs_backup(ComponentStatus(StatusKind.REGULAR_DIRECTORY), paths)

    def test_storage_symlink_needs_no_backup(self, paths):
        """Test a link into profile storage is not backed up."""
        target = paths.profiles_dir / "work" / "settings.json"
        assert not needs_backup(ComponentStatus(StatusKind.SYMLINK, target), paths)

    def test_external_symlink_needs_backup(self, paths, tmp_path):
        """Test a link pointing outside storage is backed up."""
        status = ComponentStatus(StatusKind.SYMLINK, tmp_path / "dotfiles" / "settings.json")
        assert needs_backup(status, paths)


class TestLinkedProfileName:
    """Test profile name extraction from storage links."""

    def test_storage_link(self, paths):
        """Test the first path segment under profiles/ is the profile name."""
        (paths.profiles_dir / "work").mkdir()
        target = paths.profiles_dir / "work" / "settings.json"
        target.write_text("{}")
        status = ComponentStatus(StatusKind.SYMLINK, target)

        assert is_profile_symlink(status, paths)
        assert linked_profile_name(status, paths) == "work"

    def test_external_link_has_no_profile(self, paths, tmp_path):
        """Test links outside storage name no profile."""
        status = ComponentStatus(StatusKind.SYMLINK, tmp_path / "elsewhere")

        assert not is_profile_symlink(status, paths)
        assert linked_profile_name(status, paths) is None
