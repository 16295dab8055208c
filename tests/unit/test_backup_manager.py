"""Unit tests for backup creation, rotation and restore."""

import re
from unittest.mock import patch

import pytest

from ccprof.backup_manager import BackupManager, component_for_backup
from ccprof.components import Component
from ccprof.errors import InvalidInputError, IoFailureError, NotFoundError
from ccprof.paths import Paths
from tests.utils import backup_names, read_json, set_mtime, write_component_dir, write_settings

BACKUP_NAME = re.compile(r"^settings\.json\.\d{8}_\d{6}(-\d+)?\.bak$")


class TestComponentForBackup:
    """Test backup name classification."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("settings.json.20250115_103045.bak", Component.SETTINGS),
            ("agents.20250115_103045.bak", Component.AGENTS),
            ("hooks.20250115_103045-2.bak", Component.HOOKS),
            ("commands.20250115_103045.bak", Component.COMMANDS),
            ("agents.20250115_103045", None),
            ("notes.txt", None),
        ],
    )
    def test_classification(self, name, expected):
        """Test entries are matched by prefix and .bak suffix."""
        assert component_for_backup(name) is expected


class TestBackup:
    """Test BackupManager.backup."""

    def test_rejects_zero_max_backups(self, paths):
        """Test max_backups below 1 is invalid."""
        with pytest.raises(InvalidInputError):
            BackupManager(paths, max_backups=0)

    def test_file_backup(self, paths, backup_manager, live_settings):
        """Test a file is archived with a timestamped name and live path untouched."""
        backup_path = backup_manager.backup(Component.SETTINGS, live_settings)

        assert BACKUP_NAME.match(backup_path.name)
        assert backup_path.parent == paths.backups_dir
        assert read_json(backup_path) == {"model": "opus"}
        assert read_json(live_settings) == {"model": "opus"}

    def test_directory_backup(self, paths, backup_manager, live_agents):
        """Test a directory is archived as a full copy."""
        backup_path = backup_manager.backup(Component.AGENTS, live_agents)

        assert backup_path.name.startswith("agents.")
        assert (backup_path / "reviewer.md").read_text() == "# Reviewer"

    def test_missing_source(self, paths, backup_manager):
        """Test backing up nothing raises NotFoundError."""
        with pytest.raises(NotFoundError):
            backup_manager.backup(Component.SETTINGS, paths.claude_settings)

    def test_same_second_backups_do_not_collide(self, paths, backup_manager, live_settings):
        """Test two backups in the same second produce distinct entries."""
        first = backup_manager.backup(Component.SETTINGS, live_settings)
        write_settings(paths, {"model": "haiku"})
        second = backup_manager.backup(Component.SETTINGS, live_settings)

        assert first != second
        assert read_json(first) == {"model": "opus"}
        assert read_json(second) == {"model": "haiku"}

    def test_partial_backup_removed_on_failure(self, paths, backup_manager, live_agents):
        """Test a failed copy leaves no partial entry behind."""

        def failing_copy(src, dst):
            dst.mkdir()
            raise IoFailureError("disk full")

        with patch("ccprof.backup_manager.copy_component", side_effect=failing_copy):
            with pytest.raises(IoFailureError, match="disk full"):
                backup_manager.backup(Component.AGENTS, live_agents)

        assert backup_names(paths, "agents") == []
        assert (live_agents / "reviewer.md").exists()

    def test_rotation_failure_keeps_backup(self, paths, backup_manager, live_settings):
        """Test a rotation error is logged and the new backup is still returned."""
        with patch.object(backup_manager, "rotate", side_effect=IoFailureError("nope")):
            backup_path = backup_manager.backup(Component.SETTINGS, live_settings)

        assert backup_path.exists()


class TestRotate:
    """Test rotation keeps the newest entries per component."""

    def _seed(self, paths, prefix, count, directory=False):
        paths.backups_dir.mkdir(parents=True, exist_ok=True)
        entries = []
        for i in range(count):
            entry = paths.backups_dir / f"{prefix}.2025010{i % 10}_00000{i % 10}-{i}.bak"
            if directory:
                entry.mkdir()
            else:
                entry.write_text(str(i))
            set_mtime(entry, 1_700_000_000 + i * 60)
            entries.append(entry)
        return entries

    def test_cap_invariant(self, paths):
        """Test never more than max_backups entries remain per component."""
        manager = BackupManager(paths, max_backups=3)
        entries = self._seed(paths, "settings.json", 5)

        removed = manager.rotate(Component.SETTINGS)

        assert removed == entries[:2]
        remaining = backup_names(paths, "settings.json")
        assert remaining == sorted(e.name for e in entries[2:])

    def test_same_mtime_orders_by_collision_counter(self, paths):
        """Test same-second entries with equal mtimes rotate oldest counter first."""
        manager = BackupManager(paths, max_backups=2)
        paths.backups_dir.mkdir(parents=True, exist_ok=True)
        names = [
            "settings.json.20250101_000000.bak",
            "settings.json.20250101_000000-2.bak",
            "settings.json.20250101_000000-10.bak",
        ]
        for name in names:
            entry = paths.backups_dir / name
            entry.write_text(name)
            set_mtime(entry, 1_700_000_000)

        removed = manager.rotate(Component.SETTINGS)

        assert [e.name for e in removed] == ["settings.json.20250101_000000.bak"]
        assert backup_names(paths, "settings.json") == sorted(names[1:])

    def test_rotation_is_per_component(self, paths):
        """Test rotating one component never touches another's backups."""
        manager = BackupManager(paths, max_backups=1)
        self._seed(paths, "settings.json", 3)
        self._seed(paths, "agents", 3, directory=True)

        manager.rotate(Component.SETTINGS)

        assert len(backup_names(paths, "settings.json")) == 1
        assert len(backup_names(paths, "agents")) == 3

    def test_backup_triggers_rotation(self, paths, live_settings):
        """Test creating a backup prunes the oldest beyond the cap."""
        manager = BackupManager(paths, max_backups=2)
        old = self._seed(paths, "settings.json", 2)

        new_backup = manager.backup(Component.SETTINGS, live_settings)

        remaining = backup_names(paths, "settings.json")
        assert len(remaining) == 2
        assert new_backup.name in remaining
        assert old[0].name not in remaining

    def test_clean_keeps_n_per_component(self, paths, backup_manager):
        """Test clean applies the keep count to every component."""
        self._seed(paths, "settings.json", 4)
        self._seed(paths, "hooks", 4, directory=True)

        removed = backup_manager.clean(keep=1)

        assert len(removed) == 6
        assert len(backup_names(paths, "settings.json")) == 1
        assert len(backup_names(paths, "hooks")) == 1

    def test_clean_keep_zero_removes_all(self, paths, backup_manager):
        """Test keep=0 removes every backup."""
        self._seed(paths, "commands", 2, directory=True)

        backup_manager.clean(keep=0)

        assert backup_names(paths, "commands") == []

    def test_negative_keep_rejected(self, backup_manager):
        """Test a negative keep count is invalid."""
        with pytest.raises(InvalidInputError):
            backup_manager.rotate(Component.SETTINGS, keep=-1)


class TestListAndRestore:
    """Test listing, lookup and restore."""

    def test_list_newest_first(self, paths, backup_manager):
        """Test backups are listed newest first and foreign files ignored."""
        paths.backups_dir.mkdir(parents=True, exist_ok=True)
        older = paths.backups_dir / "settings.json.20250101_000000.bak"
        newer = paths.backups_dir / "hooks.20250102_000000.bak"
        older.write_text("{}")
        newer.mkdir()
        (paths.backups_dir / "README").write_text("not a backup")
        set_mtime(older, 1_700_000_000)
        set_mtime(newer, 1_700_000_600)

        backups = backup_manager.list_backups()

        assert [b.id for b in backups] == [newer.name, older.name]
        assert backups[0].component is Component.HOOKS
        assert backups[1].size == 2

    def test_list_without_directory(self, tmp_path):
        """Test listing before any backup exists returns nothing."""
        assert BackupManager(Paths.from_home(tmp_path)).list_backups() == []

    def test_get_backup_rejects_path_components(self, backup_manager):
        """Test ids containing separators are rejected."""
        with pytest.raises(InvalidInputError):
            backup_manager.get_backup("../state.json")

    def test_get_backup_missing(self, backup_manager):
        """Test unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            backup_manager.get_backup("settings.json.20250101_000000.bak")

    def test_get_backup_unknown_component(self, paths, backup_manager):
        """Test an existing entry with an unrecognized prefix is rejected."""
        (paths.backups_dir / "plugins.20250101_000000.bak").write_text("x")

        with pytest.raises(InvalidInputError, match="Cannot determine component"):
            backup_manager.get_backup("plugins.20250101_000000.bak")

    def test_restore_file_over_symlink(self, paths, backup_manager, live_settings, tmp_path):
        """Test restoring replaces a live link with the backup content."""
        backup_path = backup_manager.backup(Component.SETTINGS, live_settings)
        live_settings.unlink()
        other = tmp_path / "other.json"
        other.write_text('{"model": "haiku"}')
        live_settings.symlink_to(other)

        restored = backup_manager.restore(backup_path.name)

        assert restored == paths.claude_settings
        assert not restored.is_symlink()
        assert read_json(restored) == {"model": "opus"}
        assert read_json(other) == {"model": "haiku"}
        # No backup of the replaced content is taken
        assert len(backup_names(paths, "settings.json")) == 1

    def test_restore_directory(self, paths, backup_manager):
        """Test restoring a directory backup recreates the live directory."""
        agents = write_component_dir(paths, "agents", {"a.md": "A"})
        backup_path = backup_manager.backup(Component.AGENTS, agents)
        (agents / "a.md").write_text("changed")
        (agents / "b.md").write_text("new")

        backup_manager.restore(backup_path.name)

        assert (agents / "a.md").read_text() == "A"
        assert not (agents / "b.md").exists()
