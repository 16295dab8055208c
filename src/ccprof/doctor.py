"""Read-only diagnostics for a ccprof setup.

run_diagnostics() inspects directories, the state ledger, every component's
live path and every profile's manifest, and returns a structured report.
Nothing on disk is modified, with one exception shared with `ccprof list`:
legacy profiles without a manifest are upgraded when they are read.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

from ccprof.components import Component, sorted_components
from ccprof.errors import CcprofError
from ccprof.fs_utils import validate_json_file
from ccprof.paths import Paths
from ccprof.profile_manager import ProfileManager
from ccprof.state_manager import StateManager
from ccprof.status import StatusKind, detect_status, is_profile_symlink, linked_profile_name

logger = logging.getLogger(__name__)


class Level(Enum):
    OK = "ok"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass
class Finding:
    level: Level
    message: str


@dataclass
class CheckResult:
    """Findings of one diagnostic section. Fails if any finding is an error."""

    name: str
    findings: list[Finding] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(f.level is not Level.ERROR for f in self.findings)

    def add(self, level: Level, message: str) -> None:
        self.findings.append(Finding(level, message))


@dataclass
class DiagnosticReport:
    checks: list[CheckResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(check.ok for check in self.checks)


def _check_directories(paths: Paths) -> CheckResult:
    check = CheckResult("Directories")
    for label, directory in (
        ("Base directory", paths.base_dir),
        ("Profiles directory", paths.profiles_dir),
        ("Backups directory", paths.backups_dir),
    ):
        if directory.is_dir():
            check.add(Level.OK, f"{label} exists: {directory}")
        else:
            check.add(Level.ERROR, f"{label} missing: {directory}")

    if paths.claude_dir.is_dir():
        check.add(Level.OK, f"Claude directory exists: {paths.claude_dir}")
    else:
        # Claude Code may simply not be installed yet
        check.add(Level.WARN, f"Claude directory missing: {paths.claude_dir}")
    return check


def _check_state(paths: Paths, state_manager: StateManager) -> CheckResult:
    check = CheckResult("State File")
    if not paths.state_file.exists():
        check.add(Level.WARN, "State file missing (fresh install?)")
        return check

    try:
        state = state_manager.read_strict()
    except CcprofError as e:
        check.add(Level.ERROR, f"State file corrupt: {e.message}")
        return check

    check.add(Level.OK, "State file readable")
    if state.default_profile is None:
        check.add(Level.INFO, "No active profile set")
    elif paths.profile_dir(state.default_profile).is_dir():
        check.add(Level.INFO, f"Active profile in state: {state.default_profile}")
    else:
        check.add(Level.ERROR, f"Active profile directory MISSING: {state.default_profile}")
    return check


def _check_live_paths(paths: Paths, active: str | None) -> CheckResult:
    check = CheckResult("Live Components")
    for component in Component.all():
        live = component.live_path(paths)
        status = detect_status(live)
        label = f"{component.display_name} ({live})"

        if status.kind is StatusKind.MISSING:
            check.add(Level.INFO, f"{label} is missing")
        elif status.kind in (StatusKind.REGULAR_FILE, StatusKind.REGULAR_DIRECTORY):
            check.add(Level.INFO, f"{label} is a {status.kind.value} (not managed)")
        elif status.kind is StatusKind.BROKEN_SYMLINK:
            check.add(Level.ERROR, f"{label} is a BROKEN symlink to {status.target}")
        elif is_profile_symlink(status, paths):
            linked = linked_profile_name(status, paths)
            if active is not None and linked != active:
                check.add(
                    Level.WARN,
                    f"{label} links to profile '{linked}' but active profile is '{active}'",
                )
            else:
                check.add(Level.OK, f"{label} links to profile '{linked}'")
        else:
            check.add(Level.WARN, f"{label} links OUTSIDE ccprof storage: {status.target}")
    return check


def _check_profiles(paths: Paths, profile_manager: ProfileManager) -> CheckResult:
    check = CheckResult("Profiles")
    try:
        profiles = profile_manager.list_profiles()
    except CcprofError as e:
        check.add(Level.ERROR, f"Failed to list profiles: {e.message}")
        return check

    if not profiles:
        check.add(Level.WARN, "No profiles found")
        return check

    for info in profiles:
        if info.metadata is None:
            check.add(Level.ERROR, f"{info.name}: {info.error}")
            continue

        missing = profile_manager.missing_components(info.name, info.metadata)
        if missing:
            names = ", ".join(c.short_name for c in missing)
            check.add(Level.ERROR, f"{info.name}: missing component(s): {names}")
            continue

        if Component.SETTINGS in info.metadata.managed_components:
            try:
                validate_json_file(Component.SETTINGS.storage_path(paths, info.name))
            except CcprofError as e:
                check.add(Level.ERROR, f"{info.name}: {e.message}")
                continue

        managed = sorted_components(info.metadata.managed_components)
        components = ",".join(c.short_name for c in managed)
        suffix = " (migrated)" if info.migrated else ""
        check.add(Level.OK, f"{info.name}: {components}{suffix}")
    return check


def _check_environment() -> CheckResult:
    check = CheckResult("Environment")
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR")
    if editor:
        check.add(Level.OK, f"Editor: {editor}")
    else:
        check.add(Level.INFO, "EDITOR not set (using system default)")
    return check


def run_diagnostics(
    paths: Paths,
    state_manager: StateManager,
    profile_manager: ProfileManager,
) -> DiagnosticReport:
    """Run every diagnostic section and collect the results."""
    active = state_manager.read().default_profile
    report = DiagnosticReport(
        checks=[
            _check_directories(paths),
            _check_state(paths, state_manager),
            _check_live_paths(paths, active),
            _check_profiles(paths, profile_manager),
            _check_environment(),
        ]
    )
    logger.debug(f"Diagnostics finished: {'ok' if report.ok else 'issues found'}")
    return report


__all__ = ["CheckResult", "DiagnosticReport", "Finding", "Level", "run_diagnostics"]
