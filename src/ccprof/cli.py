"""ccprof command line interface.

Commands:
- list / current / inspect: show profiles and the live configuration
- add / edit / remove / rename: manage profiles
- use: activate a profile
- doctor: read-only diagnostics
- backup list|restore|clean: manage backups of replaced live components
- config show|set: view or change ~/.claude-profiles/config.toml
"""

import logging
import sys
from dataclasses import dataclass
from functools import cached_property

import click
from rich.console import Console
from rich.table import Table

from ccprof import __version__
from ccprof.backup_manager import BackupManager
from ccprof.click_group import CcprofGroup
from ccprof.components import Component, parse_components, sorted_components
from ccprof.config_manager import CcprofConfig, ConfigManager, coerce_value
from ccprof.doctor import Level, run_diagnostics
from ccprof.errors import CcprofError
from ccprof.fs_utils import format_size
from ccprof.paths import Paths
from ccprof.profile_manager import ProfileManager
from ccprof.state_manager import StateManager
from ccprof.status import StatusKind, detect_status, is_profile_symlink, linked_profile_name
from ccprof.switcher import ProfileSwitcher

logger = logging.getLogger(__name__)
console = Console()

LEVEL_ICONS = {
    Level.OK: "[green]✓[/green]",
    Level.INFO: "[blue]i[/blue]",
    Level.WARN: "[yellow]![/yellow]",
    Level.ERROR: "[red]✗[/red]",
}


@dataclass
class CcprofContext:
    """Wires the core services together for one invocation."""

    paths: Paths

    @cached_property
    def config(self) -> CcprofConfig:
        return ConfigManager.load_config(self.paths.config_file)

    @cached_property
    def state_manager(self) -> StateManager:
        return StateManager(self.paths.state_file, self.config.effective_lock_timeout)

    @cached_property
    def backup_manager(self) -> BackupManager:
        return BackupManager(self.paths, self.config.max_backups)

    @cached_property
    def profile_manager(self) -> ProfileManager:
        return ProfileManager(self.paths, self.state_manager, self.backup_manager)

    @cached_property
    def switcher(self) -> ProfileSwitcher:
        return ProfileSwitcher(
            self.paths, self.profile_manager, self.backup_manager, self.state_manager
        )


pass_ccprof = click.make_pass_decorator(CcprofContext)


def configure_console(color: str) -> None:
    """Rebuild the shared console for a color mode (always, auto or never).

    In auto mode rich decides from the terminal, NO_COLOR and TERM=dumb.
    """
    global console
    if color == "never":
        console = Console(color_system=None, highlight=False)
    elif color == "always":
        console = Console(force_terminal=True)
    else:
        console = Console()


def _handle_error(e: Exception, action: str) -> None:
    """Print an error the way every command does, then exit 1."""
    if isinstance(e, CcprofError):
        console.print(f"[red]Error:[/red] {e.message}")
        if e.hint:
            console.print(f"[dim]Hint: {e.hint}[/dim]")
    else:
        console.print(f"[red]Unexpected error:[/red] {e}")
        logger.error(f"Failed to {action}: {e}", exc_info=True)
    sys.exit(1)


@click.group(
    cls=CcprofGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.option(
    "--color",
    type=click.Choice(["always", "auto", "never"]),
    default="auto",
    show_default=True,
    help="When to use colors",
)
@click.option("--no-color", is_flag=True, help="Disable colored output (same as --color never)")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, verbose: bool, color: str, no_color: bool) -> None:
    """ccprof - Claude Code profile switcher.

    Keeps named bundles of ~/.claude components (settings.json, agents/,
    hooks/, commands/) under ~/.claude-profiles and switches between them
    with symlinks. Anything replaced during a switch is backed up first.

    \b
    EXAMPLES:
        $ ccprof add work --components settings,agents
        $ ccprof use work
        $ ccprof list
        $ ccprof doctor

    \b
    CONFIGURATION:
        Config file: ~/.claude-profiles/config.toml
        Keys: max_backups, lock_timeout, editor
        Set CCPROF_HOME to relocate both ~/.claude and ~/.claude-profiles.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")
    configure_console("never" if no_color else color)

    if ctx.obj is None:
        ctx.obj = CcprofContext(paths=Paths.default())

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


@main.command(name="list")
@pass_ccprof
def list_profiles(app: CcprofContext) -> None:
    """List all available profiles. The active profile is marked."""
    try:
        profiles = app.profile_manager.list_profiles()

        if not profiles:
            console.print("[yellow]No profiles found.[/yellow]")
            console.print("\nCreate one with:")
            console.print("  ccprof add <name>")
            return

        table = Table(title="Profiles")
        table.add_column("", style="green", width=2)
        table.add_column("Profile", style="cyan")
        table.add_column("Components")
        table.add_column("Status")

        for info in profiles:
            if info.metadata is None:
                components = "[red]?[/red]"
            else:
                components = ",".join(c.short_name for c in info.components)
                if info.migrated:
                    components += " (migrated)"
            table.add_row(
                "✓" if info.active else "",
                info.name,
                components,
                "[green]active[/green]" if info.active else "-",
            )

        console.print(table)

    except Exception as e:
        _handle_error(e, "list profiles")


@main.command(name="current")
@pass_ccprof
def show_current(app: CcprofContext) -> None:
    """Show the active profile and the state of every live component."""
    try:
        state = app.state_manager.read()

        if state.default_profile:
            console.print(f"[green]Selected profile:[/green] [bold]{state.default_profile}[/bold]")
            if state.updated_at:
                console.print(f"  Last switched: {state.updated_at:%Y-%m-%d %H:%M:%S %Z}")
        else:
            console.print("[yellow]Selected profile:[/yellow] (none)")

        table = Table(title="Live Components")
        table.add_column("Component", style="cyan")
        table.add_column("Path")
        table.add_column("Status")
        table.add_column("Linked profile")

        for component in Component.all():
            live = component.live_path(app.paths)
            status = detect_status(live)
            linked = "-"
            if status.kind is StatusKind.BROKEN_SYMLINK:
                status_text = f"[red]{status.describe()}[/red]"
            elif status.kind is StatusKind.MISSING:
                status_text = "[yellow]missing[/yellow]"
            else:
                status_text = status.describe()
            if is_profile_symlink(status, app.paths):
                linked = f"[green]{linked_profile_name(status, app.paths)}[/green]"
            elif status.kind is StatusKind.SYMLINK:
                linked = "[yellow](outside profiles dir)[/yellow]"
            table.add_row(component.display_name, str(live), status_text, linked)

        console.print(table)

    except Exception as e:
        _handle_error(e, "show current profile")


@main.command(name="inspect")
@click.argument("name")
@pass_ccprof
def inspect_profile(app: CcprofContext, name: str) -> None:
    """Show detailed information about a profile."""
    try:
        metadata = app.profile_manager.read_metadata(name)
        active = app.state_manager.active_profile() == name

        suffix = " [green](active)[/green]" if active else ""
        console.print(f"[bold]Profile: {name}[/bold]{suffix}")
        console.print(f"  Created: {metadata.created_at:%Y-%m-%d %H:%M:%S}")
        console.print(f"  Updated: {metadata.updated_at:%Y-%m-%d %H:%M:%S}")
        console.print(f"  Version: {metadata.version}")
        if metadata.migration is not None:
            console.print(
                f"  Migration: [yellow]Migrated from legacy "
                f"({metadata.migration.migration_date:%Y-%m-%d})[/yellow]"
            )

        table = Table(title="Managed Components")
        table.add_column("Component", style="cyan")
        table.add_column("Path")
        table.add_column("Size", justify="right")

        for detail in app.profile_manager.component_details(name):
            size = format_size(detail.size) if detail.size is not None else "[red]missing[/red]"
            table.add_row(detail.component.display_name, str(detail.path), size)

        console.print(table)

    except Exception as e:
        _handle_error(e, f"inspect profile '{name}'")


def _select_components(app: CcprofContext) -> set[Component]:
    """Prompt for components, defaulting to those present under ~/.claude."""
    available = [c for c in Component.all() if c.live_path(app.paths).exists()]
    for component in Component.all():
        marker = "✓" if component in available else "✗ (not found)"
        console.print(f"  {marker} {component.short_name}")
    answer = click.prompt(
        "Which components should this profile manage? (comma-separated)",
        default=",".join(c.short_name for c in available) or Component.SETTINGS.short_name,
    )
    return parse_components([answer])


@main.command(name="add")
@click.argument("name")
@click.option(
    "--components",
    "-c",
    help="Components to include, comma-separated: settings,agents,hooks,commands",
)
@pass_ccprof
def add_profile(app: CcprofContext, name: str, components: str | None) -> None:
    """Create a profile from the current ~/.claude configuration.

    \b
    EXAMPLES:
        $ ccprof add work
        $ ccprof add minimal --components settings
    """
    try:
        selected = parse_components([components]) if components else _select_components(app)
        app.profile_manager.create_profile(name, selected)

        console.print(f"[green]Created profile '{name}'[/green]")
        console.print("Included components:")
        for component in sorted_components(selected):
            console.print(f"  ✓ {component.display_name}")
        console.print("\nTo activate it:")
        console.print(f"  ccprof use {name}")

    except Exception as e:
        _handle_error(e, f"create profile '{name}'")


@main.command(name="use")
@click.argument("name")
@pass_ccprof
def use_profile(app: CcprofContext, name: str) -> None:
    """Switch to a profile (activate it)."""
    try:
        with console.status(f"Switching to profile '{name}'..."):
            result = app.switcher.activate(name)

        for backup in result.backups:
            console.print(f"[dim]Backed up to {backup}[/dim]")
        console.print(f"[green]Active profile:[/green] {name}")

    except Exception as e:
        _handle_error(e, f"switch to profile '{name}'")


@main.command(name="edit")
@click.argument("name")
@click.option(
    "--track",
    help="Set which components the profile manages, comma-separated",
)
@click.option("--component", "-c", help="Open a specific component instead of settings")
@click.option("--all", "open_all", is_flag=True, help="Open all managed components")
@pass_ccprof
def edit_profile(
    app: CcprofContext,
    name: str,
    track: str | None,
    component: str | None,
    open_all: bool,
) -> None:
    """Open a profile's components in your editor, or change what it tracks.

    \b
    EXAMPLES:
        $ ccprof edit work
        $ ccprof edit work --component agents
        $ ccprof edit work --track settings,hooks
    """
    try:
        if track is not None:
            metadata = app.profile_manager.update_components(name, parse_components([track]))
            tracked = ",".join(c.short_name for c in sorted_components(metadata.managed_components))
            console.print(f"[green]Profile '{name}' now tracks:[/green] {tracked}")
            return

        metadata = app.profile_manager.read_metadata(name)
        if open_all:
            targets = sorted_components(metadata.managed_components)
        else:
            targets = [Component.parse(component) if component else Component.SETTINGS]

        for target in targets:
            if target not in metadata.managed_components:
                console.print(
                    f"[yellow]Profile '{name}' does not manage {target.short_name}[/yellow]"
                )
                continue
            path = target.storage_path(app.paths, name)
            click.edit(filename=str(path), editor=app.config.editor)

    except Exception as e:
        _handle_error(e, f"edit profile '{name}'")


@main.command(name="remove")
@click.argument("name")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
@pass_ccprof
def remove_profile(app: CcprofContext, name: str, force: bool) -> None:
    """Remove a profile. The active profile cannot be removed."""
    try:
        app.profile_manager.read_metadata(name)

        if not force and not click.confirm(
            f"Are you sure you want to remove profile '{name}'?", default=False
        ):
            console.print("[yellow]Removal cancelled.[/yellow]")
            return

        app.profile_manager.remove_profile(name)
        console.print(f"[green]Removed profile '{name}'[/green]")

    except Exception as e:
        _handle_error(e, f"remove profile '{name}'")


@main.command(name="rename")
@click.argument("old_name")
@click.argument("new_name")
@pass_ccprof
def rename_profile(app: CcprofContext, old_name: str, new_name: str) -> None:
    """Rename a profile, updating live links if it is active."""
    try:
        was_active = app.profile_manager.rename_profile(old_name, new_name)
        suffix = " (symlinks updated)" if was_active else ""
        console.print(f"[green]Renamed profile '{old_name}' to '{new_name}'{suffix}[/green]")

    except Exception as e:
        _handle_error(e, f"rename profile '{old_name}'")


@main.command(name="doctor")
@pass_ccprof
def doctor(app: CcprofContext) -> None:
    """Run read-only diagnostics on the ccprof setup."""
    try:
        report = run_diagnostics(app.paths, app.state_manager, app.profile_manager)
    except Exception as e:
        _handle_error(e, "run diagnostics")
        return

    console.print("[bold]ccprof Doctor[/bold]\n")
    for check in report.checks:
        console.print(f"[bold]Checking {check.name}...[/bold]")
        for finding in check.findings:
            console.print(f"  {LEVEL_ICONS[finding.level]} {finding.message}")
        if not check.ok:
            console.print("  [red]Issues detected![/red]")
        console.print()

    if not report.ok:
        sys.exit(1)


@main.group(name="backup")
def backup_group() -> None:
    """Manage backups of replaced live components.

    Backups are created automatically whenever a switch replaces a real
    file, directory, or a symlink pointing outside ccprof storage.
    """


@backup_group.command(name="list")
@pass_ccprof
def backup_list(app: CcprofContext) -> None:
    """List all backups, newest first."""
    try:
        backups = app.backup_manager.list_backups()
        if not backups:
            console.print("[yellow]No backups found.[/yellow]")
            console.print("\nBackups are created automatically when switching profiles.")
            return

        table = Table(title="Backups")
        table.add_column("ID", style="cyan")
        table.add_column("Component")
        table.add_column("Date")
        table.add_column("Size", justify="right")
        for info in backups:
            table.add_row(
                info.id,
                info.component.display_name,
                f"{info.modified:%Y-%m-%d %H:%M:%S}",
                format_size(info.size),
            )

        console.print(table)
        console.print(f"{len(backups)} backup(s) found")

    except Exception as e:
        _handle_error(e, "list backups")


@backup_group.command(name="restore")
@click.argument("backup_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@pass_ccprof
def backup_restore(app: CcprofContext, backup_id: str, yes: bool) -> None:
    """Restore a backup over its component's live path.

    The current live content is replaced without taking a new backup.
    """
    try:
        info = app.backup_manager.get_backup(backup_id)
        target = info.component.live_path(app.paths)

        if not yes and not click.confirm(
            f"Restore '{backup_id}' to {target}? This overwrites the current content",
            default=False,
        ):
            console.print("[yellow]Restore cancelled.[/yellow]")
            return

        app.backup_manager.restore(backup_id)
        console.print(f"[green]Restored '{backup_id}' to {target}[/green]")

    except Exception as e:
        _handle_error(e, f"restore backup '{backup_id}'")


@backup_group.command(name="clean")
@click.option(
    "--keep",
    type=click.IntRange(min=0),
    default=5,
    show_default=True,
    help="Number of backups to keep per component",
)
@pass_ccprof
def backup_clean(app: CcprofContext, keep: int) -> None:
    """Delete old backups, keeping the newest per component."""
    try:
        removed = app.backup_manager.clean(keep)
        if removed:
            console.print(
                f"[green]Removed {len(removed)} old backup(s), keeping {keep} per component[/green]"
            )
        else:
            console.print(f"[green]No backups to clean (keeping {keep} per component)[/green]")

    except Exception as e:
        _handle_error(e, "clean backups")


@main.group(name="config")
def config_group() -> None:
    """View or change ccprof configuration."""


@config_group.command(name="show")
@pass_ccprof
def config_show(app: CcprofContext) -> None:
    """Show the effective configuration."""
    try:
        config = app.config
        console.print(f"Config file: {app.paths.config_file}")
        console.print(f"  max_backups = {config.max_backups}")
        timeout = "wait forever" if not config.lock_timeout else f"{config.lock_timeout}s"
        console.print(f"  lock_timeout = {config.lock_timeout} ({timeout})")
        console.print(f"  editor = {config.editor or '(from $VISUAL/$EDITOR)'}")

    except Exception as e:
        _handle_error(e, "show config")


@config_group.command(name="set")
@click.argument("key")
@click.argument("value")
@pass_ccprof
def config_set(app: CcprofContext, key: str, value: str) -> None:
    """Set a configuration value (max_backups, lock_timeout, editor)."""
    try:
        ConfigManager.update_config(app.paths.config_file, **{key: coerce_value(key, value)})
        console.print(f"[green]Set {key} = {value}[/green]")

    except Exception as e:
        _handle_error(e, f"set config '{key}'")


__all__ = ["CcprofContext", "main"]
