"""
ConsoleUI - Rich-based console output for the CLI.

Distinguishes "completed", "completed with N warnings" and "did not run".
"""

from typing import Dict, Iterable, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..runner.state import State
from ..snapshot.models import RestoreAction, RestoreResult
from ..startup.manager import StartupItem
from ..tuning.applier import ApplyResult
from ..tuning.catalog import TweakCatalog

STATE_COLORS = {
    State.IDLE: "dim",
    State.CAPTURING: "cyan",
    State.MUTATING: "yellow",
    State.APPLIED: "green",
    State.RESTORING: "magenta",
}


class ConsoleUI:
    """
    Rich console interface for cleanforge.
    """

    def __init__(self, quiet: bool = False, console: Optional[Console] = None):
        self.quiet = quiet
        self.console = console or Console()

    def print(self, *args, **kwargs):
        """Print to console."""
        if self.quiet:
            return
        self.console.print(*args, **kwargs)

    def print_header(self, title: str):
        """Print a section header."""
        if self.quiet:
            return
        self.console.print()
        self.console.rule(f"[bold blue]{title}[/]")

    def print_banner(self, version: str):
        """Print application banner."""
        if self.quiet:
            return
        banner = f"[bold cyan]CleanForge[/] [dim]v{version}[/]\n[dim]Windows tweaks with exact restore[/]"
        self.console.print(Panel(banner, border_style="cyan"))

    # =========================================================================
    # Catalog
    # =========================================================================

    def print_catalog(self, catalog: TweakCatalog, applied: Iterable[str] = ()):
        """List tweaks grouped by category."""
        applied = set(applied)
        table = Table(title=f"{catalog.name} tweaks")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Category", style="dim")
        table.add_column("Changes", justify="right")
        table.add_column("Applied", justify="center")

        for category, tweaks in catalog.by_category().items():
            for tweak in tweaks:
                changes = len(tweak.mutations) + len(tweak.services) + (1 if tweak.power_plan else 0)
                table.add_row(
                    tweak.id,
                    tweak.display_name,
                    category,
                    str(changes),
                    "[green]✓[/]" if tweak.id in applied else "",
                )
        self.console.print(table)

        if catalog.profiles:
            profiles = Table(title=f"{catalog.name} profiles", box=None)
            profiles.add_column("ID", style="cyan")
            profiles.add_column("Name")
            profiles.add_column("Tweaks", justify="right")
            for profile in catalog.profiles.values():
                profiles.add_row(profile.id, profile.name, str(len(profile.tweak_ids)))
            self.console.print(profiles)

    # =========================================================================
    # Results
    # =========================================================================

    def print_apply_result(self, subsystem: str, result: ApplyResult):
        """Display the outcome of an apply."""
        if result.ok:
            self.print(f"[bold green]✓[/] {subsystem}: applied {', '.join(result.applied)}")
        else:
            self.console.print(
                f"[bold yellow]![/] {subsystem}: completed with {result.warning_count} warning(s)"
            )
            self._print_failures(result.failures)

        if result.cancelled:
            self.console.print(f"[yellow]Cancelled, {len(result.skipped)} step(s) skipped[/]")
            for step in result.skipped:
                self.console.print(f"  [dim]- {step}[/]")

    def print_restore_result(self, subsystem: str, result: RestoreResult):
        """Display the outcome of a restore."""
        if not result.had_backup:
            self.print(f"[dim]{subsystem}: no backup available, nothing to restore[/]")
            return

        summary = (
            f"{result.restored} value(s) rewritten, {result.deleted} deleted, "
            f"{result.services_restored} service step(s)"
            + (", power plan" if result.power_plan_restored else "")
        )
        if result.ok:
            self.print(f"[bold green]✓[/] {subsystem}: restored ({summary})")
        else:
            self.console.print(
                f"[bold yellow]![/] {subsystem}: completed with {result.warning_count} warning(s) ({summary})"
            )
            self._print_failures(result.failures)

    def print_restore_preview(self, subsystem: str, actions: List[RestoreAction]):
        """Display a dry-run restore."""
        if not actions:
            self.print(f"[dim]{subsystem}: no backup available, nothing to restore[/]")
            return

        table = Table(title=f"{subsystem} restore preview")
        table.add_column("Target", style="cyan", overflow="fold")
        table.add_column("Action")
        table.add_column("Current", style="dim")
        table.add_column("Restored")

        action_styles = {"delete": "red", "write": "yellow", "none": "dim"}
        for action in actions:
            style = action_styles.get(action.action, "blue")
            table.add_row(
                action.target,
                f"[{style}]{action.action}[/]",
                action.current if action.current is not None else "-",
                action.restored if action.restored is not None else "-",
            )
        self.console.print(table)

    def print_status(self, rows: List[Dict[str, str]]):
        """One row per subsystem: state, applied tweaks, backup."""
        table = Table(title="Status")
        table.add_column("Subsystem", style="cyan")
        table.add_column("State")
        table.add_column("Applied", justify="right")
        table.add_column("Backup")

        for row in rows:
            table.add_row(row["subsystem"], row["state"], row["applied"], row["backup"])
        self.console.print(table)

    def state_label(self, state: State) -> str:
        return f"[{STATE_COLORS.get(state, 'white')}]{state.name}[/]"

    def print_startup_items(self, items: List[StartupItem]):
        """List startup items."""
        table = Table(title="Startup items")
        table.add_column("Name", style="cyan")
        table.add_column("Location", style="dim")
        table.add_column("Enabled", justify="center")
        table.add_column("Command", overflow="fold")

        for item in items:
            table.add_row(
                item.name,
                item.location,
                "[green]yes[/]" if item.enabled else "[red]no[/]",
                item.command,
            )
        self.console.print(table)

    def _print_failures(self, failures):
        for failure in failures:
            hint = " [bold](run as Administrator)[/]" if failure.user_actionable else ""
            self.console.print(f"  [yellow]-[/] {failure.target}: {failure.operation} [dim]({failure.kind})[/]{hint}")

    def print_error(self, message: str, exception: Optional[Exception] = None):
        """Display a hard failure: the operation did not run."""
        self.console.print(f"[bold red]Did not run:[/] {message}")
        if exception:
            self.console.print(f"[dim]{type(exception).__name__}: {exception}[/]")
