"""
CLI - Command-line interface for cleanforge.

Exit codes:
    0  completed
    1  completed with warnings
    2  did not run (bad arguments, unknown tweak, snapshot not saved/loaded)
"""

import argparse
import logging
import sys
import threading
from typing import Callable, List, Optional

from . import __version__
from .catalogs import CATALOG_BUILDERS
from .config import Config
from .log import configure_logging
from .protocol.errors import AggregateError, CleanForgeError
from .registry.base import ConfigValueStore
from .runner.subsystem import Subsystem, build_subsystems
from .snapshot.manager import SnapshotManager
from .startup.manager import StartupManager
from .ui.console import ConsoleUI

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_WARNINGS = 1
EXIT_DID_NOT_RUN = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    subsystems = list(CATALOG_BUILDERS)

    parser = argparse.ArgumentParser(
        prog="cleanforge",
        description="Apply Windows tweaks behind an exact, restorable snapshot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    cleanforge list
    cleanforge apply gaming disable_game_dvr disable_nagle
    cleanforge profile competitive_fps
    cleanforge restore gaming --dry-run
    cleanforge restore all
    cleanforge startup disable OneDrive

Environment Variables:
    CLEANFORGE_BACKUP_DIR       Snapshot directory (default: ~/.cleanforge/backups)
    CLEANFORGE_LOG_LEVEL        Log level
    CLEANFORGE_COMMAND_TIMEOUT  Timeout for sc/powercfg calls in seconds
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--config", help="Path to config file (TOML)")
    parser.add_argument("--backup-dir", help="Directory for snapshot files")
    parser.add_argument("--timeout", type=float, help="Timeout for service/power commands (seconds)")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--log-file", help="Write JSON lines log to this file")
    parser.add_argument("-q", "--quiet", action="store_true", default=None, help="Only print warnings and results")

    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List available tweaks and profiles")
    list_cmd.add_argument("--subsystem", choices=subsystems, help="Only this subsystem")

    apply_cmd = commands.add_parser("apply", help="Apply tweaks as one batch")
    apply_cmd.add_argument("subsystem", choices=subsystems)
    apply_cmd.add_argument("tweaks", nargs="+", metavar="TWEAK")

    profile_cmd = commands.add_parser("profile", help="Apply a predefined profile")
    profile_cmd.add_argument("profile")
    profile_cmd.add_argument("--subsystem", choices=subsystems, default="gaming")

    restore_cmd = commands.add_parser("restore", help="Restore the last snapshot")
    restore_cmd.add_argument("subsystem", choices=subsystems + ["all"])
    restore_cmd.add_argument("--dry-run", action="store_true", help="Show what would change")
    restore_cmd.add_argument("--forget", action="store_true", help="Delete the snapshot after a clean restore")

    commands.add_parser("status", help="Show snapshot slots")

    startup_cmd = commands.add_parser("startup", help="Manage startup items")
    startup_actions = startup_cmd.add_subparsers(dest="startup_action", required=True)
    startup_actions.add_parser("list", help="List startup items")
    disable_cmd = startup_actions.add_parser("disable", help="Disable startup items")
    disable_cmd.add_argument("names", nargs="+", metavar="NAME")
    enable_cmd = startup_actions.add_parser("enable", help="Re-enable startup items")
    enable_cmd.add_argument("names", nargs="+", metavar="NAME")

    return parser.parse_args(argv)


def _default_store() -> ConfigValueStore:
    from .registry.winreg_store import WindowsRegistryStore
    return WindowsRegistryStore()


def _run_cancellable(ui: ConsoleUI, work: Callable[[threading.Event], object]):
    """
    Run work off the main thread so Ctrl+C can request a cooperative cancel.

    The step in flight always completes; remaining steps are skipped.
    """
    cancel = threading.Event()
    outcome = {}

    def target():
        try:
            outcome["result"] = work(cancel)
        except BaseException as e:
            outcome["error"] = e

    worker = threading.Thread(target=target, name="cleanforge-apply", daemon=True)
    worker.start()
    while worker.is_alive():
        try:
            worker.join(0.2)
        except KeyboardInterrupt:
            if not cancel.is_set():
                ui.print("[yellow]Cancelling after the current step...[/]")
                cancel.set()

    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]


class CleanForgeCLI:
    """Dispatches parsed commands against the subsystems."""

    def __init__(
        self,
        config: Config,
        ui: ConsoleUI,
        store_factory: Callable[[], ConfigValueStore] = _default_store,
        services=None,
        power=None,
    ):
        self.config = config
        self.ui = ui
        self._store_factory = store_factory
        self._store: Optional[ConfigValueStore] = None
        self._services = services
        self._power = power
        self._subsystems = None

    @property
    def store(self) -> ConfigValueStore:
        if self._store is None:
            self._store = self._store_factory()
        return self._store

    @property
    def subsystems(self):
        if self._subsystems is None:
            if self._services is None or self._power is None:
                from .tuning.service import PowerSchemeController, ServiceController
                self._services = self._services or ServiceController(self.config.control)
                self._power = self._power or PowerSchemeController(self.config.control)
            self._subsystems = build_subsystems(self.config, self.store, self._services, self._power)
        return self._subsystems

    def run(self, args: argparse.Namespace) -> int:
        handler = getattr(self, f"cmd_{args.command}")
        try:
            return handler(args)
        except AggregateError as e:
            self.ui.print_error(str(e))
            return EXIT_WARNINGS
        except CleanForgeError as e:
            logger.debug("Command failed", exc_info=True)
            self.ui.print_error(str(e))
            return EXIT_DID_NOT_RUN

    # =========================================================================
    # Commands
    # =========================================================================

    def cmd_list(self, args) -> int:
        names = [args.subsystem] if args.subsystem else list(CATALOG_BUILDERS)
        for name in names:
            self.ui.print_catalog(CATALOG_BUILDERS[name]())
        return EXIT_OK

    def cmd_apply(self, args) -> int:
        subsystem: Subsystem = self.subsystems[args.subsystem]
        result = _run_cancellable(
            self.ui,
            lambda cancel: subsystem.applier.apply_profile(args.tweaks, cancel=cancel),
        )
        self.ui.print_apply_result(subsystem.name, result)
        return EXIT_OK if result.ok else EXIT_WARNINGS

    def cmd_profile(self, args) -> int:
        subsystem: Subsystem = self.subsystems[args.subsystem]
        result = _run_cancellable(
            self.ui,
            lambda cancel: subsystem.applier.apply_profile_by_name(args.profile, cancel=cancel),
        )
        self.ui.print_apply_result(subsystem.name, result)
        return EXIT_OK if result.ok else EXIT_WARNINGS

    def cmd_restore(self, args) -> int:
        names = list(self.subsystems) if args.subsystem == "all" else [args.subsystem]
        exit_code = EXIT_OK

        for name in names:
            subsystem: Subsystem = self.subsystems[name]
            if len(names) > 1:
                self.ui.print_header(name)
            if args.dry_run:
                self.ui.print_restore_preview(name, subsystem.restorer.preview())
                continue

            result = subsystem.restorer.restore_all()
            self.ui.print_restore_result(name, result)
            if not result.ok:
                exit_code = EXIT_WARNINGS
            elif args.forget and result.had_backup:
                subsystem.manager.discard()

        return exit_code

    def cmd_status(self, args) -> int:
        self.ui.print_banner(__version__)
        rows = []
        for name in CATALOG_BUILDERS:
            manager = SnapshotManager(name, self.config.backup.path)
            snapshot = manager.load()
            if snapshot is None:
                backup = "[dim]none[/]"
            else:
                backup = f"{snapshot.created_at} ({len(snapshot.entries)} values)"
            rows.append({
                "subsystem": name,
                "state": "IDLE",
                "applied": "0",
                "backup": backup,
            })
            if self._subsystems and name in self._subsystems:
                subsystem = self._subsystems[name]
                rows[-1]["state"] = self.ui.state_label(subsystem.state.state)
                rows[-1]["applied"] = str(len(subsystem.applied))
        self.ui.print_status(rows)
        self.ui.print(f"[dim]{self.config.summary()}[/]")
        return EXIT_OK

    def cmd_startup(self, args) -> int:
        manager = StartupManager(self.store)

        if args.startup_action == "list":
            self.ui.print_startup_items(manager.list_items())
            return EXIT_OK

        items = [manager.find(name) for name in args.names]
        if args.startup_action == "disable":
            changed = manager.disable_many(items)
        else:
            changed = manager.enable_many(items)
        for item in changed:
            state = "enabled" if item.enabled else "disabled"
            self.ui.print(f"[green]✓[/] {item.name} {state}")
        return EXIT_OK


def run(
    argv: Optional[List[str]] = None,
    store_factory: Callable[[], ConfigValueStore] = _default_store,
    services=None,
    power=None,
    ui: Optional[ConsoleUI] = None,
) -> int:
    """Parse, configure and dispatch. Returns the process exit code."""
    try:
        args = parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on bad arguments and 0 for --help/--version
        return e.code if isinstance(e.code, int) else EXIT_DID_NOT_RUN

    try:
        config = Config.load(args.config).override_from_args(args)
    except (OSError, ValueError) as e:
        (ui or ConsoleUI()).print_error(f"could not load configuration: {e}")
        return EXIT_DID_NOT_RUN

    errors = config.validate()
    ui = ui or ConsoleUI(quiet=config.logging.quiet)
    if errors:
        for error in errors:
            ui.print_error(error)
        return EXIT_DID_NOT_RUN

    configure_logging(config.logging)
    cli = CleanForgeCLI(config, ui, store_factory=store_factory, services=services, power=power)
    return cli.run(args)


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
