"""
StartupManager - enable/disable programs that run at logon.

Disabling is a move, not a snapshot: a Run-key value is moved into a
CleanForge_Disabled side key, a startup folder file is renamed with a
.disabled suffix. Enabling moves it back. Both directions are no-ops
when the item is already in the target state.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, List, Optional

from ..protocol.errors import (
    AggregateError,
    CleanForgeError,
    NotFoundError,
    PermissionDeniedError,
    StepFailure,
)
from ..registry.base import ConfigValueStore
from ..snapshot.models import Coordinate, ValueKind

logger = logging.getLogger(__name__)

RUN_KEY = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Run"
DISABLED_SUBKEY = "CleanForge_Disabled"
DISABLED_SUFFIX = ".disabled"

REGISTRY_HKCU = "registry_hkcu"
REGISTRY_HKLM = "registry_hklm"
STARTUP_FOLDER = "startup_folder"

_REGISTRY_LOCATIONS = {
    REGISTRY_HKCU: "HKCU",
    REGISTRY_HKLM: "HKLM",
}

# Shell metadata, never a startup program
_IGNORED_FILES = {"desktop.ini"}


def default_startup_dir() -> Path:
    appdata = os.environ.get("APPDATA")
    base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
    return base / "Microsoft" / "Windows" / "Start Menu" / "Programs" / "Startup"


@dataclass(frozen=True)
class StartupItem:
    """One program configured to run at logon."""
    name: str
    command: str
    location: str           # registry_hkcu, registry_hklm, startup_folder
    enabled: bool
    file_path: Optional[str] = None

    @property
    def registry_root(self) -> Optional[str]:
        return _REGISTRY_LOCATIONS.get(self.location)


class StartupManager:
    """Lists and toggles startup items in the Run keys and the startup folder."""

    def __init__(self, store: ConfigValueStore, startup_dir: Optional[Path] = None):
        self.store = store
        self.startup_dir = Path(startup_dir) if startup_dir else default_startup_dir()

    # =========================================================================
    # Listing
    # =========================================================================

    def list_items(self) -> List[StartupItem]:
        items: List[StartupItem] = []
        for location, root in _REGISTRY_LOCATIONS.items():
            items.extend(self._read_run_key(root, RUN_KEY, location, enabled=True))
            items.extend(self._read_run_key(root, f"{RUN_KEY}\\{DISABLED_SUBKEY}", location, enabled=False))
        items.extend(self._read_startup_folder())
        return items

    def find(self, name: str) -> StartupItem:
        """Look up an item by name (case-insensitive)."""
        for item in self.list_items():
            if item.name.lower() == name.lower():
                return item
        raise NotFoundError(f"startup item '{name}' not found")

    def _read_run_key(self, root: str, path: str, location: str, enabled: bool) -> List[StartupItem]:
        try:
            values = self.store.list_values(root, path)
        except NotFoundError:
            return []
        except CleanForgeError as e:
            logger.warning("Could not read %s\\%s: %s", root, path, e)
            return []

        return [
            StartupItem(name=name, command=str(value.data), location=location, enabled=enabled)
            for name, value in values
            if value.kind is ValueKind.STRING
        ]

    def _read_startup_folder(self) -> List[StartupItem]:
        if not self.startup_dir.is_dir():
            return []

        items = []
        for entry in sorted(self.startup_dir.iterdir()):
            if not entry.is_file() or entry.name.lower() in _IGNORED_FILES:
                continue
            enabled = not entry.name.endswith(DISABLED_SUFFIX)
            display = entry.name if enabled else entry.name[:-len(DISABLED_SUFFIX)]
            items.append(StartupItem(
                name=Path(display).stem,
                command=str(self.startup_dir / display),
                location=STARTUP_FOLDER,
                enabled=enabled,
                file_path=str(entry),
            ))
        return items

    # =========================================================================
    # Toggle
    # =========================================================================

    def disable(self, item: StartupItem) -> StartupItem:
        """Disable an item. Returns the item in its new state."""
        if not item.enabled:
            return item
        if item.location == STARTUP_FOLDER:
            self._rename(item, Path(item.file_path), Path(item.file_path + DISABLED_SUFFIX))
        else:
            self._move_value(item, RUN_KEY, f"{RUN_KEY}\\{DISABLED_SUBKEY}")
        logger.info("Disabled startup item %s", item.name)
        return self._toggled(item, enabled=False)

    def enable(self, item: StartupItem) -> StartupItem:
        """Re-enable a previously disabled item. Returns the item in its new state."""
        if item.enabled:
            return item
        if item.location == STARTUP_FOLDER:
            source = Path(item.file_path)
            self._rename(item, source, source.with_name(source.name[:-len(DISABLED_SUFFIX)]))
        else:
            self._move_value(item, f"{RUN_KEY}\\{DISABLED_SUBKEY}", RUN_KEY)
        logger.info("Enabled startup item %s", item.name)
        return self._toggled(item, enabled=True)

    def disable_many(self, items: Iterable[StartupItem]) -> List[StartupItem]:
        return self._toggle_many(items, self.disable, "disable")

    def enable_many(self, items: Iterable[StartupItem]) -> List[StartupItem]:
        return self._toggle_many(items, self.enable, "enable")

    def _toggle_many(self, items, toggle, operation: str) -> List[StartupItem]:
        """Toggle every item; failures are raised together at the end."""
        done = []
        failures = []
        for item in items:
            try:
                done.append(toggle(item))
            except CleanForgeError as e:
                logger.warning("Could not %s startup item %s: %s", operation, item.name, e)
                failures.append(StepFailure(item.name, operation, e))
        if failures:
            raise AggregateError(failures, f"{len(failures)} startup item(s) could not be {operation}d")
        return done

    def _move_value(self, item: StartupItem, from_path: str, to_path: str) -> None:
        root = item.registry_root
        if root is None:
            raise CleanForgeError(f"unknown startup location: {item.location}")

        source = Coordinate(root, from_path, item.name)
        value, existed = self.store.read(source)
        if not existed:
            raise NotFoundError(f"{source}: not found")

        # Copy first so a failed delete never loses the entry
        self.store.write(Coordinate(root, to_path, item.name), value)
        self.store.delete(source)

    def _rename(self, item: StartupItem, source: Path, target: Path) -> None:
        try:
            source.rename(target)
        except FileNotFoundError as e:
            raise NotFoundError(f"{source}: not found") from e
        except PermissionError as e:
            raise PermissionDeniedError(f"{source}: rename denied") from e
        except OSError as e:
            raise CleanForgeError(f"{item.name}: rename failed: {e}") from e

    def _toggled(self, item: StartupItem, enabled: bool) -> StartupItem:
        if item.location != STARTUP_FOLDER:
            return replace(item, enabled=enabled)
        path = Path(item.file_path)
        if enabled:
            path = path.with_name(path.name[:-len(DISABLED_SUFFIX)])
        else:
            path = path.with_name(path.name + DISABLED_SUFFIX)
        return replace(item, enabled=enabled, file_path=str(path))
