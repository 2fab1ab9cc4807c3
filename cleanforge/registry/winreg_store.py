"""
WindowsRegistryStore - ConfigValueStore backed by the Windows registry.

Type mapping:
    REG_SZ / REG_EXPAND_SZ  -> string
    REG_DWORD               -> int32
    REG_QWORD               -> int64
    REG_BINARY              -> bytes
Other registry types are reported as unreadable.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, List, Tuple

from ..protocol.errors import (
    CleanForgeError,
    NotFoundError,
    PermissionDeniedError,
    TypeMismatchError,
)
from ..snapshot.models import ConfigValue, Coordinate, ValueKind
from .base import ConfigValueStore

if sys.platform == "win32":
    import winreg
else:
    winreg = None

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(target: str, operation: str) -> Iterator[None]:
    """Map OSError subclasses onto the CleanForge taxonomy."""
    try:
        yield
    except FileNotFoundError as e:
        raise NotFoundError(f"{target}: not found") from e
    except PermissionError as e:
        raise PermissionDeniedError(f"{target}: {operation} denied") from e
    except OSError as e:
        raise CleanForgeError(f"{target}: {operation} failed: {e}") from e


class WindowsRegistryStore(ConfigValueStore):
    """Reads and writes registry values through the winreg module."""

    def __init__(self, use_64bit_view: bool = True):
        if winreg is None:
            raise CleanForgeError("The Windows registry is only available on Windows")
        self._hives = {
            "HKLM": winreg.HKEY_LOCAL_MACHINE,
            "HKCU": winreg.HKEY_CURRENT_USER,
            "HKCR": winreg.HKEY_CLASSES_ROOT,
            "HKU": winreg.HKEY_USERS,
            "HKCC": winreg.HKEY_CURRENT_CONFIG,
        }
        self._view = winreg.KEY_WOW64_64KEY if use_64bit_view else 0

    def _hive(self, root: str):
        try:
            return self._hives[root]
        except KeyError:
            raise CleanForgeError(f"unknown registry root key: {root}") from None

    def read(self, coordinate: Coordinate) -> Tuple[ConfigValue, bool]:
        hive = self._hive(coordinate.root)
        try:
            with winreg.OpenKey(hive, coordinate.path, 0, winreg.KEY_QUERY_VALUE | self._view) as key:
                raw, reg_type = winreg.QueryValueEx(key, coordinate.name)
        except FileNotFoundError:
            # Key or value missing: legitimately absent
            return ConfigValue.absent(), False
        except PermissionError as e:
            raise PermissionDeniedError(f"{coordinate}: read denied") from e
        except OSError as e:
            raise CleanForgeError(f"{coordinate}: read failed: {e}") from e

        return self._to_value(coordinate, raw, reg_type), True

    def _to_value(self, coordinate: Coordinate, raw, reg_type: int) -> ConfigValue:
        if reg_type in (winreg.REG_SZ, winreg.REG_EXPAND_SZ):
            return ConfigValue.string(raw)
        if reg_type == winreg.REG_DWORD:
            return ConfigValue.int32(raw)
        if reg_type == winreg.REG_QWORD:
            return ConfigValue.int64(raw)
        if reg_type == winreg.REG_BINARY:
            return ConfigValue.binary(raw or b"")
        raise TypeMismatchError(f"{coordinate}: unsupported registry type {reg_type}")

    def write(self, coordinate: Coordinate, value: ConfigValue) -> None:
        if value.is_absent:
            raise TypeMismatchError(f"{coordinate}: cannot write an absent value, delete it instead")

        reg_type = {
            ValueKind.STRING: winreg.REG_SZ,
            ValueKind.INT32: winreg.REG_DWORD,
            ValueKind.INT64: winreg.REG_QWORD,
            ValueKind.BYTES: winreg.REG_BINARY,
        }[value.kind]

        hive = self._hive(coordinate.root)
        with _translate_errors(str(coordinate), "write"):
            # CreateKeyEx opens the key or creates it with all missing parents
            with winreg.CreateKeyEx(hive, coordinate.path, 0, winreg.KEY_SET_VALUE | self._view) as key:
                winreg.SetValueEx(key, coordinate.name, 0, reg_type, value.data)
        logger.debug("Wrote %s = %s", coordinate, value)

    def delete(self, coordinate: Coordinate) -> None:
        hive = self._hive(coordinate.root)
        try:
            with winreg.OpenKey(hive, coordinate.path, 0, winreg.KEY_SET_VALUE | self._view) as key:
                winreg.DeleteValue(key, coordinate.name)
        except FileNotFoundError:
            return
        except PermissionError as e:
            raise PermissionDeniedError(f"{coordinate}: delete denied") from e
        except OSError as e:
            raise CleanForgeError(f"{coordinate}: delete failed: {e}") from e
        logger.debug("Deleted %s", coordinate)

    def enumerate_children(self, root: str, path: str) -> List[str]:
        hive = self._hive(root)
        children = []
        with _translate_errors(f"{root}\\{path}", "enumerate"):
            with winreg.OpenKey(hive, path, 0, winreg.KEY_ENUMERATE_SUB_KEYS | self._view) as key:
                index = 0
                while True:
                    try:
                        children.append(winreg.EnumKey(key, index))
                    except OSError:
                        # ERROR_NO_MORE_ITEMS
                        break
                    index += 1
        return children

    def list_values(self, root: str, path: str) -> List[Tuple[str, ConfigValue]]:
        """All (name, value) pairs directly under a path."""
        hive = self._hive(root)
        values = []
        with _translate_errors(f"{root}\\{path}", "list"):
            with winreg.OpenKey(hive, path, 0, winreg.KEY_QUERY_VALUE | self._view) as key:
                index = 0
                while True:
                    try:
                        name, raw, reg_type = winreg.EnumValue(key, index)
                    except OSError:
                        break
                    index += 1
                    coordinate = Coordinate(root, path, name)
                    try:
                        values.append((name, self._to_value(coordinate, raw, reg_type)))
                    except TypeMismatchError:
                        logger.debug("Skipping %s: unsupported type", coordinate)
        return values
