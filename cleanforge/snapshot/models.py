"""
Data models for the snapshot/restore system.

Values are carried as an explicit tagged union (ConfigValue) so the
registry type survives a JSON round trip: the "type" field in the
snapshot file is authoritative and decoding rejects any value whose
shape contradicts it instead of coercing.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..protocol.errors import CorruptSnapshotError, StepFailure, TypeMismatchError


SNAPSHOT_FORMAT_VERSION = 1

INT32_MAX = 2 ** 32 - 1
INT64_MAX = 2 ** 64 - 1

RUNNING = "running"
STOPPED = "stopped"
RUN_STATES = (RUNNING, STOPPED)


class ValueKind(str, Enum):
    """Type tag of a configuration value."""
    STRING = "string"
    INT32 = "int32"
    INT64 = "int64"
    BYTES = "bytes"
    ABSENT = "absent"


@dataclass(frozen=True)
class ConfigValue:
    """A typed configuration value. Validated on construction."""

    kind: ValueKind
    data: Union[str, int, bytes, None] = None

    def __post_init__(self):
        try:
            kind = ValueKind(self.kind)
        except ValueError:
            raise TypeMismatchError(f"unknown value type: {self.kind!r}") from None
        object.__setattr__(self, "kind", kind)
        _check_shape(kind, self.data)

    # Constructors
    @classmethod
    def string(cls, value: str) -> "ConfigValue":
        return cls(ValueKind.STRING, value)

    @classmethod
    def int32(cls, value: int) -> "ConfigValue":
        return cls(ValueKind.INT32, value)

    @classmethod
    def int64(cls, value: int) -> "ConfigValue":
        return cls(ValueKind.INT64, value)

    @classmethod
    def binary(cls, value: bytes) -> "ConfigValue":
        if isinstance(value, (bytearray, memoryview)):
            value = bytes(value)
        return cls(ValueKind.BYTES, value)

    @classmethod
    def absent(cls) -> "ConfigValue":
        return cls(ValueKind.ABSENT, None)

    @property
    def is_absent(self) -> bool:
        return self.kind is ValueKind.ABSENT

    def to_json(self) -> Any:
        """JSON representation of the payload (the tag is stored separately)."""
        if self.kind is ValueKind.BYTES:
            return base64.b64encode(self.data).decode("ascii")
        return self.data

    @classmethod
    def from_json(cls, kind: str, raw: Any) -> "ConfigValue":
        """
        Decode a payload using its declared type tag.

        Raises:
            CorruptSnapshotError: unknown type tag
            TypeMismatchError: payload shape contradicts the tag
        """
        try:
            tag = ValueKind(kind)
        except ValueError:
            raise CorruptSnapshotError(f"unknown value type tag: {kind!r}") from None

        if tag is ValueKind.BYTES:
            if not isinstance(raw, str):
                raise TypeMismatchError(f"bytes value must be base64 text, got {type(raw).__name__}")
            try:
                return cls(tag, base64.b64decode(raw.encode("ascii"), validate=True))
            except (binascii.Error, UnicodeEncodeError) as e:
                raise TypeMismatchError(f"invalid base64 for bytes value: {e}") from None

        return cls(tag, raw)

    def __str__(self) -> str:
        if self.kind is ValueKind.BYTES:
            return f"bytes[{len(self.data)}]"
        if self.kind is ValueKind.ABSENT:
            return "<absent>"
        return f"{self.kind.value}:{self.data!r}"


def _check_shape(kind: ValueKind, data: Any) -> None:
    if kind is ValueKind.STRING:
        if not isinstance(data, str):
            raise TypeMismatchError(f"string value expected, got {type(data).__name__}")
    elif kind in (ValueKind.INT32, ValueKind.INT64):
        # bool is an int subclass; floats are never accepted
        if isinstance(data, bool) or not isinstance(data, int):
            raise TypeMismatchError(f"{kind.value} value expected integer, got {type(data).__name__}")
        limit = INT32_MAX if kind is ValueKind.INT32 else INT64_MAX
        if not 0 <= data <= limit:
            raise TypeMismatchError(f"{kind.value} value out of range: {data}")
    elif kind is ValueKind.BYTES:
        if not isinstance(data, bytes):
            raise TypeMismatchError(f"bytes value expected, got {type(data).__name__}")
    elif kind is ValueKind.ABSENT:
        if data is not None:
            raise TypeMismatchError("absent value must not carry data")


# Hive abbreviations and their long forms
ROOT_ALIASES = {
    "HKLM": "HKLM",
    "HKEY_LOCAL_MACHINE": "HKLM",
    "HKCU": "HKCU",
    "HKEY_CURRENT_USER": "HKCU",
    "HKCR": "HKCR",
    "HKEY_CLASSES_ROOT": "HKCR",
    "HKU": "HKU",
    "HKEY_USERS": "HKU",
    "HKCC": "HKCC",
    "HKEY_CURRENT_CONFIG": "HKCC",
}


def normalize_root(root: str) -> str:
    """Map a hive name to its abbreviation."""
    try:
        return ROOT_ALIASES[root.strip().upper()]
    except KeyError:
        raise ValueError(f"unknown registry root key: {root}") from None


@dataclass(frozen=True)
class Coordinate:
    """(path, name) pair identifying one configuration value."""

    root: str
    path: str
    name: str

    def __post_init__(self):
        object.__setattr__(self, "root", normalize_root(self.root))
        object.__setattr__(self, "path", self.path.replace("/", "\\").strip("\\"))

    @classmethod
    def parse(cls, full_path: str, name: str) -> "Coordinate":
        """Build from a full path like 'HKLM\\SOFTWARE\\Test'."""
        normalized = full_path.replace("/", "\\")
        root, _, sub_path = normalized.partition("\\")
        return cls(root, sub_path, name)

    @property
    def full_path(self) -> str:
        if not self.path:
            return self.root
        return f"{self.root}\\{self.path}"

    @property
    def key(self) -> str:
        """Unique map key: ROOT\\path\\name."""
        return f"{self.full_path}\\{self.name}"

    def child(self, sub_key: str) -> "Coordinate":
        """Same value name under a child sub-path."""
        return Coordinate(self.root, f"{self.path}\\{sub_key}", self.name)

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class ConfigEntry:
    """Prior state of one coordinate."""

    coordinate: Coordinate
    value: ConfigValue
    existed: bool

    def __post_init__(self):
        if not self.existed:
            # value is meaningless for a coordinate that did not exist
            object.__setattr__(self, "value", ConfigValue.absent())
        elif self.value.is_absent:
            raise TypeMismatchError(f"{self.coordinate}: existing entry cannot hold an absent value")

    @classmethod
    def missing(cls, coordinate: Coordinate) -> "ConfigEntry":
        return cls(coordinate, ConfigValue.absent(), existed=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.coordinate.full_path,
            "name": self.coordinate.name,
            "value": self.value.to_json(),
            "type": self.value.kind.value,
            "existed": self.existed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigEntry":
        if not isinstance(data, dict):
            raise CorruptSnapshotError(f"entry must be an object, got {type(data).__name__}")
        try:
            path, name, kind, existed = data["path"], data["name"], data["type"], data["existed"]
        except KeyError as e:
            raise CorruptSnapshotError(f"entry missing field {e}") from None
        if not isinstance(path, str) or not isinstance(name, str):
            raise CorruptSnapshotError("entry path/name must be strings")
        if not isinstance(existed, bool):
            raise CorruptSnapshotError("entry 'existed' must be a boolean")
        try:
            coordinate = Coordinate.parse(path, name)
        except ValueError as e:
            raise CorruptSnapshotError(str(e)) from None

        if not existed:
            # Tag must still be known, the payload is ignored
            try:
                ValueKind(kind)
            except ValueError:
                raise CorruptSnapshotError(f"unknown value type tag: {kind!r}") from None
            return cls.missing(coordinate)

        value = ConfigValue.from_json(kind, data.get("value"))
        return cls(coordinate, value, existed=True)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Snapshot:
    """
    Point-in-time capture of coordinates, service states and power plan.

    Built by a single capture call and afterwards only read. A new capture
    always produces a new Snapshot object.
    """

    subsystem: str
    created_at: str = field(default_factory=_utc_now)
    entries: Dict[str, ConfigEntry] = field(default_factory=dict)
    services: Dict[str, str] = field(default_factory=dict)
    service_start_types: Dict[str, str] = field(default_factory=dict)
    power_plan: str = ""

    def add(self, entry: ConfigEntry) -> None:
        """Record an entry. Same coordinate twice: last write wins."""
        self.entries[entry.coordinate.key] = entry

    def has(self, coordinate: Coordinate) -> bool:
        return coordinate.key in self.entries

    @property
    def is_empty(self) -> bool:
        return not (self.entries or self.services or self.service_start_types or self.power_plan)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": SNAPSHOT_FORMAT_VERSION,
            "subsystem": self.subsystem,
            "createdAt": self.created_at,
            "entries": {key: entry.to_dict() for key, entry in sorted(self.entries.items())},
            "services": dict(sorted(self.services.items())),
            "serviceStartTypes": dict(sorted(self.service_start_types.items())),
            "powerPlan": self.power_plan,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Any, subsystem: str = "") -> "Snapshot":
        """
        Strictly decode a snapshot document.

        Raises:
            CorruptSnapshotError: structural problems
            TypeMismatchError: a value contradicts its type tag
        """
        if not isinstance(data, dict):
            raise CorruptSnapshotError("snapshot must be a JSON object")

        created_at = data.get("createdAt")
        if not isinstance(created_at, str):
            raise CorruptSnapshotError("snapshot 'createdAt' missing or not a string")
        try:
            datetime.fromisoformat(created_at)
        except ValueError:
            raise CorruptSnapshotError(f"snapshot 'createdAt' is not ISO-8601: {created_at!r}") from None

        raw_entries = data.get("entries", {})
        services = data.get("services", {})
        start_types = data.get("serviceStartTypes", {})
        power_plan = data.get("powerPlan", "")
        if raw_entries is None:
            raw_entries = {}
        if not isinstance(raw_entries, dict):
            raise CorruptSnapshotError("snapshot 'entries' must be an object")
        if not _is_str_map(services) or not _is_str_map(start_types):
            raise CorruptSnapshotError("snapshot service maps must map names to strings")
        if not isinstance(power_plan, str):
            raise CorruptSnapshotError("snapshot 'powerPlan' must be a string")
        bad_states = [name for name, state in services.items() if state not in RUN_STATES]
        if bad_states:
            raise CorruptSnapshotError(f"invalid run state for services: {', '.join(bad_states)}")

        snapshot = cls(
            subsystem=data.get("subsystem") or subsystem,
            created_at=created_at,
            services=dict(services),
            service_start_types=dict(start_types),
            power_plan=power_plan,
        )
        for key, raw in raw_entries.items():
            entry = ConfigEntry.from_dict(raw)
            if entry.coordinate.key.lower() != key.lower():
                raise CorruptSnapshotError(f"entry key {key!r} does not match its path/name")
            snapshot.add(entry)
        return snapshot

    @classmethod
    def from_json(cls, text: str, subsystem: str = "") -> "Snapshot":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise CorruptSnapshotError(f"invalid JSON: {e}") from None
        return cls.from_dict(data, subsystem=subsystem)


def _is_str_map(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    )


@dataclass
class RestoreAction:
    """One step a restore would perform (dry-run preview)."""
    target: str
    action: str                 # "delete", "write", "service", "start_type", "power_plan", "none"
    current: Optional[str] = None
    restored: Optional[str] = None


@dataclass
class RestoreResult:
    """
    Outcome of RestoreEngine.restore_all().

    ran is True whenever the snapshot could be loaded (or there was none);
    failures lists per-step problems that did not stop the restore.
    """
    ran: bool = True
    had_backup: bool = False
    restored: int = 0
    deleted: int = 0
    services_restored: int = 0
    power_plan_restored: bool = False
    failures: List[StepFailure] = field(default_factory=list)
    snapshot_created_at: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.ran and not self.failures

    @property
    def warning_count(self) -> int:
        return len(self.failures)
