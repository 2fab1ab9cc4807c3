"""
Snapshot/Restore system for CleanForge.

Captures the prior state of every value, service and power plan a tweak
is about to change, persists it before the first mutation, and replays
it backward on restore. Key features:

- Explicitly typed values that survive the JSON round trip unchanged
- Existence-aware restore (values that did not exist are deleted)
- Atomic slot file replacement, one slot per subsystem
- Dry-run preview before restore
"""

from .models import (
    ConfigEntry,
    ConfigValue,
    Coordinate,
    RestoreAction,
    RestoreResult,
    Snapshot,
    ValueKind,
)
from .capture import CapturePlan, CaptureResult, SnapshotCapture
from .manager import SnapshotManager
from .restore import RestoreEngine

__all__ = [
    'ConfigEntry',
    'ConfigValue',
    'Coordinate',
    'RestoreAction',
    'RestoreResult',
    'Snapshot',
    'ValueKind',
    'CapturePlan',
    'CaptureResult',
    'SnapshotCapture',
    'SnapshotManager',
    'RestoreEngine',
]
