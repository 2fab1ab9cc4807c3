"""
Shared protocol types for CleanForge.

errors: error taxonomy and the StepFailure/AggregateError pair used by
every batch operation (capture, apply, restore, startup toggles).
"""

from .errors import (
    CleanForgeError,
    NotFoundError,
    PermissionDeniedError,
    CorruptSnapshotError,
    ControlTimeoutError,
    TypeMismatchError,
    UnknownTweakError,
    SnapshotPersistError,
    SnapshotLoadError,
    StepFailure,
    AggregateError,
)

__all__ = [
    "CleanForgeError",
    "NotFoundError",
    "PermissionDeniedError",
    "CorruptSnapshotError",
    "ControlTimeoutError",
    "TypeMismatchError",
    "UnknownTweakError",
    "SnapshotPersistError",
    "SnapshotLoadError",
    "StepFailure",
    "AggregateError",
]
