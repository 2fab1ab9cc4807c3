"""
Error taxonomy for CleanForge.

NotFoundError: coordinate/service absent (expected, not user-facing)
PermissionDeniedError: elevated privilege required (user-actionable)
CorruptSnapshotError: snapshot file unreadable/malformed (treated as absent)
ControlTimeoutError: external control surface did not answer in time
TypeMismatchError: declared type tag contradicts the decoded value

Per-step failures are collected as StepFailure records and surfaced
together as one AggregateError; they never abort the surrounding batch.
"""

from dataclasses import dataclass
from typing import List, Optional


class CleanForgeError(Exception):
    """Base class for all CleanForge errors."""
    pass


class NotFoundError(CleanForgeError):
    """Coordinate, key or service does not exist."""
    pass


class PermissionDeniedError(CleanForgeError):
    """Operation requires elevated privileges."""

    def __init__(self, message: str):
        super().__init__(f"{message} (run as Administrator)")


class CorruptSnapshotError(CleanForgeError):
    """Snapshot file is truncated or malformed."""
    pass


class ControlTimeoutError(CleanForgeError):
    """Service or power-scheme command exceeded its timeout."""

    def __init__(self, command: str, timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"'{command}' timed out after {timeout:g}s")


class TypeMismatchError(CleanForgeError):
    """A value's runtime shape contradicts its declared type tag."""
    pass


class UnknownTweakError(CleanForgeError, KeyError):
    """Tweak or profile id is not in the catalog."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown tweak"


class SnapshotPersistError(CleanForgeError):
    """Snapshot could not be written to disk."""
    pass


class SnapshotLoadError(CleanForgeError):
    """Snapshot file exists but could not be read (not a parse problem)."""
    pass


@dataclass
class StepFailure:
    """One failed step inside a batch."""
    target: str          # coordinate key, service name or "power plan"
    operation: str       # read, write, delete, enumerate, start, stop, ...
    error: Exception

    @property
    def kind(self) -> str:
        return type(self.error).__name__

    @property
    def user_actionable(self) -> bool:
        return isinstance(self.error, PermissionDeniedError)

    def __str__(self) -> str:
        return f"{self.target}: {self.operation} failed: {self.error}"


class AggregateError(CleanForgeError):
    """Joined collection of per-step failures."""

    def __init__(self, failures: List[StepFailure], message: Optional[str] = None):
        self.failures = list(failures)
        header = message or f"{len(self.failures)} step(s) failed"
        lines = [header] + [f"  - {f}" for f in self.failures]
        super().__init__("\n".join(lines))

    def failures_for(self, target: str) -> List[StepFailure]:
        """Failures recorded against a given target."""
        return [f for f in self.failures if f.target == target]

    @property
    def targets(self) -> List[str]:
        return [f.target for f in self.failures]
