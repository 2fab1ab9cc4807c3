"""
StateMachine - tracks the apply/restore lifecycle of one snapshot slot.

IDLE → CAPTURING → MUTATING → APPLIED → RESTORING → IDLE
               ↓                  ↓
         (persist failed)    CAPTURING (further applies)

Capturing always precedes Mutating. Restoring always ends in IDLE, no
matter how many individual steps failed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from ..snapshot.models import Snapshot

logger = logging.getLogger(__name__)


class State(Enum):
    """Lifecycle states of a snapshot slot."""
    IDLE = auto()
    CAPTURING = auto()
    MUTATING = auto()
    APPLIED = auto()
    RESTORING = auto()


# Valid state transitions
TRANSITIONS: Dict[State, List[State]] = {
    State.IDLE: [State.CAPTURING, State.RESTORING],
    State.CAPTURING: [State.MUTATING, State.IDLE, State.APPLIED],  # back out when persist fails
    State.MUTATING: [State.APPLIED],
    State.APPLIED: [State.CAPTURING, State.RESTORING],
    State.RESTORING: [State.IDLE],
}


@dataclass
class StateEvent:
    """One lifecycle step of a slot, kept for status output and debugging."""
    from_state: State
    to_state: State
    timestamp: datetime
    duration_ms: int
    metadata: Dict[str, Any] = field(default_factory=dict)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StateMachine:
    """
    Lifecycle of one snapshot slot.

    Shared by the applier and the restore engine of a subsystem; rejects
    moves that would mutate without a capture first.
    """

    def __init__(self, initial_state: State = State.IDLE):
        self._state = initial_state
        self._history: List[StateEvent] = []
        self._state_entered_at = _now()

    @property
    def state(self) -> State:
        """Get current state."""
        return self._state

    @property
    def history(self) -> List[StateEvent]:
        return list(self._history)

    def can_transition(self, to_state: State) -> bool:
        return to_state in TRANSITIONS.get(self._state, [])

    def transition(self, to_state: State, metadata: Optional[Dict[str, Any]] = None):
        """
        Move the slot to to_state.

        Raises:
            ValueError: to_state is not reachable from the current state
        """
        if not self.can_transition(to_state):
            raise ValueError(
                f"Invalid transition: {self._state.name} → {to_state.name}. "
                f"Valid transitions: {[s.name for s in TRANSITIONS.get(self._state, [])]}"
            )

        now = _now()
        duration_ms = int((now - self._state_entered_at).total_seconds() * 1000)

        event = StateEvent(
            from_state=self._state,
            to_state=to_state,
            timestamp=now,
            duration_ms=duration_ms,
            metadata=metadata or {},
        )
        self._history.append(event)

        self._state = to_state
        self._state_entered_at = now
        logger.debug("%s -> %s", event.from_state.name, to_state.name)


class AppliedState:
    """
    Tweak ids applied in this process since the last full restore.

    In memory only, never persisted. Also remembers the snapshot that
    backs the current batch so later applies extend it instead of
    re-capturing already-mutated values.
    """

    def __init__(self):
        self._ids: List[str] = []
        self.active_snapshot: Optional["Snapshot"] = None

    def add(self, tweak_id: str) -> None:
        if tweak_id not in self._ids:
            self._ids.append(tweak_id)

    def clear(self) -> None:
        self._ids = []
        self.active_snapshot = None

    @property
    def ids(self) -> List[str]:
        return list(self._ids)

    @property
    def in_batch(self) -> bool:
        """True while an applied batch is waiting for restore."""
        return self.active_snapshot is not None

    def __contains__(self, tweak_id: object) -> bool:
        return tweak_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)
