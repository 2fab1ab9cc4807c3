"""
Runner module - lifecycle of a snapshot slot.

- StateMachine: Idle → Capturing → Mutating → Applied → Restoring → Idle
- AppliedState: tweak ids applied since the last full restore
- Subsystem (runner.subsystem): catalog, applier and restore engine
  wired around one slot
"""

from .state import AppliedState, State, StateMachine

__all__ = [
    "AppliedState",
    "State",
    "StateMachine",
]
