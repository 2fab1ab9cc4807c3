"""Lifecycle state machine and the applied-tweak set."""

import pytest

from cleanforge.runner.state import AppliedState, State, StateMachine
from cleanforge.snapshot.models import Snapshot


class TestStateMachine:

    def test_apply_then_restore(self):
        machine = StateMachine()
        for state in (State.CAPTURING, State.MUTATING, State.APPLIED, State.RESTORING, State.IDLE):
            machine.transition(state)
        assert machine.state is State.IDLE
        assert len(machine.history) == 5

    def test_mutating_requires_capturing(self):
        machine = StateMachine()
        with pytest.raises(ValueError):
            machine.transition(State.MUTATING)
        assert machine.state is State.IDLE

    def test_persist_failure_backs_out(self):
        machine = StateMachine()
        machine.transition(State.CAPTURING)
        machine.transition(State.IDLE)
        assert machine.state is State.IDLE

    def test_further_apply_from_applied(self):
        machine = StateMachine(State.APPLIED)
        assert machine.can_transition(State.CAPTURING)
        assert not machine.can_transition(State.MUTATING)

    def test_restore_always_returns_to_idle(self):
        machine = StateMachine(State.RESTORING)
        assert machine.can_transition(State.IDLE)
        assert not machine.can_transition(State.APPLIED)

    def test_history_records_metadata(self):
        machine = StateMachine()
        machine.transition(State.CAPTURING, {"tweaks": ["A"]})

        event = machine.history[0]
        assert event.metadata == {"tweaks": ["A"]}
        assert event.from_state is State.IDLE
        assert event.to_state is State.CAPTURING


class TestAppliedState:

    def test_add_is_idempotent(self):
        applied = AppliedState()
        applied.add("A")
        applied.add("A")
        applied.add("B")
        assert applied.ids == ["A", "B"]
        assert "A" in applied
        assert len(applied) == 2

    def test_batch_follows_active_snapshot(self):
        applied = AppliedState()
        assert not applied.in_batch

        applied.active_snapshot = Snapshot(subsystem="test")
        assert applied.in_batch

        applied.add("A")
        applied.clear()
        assert not applied.in_batch
        assert applied.ids == []
