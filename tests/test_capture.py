"""Capture: absent vs existing values, read failures, carry-over."""

from cleanforge.protocol.errors import PermissionDeniedError
from cleanforge.snapshot.capture import CapturePlan, SnapshotCapture
from cleanforge.snapshot.models import ConfigEntry, ConfigValue

from tests.mocks.catalog import BALANCED, M1, M2, M3, X


def _plan(*coordinates, services=(), power_plan=False):
    plan = CapturePlan()
    for coordinate in coordinates:
        plan.add_coordinate(coordinate)
    for name in services:
        plan.add_service(name, run_state=True, start_type=True)
    plan.power_plan = power_plan
    return plan


class TestCaptureValues:

    def test_existing_and_missing(self, store):
        store.set(X, ConfigValue.int32(0))
        capture = SnapshotCapture(store)

        result = capture.capture("test", _plan(X, M1))

        assert result.snapshot.entries[X.key] == ConfigEntry(X, ConfigValue.int32(0), existed=True)
        assert result.snapshot.entries[M1.key].existed is False
        assert result.failures == []

    def test_kinds_preserved(self, store):
        store.set(M1, ConfigValue.string(""))
        store.set(M2, ConfigValue.int32(0))
        store.set(M3, ConfigValue.int64(2 ** 40))
        snapshot = SnapshotCapture(store).capture("test", _plan(M1, M2, M3)).snapshot

        assert snapshot.entries[M1.key].value == ConfigValue.string("")
        assert snapshot.entries[M2.key].value == ConfigValue.int32(0)
        assert snapshot.entries[M3.key].value == ConfigValue.int64(2 ** 40)

    def test_unreadable_recorded_as_absent(self, store):
        store.set(M2, ConfigValue.int32(7))
        store.make_unreadable(M2)

        result = SnapshotCapture(store).capture("test", _plan(M1, M2))

        assert result.snapshot.entries[M2.key].existed is False
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.target == M2.key
        assert failure.operation == "read"
        assert isinstance(failure.error, PermissionDeniedError)
        assert failure.user_actionable

    def test_plan_deduplicates(self, store):
        plan = _plan(X, X, M1)
        assert plan.coordinates == [X, M1]

        SnapshotCapture(store).capture("test", plan)
        assert [call for call in store.calls if call[0] == "read"] == [("read", X.key), ("read", M1.key)]

    def test_empty_plan(self, store):
        assert SnapshotCapture(store).capture("test", CapturePlan()).snapshot.is_empty

    def test_no_writes_during_capture(self, store):
        SnapshotCapture(store).capture("test", _plan(X, M1, M2))
        assert all(op == "read" for op, _ in store.calls)


class TestCarryOver:

    def test_base_entries_are_not_read_again(self, store):
        store.set(X, ConfigValue.int32(0))
        capture = SnapshotCapture(store)
        first = capture.capture("test", _plan(X)).snapshot

        store.set(X, ConfigValue.int32(1))
        store.calls.clear()
        second = capture.capture("test", _plan(X, M1), base=first)

        assert second.carried_over == 1
        assert second.snapshot.entries[X.key].value == ConfigValue.int32(0)
        assert ("read", X.key) not in store.calls
        assert ("read", M1.key) in store.calls

    def test_new_snapshot_object(self, store):
        capture = SnapshotCapture(store)
        first = capture.capture("test", _plan(X)).snapshot
        second = capture.capture("test", _plan(M1), base=first).snapshot

        assert second is not first
        assert M1.key not in first.entries
        assert second.created_at == first.created_at

    def test_base_services_and_power_kept(self, store, services, power):
        capture = SnapshotCapture(store, services, power)
        first = capture.capture("test", _plan(services=["SysMain"], power_plan=True)).snapshot

        services.run_states["SysMain"] = "stopped"
        power.active = "8c5e7fda-e8bf-4a96-9a85-a6e23a8c635c"
        second = capture.capture("test", _plan(services=["SysMain"], power_plan=True), base=first).snapshot

        assert second.services == {"SysMain": "running"}
        assert second.power_plan == BALANCED


class TestCaptureControls:

    def test_services_and_power(self, store, services, power):
        snapshot = SnapshotCapture(store, services, power).capture(
            "test", _plan(services=["SysMain"], power_plan=True)
        ).snapshot

        assert snapshot.services == {"SysMain": "running"}
        assert snapshot.service_start_types == {"SysMain": "auto"}
        assert snapshot.power_plan == BALANCED

    def test_run_state_only(self, store, services):
        plan = CapturePlan()
        plan.add_service("WSearch", run_state=True, start_type=False)
        snapshot = SnapshotCapture(store, services).capture("test", plan).snapshot

        assert snapshot.services == {"WSearch": "running"}
        assert snapshot.service_start_types == {}

    def test_service_timeout_is_a_failure_not_an_abort(self, store, services):
        store.set(X, ConfigValue.int32(0))
        services.timeouts.add("SysMain")

        result = SnapshotCapture(store, services).capture("test", _plan(X, services=["SysMain"]))

        assert X.key in result.snapshot.entries
        assert "SysMain" not in result.snapshot.services
        assert {f.operation for f in result.failures} == {"query run state", "query start type"}
        assert all(f.kind == "ControlTimeoutError" for f in result.failures)

    def test_power_failure(self, store, power):
        power.fail = True
        result = SnapshotCapture(store, power=power).capture("test", _plan(power_plan=True))

        assert result.snapshot.power_plan == ""
        assert [f.target for f in result.failures] == ["power plan"]

    def test_missing_collaborator_is_a_failure(self, store):
        result = SnapshotCapture(store).capture("test", _plan(services=["SysMain"]))
        assert len(result.failures) == 2
