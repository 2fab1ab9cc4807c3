"""
TweakApplier - capture-then-mutate orchestration for catalog tweaks.

Implements the apply sequence for one snapshot slot:
1. CAPTURE - read the prior state of every target in the batch once
2. PERSIST - write the snapshot before the first mutation is issued
3. MUTATE  - values, then service changes, then the power plan

Mutations are never rolled back automatically. Every step runs even when
earlier ones failed; failures come back together in the ApplyResult.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Set, Union

from ..protocol.errors import AggregateError, CleanForgeError, StepFailure
from ..registry.base import ConfigValueStore
from ..runner.state import AppliedState, State, StateMachine
from ..snapshot.capture import CapturePlan
from ..snapshot.manager import SnapshotManager
from ..snapshot.models import ConfigValue, Coordinate
from .catalog import TweakCatalog, TweakDefinition

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Outcome of one apply call."""
    tweak_ids: List[str]
    applied: List[str] = field(default_factory=list)
    failures: List[StepFailure] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    cancelled: bool = False
    snapshot_created_at: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.failures and not self.cancelled

    @property
    def warning_count(self) -> int:
        return len(self.failures)

    def raise_for_failures(self) -> None:
        """Raise AggregateError when any step failed."""
        if self.failures:
            raise AggregateError(
                self.failures,
                f"{', '.join(self.tweak_ids)}: {len(self.failures)} step(s) failed",
            )


@dataclass
class _Step:
    tweak_id: str
    target: Union[str, Coordinate]
    operation: str
    run: Callable[[], None]

    def describe(self) -> str:
        return f"{self.tweak_id}: {self.operation} {self.target}"


class TweakApplier:
    """
    Applies tweaks from one catalog against one snapshot slot.

    While a batch is active (applied since the last restore) further
    applies extend the active snapshot: targets it already holds are never
    read again, so the true original values survive repeated applies.
    """

    def __init__(
        self,
        catalog: TweakCatalog,
        manager: SnapshotManager,
        store: ConfigValueStore,
        services=None,
        power=None,
        state: Optional[StateMachine] = None,
        applied: Optional[AppliedState] = None,
    ):
        self.catalog = catalog
        self.manager = manager
        self.store = store
        self.services = services
        self.power = power
        self.state = state if state is not None else StateMachine()
        self.applied = applied if applied is not None else AppliedState()

    def apply(self, tweak_id: str, cancel: Optional[threading.Event] = None) -> ApplyResult:
        """Apply a single tweak."""
        return self.apply_profile([tweak_id], cancel=cancel)

    def apply_profile_by_name(self, profile_id: str, cancel: Optional[threading.Event] = None) -> ApplyResult:
        """Apply every tweak of a catalog profile as one batch."""
        profile = self.catalog.profile(profile_id)
        logger.info("Applying profile %s (%d tweaks)", profile.name, len(profile.tweak_ids))
        return self.apply_profile(profile.tweak_ids, cancel=cancel)

    def apply_profile(
        self,
        tweak_ids: Iterable[str],
        cancel: Optional[threading.Event] = None,
    ) -> ApplyResult:
        """
        Apply a batch of tweaks behind a single capture.

        Args:
            tweak_ids: Tweak ids, duplicates are dropped
            cancel: Checked before each mutation; once set, the remaining
                    steps are skipped

        Returns:
            ApplyResult with per-step failures

        Raises:
            UnknownTweakError: an id is not in the catalog (nothing ran)
            SnapshotPersistError: the snapshot could not be saved (nothing
                                  was mutated)
        """
        tweaks = self.catalog.resolve(tweak_ids)
        result = ApplyResult(tweak_ids=[t.id for t in tweaks])
        if not tweaks:
            return result

        with self.manager.lock:
            previous = self.state.state
            self.state.transition(State.CAPTURING, {"tweaks": result.tweak_ids})

            failed: Set[str] = set()
            steps = self._build_steps(tweaks, result, failed)
            plan = self._build_plan(tweaks, steps)

            base = self.applied.active_snapshot
            captured = self.manager.capture(plan, base=base)
            result.failures.extend(captured.failures)

            try:
                self.manager.persist(captured.snapshot)
            except CleanForgeError:
                logger.error("Snapshot not saved, %s left untouched", self.manager.subsystem)
                self.state.transition(previous if previous is State.APPLIED else State.IDLE)
                raise

            self.applied.active_snapshot = captured.snapshot
            result.snapshot_created_at = captured.snapshot.created_at

            self.state.transition(State.MUTATING)
            try:
                self._run_steps(steps, result, failed, cancel)
            finally:
                self.state.transition(State.APPLIED)

            for tweak in tweaks:
                if tweak.id not in failed:
                    self.applied.add(tweak.id)
                    result.applied.append(tweak.id)

        if result.cancelled:
            logger.warning("Apply cancelled, %d step(s) skipped", len(result.skipped))
        if result.failures:
            logger.warning("Applied %s with %d warning(s)", ", ".join(result.tweak_ids), result.warning_count)
        else:
            logger.info("Applied %s", ", ".join(result.applied))
        return result

    # =========================================================================
    # Plan construction
    # =========================================================================

    def _build_steps(self, tweaks: List[TweakDefinition], result: ApplyResult, failed: Set[str]) -> List[_Step]:
        """Ordered steps for the batch: values, then services, then power."""
        value_steps: List[_Step] = []
        service_steps: List[_Step] = []
        power_steps: List[_Step] = []

        for tweak in tweaks:
            for mutation in tweak.mutations:
                if mutation.fan_out:
                    coordinates = self._expand(tweak.id, mutation.coordinate, result, failed)
                else:
                    coordinates = [mutation.coordinate]
                for coordinate in coordinates:
                    value_steps.append(self._write_step(tweak.id, coordinate, mutation.desired))

            for change in tweak.services:
                if change.run_state is not None:
                    service_steps.append(_Step(
                        tweak.id,
                        change.service,
                        f"set run state {change.run_state}",
                        self._service_call("restore_run_state", change.service, change.run_state),
                    ))
                if change.start_type is not None:
                    service_steps.append(_Step(
                        tweak.id,
                        change.service,
                        f"set start type {change.start_type}",
                        self._service_call("restore_start_type", change.service, change.start_type),
                    ))

            if tweak.power_plan:
                power_steps.append(_Step(
                    tweak.id,
                    "power plan",
                    f"activate {tweak.power_plan}",
                    self._power_call(tweak.power_plan),
                ))

        return value_steps + service_steps + power_steps

    def _expand(self, tweak_id: str, parent: Coordinate, result: ApplyResult, failed: Set[str]) -> List[Coordinate]:
        """One coordinate per child key of parent.path."""
        try:
            children = self.store.enumerate_children(parent.root, parent.path)
        except CleanForgeError as e:
            logger.warning("Could not enumerate %s: %s", parent.full_path, e)
            result.failures.append(StepFailure(parent.full_path, "enumerate", e))
            failed.add(tweak_id)
            return []
        return [parent.child(child) for child in children]

    @staticmethod
    def _build_plan(tweaks: List[TweakDefinition], steps: List[_Step]) -> CapturePlan:
        plan = CapturePlan()
        for step in steps:
            if isinstance(step.target, Coordinate):
                plan.add_coordinate(step.target)
        for tweak in tweaks:
            for change in tweak.services:
                plan.add_service(
                    change.service,
                    run_state=change.run_state is not None,
                    start_type=change.start_type is not None,
                )
            if tweak.power_plan:
                plan.power_plan = True
        return plan

    def _write_step(self, tweak_id: str, coordinate: Coordinate, value: ConfigValue) -> _Step:
        def run():
            self.store.write(coordinate, value)
        return _Step(tweak_id, coordinate, "write", run)

    def _service_call(self, method: str, name: str, value: str) -> Callable[[], None]:
        def run():
            if self.services is None:
                raise CleanForgeError("no service control configured")
            getattr(self.services, method)(name, value)
        return run

    def _power_call(self, scheme_id: str) -> Callable[[], None]:
        def run():
            if self.power is None:
                raise CleanForgeError("no power scheme control configured")
            self.power.restore_active_plan(scheme_id)
        return run

    # =========================================================================
    # Mutation
    # =========================================================================

    def _run_steps(
        self,
        steps: List[_Step],
        result: ApplyResult,
        failed: Set[str],
        cancel: Optional[threading.Event],
    ) -> None:
        for index, step in enumerate(steps):
            if cancel is not None and cancel.is_set():
                result.cancelled = True
                for pending in steps[index:]:
                    result.skipped.append(pending.describe())
                    failed.add(pending.tweak_id)
                return

            try:
                step.run()
            except CleanForgeError as e:
                target = step.target.key if isinstance(step.target, Coordinate) else step.target
                logger.warning("%s: %s %s failed: %s", step.tweak_id, step.operation, target, e)
                result.failures.append(StepFailure(target, step.operation, e))
                failed.add(step.tweak_id)
