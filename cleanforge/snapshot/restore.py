"""
Snapshot restore - replays a persisted snapshot backward.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from ..protocol.errors import CleanForgeError, NotFoundError, StepFailure
from ..runner.state import AppliedState, State, StateMachine
from .manager import SnapshotManager
from .models import ConfigEntry, RestoreAction, RestoreResult, Snapshot

if TYPE_CHECKING:
    from ..registry.base import ConfigValueStore

logger = logging.getLogger(__name__)


class RestoreEngine:
    """
    Restores one subsystem to its last captured state.

    Values that did not exist before are deleted, every other value is
    rewritten with its original type. Service run states, start types and
    the power plan follow. Every step is attempted; failures are collected
    into the result instead of stopping the restore.
    """

    def __init__(
        self,
        manager: SnapshotManager,
        store: "ConfigValueStore",
        services=None,
        power=None,
        state: Optional[StateMachine] = None,
        applied: Optional[AppliedState] = None,
    ):
        """
        Initialize restore engine.

        Args:
            manager: Snapshot slot to restore from
            store: ConfigValueStore to write values back to
            services: ServiceControl for run state / start type steps
            power: PowerSchemeControl for the power plan step
            state: Slot state machine (shared with the applier)
            applied: Applied tweak ids (cleared after a restore)
        """
        self.manager = manager
        self.store = store
        self.services = services
        self.power = power
        self.state = state if state is not None else StateMachine()
        self.applied = applied if applied is not None else AppliedState()

    def restore_all(self) -> RestoreResult:
        """
        Restore everything recorded in the slot's snapshot.

        Returns:
            RestoreResult; ran is True whenever the snapshot could be loaded
            or there was no backup at all

        Raises:
            SnapshotLoadError: the slot file exists but cannot be read
        """
        with self.manager.lock:
            self.state.transition(State.RESTORING, {"subsystem": self.manager.subsystem})
            try:
                snapshot = self.manager.load()
                if snapshot is None:
                    logger.info("Nothing to restore for %s", self.manager.subsystem)
                    self.applied.clear()
                    return RestoreResult(ran=True, had_backup=False)

                result = self._replay(snapshot)
                self.applied.clear()
            finally:
                self.state.transition(State.IDLE)

        if result.failures:
            logger.warning(
                "Restore of %s completed with %d warning(s)",
                self.manager.subsystem,
                result.warning_count,
            )
        else:
            logger.info("Restore of %s completed", self.manager.subsystem)
        return result

    def _replay(self, snapshot: Snapshot) -> RestoreResult:
        result = RestoreResult(
            ran=True,
            had_backup=True,
            snapshot_created_at=snapshot.created_at,
        )

        for key in sorted(snapshot.entries):
            self._restore_entry(snapshot.entries[key], result)

        for name, run_state in sorted(snapshot.services.items()):
            try:
                self._require(self.services, "service control").restore_run_state(name, run_state)
                result.services_restored += 1
            except CleanForgeError as e:
                logger.warning("Could not restore run state of %s: %s", name, e)
                result.failures.append(StepFailure(name, f"restore run state ({run_state})", e))

        for name, start_type in sorted(snapshot.service_start_types.items()):
            try:
                self._require(self.services, "service control").restore_start_type(name, start_type)
                result.services_restored += 1
            except CleanForgeError as e:
                logger.warning("Could not restore start type of %s: %s", name, e)
                result.failures.append(StepFailure(name, f"restore start type ({start_type})", e))

        if snapshot.power_plan:
            try:
                self._require(self.power, "power scheme control").restore_active_plan(snapshot.power_plan)
                result.power_plan_restored = True
            except CleanForgeError as e:
                logger.warning("Could not restore power plan %s: %s", snapshot.power_plan, e)
                result.failures.append(StepFailure("power plan", "activate scheme", e))

        return result

    def _restore_entry(self, entry: ConfigEntry, result: RestoreResult) -> None:
        coordinate = entry.coordinate
        if not entry.existed:
            try:
                self.store.delete(coordinate)
                result.deleted += 1
            except NotFoundError:
                result.deleted += 1
            except CleanForgeError as e:
                logger.warning("Could not delete %s: %s", coordinate, e)
                result.failures.append(StepFailure(coordinate.key, "delete", e))
            return

        try:
            self.store.write(coordinate, entry.value)
            result.restored += 1
        except CleanForgeError as e:
            logger.warning("Could not restore %s: %s", coordinate, e)
            result.failures.append(StepFailure(coordinate.key, "write", e))

    def preview(self) -> List[RestoreAction]:
        """
        Show what restore_all() would do without touching anything.

        Returns:
            One RestoreAction per recorded target; empty when there is no
            backup
        """
        snapshot = self.manager.load()
        if snapshot is None:
            return []

        actions = []
        for key in sorted(snapshot.entries):
            entry = snapshot.entries[key]
            try:
                current, existed = self.store.read(entry.coordinate)
                current_text = str(current) if existed else None
            except CleanForgeError as e:
                current, existed = None, False
                current_text = f"<unreadable: {e}>"

            if not entry.existed:
                action = "delete" if existed else "none"
                actions.append(RestoreAction(key, action, current_text, None))
            else:
                action = "none" if existed and current == entry.value else "write"
                actions.append(RestoreAction(key, action, current_text, str(entry.value)))

        for name, run_state in sorted(snapshot.services.items()):
            actions.append(RestoreAction(name, "service", None, run_state))
        for name, start_type in sorted(snapshot.service_start_types.items()):
            actions.append(RestoreAction(name, "start_type", None, start_type))
        if snapshot.power_plan:
            actions.append(RestoreAction("power plan", "power_plan", None, snapshot.power_plan))

        return actions

    @staticmethod
    def _require(collaborator, label: str):
        if collaborator is None:
            raise CleanForgeError(f"no {label} configured")
        return collaborator
