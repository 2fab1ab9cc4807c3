"""
Snapshot capture - collects the prior state of configuration coordinates.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from ..protocol.errors import CleanForgeError, StepFailure
from .models import ConfigEntry, Coordinate, Snapshot

if TYPE_CHECKING:
    from ..registry.base import ConfigValueStore

logger = logging.getLogger(__name__)


@dataclass
class CapturePlan:
    """What a capture has to read."""
    coordinates: List[Coordinate] = field(default_factory=list)
    run_state_services: List[str] = field(default_factory=list)
    start_type_services: List[str] = field(default_factory=list)
    power_plan: bool = False

    def add_coordinate(self, coordinate: Coordinate) -> None:
        if coordinate not in self.coordinates:
            self.coordinates.append(coordinate)

    def add_service(self, name: str, run_state: bool, start_type: bool) -> None:
        if run_state and name not in self.run_state_services:
            self.run_state_services.append(name)
        if start_type and name not in self.start_type_services:
            self.start_type_services.append(name)


@dataclass
class CaptureResult:
    snapshot: Snapshot
    failures: List[StepFailure] = field(default_factory=list)
    carried_over: int = 0


class SnapshotCapture:
    """
    Reads current values, service states and the active power plan.

    Capture never fails as a whole. A coordinate that cannot be read is
    recorded as not existing, so restore deletes it instead of writing a
    guessed value; the read error is returned as a failure.
    """

    def __init__(
        self,
        store: "ConfigValueStore",
        services=None,
        power=None,
    ):
        """
        Initialize snapshot capture.

        Args:
            store: ConfigValueStore to read values from
            services: ServiceControl (optional if the plan has no services)
            power: PowerSchemeControl (optional if the plan skips the power plan)
        """
        self.store = store
        self.services = services
        self.power = power

    def capture(
        self,
        subsystem: str,
        plan: CapturePlan,
        base: Optional[Snapshot] = None,
    ) -> CaptureResult:
        """
        Capture state for every target in the plan.

        Args:
            subsystem: Snapshot slot name
            plan: Targets to read
            base: Active snapshot whose already-captured targets are kept
                  instead of being read again

        Returns:
            CaptureResult holding a brand-new Snapshot
        """
        snapshot = Snapshot(subsystem=subsystem)
        result = CaptureResult(snapshot=snapshot)

        if base is not None:
            snapshot.created_at = base.created_at
            for entry in base.entries.values():
                snapshot.add(entry)
            snapshot.services.update(base.services)
            snapshot.service_start_types.update(base.service_start_types)
            snapshot.power_plan = base.power_plan

        for coordinate in plan.coordinates:
            if snapshot.has(coordinate):
                result.carried_over += 1
                continue
            snapshot.add(self._capture_value(coordinate, result.failures))

        for name in plan.run_state_services:
            if name in snapshot.services:
                continue
            try:
                snapshot.services[name] = self._require(self.services, "service control").capture_run_state(name)
            except CleanForgeError as e:
                logger.warning("Could not capture run state of %s: %s", name, e)
                result.failures.append(StepFailure(name, "query run state", e))

        for name in plan.start_type_services:
            if name in snapshot.service_start_types:
                continue
            try:
                snapshot.service_start_types[name] = self._require(self.services, "service control").capture_start_type(name)
            except CleanForgeError as e:
                logger.warning("Could not capture start type of %s: %s", name, e)
                result.failures.append(StepFailure(name, "query start type", e))

        if plan.power_plan and not snapshot.power_plan:
            try:
                snapshot.power_plan = self._require(self.power, "power scheme control").capture_active_plan()
            except CleanForgeError as e:
                logger.warning("Could not capture active power plan: %s", e)
                result.failures.append(StepFailure("power plan", "query active scheme", e))

        logger.info(
            "Captured %d value(s), %d service(s) for %s (%d carried over, %d warning(s))",
            len(snapshot.entries),
            len(snapshot.services) + len(snapshot.service_start_types),
            subsystem,
            result.carried_over,
            len(result.failures),
        )
        return result

    def _capture_value(self, coordinate: Coordinate, failures: List[StepFailure]) -> ConfigEntry:
        try:
            value, existed = self.store.read(coordinate)
        except CleanForgeError as e:
            logger.warning("Could not read %s, recording as absent: %s", coordinate, e)
            failures.append(StepFailure(coordinate.key, "read", e))
            return ConfigEntry.missing(coordinate)

        if not existed:
            return ConfigEntry.missing(coordinate)
        return ConfigEntry(coordinate, value, existed=True)

    @staticmethod
    def _require(collaborator, label: str):
        if collaborator is None:
            raise CleanForgeError(f"no {label} configured")
        return collaborator
