"""
Fake service and power-scheme controls.

Record every call and hold state in plain dicts; failures are injected
per service name.
"""

from typing import Dict, List, Optional, Set, Tuple

from cleanforge.protocol.errors import (
    CleanForgeError,
    ControlTimeoutError,
    NotFoundError,
    PermissionDeniedError,
)
from cleanforge.snapshot.models import RUN_STATES
from cleanforge.tuning.service import PowerSchemeControl, ServiceControl


class FakeServiceController(ServiceControl):

    def __init__(
        self,
        run_states: Optional[Dict[str, str]] = None,
        start_types: Optional[Dict[str, str]] = None,
    ):
        self.run_states: Dict[str, str] = dict(run_states or {})
        self.start_types: Dict[str, str] = dict(start_types or {})
        self.timeouts: Set[str] = set()
        self.denied: Set[str] = set()
        self.calls: List[Tuple[str, str, Optional[str]]] = []

    def _check(self, name: str) -> None:
        if name in self.timeouts:
            raise ControlTimeoutError(f"sc query {name}", 30)
        if name in self.denied:
            raise PermissionDeniedError(f"{name}: denied")
        if name not in self.run_states and name not in self.start_types:
            raise NotFoundError(f"service '{name}' does not exist")

    def capture_run_state(self, name: str) -> str:
        self.calls.append(("capture_run_state", name, None))
        self._check(name)
        return self.run_states[name]

    def restore_run_state(self, name: str, state: str) -> None:
        self.calls.append(("restore_run_state", name, state))
        self._check(name)
        if state not in RUN_STATES:
            raise CleanForgeError(f"{name}: unknown run state '{state}'")
        self.run_states[name] = state

    def capture_start_type(self, name: str) -> str:
        self.calls.append(("capture_start_type", name, None))
        self._check(name)
        return self.start_types[name]

    def restore_start_type(self, name: str, start_type: str) -> None:
        self.calls.append(("restore_start_type", name, start_type))
        self._check(name)
        self.start_types[name] = start_type


class FakePowerSchemeController(PowerSchemeControl):

    def __init__(self, active: str = "381b4222-f694-41f0-9685-ff5bb260df2e"):
        self.active = active
        self.fail = False
        self.calls: List[Tuple[str, Optional[str]]] = []

    def capture_active_plan(self) -> str:
        self.calls.append(("capture_active_plan", None))
        if self.fail:
            raise ControlTimeoutError("powercfg /getactivescheme", 30)
        return self.active

    def restore_active_plan(self, scheme_id: str) -> None:
        self.calls.append(("restore_active_plan", scheme_id))
        if self.fail:
            raise ControlTimeoutError(f"powercfg /setactive {scheme_id}", 30)
        self.active = scheme_id
