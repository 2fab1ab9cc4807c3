"""
ServiceController / PowerSchemeController - external control surfaces.

Provides:
- Service run state query/start/stop (sc query, sc start, sc stop)
- Service boot start type query/config (sc qc, sc config)
- Active power scheme get/set (powercfg)

Every command carries a bounded timeout; a timeout fails that step only.
"""

import logging
import re
import subprocess
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from ..config import ControlConfig
from ..protocol.errors import (
    CleanForgeError,
    ControlTimeoutError,
    NotFoundError,
    PermissionDeniedError,
)
from ..snapshot.models import RUN_STATES, RUNNING, STOPPED

logger = logging.getLogger(__name__)

# sc.exe exit codes
ERROR_ACCESS_DENIED = 5
ERROR_SERVICE_ALREADY_RUNNING = 1056
ERROR_SERVICE_DOES_NOT_EXIST = 1060
ERROR_SERVICE_NOT_ACTIVE = 1062

START_TYPES = {
    "AUTO_START": "auto",
    "DEMAND_START": "demand",
    "DISABLED": "disabled",
    "BOOT_START": "boot",
    "SYSTEM_START": "system",
}


class ServiceControl(ABC):
    """Query and drive a service by name."""

    @abstractmethod
    def capture_run_state(self, name: str) -> str:
        """Return "running" or "stopped"."""
        pass

    @abstractmethod
    def restore_run_state(self, name: str, state: str) -> None:
        pass

    @abstractmethod
    def capture_start_type(self, name: str) -> str:
        """Return auto, demand, disabled, boot or system."""
        pass

    @abstractmethod
    def restore_start_type(self, name: str, start_type: str) -> None:
        pass


class PowerSchemeControl(ABC):
    """Get and set the active power scheme."""

    @abstractmethod
    def capture_active_plan(self) -> str:
        """Return the active scheme GUID."""
        pass

    @abstractmethod
    def restore_active_plan(self, scheme_id: str) -> None:
        pass


def _run(cmd: List[str], timeout: float) -> subprocess.CompletedProcess:
    """Run a command with a hard timeout and no console window."""
    try:
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
    except subprocess.TimeoutExpired:
        raise ControlTimeoutError(" ".join(cmd), timeout) from None
    except OSError as e:
        raise CleanForgeError(f"could not run {cmd[0]}: {e}") from e


def _check(result: subprocess.CompletedProcess, cmd: List[str], target: str, ok_codes=(0,)) -> None:
    if result.returncode in ok_codes:
        return
    output = (result.stdout or "") + (result.stderr or "")
    if result.returncode == ERROR_ACCESS_DENIED or "access is denied" in output.lower():
        raise PermissionDeniedError(f"{target}: '{' '.join(cmd)}' denied")
    if result.returncode == ERROR_SERVICE_DOES_NOT_EXIST:
        raise NotFoundError(f"service '{target}' does not exist")
    raise CleanForgeError(
        f"{target}: '{' '.join(cmd)}' exited with {result.returncode}: {output.strip()}"
    )


def parse_run_state(output: str) -> str:
    """Map `sc query` output to running/stopped."""
    for line in output.splitlines():
        if "STATE" in line and ":" in line:
            return RUNNING if "RUNNING" in line.upper() else STOPPED
    return STOPPED


def parse_start_type(output: str) -> Optional[str]:
    """
    Extract the start type from `sc qc` output.

    The relevant line looks like: "START_TYPE : 2   AUTO_START"
    """
    for line in output.splitlines():
        if "START_TYPE" not in line:
            continue
        _, _, value = line.partition(":")
        tokens = value.split()
        if not tokens:
            continue
        name = tokens[-1].upper()
        # Delayed auto start prints "(DELAYED)" after the name
        if name == "(DELAYED)" and len(tokens) >= 2:
            name = tokens[-2].upper()
        return START_TYPES.get(name)
    return None


def start_type_for_sc(start_type: str) -> Optional[str]:
    """Normalize a start type name to the `sc config start=` argument."""
    upper = start_type.strip().upper()
    if upper in START_TYPES:
        return START_TYPES[upper]
    lower = start_type.strip().lower()
    if lower in START_TYPES.values():
        return lower
    return None


GUID_RE = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")


def parse_power_scheme_guid(output: str) -> Optional[str]:
    """
    Extract the scheme GUID from `powercfg /getactivescheme`.

    Example: "Power Scheme GUID: 381b4222-f694-41f0-9685-ff5bb260df2e  (Balanced)"
    """
    idx = output.find("GUID:")
    remaining = output[idx + 5:] if idx >= 0 else output
    match = GUID_RE.search(remaining)
    return match.group(0).lower() if match else None


class ServiceController(ServiceControl):
    """
    Controls Windows services through sc.exe.

    start/stop wait for the service to reach the requested state, polling
    until the command timeout elapses.
    """

    def __init__(self, config: Optional[ControlConfig] = None):
        self.config = config or ControlConfig()

    def _sc(self, *args: str) -> subprocess.CompletedProcess:
        cmd = [self.config.sc_command, *args]
        return _run(cmd, self.config.command_timeout)

    def capture_run_state(self, name: str) -> str:
        cmd = ["query", name]
        result = self._sc(*cmd)
        _check(result, cmd, name)
        return parse_run_state(result.stdout)

    def restore_run_state(self, name: str, state: str) -> None:
        if state not in RUN_STATES:
            raise CleanForgeError(f"{name}: unknown run state '{state}'")

        if state == RUNNING:
            cmd = ["start", name]
            ok_codes = (0, ERROR_SERVICE_ALREADY_RUNNING)
        else:
            cmd = ["stop", name]
            ok_codes = (0, ERROR_SERVICE_NOT_ACTIVE)

        result = self._sc(*cmd)
        _check(result, cmd, name, ok_codes=ok_codes)
        self._wait_for_state(name, state)
        logger.info("Service %s is now %s", name, state)

    def _wait_for_state(self, name: str, state: str) -> None:
        deadline = time.monotonic() + self.config.command_timeout
        while True:
            if self.capture_run_state(name) == state:
                return
            if time.monotonic() >= deadline:
                raise ControlTimeoutError(f"wait for {name} to be {state}", self.config.command_timeout)
            time.sleep(self.config.poll_interval)

    def capture_start_type(self, name: str) -> str:
        cmd = ["qc", name]
        result = self._sc(*cmd)
        _check(result, cmd, name)
        start_type = parse_start_type(result.stdout)
        if start_type is None:
            raise CleanForgeError(f"could not parse start type for service '{name}'")
        return start_type

    def restore_start_type(self, name: str, start_type: str) -> None:
        sc_type = start_type_for_sc(start_type)
        if sc_type is None:
            raise CleanForgeError(f"{name}: unknown start type '{start_type}'")
        cmd = ["config", name, "start=", sc_type]
        result = self._sc(*cmd)
        _check(result, cmd, name)
        logger.info("Service %s start type set to %s", name, sc_type)


class PowerSchemeController(PowerSchemeControl):
    """Reads and activates power schemes through powercfg.exe."""

    def __init__(self, config: Optional[ControlConfig] = None):
        self.config = config or ControlConfig()

    def _powercfg(self, *args: str) -> subprocess.CompletedProcess:
        cmd = [self.config.powercfg_command, *args]
        result = _run(cmd, self.config.command_timeout)
        _check(result, cmd, "power plan")
        return result

    def capture_active_plan(self) -> str:
        result = self._powercfg("/getactivescheme")
        guid = parse_power_scheme_guid(result.stdout)
        if not guid:
            raise CleanForgeError(f"could not parse power plan GUID from: {result.stdout.strip()}")
        return guid

    def restore_active_plan(self, scheme_id: str) -> None:
        if not GUID_RE.fullmatch(scheme_id):
            raise CleanForgeError(f"invalid power scheme id: {scheme_id}")
        self._powercfg("/setactive", scheme_id)
        logger.info("Activated power scheme %s", scheme_id)
