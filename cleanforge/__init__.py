"""
cleanforge - Windows tweaks with exact, restorable snapshots

Before any tweak changes a registry value, a service or the active power
plan, the prior state is captured and persisted; a restore replays it
backward, deleting what did not exist and rewriting everything else with
its original type.

Usage:
    # As a module
    python -m cleanforge apply gaming disable_game_dvr

    # Programmatically
    from cleanforge import Config, build_subsystems
    from cleanforge.registry import WindowsRegistryStore

    subsystems = build_subsystems(Config.load(), WindowsRegistryStore())
    result = subsystems["gaming"].applier.apply("disable_game_dvr")
    subsystems["gaming"].restorer.restore_all()
"""

__version__ = "1.0.0"

# Main exports
from .config import Config
from .runner.state import StateMachine, State
from .runner.subsystem import Subsystem, build_subsystems

# Engine exports
from .snapshot import ConfigValue, Coordinate, RestoreEngine, Snapshot, SnapshotManager
from .tuning import TweakApplier, TweakCatalog

# Errors
from .protocol.errors import AggregateError, CleanForgeError, StepFailure

__all__ = [
    # Version
    "__version__",
    # Wiring
    "Config",
    "StateMachine",
    "State",
    "Subsystem",
    "build_subsystems",
    # Engine
    "ConfigValue",
    "Coordinate",
    "RestoreEngine",
    "Snapshot",
    "SnapshotManager",
    "TweakApplier",
    "TweakCatalog",
    # Errors
    "AggregateError",
    "CleanForgeError",
    "StepFailure",
]
