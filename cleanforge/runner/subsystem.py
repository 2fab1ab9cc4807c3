"""
Subsystem wiring - one catalog, one snapshot slot, one state machine.

Each subsystem (gaming, privacy) keeps its own independent slot; an
applier and restore engine of the same subsystem share the slot lock,
the state machine and the applied-tweak set. There is no global state.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from ..catalogs import CATALOG_BUILDERS
from ..config import Config
from ..registry.base import ConfigValueStore
from ..snapshot.capture import SnapshotCapture
from ..snapshot.manager import SnapshotManager
from ..snapshot.restore import RestoreEngine
from ..tuning.applier import TweakApplier
from ..tuning.catalog import TweakCatalog
from .state import AppliedState, StateMachine

logger = logging.getLogger(__name__)


@dataclass
class Subsystem:
    """Everything needed to apply and restore one subsystem's tweaks."""
    name: str
    catalog: TweakCatalog
    manager: SnapshotManager
    applier: TweakApplier
    restorer: RestoreEngine
    state: StateMachine
    applied: AppliedState


def build_subsystem(
    name: str,
    catalog: TweakCatalog,
    backup_dir: Path,
    store: ConfigValueStore,
    services=None,
    power=None,
) -> Subsystem:
    """Wire a single subsystem around its own snapshot slot."""
    state = StateMachine()
    applied = AppliedState()
    manager = SnapshotManager(name, backup_dir, SnapshotCapture(store, services, power))

    return Subsystem(
        name=name,
        catalog=catalog,
        manager=manager,
        applier=TweakApplier(catalog, manager, store, services, power, state=state, applied=applied),
        restorer=RestoreEngine(manager, store, services, power, state=state, applied=applied),
        state=state,
        applied=applied,
    )


def build_subsystems(
    config: Config,
    store: ConfigValueStore,
    services=None,
    power=None,
    catalogs: Optional[Dict[str, TweakCatalog]] = None,
) -> Dict[str, Subsystem]:
    """
    Build every shipped subsystem.

    Args:
        config: Loaded configuration (backup directory)
        store: ConfigValueStore shared by all subsystems
        services: ServiceControl
        power: PowerSchemeControl
        catalogs: Override the shipped catalogs (name -> catalog)

    Returns:
        Subsystems by name, in catalog order
    """
    if catalogs is None:
        catalogs = {name: build() for name, build in CATALOG_BUILDERS.items()}

    subsystems = {
        name: build_subsystem(name, catalog, config.backup.path, store, services, power)
        for name, catalog in catalogs.items()
    }
    logger.debug("Built subsystems: %s (backups in %s)", ", ".join(subsystems), config.backup.path)
    return subsystems
