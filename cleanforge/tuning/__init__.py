"""
Tuning module - applies catalog tweaks behind a persisted snapshot.

Components:
- TweakCatalog: Immutable registry of tweak definitions and profiles
- TweakApplier: Capture, persist, then mutate
- ServiceController: Drives Windows services through sc.exe
- PowerSchemeController: Reads and activates power schemes via powercfg
"""

from .catalog import GameProfile, Mutation, ServiceChange, TweakCatalog, TweakDefinition
from .applier import ApplyResult, TweakApplier
from .service import PowerSchemeController, ServiceController

__all__ = [
    "GameProfile",
    "Mutation",
    "ServiceChange",
    "TweakCatalog",
    "TweakDefinition",
    "ApplyResult",
    "TweakApplier",
    "PowerSchemeController",
    "ServiceController",
]
