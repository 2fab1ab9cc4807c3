"""
Mock components for testing cleanforge.

In-memory stand-ins for the registry, sc.exe and powercfg so the engine
can be exercised without touching the real system.
"""

from .controls import FakePowerSchemeController, FakeServiceController
from .registry import MemoryRegistryStore

__all__ = [
    "FakePowerSchemeController",
    "FakeServiceController",
    "MemoryRegistryStore",
]
