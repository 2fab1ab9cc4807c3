"""
Configuration value stores.

ConfigValueStore is the capability interface the snapshot engine talks
to; WindowsRegistryStore implements it over winreg.
"""

from .base import ConfigValueStore
from .winreg_store import WindowsRegistryStore

__all__ = [
    "ConfigValueStore",
    "WindowsRegistryStore",
]
