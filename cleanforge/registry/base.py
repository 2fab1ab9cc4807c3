"""
ConfigValueStore - capability interface over a hierarchical key/value store.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

from ..snapshot.models import ConfigValue, Coordinate


class ConfigValueStore(ABC):
    """Base interface for configuration value backends.

    Implementations: WindowsRegistryStore. Tests use an in-memory store.

    Errors: NotFoundError for a missing parent path where that matters,
    PermissionDeniedError when elevation is required, CleanForgeError
    for anything else.
    """

    @abstractmethod
    def read(self, coordinate: Coordinate) -> Tuple[ConfigValue, bool]:
        """Return (value, existed). A legitimately absent value is
        (ConfigValue.absent(), False) and does not raise."""
        pass

    @abstractmethod
    def write(self, coordinate: Coordinate, value: ConfigValue) -> None:
        """Write a typed value, creating intermediate path segments."""
        pass

    @abstractmethod
    def delete(self, coordinate: Coordinate) -> None:
        """Delete a value. Succeeds if it is already absent."""
        pass

    @abstractmethod
    def enumerate_children(self, root: str, path: str) -> List[str]:
        """Names of the direct child paths under root\\path."""
        pass

    @abstractmethod
    def list_values(self, root: str, path: str) -> List[Tuple[str, ConfigValue]]:
        """All readable (name, value) pairs directly under root\\path."""
        pass
