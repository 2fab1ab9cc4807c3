"""Startup item toggling (Run keys and the startup folder)."""

from .manager import StartupItem, StartupManager

__all__ = ["StartupItem", "StartupManager"]
