"""
UI module - Rich console output for the CLI.
"""

from .console import ConsoleUI

__all__ = ["ConsoleUI"]
