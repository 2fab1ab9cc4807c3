"""
Entry point for running cleanforge as a module.

Usage:
    python -m cleanforge restore gaming --dry-run
"""

from .cli import main

if __name__ == "__main__":
    main()
