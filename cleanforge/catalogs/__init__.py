"""Shipped tweak catalogs, one per subsystem."""

from . import gaming, privacy

CATALOG_BUILDERS = {
    "gaming": gaming.build_catalog,
    "privacy": privacy.build_catalog,
}

__all__ = ["CATALOG_BUILDERS", "gaming", "privacy"]
