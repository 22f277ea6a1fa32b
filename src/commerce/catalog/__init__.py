"""Catalog collaborator factory.

Provides get_catalog() / set_catalog() to swap implementations. Defaults to
the in-memory catalog.
"""

from commerce.catalog.fake_adapter import InMemoryCatalog
from commerce.catalog.port import CatalogService, Variant

_current_catalog: CatalogService | None = None


def get_catalog() -> CatalogService:
    """Return the current catalog. Defaults to InMemoryCatalog."""
    global _current_catalog
    if _current_catalog is None:
        _current_catalog = InMemoryCatalog()
    return _current_catalog


def set_catalog(catalog: CatalogService) -> None:
    """Override the active catalog (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    """Reset to default catalog."""
    global _current_catalog
    _current_catalog = None


__all__ = ["CatalogService", "InMemoryCatalog", "Variant", "get_catalog", "reset_catalog", "set_catalog"]
