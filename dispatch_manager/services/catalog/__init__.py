"""Customer and product use cases."""

from .catalog_service import CatalogService

__all__ = ["CatalogService"]
