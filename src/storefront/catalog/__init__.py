"""Product catalog: reservation contract and maintenance operations."""

from storefront.catalog.in_memory import InMemoryProductCatalog
from storefront.catalog.interface import ProductCatalog
from storefront.catalog.postgresql import PostgreSQLProductCatalog
from storefront.catalog.sqlite import SQLiteProductCatalog

__all__ = [
    "ProductCatalog",
    "InMemoryProductCatalog",
    "SQLiteProductCatalog",
    "PostgreSQLProductCatalog",
]
