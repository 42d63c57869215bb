"""Per-user carts: storage backends and the shopper-facing service."""

from storefront.carts.in_memory import InMemoryCartStore
from storefront.carts.interface import CartStore
from storefront.carts.postgresql import PostgreSQLCartStore
from storefront.carts.sqlite import SQLiteCartStore

__all__ = [
    "CartStore",
    "InMemoryCartStore",
    "SQLiteCartStore",
    "PostgreSQLCartStore",
]
