"""
Default repositories for a database backend.

Picks the catalog, cart store and ledger implementations that match a
Database, so callers only have to choose the database.
"""

from __future__ import annotations

from dataclasses import dataclass

from storefront.carts import (
    CartStore,
    InMemoryCartStore,
    PostgreSQLCartStore,
    SQLiteCartStore,
)
from storefront.catalog import (
    InMemoryProductCatalog,
    PostgreSQLProductCatalog,
    ProductCatalog,
    SQLiteProductCatalog,
)
from storefront.db import Database, InMemoryDatabase, PostgreSQLDatabase, SQLiteDatabase
from storefront.ledger import (
    InMemoryOrderLedger,
    OrderLedger,
    PostgreSQLOrderLedger,
    SQLiteOrderLedger,
)
from storefront.observability import Tracer


@dataclass(frozen=True)
class Repositories:
    """The three repositories a storefront component works with."""

    catalog: ProductCatalog
    carts: CartStore
    ledger: OrderLedger


def default_repositories(
    database: Database,
    *,
    tracer: Tracer | None = None,
    enable_tracing: bool = True,
) -> Repositories:
    """
    Create the repositories matching a database backend.

    Args:
        database: The database the repositories will be used with
        tracer: Tracer passed to the catalog
        enable_tracing: Passed to the catalog when no tracer is given

    Raises:
        TypeError: If the database type has no default repositories
    """
    if isinstance(database, InMemoryDatabase):
        return Repositories(
            catalog=InMemoryProductCatalog(tracer=tracer, enable_tracing=enable_tracing),
            carts=InMemoryCartStore(),
            ledger=InMemoryOrderLedger(),
        )
    if isinstance(database, SQLiteDatabase):
        return Repositories(
            catalog=SQLiteProductCatalog(tracer=tracer, enable_tracing=enable_tracing),
            carts=SQLiteCartStore(),
            ledger=SQLiteOrderLedger(),
        )
    if isinstance(database, PostgreSQLDatabase):
        return Repositories(
            catalog=PostgreSQLProductCatalog(tracer=tracer, enable_tracing=enable_tracing),
            carts=PostgreSQLCartStore(),
            ledger=PostgreSQLOrderLedger(),
        )
    raise TypeError(
        f"No default repositories for {type(database).__name__}; "
        "pass catalog, carts and ledger explicitly"
    )


__all__ = [
    "Repositories",
    "default_repositories",
]
