"""
Storage backends and the unit of work.

Backends:
    - InMemoryDatabase: Testing and development
    - SQLiteDatabase: Embedded and single-instance deployments
    - PostgreSQLDatabase: Production deployments
"""

from storefront.db.in_memory import InMemoryDatabase, InMemoryState, InMemoryUnitOfWork
from storefront.db.interface import Database, UnitOfWork, require_unit_of_work
from storefront.db.postgresql import PostgreSQLDatabase, PostgreSQLUnitOfWork
from storefront.db.schema import get_schema, get_statements
from storefront.db.sqlite import SQLiteDatabase, SQLiteUnitOfWork

__all__ = [
    "Database",
    "UnitOfWork",
    "require_unit_of_work",
    "InMemoryDatabase",
    "InMemoryState",
    "InMemoryUnitOfWork",
    "SQLiteDatabase",
    "SQLiteUnitOfWork",
    "PostgreSQLDatabase",
    "PostgreSQLUnitOfWork",
    "get_schema",
    "get_statements",
]
