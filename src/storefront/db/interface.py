"""
Unit of work and database interface.

A Database owns connections and hands out units of work. A unit of work is
the smallest all-or-nothing group of writes: every catalog, cart and ledger
operation takes the current unit of work as its first argument, and
leaving the ``unit_of_work()`` context either commits everything or rolls
everything back.

This module provides:
- UnitOfWork: Base class for backend-specific transaction handles
- Database: Abstract base class for storage backends
- require_unit_of_work: Type guard used by repositories
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, ClassVar, TypeVar


class UnitOfWork:
    """
    Handle to one open transaction.

    Backends subclass this to carry their connection. A UnitOfWork is only
    valid inside the ``Database.unit_of_work()`` context that produced it.

    Attributes:
        backend: Name of the backend that produced the unit of work
        read_only: Whether the unit of work was opened for reads only
    """

    backend: ClassVar[str] = ""

    def __init__(self, read_only: bool = False) -> None:
        self.read_only = read_only

    def __repr__(self) -> str:
        return f"{type(self).__name__}(read_only={self.read_only})"


UnitOfWorkT = TypeVar("UnitOfWorkT", bound=UnitOfWork)


def require_unit_of_work(uow: UnitOfWork, expected: type[UnitOfWorkT]) -> UnitOfWorkT:
    """
    Check that a unit of work came from the expected backend.

    Raises:
        TypeError: If a repository is handed another backend's unit of work
    """
    if not isinstance(uow, expected):
        raise TypeError(
            f"{expected.__name__} required, got {type(uow).__name__}: "
            "repositories must be used with a unit of work from their own database"
        )
    return uow


class Database(ABC):
    """
    Abstract base class for storage backends.

    Implementations:
    - InMemoryDatabase: dict-backed state for tests and development
    - SQLiteDatabase: aiosqlite with BEGIN IMMEDIATE transactions
    - PostgreSQLDatabase: SQLAlchemy async engine over asyncpg

    Example:
        >>> async with SQLiteDatabase("shop.db") as database:
        ...     await database.initialize()
        ...     async with database.unit_of_work() as uow:
        ...         reserved = await catalog.try_reserve(uow, product_id=7, quantity=2)
    """

    backend: ClassVar[str] = ""

    @abstractmethod
    async def initialize(self) -> None:
        """
        Create the schema if it does not exist.

        Idempotent - safe to call multiple times.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release all connections held by the database. Safe to call twice."""
        pass

    @abstractmethod
    def unit_of_work(self, read_only: bool = False) -> AbstractAsyncContextManager[UnitOfWork]:
        """
        Open a unit of work.

        Leaving the context normally commits. Leaving it through any
        exception rolls back; storage driver errors are re-raised as
        PersistenceError, every other exception is re-raised unchanged.

        Args:
            read_only: Open the unit for reads only. Backends may use a
                cheaper lock or transaction mode.

        Returns:
            Async context manager yielding the UnitOfWork
        """
        pass

    async def __aenter__(self) -> Database:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()


__all__ = [
    "Database",
    "UnitOfWork",
    "require_unit_of_work",
]
