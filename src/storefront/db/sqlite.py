"""
SQLite database implementation.

Lightweight backend using SQLite with async support via aiosqlite.

This implementation is suitable for:
- Development and testing environments
- Single-instance deployments
- Embedded applications

Concurrency model:
    File databases open a fresh connection per unit of work and start it
    with ``BEGIN IMMEDIATE``, taking SQLite's write lock up front. Concurrent
    writers queue on that lock for up to ``busy_timeout`` milliseconds, so a
    conditional stock decrement is always evaluated against committed data.
    ``:memory:`` databases exist per connection, so they share a single
    connection serialised by an asyncio.Lock instead.

SQLite-specific adaptations:
- Decimal amounts stored as TEXT to keep them exact
- Timestamps stored as TEXT in ISO 8601 format
- Connections run in autocommit mode (``isolation_level=None``) and every
  transaction is opened and closed explicitly by the unit of work
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

from storefront.db.interface import Database, UnitOfWork
from storefront.db.schema import get_schema
from storefront.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class SQLiteUnitOfWork(UnitOfWork):
    """Unit of work bound to one open aiosqlite connection."""

    backend = "sqlite"

    def __init__(self, connection: aiosqlite.Connection, read_only: bool = False) -> None:
        super().__init__(read_only)
        self.connection = connection


class SQLiteDatabase(Database):
    """
    SQLite implementation of the database.

    Attributes:
        _database: Path to SQLite file or ':memory:' for in-memory database
        _wal_mode: Whether WAL mode is enabled for file databases
        _busy_timeout: Timeout in ms for waiting on the write lock
        _shared: The single connection used for ':memory:' databases

    Example:
        >>> async with SQLiteDatabase("shop.db") as database:
        ...     await database.initialize()
        ...     async with database.unit_of_work() as uow:
        ...         ...
    """

    backend = "sqlite"

    def __init__(
        self,
        database: str,
        *,
        wal_mode: bool = True,
        busy_timeout: int = 5000,
    ) -> None:
        """
        Initialize the SQLite database.

        Args:
            database: Path to SQLite database file or ':memory:' for in-memory
            wal_mode: If True, enable WAL mode for file databases (default: True)
            busy_timeout: Milliseconds to wait for the write lock (default: 5000)
        """
        if busy_timeout < 0:
            raise ValueError("busy_timeout must not be negative")
        self._database = database
        self._wal_mode = wal_mode
        self._busy_timeout = busy_timeout
        self._shared: aiosqlite.Connection | None = None
        self._shared_lock = asyncio.Lock()

    @property
    def database(self) -> str:
        return self._database

    @property
    def is_memory(self) -> bool:
        return self._database == ":memory:" or self._database.startswith("file::memory:")

    async def _open(self) -> aiosqlite.Connection:
        """Open and configure a new connection."""
        connection = await aiosqlite.connect(self._database, isolation_level=None)
        connection.row_factory = aiosqlite.Row
        await connection.execute("PRAGMA foreign_keys = ON")
        await connection.execute(f"PRAGMA busy_timeout = {self._busy_timeout}")
        return connection

    async def _shared_connection(self) -> aiosqlite.Connection:
        if self._shared is None:
            self._shared = await self._open()
            logger.debug("Opened shared SQLite connection: %s", self._database)
        return self._shared

    async def initialize(self) -> None:
        """
        Create the storefront tables if they don't exist.

        Also switches file databases to WAL journaling when ``wal_mode`` is set.
        """
        try:
            if self.is_memory:
                async with self._shared_lock:
                    connection = await self._shared_connection()
                    await connection.executescript(get_schema("sqlite"))
            else:
                connection = await self._open()
                try:
                    if self._wal_mode:
                        await connection.execute("PRAGMA journal_mode = WAL")
                    await connection.executescript(get_schema("sqlite"))
                finally:
                    await connection.close()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to initialize SQLite schema: {e}") from e

        logger.info("Initialized SQLite storefront schema: %s", self._database)

    async def close(self) -> None:
        if self._shared is not None:
            await self._shared.close()
            self._shared = None
            logger.debug("Closed SQLite database connection: %s", self._database)

    @asynccontextmanager
    async def unit_of_work(self, read_only: bool = False) -> AsyncIterator[SQLiteUnitOfWork]:
        if self.is_memory:
            async with self._shared_lock:
                connection = await self._shared_connection()
                async with self._transaction(connection, read_only) as uow:
                    yield uow
            return

        try:
            connection = await self._open()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to connect to {self._database}: {e}") from e
        try:
            async with self._transaction(connection, read_only) as uow:
                yield uow
        finally:
            await connection.close()

    @asynccontextmanager
    async def _transaction(
        self,
        connection: aiosqlite.Connection,
        read_only: bool,
    ) -> AsyncIterator[SQLiteUnitOfWork]:
        try:
            await connection.execute("BEGIN" if read_only else "BEGIN IMMEDIATE")
            yield SQLiteUnitOfWork(connection, read_only=read_only)
            await connection.commit()
        except (aiosqlite.Error, OverflowError) as e:
            # sqlite3 raises OverflowError for integers beyond 64 bits
            await self._rollback(connection)
            raise PersistenceError(f"SQLite unit of work failed: {e}") from e
        except BaseException:
            await self._rollback(connection)
            raise

    async def _rollback(self, connection: aiosqlite.Connection) -> None:
        if connection.in_transaction:
            await connection.rollback()
            logger.debug("Rolled back SQLite unit of work: %s", self._database)


__all__ = [
    "SQLiteDatabase",
    "SQLiteUnitOfWork",
]
