"""
Unit tests for the database backends and their units of work.

The shared tests run against every local backend through the parametrized
``database`` fixture; backend-specific behaviour is tested separately.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

import aiosqlite
import pytest

from storefront.catalog import InMemoryProductCatalog, SQLiteProductCatalog
from storefront.db import (
    Database,
    InMemoryDatabase,
    InMemoryUnitOfWork,
    SQLiteDatabase,
    SQLiteUnitOfWork,
    UnitOfWork,
)
from storefront.db.interface import require_unit_of_work
from storefront.exceptions import PersistenceError
from storefront.repositories import Repositories, default_repositories


class TestUnitOfWork:
    """Commit and rollback behaviour shared by every backend."""

    async def test_commit_on_normal_exit(self, database: Database, catalog: Any) -> None:
        """Test writes are visible to later units of work after commit."""
        async with database.unit_of_work() as uow:
            product = await catalog.add_product(uow, name="Kettle", price=Decimal("499.00"))

        async with database.unit_of_work(read_only=True) as uow:
            stored = await catalog.get_product(uow, product.id)
        assert stored is not None
        assert stored.name == "Kettle"
        assert stored.price == Decimal("499.00")

    async def test_rollback_on_exception(self, database: Database, catalog: Any) -> None:
        """Test an exception discards every write and propagates unchanged."""
        with pytest.raises(RuntimeError, match="abort"):
            async with database.unit_of_work() as uow:
                product = await catalog.add_product(uow, name="Kettle", price=Decimal("1"))
                raise RuntimeError("abort")

        async with database.unit_of_work(read_only=True) as uow:
            assert await catalog.get_product(uow, product.id) is None

    async def test_rollback_restores_stock(self, database: Database, catalog: Any) -> None:
        """Test reservations made before a failure are undone."""
        async with database.unit_of_work() as uow:
            product = await catalog.add_product(
                uow, name="Kettle", price=Decimal("1"), stock_quantity=5
            )

        with pytest.raises(RuntimeError):
            async with database.unit_of_work() as uow:
                assert await catalog.try_reserve(uow, product.id, 3)
                raise RuntimeError("abort")

        async with database.unit_of_work(read_only=True) as uow:
            stored = await catalog.get_product(uow, product.id)
        assert stored.stock_quantity == 5

    async def test_read_only_flag(self, database: Database) -> None:
        """Test the unit of work reports how it was opened."""
        async with database.unit_of_work(read_only=True) as uow:
            assert uow.read_only is True
            assert uow.backend == database.backend
        async with database.unit_of_work() as uow:
            assert uow.read_only is False

    async def test_initialize_is_idempotent(self, database: Database) -> None:
        """Test initialize() can be called again safely."""
        await database.initialize()

    async def test_foreign_unit_of_work_rejected(self, catalog: Any) -> None:
        """Test a repository refuses a unit of work from another backend."""
        with pytest.raises(TypeError, match="required"):
            await catalog.get_product(UnitOfWork(), 1)


class TestRequireUnitOfWork:
    """Tests for require_unit_of_work()."""

    def test_returns_matching(self) -> None:
        """Test a matching unit of work is returned as-is."""
        uow = InMemoryUnitOfWork(InMemoryDatabase().state)
        assert require_unit_of_work(uow, InMemoryUnitOfWork) is uow

    def test_rejects_mismatch(self) -> None:
        """Test a mismatching unit of work raises TypeError naming both types."""
        uow = InMemoryUnitOfWork(InMemoryDatabase().state)
        with pytest.raises(TypeError, match="SQLiteUnitOfWork required, got InMemoryUnitOfWork"):
            require_unit_of_work(uow, SQLiteUnitOfWork)

    def test_repr(self) -> None:
        """Test repr shows the concrete type and mode."""
        assert repr(UnitOfWork(read_only=True)) == "UnitOfWork(read_only=True)"


class TestDefaultRepositories:
    """Tests for default_repositories()."""

    def test_in_memory(self) -> None:
        """Test an InMemoryDatabase gets in-memory repositories."""
        repos = default_repositories(InMemoryDatabase(), enable_tracing=False)
        assert isinstance(repos, Repositories)
        assert isinstance(repos.catalog, InMemoryProductCatalog)

    def test_sqlite(self) -> None:
        """Test a SQLiteDatabase gets SQLite repositories."""
        repos = default_repositories(SQLiteDatabase(":memory:"), enable_tracing=False)
        assert isinstance(repos.catalog, SQLiteProductCatalog)

    def test_unknown_database(self) -> None:
        """Test an unsupported database raises TypeError."""

        class CustomDatabase(Database):
            async def initialize(self) -> None:
                pass

            async def close(self) -> None:
                pass

            def unit_of_work(self, read_only: bool = False) -> Any:
                raise NotImplementedError

        with pytest.raises(TypeError, match="No default repositories"):
            default_repositories(CustomDatabase())


class TestInMemoryDatabase:
    """Tests specific to InMemoryDatabase."""

    async def test_rollback_leaves_state_untouched(self) -> None:
        """Test the committed state object is not modified by a failed unit."""
        database = InMemoryDatabase()
        catalog = InMemoryProductCatalog(enable_tracing=False)

        with pytest.raises(RuntimeError):
            async with database.unit_of_work() as uow:
                await catalog.add_product(uow, name="Kettle", price=Decimal("1"))
                raise RuntimeError("abort")

        assert database.state.products == {}

    async def test_clear(self) -> None:
        """Test clear() drops every row."""
        database = InMemoryDatabase()
        catalog = InMemoryProductCatalog(enable_tracing=False)
        async with database.unit_of_work() as uow:
            await catalog.add_product(uow, name="Kettle", price=Decimal("1"))

        await database.clear()
        assert database.state.products == {}

    async def test_ids_keep_increasing(self) -> None:
        """Test ids are assigned in increasing order across units of work."""
        database = InMemoryDatabase()
        catalog = InMemoryProductCatalog(enable_tracing=False)
        async with database.unit_of_work() as uow:
            first = await catalog.add_product(uow, name="A", price=Decimal("1"))
        async with database.unit_of_work() as uow:
            second = await catalog.add_product(uow, name="B", price=Decimal("1"))
        assert second.id == first.id + 1


@pytest.mark.sqlite
class TestSQLiteDatabase:
    """Tests specific to SQLiteDatabase."""

    async def test_driver_error_becomes_persistence_error(
        self, sqlite_file_database: SQLiteDatabase
    ) -> None:
        """Test aiosqlite errors are wrapped with the original as __cause__."""
        with pytest.raises(PersistenceError) as exc_info:
            async with sqlite_file_database.unit_of_work() as uow:
                await uow.connection.execute("SELECT * FROM no_such_table")

        assert isinstance(exc_info.value.__cause__, aiosqlite.Error)

    async def test_integer_overflow_becomes_persistence_error(
        self, sqlite_file_database: SQLiteDatabase
    ) -> None:
        """Test integers beyond 64 bits are wrapped like any other driver error."""
        with pytest.raises(PersistenceError) as exc_info:
            async with sqlite_file_database.unit_of_work(read_only=True) as uow:
                await uow.connection.execute("SELECT * FROM orders WHERE id = ?", (2**63,))

        assert isinstance(exc_info.value.__cause__, OverflowError)

    @pytest.mark.parametrize(("price", "sale_price"), [("-1.00", None), ("10.00", "-0.01")])
    async def test_negative_price_refused(
        self, sqlite_file_database: SQLiteDatabase, price: str, sale_price: str | None
    ) -> None:
        """Test the products table refuses negative prices written past the catalog."""
        with pytest.raises(PersistenceError) as exc_info:
            async with sqlite_file_database.unit_of_work() as uow:
                await uow.connection.execute(
                    "INSERT INTO products (name, price, sale_price) VALUES ('Kettle', ?, ?)",
                    (price, sale_price),
                )

        assert isinstance(exc_info.value.__cause__, aiosqlite.IntegrityError)

    async def test_check_constraint_rolls_back(
        self, sqlite_file_database: SQLiteDatabase
    ) -> None:
        """Test a CHECK violation rolls back earlier writes in the same unit."""
        catalog = SQLiteProductCatalog(enable_tracing=False)
        async with sqlite_file_database.unit_of_work() as uow:
            product = await catalog.add_product(
                uow, name="Kettle", price=Decimal("1"), stock_quantity=2
            )

        with pytest.raises(PersistenceError):
            async with sqlite_file_database.unit_of_work() as uow:
                await catalog.release(uow, product.id, 5)
                await uow.connection.execute(
                    "UPDATE products SET stock_quantity = -1 WHERE id = ?", (product.id,)
                )

        async with sqlite_file_database.unit_of_work(read_only=True) as uow:
            stored = await catalog.get_product(uow, product.id)
        assert stored.stock_quantity == 2

    async def test_shared_memory_connection(self) -> None:
        """Test ':memory:' databases keep their data across units of work."""
        catalog = SQLiteProductCatalog(enable_tracing=False)
        async with SQLiteDatabase(":memory:") as database:
            assert database.is_memory
            await database.initialize()
            async with database.unit_of_work() as uow:
                product = await catalog.add_product(uow, name="Kettle", price=Decimal("2.50"))
            async with database.unit_of_work(read_only=True) as uow:
                stored = await catalog.get_product(uow, product.id)
        assert stored.price == Decimal("2.50")

    async def test_file_database_persists(self, tmp_path: Path) -> None:
        """Test a file database keeps data across database instances."""
        path = str(tmp_path / "shop.db")
        catalog = SQLiteProductCatalog(enable_tracing=False)

        async with SQLiteDatabase(path) as first:
            await first.initialize()
            async with first.unit_of_work() as uow:
                product = await catalog.add_product(uow, name="Kettle", price=Decimal("1"))

        async with SQLiteDatabase(path) as second:
            async with second.unit_of_work(read_only=True) as uow:
                assert await catalog.get_product(uow, product.id) is not None

    async def test_wal_mode_enabled(self, sqlite_file_database: SQLiteDatabase) -> None:
        """Test file databases are switched to WAL journaling."""
        async with aiosqlite.connect(sqlite_file_database.database) as connection:
            cursor = await connection.execute("PRAGMA journal_mode")
            row = await cursor.fetchone()
        assert row[0].lower() == "wal"

    def test_negative_busy_timeout(self) -> None:
        """Test busy_timeout must not be negative."""
        with pytest.raises(ValueError, match="busy_timeout"):
            SQLiteDatabase("shop.db", busy_timeout=-1)

    def test_properties(self) -> None:
        """Test database path and memory detection."""
        database = SQLiteDatabase("shop.db")
        assert database.database == "shop.db"
        assert not database.is_memory
