"""
Tests for the product catalog backends.

Every test runs against the in-memory and SQLite catalogs.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest

from storefront.db import Database
from storefront.exceptions import ProductNotFoundError, ValidationError
from storefront.models import MAX_ID, MAX_QUANTITY, ProductSnapshot
from storefront.observability import ATTR_PRODUCT_ID, ATTR_QUANTITY, ATTR_RESERVED, MockTracer
from storefront.repositories import default_repositories


class TestReservation:
    """Tests for get_for_reservation, try_reserve and release."""

    async def test_snapshot_uses_effective_price(
        self, database: Database, catalog: Any, add_product
    ) -> None:
        """Test the snapshot price is the sale price when one is set."""
        product = await add_product(price="100.00", sale_price="79.99", stock=4)
        async with database.unit_of_work(read_only=True) as uow:
            snapshot = await catalog.get_for_reservation(uow, product.id)

        assert snapshot == ProductSnapshot(
            product_id=product.id, unit_price=Decimal("79.99"), stock_quantity=4
        )

    async def test_snapshot_missing_product(self, database: Database, catalog: Any) -> None:
        """Test a missing product yields None."""
        async with database.unit_of_work(read_only=True) as uow:
            assert await catalog.get_for_reservation(uow, 999) is None

    async def test_reserve_decrements(
        self, database: Database, catalog: Any, add_product, stock_of
    ) -> None:
        """Test a successful reservation decrements stock."""
        product = await add_product(stock=5)
        async with database.unit_of_work() as uow:
            assert await catalog.try_reserve(uow, product.id, 3) is True
        assert await stock_of(product.id) == 2

    async def test_reserve_exact_stock(
        self, database: Database, catalog: Any, add_product, stock_of
    ) -> None:
        """Test reserving all remaining stock succeeds and leaves zero."""
        product = await add_product(stock=3)
        async with database.unit_of_work() as uow:
            assert await catalog.try_reserve(uow, product.id, 3) is True
        assert await stock_of(product.id) == 0

    async def test_reserve_insufficient(
        self, database: Database, catalog: Any, add_product, stock_of
    ) -> None:
        """Test a refused reservation leaves stock unchanged."""
        product = await add_product(stock=2)
        async with database.unit_of_work() as uow:
            assert await catalog.try_reserve(uow, product.id, 3) is False
        assert await stock_of(product.id) == 2

    async def test_reserve_missing_product(self, database: Database, catalog: Any) -> None:
        """Test reserving a missing product returns False."""
        async with database.unit_of_work() as uow:
            assert await catalog.try_reserve(uow, 999, 1) is False

    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_reserve_rejects_non_positive(
        self, database: Database, catalog: Any, add_product, quantity: int
    ) -> None:
        """Test non-positive quantities are a validation error, not a refusal."""
        product = await add_product()
        with pytest.raises(ValidationError):
            async with database.unit_of_work() as uow:
                await catalog.try_reserve(uow, product.id, quantity)

    @pytest.mark.parametrize("operation", ["try_reserve", "release"])
    @pytest.mark.parametrize(
        ("product_id", "quantity"), [(None, MAX_QUANTITY + 1), (MAX_ID + 1, 1), (-1, 1)]
    )
    async def test_out_of_range_integers_rejected(
        self,
        database: Database,
        catalog: Any,
        add_product,
        stock_of,
        operation: str,
        product_id: int | None,
        quantity: int,
    ) -> None:
        """Test ids and quantities beyond the column ranges fail validation on every backend."""
        product = await add_product(stock=5)
        with pytest.raises(ValidationError):
            async with database.unit_of_work() as uow:
                await getattr(catalog, operation)(uow, product_id or product.id, quantity)
        assert await stock_of(product.id) == 5

    async def test_sequential_reservations(
        self, database: Database, catalog: Any, add_product, stock_of
    ) -> None:
        """Test reservations in one unit see each other's decrements."""
        product = await add_product(stock=5)
        async with database.unit_of_work() as uow:
            assert await catalog.try_reserve(uow, product.id, 3)
            assert not await catalog.try_reserve(uow, product.id, 3)
            assert await catalog.try_reserve(uow, product.id, 2)
        assert await stock_of(product.id) == 0

    async def test_release_increments(
        self, database: Database, catalog: Any, add_product, stock_of
    ) -> None:
        """Test release adds stock back."""
        product = await add_product(stock=1)
        async with database.unit_of_work() as uow:
            assert await catalog.release(uow, product.id, 4) is True
        assert await stock_of(product.id) == 5

    async def test_release_missing_product(self, database: Database, catalog: Any) -> None:
        """Test releasing stock of a deleted product returns False."""
        async with database.unit_of_work() as uow:
            assert await catalog.release(uow, 999, 1) is False

    async def test_reserve_traced(self, database: Database, add_product) -> None:
        """Test reservations and releases emit spans with product attributes."""
        tracer = MockTracer()
        catalog = default_repositories(database, tracer=tracer).catalog
        product = await add_product(stock=5)

        async with database.unit_of_work() as uow:
            await catalog.try_reserve(uow, product.id, 2)
            await catalog.release(uow, product.id, 1)

        assert tracer.span_names == ["storefront.catalog.try_reserve", "storefront.catalog.release"]
        attributes = tracer.attributes_for("storefront.catalog.try_reserve")[0]
        assert attributes[ATTR_PRODUCT_ID] == product.id
        assert attributes[ATTR_QUANTITY] == 2

    async def test_reservation_outcome_on_span(self, database: Database, add_product) -> None:
        """Test the span of each reservation records whether it succeeded."""
        tracer = MockTracer()
        catalog = default_repositories(database, tracer=tracer).catalog
        product = await add_product(stock=1)

        async with database.unit_of_work() as uow:
            await catalog.try_reserve(uow, product.id, 1)
            await catalog.try_reserve(uow, product.id, 1)

        spans = tracer.recorded("storefront.catalog.try_reserve")
        assert [span.attributes[ATTR_RESERVED] for span in spans] == [True, False]


class TestMaintenance:
    """Tests for add_product, update_price, set_stock and delete_product."""

    async def test_add_product(self, database: Database, catalog: Any) -> None:
        """Test a product round-trips with exact decimal prices."""
        async with database.unit_of_work() as uow:
            product = await catalog.add_product(
                uow,
                name="Steel Kettle",
                price=Decimal("1299.50"),
                sale_price=Decimal("999.99"),
                stock_quantity=12,
                is_active=False,
            )
        async with database.unit_of_work(read_only=True) as uow:
            stored = await catalog.get_product(uow, product.id)

        assert stored == product
        assert stored.price == Decimal("1299.50")
        assert stored.sale_price == Decimal("999.99")
        assert stored.is_active is False

    async def test_add_product_validation(self, database: Database, catalog: Any) -> None:
        """Test every invalid field is reported."""
        with pytest.raises(ValidationError) as exc_info:
            async with database.unit_of_work() as uow:
                await catalog.add_product(
                    uow, name=" ", price=Decimal("-1"), stock_quantity=-2
                )
        assert len(exc_info.value.errors) == 3

    async def test_update_price(self, database: Database, catalog: Any, add_product) -> None:
        """Test prices can be replaced and the sale price cleared."""
        product = await add_product(price="10.00", sale_price="8.00")
        async with database.unit_of_work() as uow:
            updated = await catalog.update_price(uow, product.id, Decimal("12.00"))

        assert updated.price == Decimal("12.00")
        assert updated.sale_price is None
        assert updated.effective_price == Decimal("12.00")

    async def test_update_price_missing(self, database: Database, catalog: Any) -> None:
        """Test updating a missing product raises ProductNotFoundError."""
        with pytest.raises(ProductNotFoundError):
            async with database.unit_of_work() as uow:
                await catalog.update_price(uow, 999, Decimal("1"))

    async def test_set_stock(self, database: Database, catalog: Any, add_product) -> None:
        """Test stock can be overwritten."""
        product = await add_product(stock=3)
        async with database.unit_of_work() as uow:
            updated = await catalog.set_stock(uow, product.id, 40)
        assert updated.stock_quantity == 40

    async def test_set_stock_negative(self, database: Database, catalog: Any, add_product) -> None:
        """Test negative stock is rejected."""
        product = await add_product()
        with pytest.raises(ValidationError):
            async with database.unit_of_work() as uow:
                await catalog.set_stock(uow, product.id, -1)

    async def test_delete_product(self, database: Database, catalog: Any, add_product) -> None:
        """Test delete reports whether a product was removed."""
        product = await add_product()
        async with database.unit_of_work() as uow:
            assert await catalog.delete_product(uow, product.id) is True
            assert await catalog.delete_product(uow, product.id) is False
            assert await catalog.get_product(uow, product.id) is None