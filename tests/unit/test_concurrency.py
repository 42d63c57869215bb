"""
Concurrency tests for order placement and cancellation.

Concurrent tasks share one database. With SQLite every unit of work runs
on its own connection, so these exercise real write-lock contention.
"""

from __future__ import annotations

import asyncio

import pytest

from storefront import OrderEngine
from storefront.exceptions import InsufficientStockError, NotCancellableError
from storefront.models import Order, OrderStatus


def split_results(results: list[object]) -> tuple[list[Order], list[BaseException]]:
    orders = [r for r in results if isinstance(r, Order)]
    errors = [r for r in results if isinstance(r, BaseException)]
    return orders, errors


class TestConcurrentPlacement:
    """Concurrent placements never oversell."""

    async def test_two_orders_for_last_units(
        self, engine: OrderEngine, add_product, stock_of, order_request
    ) -> None:
        """Test two orders of 3 against stock 5: exactly one wins, stock ends at 2."""
        product = await add_product(stock=5)
        first = await order_request(user_id=1, items=[(product.id, 3)])
        second = await order_request(user_id=2, items=[(product.id, 3)])

        results = await asyncio.gather(
            engine.place_order(first), engine.place_order(second), return_exceptions=True
        )

        orders, errors = split_results(results)
        assert len(orders) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], InsufficientStockError)
        assert await stock_of(product.id) == 2

    async def test_many_small_orders(
        self, engine: OrderEngine, add_product, stock_of, order_request
    ) -> None:
        """Test 15 single-unit orders against stock 10: exactly 10 succeed."""
        product = await add_product(stock=10)
        requests = [
            await order_request(user_id=user_id, items=[(product.id, 1)])
            for user_id in range(15)
        ]

        results = await asyncio.gather(
            *(engine.place_order(request) for request in requests), return_exceptions=True
        )

        orders, errors = split_results(results)
        assert len(orders) == 10
        assert all(isinstance(e, InsufficientStockError) for e in errors)
        assert len({order.order_number for order in orders}) == 10
        assert await stock_of(product.id) == 0

    async def test_multi_line_orders_all_or_nothing(
        self, engine: OrderEngine, add_product, stock_of, order_request
    ) -> None:
        """Test competing multi-line orders leave stock consistent with the winners."""
        shared = await add_product(name="Shared", stock=4)
        extra = await add_product(name="Extra", stock=100)
        requests = [
            await order_request(user_id=user_id, items=[(extra.id, 5), (shared.id, 2)])
            for user_id in range(4)
        ]

        results = await asyncio.gather(
            *(engine.place_order(request) for request in requests), return_exceptions=True
        )

        orders, _ = split_results(results)
        assert len(orders) == 2
        assert await stock_of(shared.id) == 0
        assert await stock_of(extra.id) == 100 - 5 * len(orders)


class TestConcurrentCancellation:
    """Concurrent cancellations release stock exactly once."""

    async def test_double_cancel(
        self, engine: OrderEngine, add_product, stock_of, order_request
    ) -> None:
        """Test two simultaneous cancellations of one order: one wins."""
        product = await add_product(stock=5)
        order = await engine.place_order(
            await order_request(user_id=1, items=[(product.id, 3)])
        )

        results = await asyncio.gather(
            engine.cancel_order(order.id, user_id=1),
            engine.cancel_order(order.id, user_id=1),
            return_exceptions=True,
        )

        cancelled, errors = split_results(results)
        assert len(cancelled) == 1
        assert cancelled[0].status is OrderStatus.CANCELLED
        assert len(errors) == 1
        assert isinstance(errors[0], NotCancellableError)
        assert await stock_of(product.id) == 5

    async def test_cancel_frees_stock_for_next_order(
        self, engine: OrderEngine, add_product, stock_of, order_request
    ) -> None:
        """Test stock released by a cancellation can be reserved again."""
        product = await add_product(stock=3)
        order = await engine.place_order(
            await order_request(user_id=1, items=[(product.id, 3)])
        )
        request = await order_request(user_id=2, items=[(product.id, 3)])
        with pytest.raises(InsufficientStockError):
            await engine.place_order(request)

        await engine.cancel_order(order.id, user_id=1)
        await engine.place_order(request)

        assert await stock_of(product.id) == 0
