"""
Shared pytest fixtures for the storefront library tests.

This module provides:
- Database fixtures (database, sqlite_file_database), parametrized over the
  in-memory and SQLite backends
- Repository fixtures (repositories, catalog, carts, ledger)
- Engine fixtures (engine, engine_config, cart_service, mock_tracer)
- Data helpers (add_product, stock_of, order_request, make_request)
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from storefront import (
    CartService,
    Database,
    InMemoryDatabase,
    LineItemRequest,
    MockTracer,
    OrderEngine,
    OrderEngineConfig,
    PaymentMethod,
    PlaceOrderRequest,
    Product,
    Repositories,
    SQLiteDatabase,
    default_repositories,
)

BACKENDS = ["memory", "sqlite"]

AddProduct = Callable[..., Awaitable[Product]]
StockOf = Callable[[int], Awaitable[int | None]]
OrderRequestFactory = Callable[..., Awaitable[PlaceOrderRequest]]


# ============================================================================
# Databases
# ============================================================================


@pytest_asyncio.fixture(params=BACKENDS)
async def database(
    request: pytest.FixtureRequest, tmp_path: Path
) -> AsyncGenerator[Database, None]:
    """
    Provide an initialized database for each supported local backend.

    The SQLite variant uses a file in tmp_path so every unit of work gets
    its own connection, as in production.
    """
    db: Database
    if request.param == "memory":
        db = InMemoryDatabase()
    else:
        db = SQLiteDatabase(str(tmp_path / "storefront.db"))
    await db.initialize()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def sqlite_file_database(tmp_path: Path) -> AsyncGenerator[SQLiteDatabase, None]:
    """Provide a file-backed SQLite database."""
    db = SQLiteDatabase(str(tmp_path / "storefront.db"))
    await db.initialize()
    yield db
    await db.close()


# ============================================================================
# Repositories and services
# ============================================================================


@pytest.fixture
def repositories(database: Database) -> Repositories:
    return default_repositories(database, enable_tracing=False)


@pytest.fixture
def catalog(repositories: Repositories) -> Any:
    return repositories.catalog


@pytest.fixture
def carts(repositories: Repositories) -> Any:
    return repositories.carts


@pytest.fixture
def ledger(repositories: Repositories) -> Any:
    return repositories.ledger


@pytest.fixture
def engine_config() -> OrderEngineConfig:
    """Default engine settings: 9% + 9% GST, free delivery above 500, fee 50."""
    return OrderEngineConfig()


@pytest.fixture
def engine(
    database: Database,
    repositories: Repositories,
    engine_config: OrderEngineConfig,
) -> OrderEngine:
    return OrderEngine(
        database,
        catalog=repositories.catalog,
        carts=repositories.carts,
        ledger=repositories.ledger,
        config=engine_config,
        enable_tracing=False,
    )


@pytest.fixture
def cart_service(database: Database, repositories: Repositories) -> CartService:
    return CartService(
        database,
        catalog=repositories.catalog,
        carts=repositories.carts,
        enable_tracing=False,
    )


@pytest.fixture
def mock_tracer() -> MockTracer:
    return MockTracer()


# ============================================================================
# Data helpers
# ============================================================================


@pytest.fixture
def add_product(database: Database, catalog: Any) -> AddProduct:
    """
    Factory fixture that inserts a product in its own unit of work.

    Usage:
        product = await add_product(price="10.00", stock=5)
    """

    async def _add(
        name: str = "Widget",
        price: str = "10.00",
        sale_price: str | None = None,
        stock: int = 10,
        is_active: bool = True,
    ) -> Product:
        async with database.unit_of_work() as uow:
            return await catalog.add_product(
                uow,
                name=name,
                price=Decimal(price),
                sale_price=Decimal(sale_price) if sale_price is not None else None,
                stock_quantity=stock,
                is_active=is_active,
            )

    return _add


@pytest.fixture
def stock_of(database: Database, catalog: Any) -> StockOf:
    """Factory fixture returning a product's committed stock, or None if deleted."""

    async def _stock(product_id: int) -> int | None:
        async with database.unit_of_work(read_only=True) as uow:
            product = await catalog.get_product(uow, product_id)
        return product.stock_quantity if product is not None else None

    return _stock


def build_request(
    user_id: int,
    items: Sequence[tuple[int, int]],
    *,
    total_amount: Decimal,
    subtotal: Decimal | None = None,
    discount: Decimal = Decimal("0"),
    **overrides: Any,
) -> PlaceOrderRequest:
    """Build a checkout request with fixed customer details."""
    fields: dict[str, Any] = {
        "user_id": user_id,
        "customer_name": "Asha Rao",
        "customer_phone": "9876543210",
        "customer_email": "asha@example.com",
        "shipping_address": "12 MG Road, Bengaluru",
        "billing_address": "12 MG Road, Bengaluru",
        "payment_method": PaymentMethod.COD,
        "items": [LineItemRequest(product_id=pid, quantity=qty) for pid, qty in items],
        "subtotal": subtotal if subtotal is not None else total_amount,
        "discount": discount,
        "total_amount": total_amount,
    }
    fields.update(overrides)
    return PlaceOrderRequest(**fields)


@pytest.fixture
def make_request() -> Callable[..., PlaceOrderRequest]:
    """Build a request with explicit billing figures, for mismatch tests."""
    return build_request


@pytest.fixture
def order_request(engine: OrderEngine) -> OrderRequestFactory:
    """
    Factory fixture building a correctly priced checkout request.

    Billing figures come from engine.quote(), so the request matches what the
    engine will recompute at placement time.

    Usage:
        request = await order_request(user_id=1, items=[(product.id, 2)])
    """

    async def _make(
        user_id: int,
        items: Sequence[tuple[int, int]],
        discount: Decimal = Decimal("0"),
        **overrides: Any,
    ) -> PlaceOrderRequest:
        breakdown = await engine.quote(
            [LineItemRequest(product_id=pid, quantity=qty) for pid, qty in items],
            discount,
        )
        fields: dict[str, Any] = {
            "subtotal": breakdown.subtotal,
            "cgst_amount": breakdown.cgst_amount,
            "sgst_amount": breakdown.sgst_amount,
            "delivery_charge": breakdown.delivery_charge,
        }
        fields.update(overrides)
        total = fields.pop("total_amount", breakdown.total)
        return build_request(user_id, items, total_amount=total, discount=discount, **fields)

    return _make
