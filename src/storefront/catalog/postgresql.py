"""
PostgreSQL product catalog.

Uses SQLAlchemy ``text()`` statements on the unit of work's connection.
Under READ COMMITTED a concurrent conditional UPDATE on the same row
blocks on the row lock, then re-checks ``stock_quantity >= :quantity``
against the committed value, so two reservations can never both succeed
on stock that only covers one.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncConnection

from storefront.catalog.interface import (
    ProductCatalog,
    validate_id,
    validate_product_fields,
    validate_quantity,
)
from storefront.db.interface import UnitOfWork, require_unit_of_work
from storefront.db.postgresql import PostgreSQLUnitOfWork
from storefront.exceptions import ProductNotFoundError
from storefront.models import Product, ProductSnapshot, effective_price
from storefront.observability import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_PRODUCT_ID,
    ATTR_QUANTITY,
    ATTR_RESERVED,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)


def _row_to_product(row: Mapping[str, Any]) -> Product:
    return Product(
        id=row["id"],
        name=row["name"],
        price=row["price"],
        sale_price=row["sale_price"],
        stock_quantity=row["stock_quantity"],
        is_active=row["is_active"],
    )


class PostgreSQLProductCatalog(ProductCatalog):
    """
    PostgreSQL implementation of the product catalog.

    Example:
        >>> database = PostgreSQLDatabase.from_url("postgresql+asyncpg://localhost/shop")
        >>> catalog = PostgreSQLProductCatalog()
        >>> async with database.unit_of_work() as uow:
        ...     reserved = await catalog.try_reserve(uow, product_id=1, quantity=2)
    """

    def __init__(
        self,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled

    @staticmethod
    def _conn(uow: UnitOfWork) -> AsyncConnection:
        return require_unit_of_work(uow, PostgreSQLUnitOfWork).connection

    async def get_for_reservation(
        self,
        uow: UnitOfWork,
        product_id: int,
    ) -> ProductSnapshot | None:
        result = await self._conn(uow).execute(
            text("SELECT price, sale_price, stock_quantity FROM products WHERE id = :id"),
            {"id": product_id},
        )
        row = result.mappings().first()
        if row is None:
            return None
        return ProductSnapshot(
            product_id=product_id,
            unit_price=effective_price(row["price"], row["sale_price"]),
            stock_quantity=row["stock_quantity"],
        )

    async def try_reserve(self, uow: UnitOfWork, product_id: int, quantity: int) -> bool:
        validate_id(product_id, "product_id")
        validate_quantity(quantity)
        with self._tracer.span(
            "storefront.catalog.try_reserve",
            {
                ATTR_PRODUCT_ID: product_id,
                ATTR_QUANTITY: quantity,
                ATTR_DB_SYSTEM: "postgresql",
                ATTR_DB_OPERATION: "UPDATE",
            },
        ) as span:
            result = await self._conn(uow).execute(
                text("""
                    UPDATE products
                    SET stock_quantity = stock_quantity - :quantity
                    WHERE id = :id AND stock_quantity >= :quantity
                """),
                {"id": product_id, "quantity": quantity},
            )
            reserved = result.rowcount == 1
            if span:
                span.set_attribute(ATTR_RESERVED, reserved)
            logger.debug(
                "Reservation of %d for product %s: %s",
                quantity,
                product_id,
                "ok" if reserved else "refused",
            )
            return reserved

    async def release(self, uow: UnitOfWork, product_id: int, quantity: int) -> bool:
        validate_id(product_id, "product_id")
        validate_quantity(quantity)
        with self._tracer.span(
            "storefront.catalog.release",
            {
                ATTR_PRODUCT_ID: product_id,
                ATTR_QUANTITY: quantity,
                ATTR_DB_SYSTEM: "postgresql",
                ATTR_DB_OPERATION: "UPDATE",
            },
        ):
            result = await self._conn(uow).execute(
                text("""
                    UPDATE products
                    SET stock_quantity = stock_quantity + :quantity
                    WHERE id = :id
                """),
                {"id": product_id, "quantity": quantity},
            )
            released = result.rowcount == 1
            logger.debug("Released %d of product %s: %s", quantity, product_id, released)
            return released

    async def add_product(
        self,
        uow: UnitOfWork,
        *,
        name: str,
        price: Decimal,
        sale_price: Decimal | None = None,
        stock_quantity: int = 0,
        is_active: bool = True,
    ) -> Product:
        validate_product_fields(price, sale_price, stock_quantity, name)
        result = await self._conn(uow).execute(
            text("""
                INSERT INTO products (name, price, sale_price, stock_quantity, is_active)
                VALUES (:name, :price, :sale_price, :stock_quantity, :is_active)
                RETURNING id, name, price, sale_price, stock_quantity, is_active
            """),
            {
                "name": name,
                "price": Decimal(price),
                "sale_price": Decimal(sale_price) if sale_price is not None else None,
                "stock_quantity": stock_quantity,
                "is_active": is_active,
            },
        )
        return _row_to_product(result.mappings().one())

    async def get_product(self, uow: UnitOfWork, product_id: int) -> Product | None:
        result = await self._conn(uow).execute(
            text("""
                SELECT id, name, price, sale_price, stock_quantity, is_active
                FROM products WHERE id = :id
            """),
            {"id": product_id},
        )
        row = result.mappings().first()
        return _row_to_product(row) if row is not None else None

    async def update_price(
        self,
        uow: UnitOfWork,
        product_id: int,
        price: Decimal,
        sale_price: Decimal | None = None,
    ) -> Product:
        validate_product_fields(price=price, sale_price=sale_price)
        result = await self._conn(uow).execute(
            text("""
                UPDATE products SET price = :price, sale_price = :sale_price
                WHERE id = :id
                RETURNING id, name, price, sale_price, stock_quantity, is_active
            """),
            {
                "id": product_id,
                "price": Decimal(price),
                "sale_price": Decimal(sale_price) if sale_price is not None else None,
            },
        )
        return self._updated(result, product_id)

    async def set_stock(self, uow: UnitOfWork, product_id: int, stock_quantity: int) -> Product:
        validate_product_fields(stock_quantity=stock_quantity)
        result = await self._conn(uow).execute(
            text("""
                UPDATE products SET stock_quantity = :stock_quantity
                WHERE id = :id
                RETURNING id, name, price, sale_price, stock_quantity, is_active
            """),
            {"id": product_id, "stock_quantity": stock_quantity},
        )
        return self._updated(result, product_id)

    async def delete_product(self, uow: UnitOfWork, product_id: int) -> bool:
        result = await self._conn(uow).execute(
            text("DELETE FROM products WHERE id = :id"),
            {"id": product_id},
        )
        return result.rowcount == 1

    @staticmethod
    def _updated(result: CursorResult[Any], product_id: int) -> Product:
        row = result.mappings().first()
        if row is None:
            raise ProductNotFoundError(product_id)
        return _row_to_product(row)


__all__ = ["PostgreSQLProductCatalog"]
