"""
SQLite product catalog.

Reservation is one conditional UPDATE; SQLite's write lock, taken by the
unit of work's BEGIN IMMEDIATE, serialises it against other writers.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

import aiosqlite

from storefront.catalog.interface import (
    ProductCatalog,
    validate_id,
    validate_product_fields,
    validate_quantity,
)
from storefront.db.interface import UnitOfWork, require_unit_of_work
from storefront.db.sqlite import SQLiteUnitOfWork
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

_PRODUCT_COLUMNS = "id, name, price, sale_price, stock_quantity, is_active"


def _to_text(value: Decimal | None) -> str | None:
    return None if value is None else str(Decimal(value))


def _row_to_product(row: Any) -> Product:
    return Product(
        id=row["id"],
        name=row["name"],
        price=Decimal(row["price"]),
        sale_price=Decimal(row["sale_price"]) if row["sale_price"] is not None else None,
        stock_quantity=row["stock_quantity"],
        is_active=bool(row["is_active"]),
    )


class SQLiteProductCatalog(ProductCatalog):
    """
    SQLite implementation of the product catalog.

    Example:
        >>> async with SQLiteDatabase("shop.db") as database:
        ...     await database.initialize()
        ...     catalog = SQLiteProductCatalog()
        ...     async with database.unit_of_work() as uow:
        ...         reserved = await catalog.try_reserve(uow, product_id=1, quantity=2)
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
    def _conn(uow: UnitOfWork) -> aiosqlite.Connection:
        return require_unit_of_work(uow, SQLiteUnitOfWork).connection

    async def get_for_reservation(
        self,
        uow: UnitOfWork,
        product_id: int,
    ) -> ProductSnapshot | None:
        cursor = await self._conn(uow).execute(
            "SELECT price, sale_price, stock_quantity FROM products WHERE id = ?",
            (product_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        sale_price = Decimal(row["sale_price"]) if row["sale_price"] is not None else None
        return ProductSnapshot(
            product_id=product_id,
            unit_price=effective_price(Decimal(row["price"]), sale_price),
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
                ATTR_DB_SYSTEM: "sqlite",
                ATTR_DB_OPERATION: "UPDATE",
            },
        ) as span:
            cursor = await self._conn(uow).execute(
                """
                UPDATE products
                SET stock_quantity = stock_quantity - ?
                WHERE id = ? AND stock_quantity >= ?
                """,
                (quantity, product_id, quantity),
            )
            reserved = cursor.rowcount == 1
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
                ATTR_DB_SYSTEM: "sqlite",
                ATTR_DB_OPERATION: "UPDATE",
            },
        ):
            cursor = await self._conn(uow).execute(
                "UPDATE products SET stock_quantity = stock_quantity + ? WHERE id = ?",
                (quantity, product_id),
            )
            released = cursor.rowcount == 1
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
        cursor = await self._conn(uow).execute(
            """
            INSERT INTO products (name, price, sale_price, stock_quantity, is_active)
            VALUES (?, ?, ?, ?, ?)
            """,
            (name, _to_text(price), _to_text(sale_price), stock_quantity, int(is_active)),
        )
        product_id = cursor.lastrowid
        assert product_id is not None
        return Product(
            id=product_id,
            name=name,
            price=price,
            sale_price=sale_price,
            stock_quantity=stock_quantity,
            is_active=is_active,
        )

    async def get_product(self, uow: UnitOfWork, product_id: int) -> Product | None:
        cursor = await self._conn(uow).execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id = ?",
            (product_id,),
        )
        row = await cursor.fetchone()
        return _row_to_product(row) if row is not None else None

    async def update_price(
        self,
        uow: UnitOfWork,
        product_id: int,
        price: Decimal,
        sale_price: Decimal | None = None,
    ) -> Product:
        validate_product_fields(price=price, sale_price=sale_price)
        cursor = await self._conn(uow).execute(
            "UPDATE products SET price = ?, sale_price = ? WHERE id = ?",
            (_to_text(price), _to_text(sale_price), product_id),
        )
        return await self._updated(uow, cursor, product_id)

    async def set_stock(self, uow: UnitOfWork, product_id: int, stock_quantity: int) -> Product:
        validate_product_fields(stock_quantity=stock_quantity)
        cursor = await self._conn(uow).execute(
            "UPDATE products SET stock_quantity = ? WHERE id = ?",
            (stock_quantity, product_id),
        )
        return await self._updated(uow, cursor, product_id)

    async def delete_product(self, uow: UnitOfWork, product_id: int) -> bool:
        cursor = await self._conn(uow).execute(
            "DELETE FROM products WHERE id = ?",
            (product_id,),
        )
        return cursor.rowcount == 1

    async def _updated(
        self,
        uow: UnitOfWork,
        cursor: aiosqlite.Cursor,
        product_id: int,
    ) -> Product:
        if cursor.rowcount != 1:
            raise ProductNotFoundError(product_id)
        product = await self.get_product(uow, product_id)
        assert product is not None
        return product


__all__ = ["SQLiteProductCatalog"]
