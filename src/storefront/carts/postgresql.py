"""PostgreSQL cart store."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from storefront.carts.interface import CartStore
from storefront.catalog.interface import validate_quantity
from storefront.db.interface import UnitOfWork, require_unit_of_work
from storefront.db.postgresql import PostgreSQLUnitOfWork
from storefront.models import CartLine


def _row_to_line(row: Mapping[str, Any]) -> CartLine:
    return CartLine(
        id=row["id"],
        user_id=row["user_id"],
        product_id=row["product_id"],
        quantity=row["quantity"],
        created_at=row["created_at"],
    )


class PostgreSQLCartStore(CartStore):
    """PostgreSQL implementation of the cart store."""

    @staticmethod
    def _conn(uow: UnitOfWork) -> AsyncConnection:
        return require_unit_of_work(uow, PostgreSQLUnitOfWork).connection

    async def list_for_user(self, uow: UnitOfWork, user_id: int) -> list[CartLine]:
        result = await self._conn(uow).execute(
            text("""
                SELECT id, user_id, product_id, quantity, created_at
                FROM cart_items
                WHERE user_id = :user_id
                ORDER BY id
            """),
            {"user_id": user_id},
        )
        return [_row_to_line(row) for row in result.mappings()]

    async def clear_for_user(self, uow: UnitOfWork, user_id: int) -> int:
        result = await self._conn(uow).execute(
            text("DELETE FROM cart_items WHERE user_id = :user_id"),
            {"user_id": user_id},
        )
        return result.rowcount

    async def get_line(self, uow: UnitOfWork, user_id: int, line_id: int) -> CartLine | None:
        result = await self._conn(uow).execute(
            text("""
                SELECT id, user_id, product_id, quantity, created_at
                FROM cart_items
                WHERE id = :id AND user_id = :user_id
            """),
            {"id": line_id, "user_id": user_id},
        )
        row = result.mappings().first()
        return _row_to_line(row) if row is not None else None

    async def add_item(
        self,
        uow: UnitOfWork,
        user_id: int,
        product_id: int,
        quantity: int,
    ) -> CartLine:
        validate_quantity(quantity)
        result = await self._conn(uow).execute(
            text("""
                INSERT INTO cart_items (user_id, product_id, quantity)
                VALUES (:user_id, :product_id, :quantity)
                ON CONFLICT (user_id, product_id)
                DO UPDATE SET quantity = cart_items.quantity + EXCLUDED.quantity
                RETURNING id, user_id, product_id, quantity, created_at
            """),
            {"user_id": user_id, "product_id": product_id, "quantity": quantity},
        )
        return _row_to_line(result.mappings().one())

    async def update_quantity(
        self,
        uow: UnitOfWork,
        user_id: int,
        line_id: int,
        quantity: int,
    ) -> CartLine | None:
        validate_quantity(quantity)
        result = await self._conn(uow).execute(
            text("""
                UPDATE cart_items SET quantity = :quantity
                WHERE id = :id AND user_id = :user_id
                RETURNING id, user_id, product_id, quantity, created_at
            """),
            {"id": line_id, "user_id": user_id, "quantity": quantity},
        )
        row = result.mappings().first()
        return _row_to_line(row) if row is not None else None

    async def remove_item(self, uow: UnitOfWork, user_id: int, line_id: int) -> bool:
        result = await self._conn(uow).execute(
            text("DELETE FROM cart_items WHERE id = :id AND user_id = :user_id"),
            {"id": line_id, "user_id": user_id},
        )
        return result.rowcount == 1

    async def count_for_user(self, uow: UnitOfWork, user_id: int) -> int:
        result = await self._conn(uow).execute(
            text("SELECT COALESCE(SUM(quantity), 0) FROM cart_items WHERE user_id = :user_id"),
            {"user_id": user_id},
        )
        return int(result.scalar_one())


__all__ = ["PostgreSQLCartStore"]
