"""SQLite cart store."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import aiosqlite

from storefront.carts.interface import CartStore
from storefront.catalog.interface import validate_quantity
from storefront.db.interface import UnitOfWork, require_unit_of_work
from storefront.db.sqlite import SQLiteUnitOfWork
from storefront.models import CartLine

_LINE_COLUMNS = "id, user_id, product_id, quantity, created_at"


def _row_to_line(row: Any) -> CartLine:
    return CartLine(
        id=row["id"],
        user_id=row["user_id"],
        product_id=row["product_id"],
        quantity=row["quantity"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class SQLiteCartStore(CartStore):
    """
    SQLite implementation of the cart store.

    ``add_item`` relies on the UNIQUE (user_id, product_id) constraint and
    an upsert to merge quantities.
    """

    @staticmethod
    def _conn(uow: UnitOfWork) -> aiosqlite.Connection:
        return require_unit_of_work(uow, SQLiteUnitOfWork).connection

    async def list_for_user(self, uow: UnitOfWork, user_id: int) -> list[CartLine]:
        cursor = await self._conn(uow).execute(
            f"SELECT {_LINE_COLUMNS} FROM cart_items WHERE user_id = ? ORDER BY id",
            (user_id,),
        )
        rows = await cursor.fetchall()
        return [_row_to_line(row) for row in rows]

    async def clear_for_user(self, uow: UnitOfWork, user_id: int) -> int:
        cursor = await self._conn(uow).execute(
            "DELETE FROM cart_items WHERE user_id = ?",
            (user_id,),
        )
        return cursor.rowcount

    async def get_line(self, uow: UnitOfWork, user_id: int, line_id: int) -> CartLine | None:
        cursor = await self._conn(uow).execute(
            f"SELECT {_LINE_COLUMNS} FROM cart_items WHERE id = ? AND user_id = ?",
            (line_id, user_id),
        )
        row = await cursor.fetchone()
        return _row_to_line(row) if row is not None else None

    async def add_item(
        self,
        uow: UnitOfWork,
        user_id: int,
        product_id: int,
        quantity: int,
    ) -> CartLine:
        validate_quantity(quantity)
        conn = self._conn(uow)
        await conn.execute(
            """
            INSERT INTO cart_items (user_id, product_id, quantity, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (user_id, product_id)
            DO UPDATE SET quantity = cart_items.quantity + excluded.quantity
            """,
            (user_id, product_id, quantity, datetime.now(UTC).isoformat()),
        )
        cursor = await conn.execute(
            f"SELECT {_LINE_COLUMNS} FROM cart_items WHERE user_id = ? AND product_id = ?",
            (user_id, product_id),
        )
        row = await cursor.fetchone()
        assert row is not None
        return _row_to_line(row)

    async def update_quantity(
        self,
        uow: UnitOfWork,
        user_id: int,
        line_id: int,
        quantity: int,
    ) -> CartLine | None:
        validate_quantity(quantity)
        cursor = await self._conn(uow).execute(
            "UPDATE cart_items SET quantity = ? WHERE id = ? AND user_id = ?",
            (quantity, line_id, user_id),
        )
        if cursor.rowcount != 1:
            return None
        return await self.get_line(uow, user_id, line_id)

    async def remove_item(self, uow: UnitOfWork, user_id: int, line_id: int) -> bool:
        cursor = await self._conn(uow).execute(
            "DELETE FROM cart_items WHERE id = ? AND user_id = ?",
            (line_id, user_id),
        )
        return cursor.rowcount == 1

    async def count_for_user(self, uow: UnitOfWork, user_id: int) -> int:
        cursor = await self._conn(uow).execute(
            "SELECT COALESCE(SUM(quantity), 0) FROM cart_items WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return int(row[0]) if row is not None else 0


__all__ = ["SQLiteCartStore"]
