"""
SQLite order ledger.

Amounts are stored as exact decimal strings and timestamps as
microsecond-precision ISO 8601 strings, which sort chronologically.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import aiosqlite

from storefront.db.interface import UnitOfWork, require_unit_of_work
from storefront.db.sqlite import SQLiteUnitOfWork
from storefront.exceptions import DuplicateOrderNumberError
from storefront.ledger.interface import NewOrder, NewOrderLine, OrderLedger
from storefront.models import (
    Order,
    OrderLine,
    OrderStatus,
    OrderSummary,
    PaymentMethod,
    PaymentStatus,
)

logger = logging.getLogger(__name__)

_ORDER_COLUMNS = """
    id, order_number, user_id, status, subtotal, cgst_amount, sgst_amount,
    delivery_charge, discount, total_amount, payment_method, payment_status,
    shipping_address, billing_address, customer_name, customer_phone,
    customer_email, notes, created_at, updated_at
"""

_SUMMARY_SELECT = """
    SELECT o.id, o.order_number, o.user_id, o.status, o.total_amount,
           o.payment_method, o.payment_status, o.customer_name, o.created_at,
           (SELECT COUNT(*) FROM order_items oi WHERE oi.order_id = o.id) AS item_count
    FROM orders o
"""


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


def _row_to_order(row: Any, lines: Sequence[OrderLine]) -> Order:
    return Order(
        id=row["id"],
        order_number=row["order_number"],
        user_id=row["user_id"],
        status=OrderStatus(row["status"]),
        subtotal=Decimal(row["subtotal"]),
        cgst_amount=Decimal(row["cgst_amount"]),
        sgst_amount=Decimal(row["sgst_amount"]),
        delivery_charge=Decimal(row["delivery_charge"]),
        discount=Decimal(row["discount"]),
        total_amount=Decimal(row["total_amount"]),
        payment_method=PaymentMethod(row["payment_method"]),
        payment_status=PaymentStatus(row["payment_status"]),
        shipping_address=row["shipping_address"],
        billing_address=row["billing_address"],
        customer_name=row["customer_name"],
        customer_phone=row["customer_phone"],
        customer_email=row["customer_email"],
        notes=row["notes"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
        lines=tuple(lines),
    )


def _row_to_summary(row: Any) -> OrderSummary:
    return OrderSummary(
        id=row["id"],
        order_number=row["order_number"],
        user_id=row["user_id"],
        status=OrderStatus(row["status"]),
        total_amount=Decimal(row["total_amount"]),
        payment_method=PaymentMethod(row["payment_method"]),
        payment_status=PaymentStatus(row["payment_status"]),
        customer_name=row["customer_name"],
        created_at=datetime.fromisoformat(row["created_at"]),
        item_count=row["item_count"],
    )


class SQLiteOrderLedger(OrderLedger):
    """
    SQLite implementation of the order ledger.

    A UNIQUE violation on ``order_number`` only aborts the failing INSERT
    statement, so the surrounding unit of work can retry with a new number.
    """

    @staticmethod
    def _conn(uow: UnitOfWork) -> aiosqlite.Connection:
        return require_unit_of_work(uow, SQLiteUnitOfWork).connection

    async def insert_order(self, uow: UnitOfWork, order: NewOrder) -> int:
        now = _now()
        try:
            cursor = await self._conn(uow).execute(
                """
                INSERT INTO orders (
                    order_number, user_id, status, subtotal, cgst_amount, sgst_amount,
                    delivery_charge, discount, total_amount, payment_method,
                    payment_status, shipping_address, billing_address, customer_name,
                    customer_phone, customer_email, notes, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    order.order_number,
                    order.user_id,
                    order.status.value,
                    str(order.subtotal),
                    str(order.cgst_amount),
                    str(order.sgst_amount),
                    str(order.delivery_charge),
                    str(order.discount),
                    str(order.total_amount),
                    order.payment_method.value,
                    order.payment_status.value,
                    order.shipping_address,
                    order.billing_address,
                    order.customer_name,
                    order.customer_phone,
                    order.customer_email,
                    order.notes,
                    now,
                    now,
                ),
            )
        except aiosqlite.IntegrityError as e:
            if "order_number" in str(e):
                raise DuplicateOrderNumberError(order.order_number) from e
            raise

        order_id = cursor.lastrowid
        assert order_id is not None
        return order_id

    async def insert_lines(
        self,
        uow: UnitOfWork,
        order_id: int,
        lines: Sequence[NewOrderLine],
    ) -> None:
        await self._conn(uow).executemany(
            """
            INSERT INTO order_items (order_id, product_id, quantity, unit_price)
            VALUES (?, ?, ?, ?)
            """,
            [(order_id, line.product_id, line.quantity, str(line.unit_price)) for line in lines],
        )

    async def get_order(
        self,
        uow: UnitOfWork,
        order_id: int,
        user_id: int | None = None,
    ) -> Order | None:
        conn = self._conn(uow)
        query = f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = ?"
        params: tuple[Any, ...] = (order_id,)
        if user_id is not None:
            query += " AND user_id = ?"
            params += (user_id,)
        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()
        if row is None:
            return None

        cursor = await conn.execute(
            """
            SELECT id, order_id, product_id, quantity, unit_price
            FROM order_items
            WHERE order_id = ?
            ORDER BY id
            """,
            (order_id,),
        )
        lines = [
            OrderLine(
                id=line["id"],
                order_id=line["order_id"],
                product_id=line["product_id"],
                quantity=line["quantity"],
                unit_price=Decimal(line["unit_price"]),
            )
            for line in await cursor.fetchall()
        ]
        return _row_to_order(row, lines)

    async def list_for_user(self, uow: UnitOfWork, user_id: int) -> list[OrderSummary]:
        cursor = await self._conn(uow).execute(
            f"{_SUMMARY_SELECT} WHERE o.user_id = ? ORDER BY o.created_at DESC, o.id DESC",
            (user_id,),
        )
        return [_row_to_summary(row) for row in await cursor.fetchall()]

    async def list_orders(
        self,
        uow: UnitOfWork,
        *,
        status: OrderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[OrderSummary], int]:
        conn = self._conn(uow)
        where = ""
        params: tuple[Any, ...] = ()
        if status is not None:
            where = " WHERE o.status = ?"
            params = (status.value,)

        cursor = await conn.execute(f"SELECT COUNT(*) FROM orders o{where}", params)
        count_row = await cursor.fetchone()
        total = int(count_row[0]) if count_row is not None else 0

        cursor = await conn.execute(
            f"{_SUMMARY_SELECT}{where} ORDER BY o.created_at DESC, o.id DESC LIMIT ? OFFSET ?",
            params + (limit, offset),
        )
        return [_row_to_summary(row) for row in await cursor.fetchall()], total

    async def transition_status(
        self,
        uow: UnitOfWork,
        order_id: int,
        new_status: OrderStatus,
        *,
        from_statuses: Collection[OrderStatus] | None = None,
        user_id: int | None = None,
    ) -> bool:
        query = "UPDATE orders SET status = ?, updated_at = ? WHERE id = ?"
        params: list[Any] = [new_status.value, _now(), order_id]
        if from_statuses is not None:
            if not from_statuses:
                return False
            placeholders = ", ".join("?" for _ in from_statuses)
            query += f" AND status IN ({placeholders})"
            params.extend(status.value for status in from_statuses)
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)

        cursor = await self._conn(uow).execute(query, params)
        updated = cursor.rowcount == 1
        logger.debug("Status of order %s -> %s: %s", order_id, new_status.value, updated)
        return updated


__all__ = ["SQLiteOrderLedger"]
