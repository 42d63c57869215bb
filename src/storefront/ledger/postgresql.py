"""
PostgreSQL order ledger.

PostgreSQL aborts the whole transaction after a failed statement, so the
order header INSERT runs inside a SAVEPOINT (``begin_nested``). A unique
violation on ``order_number`` rolls back to the savepoint only, leaving
the unit of work's reservations intact for a retry.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping, Sequence
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection

from storefront.db.interface import UnitOfWork, require_unit_of_work
from storefront.db.postgresql import PostgreSQLUnitOfWork
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

_SUMMARY_SELECT = """
    SELECT o.id, o.order_number, o.user_id, o.status, o.total_amount,
           o.payment_method, o.payment_status, o.customer_name, o.created_at,
           (SELECT COUNT(*) FROM order_items oi WHERE oi.order_id = o.id) AS item_count
    FROM orders o
"""


def _row_to_summary(row: Mapping[str, Any]) -> OrderSummary:
    return OrderSummary(
        id=row["id"],
        order_number=row["order_number"],
        user_id=row["user_id"],
        status=OrderStatus(row["status"]),
        total_amount=row["total_amount"],
        payment_method=PaymentMethod(row["payment_method"]),
        payment_status=PaymentStatus(row["payment_status"]),
        customer_name=row["customer_name"],
        created_at=row["created_at"],
        item_count=row["item_count"],
    )


class PostgreSQLOrderLedger(OrderLedger):
    """PostgreSQL implementation of the order ledger."""

    @staticmethod
    def _conn(uow: UnitOfWork) -> AsyncConnection:
        return require_unit_of_work(uow, PostgreSQLUnitOfWork).connection

    async def insert_order(self, uow: UnitOfWork, order: NewOrder) -> int:
        conn = self._conn(uow)
        try:
            async with conn.begin_nested():
                result = await conn.execute(
                    text("""
                        INSERT INTO orders (
                            order_number, user_id, status, subtotal, cgst_amount,
                            sgst_amount, delivery_charge, discount, total_amount,
                            payment_method, payment_status, shipping_address,
                            billing_address, customer_name, customer_phone,
                            customer_email, notes
                        )
                        VALUES (
                            :order_number, :user_id, :status, :subtotal, :cgst_amount,
                            :sgst_amount, :delivery_charge, :discount, :total_amount,
                            :payment_method, :payment_status, :shipping_address,
                            :billing_address, :customer_name, :customer_phone,
                            :customer_email, :notes
                        )
                        RETURNING id
                    """),
                    {
                        "order_number": order.order_number,
                        "user_id": order.user_id,
                        "status": order.status.value,
                        "subtotal": order.subtotal,
                        "cgst_amount": order.cgst_amount,
                        "sgst_amount": order.sgst_amount,
                        "delivery_charge": order.delivery_charge,
                        "discount": order.discount,
                        "total_amount": order.total_amount,
                        "payment_method": order.payment_method.value,
                        "payment_status": order.payment_status.value,
                        "shipping_address": order.shipping_address,
                        "billing_address": order.billing_address,
                        "customer_name": order.customer_name,
                        "customer_phone": order.customer_phone,
                        "customer_email": order.customer_email,
                        "notes": order.notes,
                    },
                )
                return int(result.scalar_one())
        except IntegrityError as e:
            if "order_number" in str(e.orig):
                raise DuplicateOrderNumberError(order.order_number) from e
            raise

    async def insert_lines(
        self,
        uow: UnitOfWork,
        order_id: int,
        lines: Sequence[NewOrderLine],
    ) -> None:
        if not lines:
            return
        await self._conn(uow).execute(
            text("""
                INSERT INTO order_items (order_id, product_id, quantity, unit_price)
                VALUES (:order_id, :product_id, :quantity, :unit_price)
            """),
            [
                {
                    "order_id": order_id,
                    "product_id": line.product_id,
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                }
                for line in lines
            ],
        )

    async def get_order(
        self,
        uow: UnitOfWork,
        order_id: int,
        user_id: int | None = None,
    ) -> Order | None:
        conn = self._conn(uow)
        query = "SELECT * FROM orders WHERE id = :id"
        params: dict[str, Any] = {"id": order_id}
        if user_id is not None:
            query += " AND user_id = :user_id"
            params["user_id"] = user_id
        result = await conn.execute(text(query), params)
        row = result.mappings().first()
        if row is None:
            return None

        line_result = await conn.execute(
            text("""
                SELECT id, order_id, product_id, quantity, unit_price
                FROM order_items
                WHERE order_id = :order_id
                ORDER BY id
            """),
            {"order_id": order_id},
        )
        lines = tuple(OrderLine(**line) for line in line_result.mappings())
        return Order(
            id=row["id"],
            order_number=row["order_number"],
            user_id=row["user_id"],
            status=OrderStatus(row["status"]),
            subtotal=row["subtotal"],
            cgst_amount=row["cgst_amount"],
            sgst_amount=row["sgst_amount"],
            delivery_charge=row["delivery_charge"],
            discount=row["discount"],
            total_amount=row["total_amount"],
            payment_method=PaymentMethod(row["payment_method"]),
            payment_status=PaymentStatus(row["payment_status"]),
            shipping_address=row["shipping_address"],
            billing_address=row["billing_address"],
            customer_name=row["customer_name"],
            customer_phone=row["customer_phone"],
            customer_email=row["customer_email"],
            notes=row["notes"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            lines=lines,
        )

    async def list_for_user(self, uow: UnitOfWork, user_id: int) -> list[OrderSummary]:
        result = await self._conn(uow).execute(
            text(
                f"{_SUMMARY_SELECT} WHERE o.user_id = :user_id "
                "ORDER BY o.created_at DESC, o.id DESC"
            ),
            {"user_id": user_id},
        )
        return [_row_to_summary(row) for row in result.mappings()]

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
        params: dict[str, Any] = {}
        if status is not None:
            where = " WHERE o.status = :status"
            params["status"] = status.value

        count = await conn.execute(text(f"SELECT COUNT(*) FROM orders o{where}"), params)
        total = count.scalar_one()
        result = await conn.execute(
            text(
                f"{_SUMMARY_SELECT}{where} "
                "ORDER BY o.created_at DESC, o.id DESC LIMIT :limit OFFSET :offset"
            ),
            {**params, "limit": limit, "offset": offset},
        )
        return [_row_to_summary(row) for row in result.mappings()], int(total)

    async def transition_status(
        self,
        uow: UnitOfWork,
        order_id: int,
        new_status: OrderStatus,
        *,
        from_statuses: Collection[OrderStatus] | None = None,
        user_id: int | None = None,
    ) -> bool:
        query = "UPDATE orders SET status = :new_status, updated_at = NOW() WHERE id = :id"
        params: dict[str, Any] = {"new_status": new_status.value, "id": order_id}
        bindparams = []
        if from_statuses is not None:
            if not from_statuses:
                return False
            query += " AND status IN :from_statuses"
            params["from_statuses"] = [status.value for status in from_statuses]
            bindparams.append(bindparam("from_statuses", expanding=True))
        if user_id is not None:
            query += " AND user_id = :user_id"
            params["user_id"] = user_id

        result = await self._conn(uow).execute(text(query).bindparams(*bindparams), params)
        updated = result.rowcount == 1
        logger.debug("Status of order %s -> %s: %s", order_id, new_status.value, updated)
        return updated


__all__ = ["PostgreSQLOrderLedger"]
