"""In-memory order ledger."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import asdict
from datetime import UTC, datetime

from storefront.db.in_memory import InMemoryState, InMemoryUnitOfWork
from storefront.db.interface import UnitOfWork, require_unit_of_work
from storefront.exceptions import DuplicateOrderNumberError
from storefront.ledger.interface import NewOrder, NewOrderLine, OrderLedger
from storefront.models import Order, OrderLine, OrderStatus, OrderSummary


def _summary(order: Order, item_count: int) -> OrderSummary:
    return OrderSummary(
        id=order.id,
        order_number=order.order_number,
        user_id=order.user_id,
        status=order.status,
        total_amount=order.total_amount,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        customer_name=order.customer_name,
        created_at=order.created_at,
        item_count=item_count,
    )


def _newest_first(orders: list[Order]) -> list[Order]:
    return sorted(orders, key=lambda order: (order.created_at, order.id), reverse=True)


class InMemoryOrderLedger(OrderLedger):
    """In-memory implementation of the order ledger."""

    @staticmethod
    def _state(uow: UnitOfWork) -> InMemoryState:
        return require_unit_of_work(uow, InMemoryUnitOfWork).state

    async def insert_order(self, uow: UnitOfWork, order: NewOrder) -> int:
        state = self._state(uow)
        if any(o.order_number == order.order_number for o in state.orders.values()):
            raise DuplicateOrderNumberError(order.order_number)

        now = datetime.now(UTC)
        order_id = state.next_id("orders")
        state.orders[order_id] = Order(id=order_id, created_at=now, updated_at=now, **asdict(order))
        state.order_lines[order_id] = []
        return order_id

    async def insert_lines(
        self,
        uow: UnitOfWork,
        order_id: int,
        lines: Sequence[NewOrderLine],
    ) -> None:
        state = self._state(uow)
        stored = state.order_lines.setdefault(order_id, [])
        for line in lines:
            stored.append(
                OrderLine(
                    id=state.next_id("order_items"),
                    order_id=order_id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                )
            )

    async def get_order(
        self,
        uow: UnitOfWork,
        order_id: int,
        user_id: int | None = None,
    ) -> Order | None:
        state = self._state(uow)
        order = state.orders.get(order_id)
        if order is None or (user_id is not None and order.user_id != user_id):
            return None
        return order.model_copy(update={"lines": tuple(state.order_lines.get(order_id, ()))})

    async def list_for_user(self, uow: UnitOfWork, user_id: int) -> list[OrderSummary]:
        state = self._state(uow)
        orders = [o for o in state.orders.values() if o.user_id == user_id]
        return [_summary(o, len(state.order_lines.get(o.id, ()))) for o in _newest_first(orders)]

    async def list_orders(
        self,
        uow: UnitOfWork,
        *,
        status: OrderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[OrderSummary], int]:
        state = self._state(uow)
        orders = [o for o in state.orders.values() if status is None or o.status == status]
        page = _newest_first(orders)[offset : offset + limit]
        summaries = [_summary(o, len(state.order_lines.get(o.id, ()))) for o in page]
        return summaries, len(orders)

    async def transition_status(
        self,
        uow: UnitOfWork,
        order_id: int,
        new_status: OrderStatus,
        *,
        from_statuses: Collection[OrderStatus] | None = None,
        user_id: int | None = None,
    ) -> bool:
        state = self._state(uow)
        order = state.orders.get(order_id)
        if order is None:
            return False
        if from_statuses is not None and order.status not in from_statuses:
            return False
        if user_id is not None and order.user_id != user_id:
            return False
        state.orders[order_id] = order.model_copy(
            update={"status": new_status, "updated_at": datetime.now(UTC)}
        )
        return True


__all__ = ["InMemoryOrderLedger"]
