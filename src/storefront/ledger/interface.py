"""
Order ledger interface.

The ledger stores orders and their line items. It is owned by the order
engine: once written, an order's billing figures and line prices are never
updated; only ``status`` (and ``updated_at``) change, through
``transition_status``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Collection, Sequence
from dataclasses import dataclass
from decimal import Decimal

from storefront.db.interface import UnitOfWork
from storefront.models import (
    Order,
    OrderStatus,
    OrderSummary,
    PaymentMethod,
    PaymentStatus,
)


@dataclass(frozen=True)
class NewOrder:
    """
    An order header ready to be inserted.

    Attributes:
        order_number: Candidate order number; must be unique in the ledger
        user_id: Owner of the order
        subtotal .. total_amount: Rounded billing figures
        payment_method: How the customer will pay
        shipping_address, billing_address: Delivery and invoice addresses
        customer_name, customer_phone, customer_email: Contact fields
        notes: Optional free text from the customer
    """

    order_number: str
    user_id: int
    subtotal: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    delivery_charge: Decimal
    discount: Decimal
    total_amount: Decimal
    payment_method: PaymentMethod
    shipping_address: str
    billing_address: str
    customer_name: str
    customer_phone: str
    customer_email: str
    notes: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING


@dataclass(frozen=True)
class NewOrderLine:
    """A line item ready to be inserted, with its frozen unit price."""

    product_id: int
    quantity: int
    unit_price: Decimal


class OrderLedger(ABC):
    """Abstract base class for order storage."""

    @abstractmethod
    async def insert_order(self, uow: UnitOfWork, order: NewOrder) -> int:
        """
        Insert an order header.

        Returns:
            The new order's id

        Raises:
            DuplicateOrderNumberError: If the order number is already taken.
                The unit of work stays usable so the caller can retry with
                another number.
        """
        pass

    @abstractmethod
    async def insert_lines(
        self,
        uow: UnitOfWork,
        order_id: int,
        lines: Sequence[NewOrderLine],
    ) -> None:
        """Insert the line items of an order, preserving their order."""
        pass

    @abstractmethod
    async def get_order(
        self,
        uow: UnitOfWork,
        order_id: int,
        user_id: int | None = None,
    ) -> Order | None:
        """
        Load an order with its line items.

        Args:
            uow: Current unit of work
            order_id: Order to load
            user_id: If given, only return the order when it belongs to this user

        Returns:
            The order, or None if absent (or owned by another user)
        """
        pass

    @abstractmethod
    async def list_for_user(self, uow: UnitOfWork, user_id: int) -> list[OrderSummary]:
        """Return the user's orders, newest first."""
        pass

    @abstractmethod
    async def list_orders(
        self,
        uow: UnitOfWork,
        *,
        status: OrderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[OrderSummary], int]:
        """
        Return one page of orders, newest first, and the total match count.

        Args:
            uow: Current unit of work
            status: Only include orders in this status
            limit: Page size
            offset: Number of matching orders to skip
        """
        pass

    @abstractmethod
    async def transition_status(
        self,
        uow: UnitOfWork,
        order_id: int,
        new_status: OrderStatus,
        *,
        from_statuses: Collection[OrderStatus] | None = None,
        user_id: int | None = None,
    ) -> bool:
        """
        Conditionally set an order's status.

        The update is a single conditional write: it only applies when the
        order exists, its current status is in ``from_statuses`` (if given)
        and it belongs to ``user_id`` (if given).

        Returns:
            True if the order was updated
        """
        pass


__all__ = [
    "NewOrder",
    "NewOrderLine",
    "OrderLedger",
]
