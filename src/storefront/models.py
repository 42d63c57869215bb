"""
Domain models for the storefront order engine.

Products and cart lines belong to external collaborators and are only
modelled as far as the engine needs them. Orders and their line items are
the engine's own aggregate: once created, an order's line prices and
billing figures never change, only its status does.

All models are pydantic models. Records read back from storage are frozen;
request models validate caller input before any side effect happens.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints

# Largest values the BIGINT id and INTEGER quantity columns can hold.
MAX_ID = 2**63 - 1
MAX_QUANTITY = 2**31 - 1

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
RecordId = Annotated[int, Field(ge=0, le=MAX_ID)]
Quantity = Annotated[int, Field(gt=0, le=MAX_QUANTITY)]


class OrderStatus(Enum):
    """Lifecycle states of an order."""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)

    @property
    def is_cancellable(self) -> bool:
        return self in CANCELLABLE_STATUSES


CANCELLABLE_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.PENDING, OrderStatus.PROCESSING}
)


class PaymentMethod(Enum):
    """Payment methods accepted at checkout."""

    COD = "cod"
    NETBANKING = "netbanking"
    PAYTM = "paytm"
    PHONEPE = "phonepe"
    PAYPAL = "paypal"
    CARD = "card"


class PaymentStatus(Enum):
    """Recorded payment state. Payments are recorded, never processed."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


def effective_price(price: Decimal, sale_price: Decimal | None) -> Decimal:
    """Return the sale price when one is set, otherwise the list price."""
    return sale_price if sale_price is not None else price


# =============================================================================
# Catalog and cart records (owned by collaborators)
# =============================================================================


class Product(BaseModel):
    """A catalog product as seen by the order engine."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    price: Decimal = Field(..., ge=0)
    sale_price: Decimal | None = Field(default=None, ge=0)
    stock_quantity: int = Field(default=0, ge=0)
    is_active: bool = True

    @property
    def effective_price(self) -> Decimal:
        return effective_price(self.price, self.sale_price)


class ProductSnapshot(BaseModel):
    """
    Reservation-time view of a product.

    Attributes:
        product_id: The product
        unit_price: Effective price (sale price if set, else list price)
        stock_quantity: Stock on hand when the snapshot was taken
    """

    model_config = ConfigDict(frozen=True)

    product_id: int
    unit_price: Decimal
    stock_quantity: int


class CartLine(BaseModel):
    """One product and quantity in a user's cart."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    product_id: int
    quantity: int = Field(..., ge=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class CartViewLine(BaseModel):
    """A cart line joined with the product's current catalog data."""

    model_config = ConfigDict(frozen=True)

    line: CartLine
    name: str
    unit_price: Decimal
    stock_quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.line.quantity


class CartView(BaseModel):
    """A user's cart priced at current effective prices."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    lines: tuple[CartViewLine, ...] = ()
    subtotal: Decimal = Decimal("0.00")
    total_items: int = 0


# =============================================================================
# Checkout requests
# =============================================================================


class LineItemRequest(BaseModel):
    """A requested product and quantity. Duplicate products compose additively."""

    model_config = ConfigDict(frozen=True)

    product_id: RecordId
    quantity: Quantity


class PlaceOrderRequest(BaseModel):
    """
    Everything needed to place an order.

    The billing figures are what the caller computed for the same line
    items. They are not trusted: the engine recomputes them from the
    reservation-time price snapshots and rejects a total that disagrees.

    Example:
        >>> request = PlaceOrderRequest(
        ...     user_id=1,
        ...     customer_name="Asha Rao",
        ...     customer_phone="9876543210",
        ...     customer_email="asha@example.com",
        ...     shipping_address="12 MG Road, Bengaluru",
        ...     billing_address="12 MG Road, Bengaluru",
        ...     payment_method=PaymentMethod.COD,
        ...     items=[LineItemRequest(product_id=7, quantity=2)],
        ...     subtotal=Decimal("20.00"),
        ...     cgst_amount=Decimal("1.80"),
        ...     sgst_amount=Decimal("1.80"),
        ...     delivery_charge=Decimal("50.00"),
        ...     total_amount=Decimal("73.60"),
        ... )
    """

    model_config = ConfigDict(frozen=True)

    user_id: RecordId
    customer_name: NonEmptyStr
    customer_phone: NonEmptyStr
    customer_email: EmailStr
    shipping_address: NonEmptyStr
    billing_address: NonEmptyStr
    payment_method: PaymentMethod
    notes: str | None = None
    items: list[LineItemRequest] = Field(..., min_length=1)

    subtotal: Decimal = Field(..., ge=0)
    cgst_amount: Decimal = Field(default=Decimal("0"), ge=0)
    sgst_amount: Decimal = Field(default=Decimal("0"), ge=0)
    delivery_charge: Decimal = Field(default=Decimal("0"), ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    total_amount: Decimal = Field(..., ge=0)


# =============================================================================
# Orders (owned by the ledger)
# =============================================================================


class OrderLine(BaseModel):
    """
    An immutable line item of an order.

    unit_price is the product's effective price frozen at reservation time;
    later catalog price changes never touch it.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    order_id: int
    product_id: int
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Order(BaseModel):
    """
    An order with its line items.

    Invariant at creation:
        total_amount == subtotal + cgst_amount + sgst_amount
                        + delivery_charge - discount
    """

    model_config = ConfigDict(frozen=True)

    id: int
    order_number: str
    user_id: int
    status: OrderStatus = OrderStatus.PENDING

    subtotal: Decimal
    cgst_amount: Decimal = Decimal("0.00")
    sgst_amount: Decimal = Decimal("0.00")
    delivery_charge: Decimal = Decimal("0.00")
    discount: Decimal = Decimal("0.00")
    total_amount: Decimal

    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.PENDING

    shipping_address: str
    billing_address: str
    customer_name: str
    customer_phone: str
    customer_email: str
    notes: str | None = None

    created_at: datetime
    updated_at: datetime

    lines: tuple[OrderLine, ...] = ()

    @property
    def tax_total(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount

    @property
    def item_count(self) -> int:
        return len(self.lines)


class OrderSummary(BaseModel):
    """Listing view of an order without its line items."""

    model_config = ConfigDict(frozen=True)

    id: int
    order_number: str
    user_id: int
    status: OrderStatus
    total_amount: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    customer_name: str
    created_at: datetime
    item_count: int = 0


class OrderPage(BaseModel):
    """A page of order summaries with pagination metadata."""

    model_config = ConfigDict(frozen=True)

    orders: tuple[OrderSummary, ...] = ()
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)
    total: int = Field(default=0, ge=0)

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)


__all__ = [
    "CANCELLABLE_STATUSES",
    "CartLine",
    "CartView",
    "CartViewLine",
    "LineItemRequest",
    "Order",
    "OrderLine",
    "OrderPage",
    "OrderStatus",
    "OrderSummary",
    "PaymentMethod",
    "PaymentStatus",
    "PlaceOrderRequest",
    "Product",
    "ProductSnapshot",
    "effective_price",
]
