"""
Order engine.

OrderEngine converts a shopper's line items into an immutable, priced
order while guaranteeing that stock is never oversold:

- every reservation is a conditional decrement evaluated by the store
- placement (reservations, order header, order lines) is one unit of work,
  so any failure leaves stock and the ledger exactly as they were
- cancellation flips the status with a conditional update and releases
  every line's stock in the same unit of work

Cart cleanup after a successful placement runs in its own unit of work and
never fails the placement.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Any, TypeVar

import pydantic

from storefront.carts.interface import CartStore
from storefront.catalog.interface import ProductCatalog, validate_id
from storefront.config import OrderEngineConfig
from storefront.db.interface import Database, UnitOfWork
from storefront.exceptions import (
    DuplicateOrderNumberError,
    InsufficientStockError,
    NotCancellableError,
    OrderNotFoundError,
    PersistenceError,
    PricingMismatchError,
    ProductNotFoundError,
    StorefrontError,
    ValidationError,
)
from storefront.ledger.interface import NewOrder, NewOrderLine, OrderLedger
from storefront.models import (
    CANCELLABLE_STATUSES,
    LineItemRequest,
    Order,
    OrderPage,
    OrderStatus,
    OrderSummary,
    PlaceOrderRequest,
)
from storefront.observability import (
    ATTR_ERROR_TYPE,
    ATTR_LINE_COUNT,
    ATTR_ORDER_ID,
    ATTR_ORDER_NUMBER,
    ATTR_ORDER_STATUS,
    ATTR_RETRY_COUNT,
    ATTR_USER_ID,
    Tracer,
    create_tracer,
)
from storefront.orders.numbering import OrderNumberGenerator, TimestampOrderNumberGenerator
from storefront.pricing import PriceBreakdown, PricedLine, PricingCalculator
from storefront.repositories import default_repositories

if TYPE_CHECKING:
    from opentelemetry.trace import Span

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _validate(model: type[ModelT], data: ModelT | Mapping[str, Any]) -> ModelT:
    """Validate caller input, converting pydantic errors to ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(
            [
                f"{'.'.join(str(part) for part in error['loc']) or 'request'}: {error['msg']}"
                for error in e.errors()
            ]
        ) from e


def _coerce_status(status: OrderStatus | str) -> OrderStatus:
    if isinstance(status, OrderStatus):
        return status
    try:
        return OrderStatus(status)
    except ValueError:
        valid = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid status: {status!r}. Valid statuses: {valid}") from None


class OrderEngine:
    """
    Places, cancels and administers orders.

    Example:
        >>> database = SQLiteDatabase("shop.db")
        >>> await database.initialize()
        >>> engine = OrderEngine(database)
        >>>
        >>> order = await engine.place_order(request)
        >>> order.status
        <OrderStatus.PENDING: 'pending'>
        >>>
        >>> cancelled = await engine.cancel_order(order.id, user_id=request.user_id)
    """

    def __init__(
        self,
        database: Database,
        *,
        catalog: ProductCatalog | None = None,
        carts: CartStore | None = None,
        ledger: OrderLedger | None = None,
        config: OrderEngineConfig | None = None,
        order_numbers: OrderNumberGenerator | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the order engine.

        Args:
            database: Database providing units of work
            catalog: Product catalog (default: the database's own)
            carts: Cart store (default: the database's own)
            ledger: Order ledger (default: the database's own)
            config: Engine settings (default: OrderEngineConfig())
            order_numbers: Order number generator (default: timestamp based,
                using config.order_number_prefix)
            tracer: Optional custom Tracer instance. If not provided, one is
                created based on enable_tracing setting.
            enable_tracing: If True and OpenTelemetry is available, emit traces
                (default: True). Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._config = config or OrderEngineConfig()

        if catalog is None or carts is None or ledger is None:
            defaults = default_repositories(database, tracer=self._tracer)
            catalog = catalog or defaults.catalog
            carts = carts or defaults.carts
            ledger = ledger or defaults.ledger

        self._database = database
        self._catalog = catalog
        self._carts = carts
        self._ledger = ledger
        self._calculator = PricingCalculator(self._config.pricing)
        self._order_numbers = order_numbers or TimestampOrderNumberGenerator(
            prefix=self._config.order_number_prefix
        )

    @property
    def config(self) -> OrderEngineConfig:
        return self._config

    @property
    def calculator(self) -> PricingCalculator:
        return self._calculator

    # -------------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------------

    async def place_order(self, request: PlaceOrderRequest | Mapping[str, Any]) -> Order:
        """
        Reserve stock for every line item and persist the order.

        Line items are reserved in input order. Duplicate product ids are
        reserved separately and their quantities add up.

        Not idempotent: retrying after a lost response can place a second
        order for the same request.

        Args:
            request: PlaceOrderRequest, or a mapping with the same fields

        Returns:
            The persisted order with its line items

        Raises:
            ValidationError: If the request is malformed or the discount
                exceeds the order total
            ProductNotFoundError: If a referenced product does not exist
            InsufficientStockError: If a line item cannot be reserved
            PricingMismatchError: If the submitted total disagrees with the
                recomputed one beyond the configured tolerance
            PersistenceError: If the storage layer fails or no unique order
                number could be allocated
        """
        request = _validate(PlaceOrderRequest, request)

        with self._tracer.span(
            "storefront.order_engine.place_order",
            {ATTR_USER_ID: request.user_id, ATTR_LINE_COUNT: len(request.items)},
        ) as span:
            try:
                async with self._database.unit_of_work() as uow:
                    order_id = await self._do_place_order(uow, request, span)
                    order = await self._ledger.get_order(uow, order_id)
                    assert order is not None
            except StorefrontError as e:
                if span:
                    span.set_attribute(ATTR_ERROR_TYPE, type(e).__name__)
                raise

            if span:
                span.set_attribute(ATTR_ORDER_ID, order.id)
                span.set_attribute(ATTR_ORDER_NUMBER, order.order_number)

            logger.info(
                "Placed order %s (id=%s) for user %s: %d lines, total=%s",
                order.order_number,
                order.id,
                order.user_id,
                len(order.lines),
                order.total_amount,
            )

            if self._config.clear_cart_on_checkout:
                await self._clear_cart(request.user_id, order.order_number)
            return order

    async def _do_place_order(
        self, uow: UnitOfWork, request: PlaceOrderRequest, span: Span | None
    ) -> int:
        """Reserve, price and persist inside the caller's unit of work."""
        # Existence check for every product before the first write
        for item in request.items:
            if await self._catalog.get_for_reservation(uow, item.product_id) is None:
                raise ProductNotFoundError(item.product_id)

        lines: list[NewOrderLine] = []
        for item in request.items:
            if not await self._catalog.try_reserve(uow, item.product_id, item.quantity):
                snapshot = await self._catalog.get_for_reservation(uow, item.product_id)
                if snapshot is None:
                    raise ProductNotFoundError(item.product_id)
                raise InsufficientStockError(
                    item.product_id, item.quantity, snapshot.stock_quantity
                )
            # The row is ours until commit, so this is the price at reservation
            snapshot = await self._catalog.get_for_reservation(uow, item.product_id)
            assert snapshot is not None
            lines.append(
                NewOrderLine(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=snapshot.unit_price,
                )
            )

        breakdown = self._calculator.calculate(
            [PricedLine(line.unit_price, line.quantity) for line in lines],
            discount=request.discount,
        )
        tolerance = self._config.pricing_tolerance
        if abs(breakdown.total - request.total_amount) > tolerance:
            raise PricingMismatchError(request.total_amount, breakdown.total, tolerance)

        order_id = await self._insert_order(uow, request, breakdown, span)
        await self._ledger.insert_lines(uow, order_id, lines)
        return order_id

    async def _insert_order(
        self,
        uow: UnitOfWork,
        request: PlaceOrderRequest,
        breakdown: PriceBreakdown,
        span: Span | None,
    ) -> int:
        attempts = self._config.max_order_number_attempts
        for attempt in range(1, attempts + 1):
            order_number = self._order_numbers.next()
            if span:
                span.set_attribute(ATTR_RETRY_COUNT, attempt)
            try:
                return await self._ledger.insert_order(
                    uow,
                    NewOrder(
                        order_number=order_number,
                        user_id=request.user_id,
                        subtotal=breakdown.subtotal,
                        cgst_amount=breakdown.cgst_amount,
                        sgst_amount=breakdown.sgst_amount,
                        delivery_charge=breakdown.delivery_charge,
                        discount=breakdown.discount,
                        total_amount=breakdown.total,
                        payment_method=request.payment_method,
                        shipping_address=request.shipping_address,
                        billing_address=request.billing_address,
                        customer_name=request.customer_name,
                        customer_phone=request.customer_phone,
                        customer_email=request.customer_email,
                        notes=request.notes,
                    ),
                )
            except DuplicateOrderNumberError:
                logger.warning(
                    "Order number collision on %s (attempt %d of %d), retrying",
                    order_number,
                    attempt,
                    attempts,
                )
        raise PersistenceError(
            f"Could not allocate a unique order number after {attempts} attempts"
        )

    async def _clear_cart(self, user_id: int, order_number: str) -> None:
        """Best-effort cart cleanup; failures are logged, never raised."""
        try:
            async with self._database.unit_of_work() as uow:
                removed = await self._carts.clear_for_user(uow, user_id)
        except Exception:
            logger.warning(
                "Failed to clear cart of user %s after order %s",
                user_id,
                order_number,
                exc_info=True,
            )
            return
        logger.debug("Cleared %d cart lines of user %s", removed, user_id)

    # -------------------------------------------------------------------------
    # Cancellation and status changes
    # -------------------------------------------------------------------------

    async def cancel_order(self, order_id: int, user_id: int) -> Order:
        """
        Cancel the user's pending or processing order and release its stock.

        Lines whose product no longer exists are skipped.

        Raises:
            ValidationError: If an id is out of range
            OrderNotFoundError: If the order does not exist
            NotCancellableError: If the order is another user's, or is no
                longer pending or processing
            PersistenceError: If the storage layer fails; the order keeps
                its prior status and no stock is released
        """
        validate_id(order_id, "order_id")
        validate_id(user_id, "user_id")
        with self._tracer.span(
            "storefront.order_engine.cancel_order",
            {ATTR_ORDER_ID: order_id, ATTR_USER_ID: user_id},
        ):
            async with self._database.unit_of_work() as uow:
                order = await self._ledger.get_order(uow, order_id)
                if order is None:
                    raise OrderNotFoundError(order_id)
                if order.user_id != user_id:
                    raise NotCancellableError(
                        order_id, order.status.value, "order belongs to another user"
                    )
                if not order.status.is_cancellable:
                    raise NotCancellableError(
                        order_id,
                        order.status.value,
                        "only pending or processing orders can be cancelled",
                    )

                transitioned = await self._ledger.transition_status(
                    uow,
                    order_id,
                    OrderStatus.CANCELLED,
                    from_statuses=CANCELLABLE_STATUSES,
                    user_id=user_id,
                )
                if not transitioned:
                    raise NotCancellableError(
                        order_id, order.status.value, "order status changed concurrently"
                    )

                for line in order.lines:
                    if not await self._catalog.release(uow, line.product_id, line.quantity):
                        logger.info(
                            "Product %s of order %s no longer exists, skipping release of %d",
                            line.product_id,
                            order.order_number,
                            line.quantity,
                        )

                cancelled = await self._ledger.get_order(uow, order_id)
                assert cancelled is not None

        logger.info("Cancelled order %s (id=%s)", cancelled.order_number, order_id)
        return cancelled

    async def set_status(self, order_id: int, status: OrderStatus | str) -> Order:
        """
        Administrative override: set any status, from any status.

        Does not touch stock.

        Raises:
            ValidationError: If status is unknown or order_id is out of range
            OrderNotFoundError: If the order does not exist
        """
        validate_id(order_id, "order_id")
        new_status = _coerce_status(status)
        with self._tracer.span(
            "storefront.order_engine.set_status",
            {ATTR_ORDER_ID: order_id, ATTR_ORDER_STATUS: new_status.value},
        ):
            async with self._database.unit_of_work() as uow:
                if not await self._ledger.transition_status(uow, order_id, new_status):
                    raise OrderNotFoundError(order_id)
                order = await self._ledger.get_order(uow, order_id)
                assert order is not None

        logger.info(
            "Set status of order %s (id=%s) to %s",
            order.order_number,
            order_id,
            new_status.value,
        )
        return order

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_order(self, order_id: int, user_id: int | None = None) -> Order:
        """
        Load an order with its line items.

        Args:
            order_id: Order to load
            user_id: If given, the order must belong to this user

        Raises:
            ValidationError: If an id is out of range
            OrderNotFoundError: If the order does not exist or is not the user's
        """
        validate_id(order_id, "order_id")
        if user_id is not None:
            validate_id(user_id, "user_id")
        async with self._database.unit_of_work(read_only=True) as uow:
            order = await self._ledger.get_order(uow, order_id, user_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def list_orders_for_user(self, user_id: int) -> list[OrderSummary]:
        """Return the user's orders, newest first."""
        validate_id(user_id, "user_id")
        async with self._database.unit_of_work(read_only=True) as uow:
            return await self._ledger.list_for_user(uow, user_id)

    async def list_orders(
        self,
        page: int = 1,
        limit: int = 20,
        status: OrderStatus | str | None = None,
    ) -> OrderPage:
        """
        Administrative listing of all orders, newest first.

        Raises:
            ValidationError: If page or limit is not positive, or status is unknown
        """
        errors = []
        if page < 1:
            errors.append("page must be at least 1")
        if limit < 1:
            errors.append("limit must be at least 1")
        if errors:
            raise ValidationError(errors)
        status_filter = _coerce_status(status) if status is not None else None

        async with self._database.unit_of_work(read_only=True) as uow:
            orders, total = await self._ledger.list_orders(
                uow, status=status_filter, limit=limit, offset=(page - 1) * limit
            )
        return OrderPage(orders=tuple(orders), page=page, limit=limit, total=total)

    # -------------------------------------------------------------------------
    # Quotes
    # -------------------------------------------------------------------------

    async def quote(
        self,
        items: Sequence[LineItemRequest | Mapping[str, Any]],
        discount: Decimal = Decimal("0"),
    ) -> PriceBreakdown:
        """
        Price line items at current effective prices without reserving stock.

        The result's total is what a caller should submit as
        ``total_amount`` when placing the same items.

        Raises:
            ValidationError: If items is empty or malformed
            ProductNotFoundError: If a referenced product does not exist
        """
        if not items:
            raise ValidationError("items must not be empty")
        validated = [_validate(LineItemRequest, item) for item in items]

        async with self._database.unit_of_work(read_only=True) as uow:
            priced = []
            for item in validated:
                snapshot = await self._catalog.get_for_reservation(uow, item.product_id)
                if snapshot is None:
                    raise ProductNotFoundError(item.product_id)
                priced.append(PricedLine(snapshot.unit_price, item.quantity))
        return self._calculator.calculate(priced, discount=discount)

    async def quote_cart(self, user_id: int, discount: Decimal = Decimal("0")) -> PriceBreakdown:
        """
        Price the user's cart at current effective prices.

        Lines whose product no longer exists are skipped.

        Raises:
            ValidationError: If the cart has no priceable lines
        """
        validate_id(user_id, "user_id")
        async with self._database.unit_of_work(read_only=True) as uow:
            priced = []
            for line in await self._carts.list_for_user(uow, user_id):
                snapshot = await self._catalog.get_for_reservation(uow, line.product_id)
                if snapshot is None:
                    logger.debug("Skipping stale cart line %s of user %s", line.id, user_id)
                    continue
                priced.append(PricedLine(snapshot.unit_price, line.quantity))
        if not priced:
            raise ValidationError("cart is empty")
        return self._calculator.calculate(priced, discount=discount)


__all__ = ["OrderEngine"]
