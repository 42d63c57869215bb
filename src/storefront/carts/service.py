"""
Cart management.

CartService implements the shopper-facing cart operations on top of a
CartStore and a ProductCatalog: adding items with a stock check, changing
quantities, removing lines and viewing the cart at current prices.

Stock checks here are advisory. Nothing is reserved until an order is
placed, so a cart may still fail at checkout with InsufficientStockError.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from storefront.carts.interface import CartStore
from storefront.catalog.interface import ProductCatalog, validate_id, validate_quantity
from storefront.db.interface import Database, UnitOfWork
from storefront.exceptions import (
    CartLineNotFoundError,
    InsufficientStockError,
    ProductNotFoundError,
)
from storefront.models import CartLine, CartView, CartViewLine, Product
from storefront.observability import ATTR_PRODUCT_ID, ATTR_USER_ID, Tracer, create_tracer
from storefront.pricing import PricingCalculator, PricingPolicy
from storefront.repositories import default_repositories

logger = logging.getLogger(__name__)


class CartService:
    """
    Shopper-facing cart operations.

    Example:
        >>> carts = CartService(database)
        >>> line = await carts.add_item(user_id=1, product_id=7, quantity=2)
        >>> view = await carts.view(user_id=1)
        >>> view.subtotal
        Decimal('998.00')
    """

    def __init__(
        self,
        database: Database,
        *,
        catalog: ProductCatalog | None = None,
        carts: CartStore | None = None,
        pricing: PricingPolicy | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the cart service.

        Args:
            database: Database providing units of work
            catalog: Product catalog (default: the database's own)
            carts: Cart store (default: the database's own)
            pricing: Policy whose currency quantum rounds the cart subtotal
            tracer: Optional custom Tracer instance
            enable_tracing: If True and OpenTelemetry is available, emit traces
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        if catalog is None or carts is None:
            defaults = default_repositories(database, tracer=self._tracer)
            catalog = catalog or defaults.catalog
            carts = carts or defaults.carts
        self._database = database
        self._catalog = catalog
        self._carts = carts
        self._calculator = PricingCalculator(pricing)

    async def add_item(self, user_id: int, product_id: int, quantity: int) -> CartLine:
        """
        Add a product to the user's cart, merging with an existing line.

        Raises:
            ValidationError: If quantity or an id is out of range
            ProductNotFoundError: If the product does not exist or is inactive
            InsufficientStockError: If the merged quantity exceeds current stock
        """
        validate_id(user_id, "user_id")
        validate_id(product_id, "product_id")
        validate_quantity(quantity)
        with self._tracer.span(
            "storefront.cart_service.add_item",
            {ATTR_USER_ID: user_id, ATTR_PRODUCT_ID: product_id},
        ):
            async with self._database.unit_of_work() as uow:
                product = await self._active_product(uow, product_id)
                in_cart = sum(
                    line.quantity
                    for line in await self._carts.list_for_user(uow, user_id)
                    if line.product_id == product_id
                )
                wanted = in_cart + quantity
                if product.stock_quantity < wanted:
                    raise InsufficientStockError(product_id, wanted, product.stock_quantity)
                line = await self._carts.add_item(uow, user_id, product_id, quantity)

        logger.debug("User %s cart: product %s quantity now %d", user_id, product_id, line.quantity)
        return line

    async def update_quantity(self, user_id: int, line_id: int, quantity: int) -> CartLine:
        """
        Set the quantity of one of the user's cart lines.

        Raises:
            ValidationError: If quantity or an id is out of range
            CartLineNotFoundError: If the line is not the user's
            ProductNotFoundError: If the line's product no longer exists
            InsufficientStockError: If quantity exceeds current stock
        """
        validate_id(line_id, "line_id")
        validate_quantity(quantity)
        async with self._database.unit_of_work() as uow:
            line = await self._carts.get_line(uow, user_id, line_id)
            if line is None:
                raise CartLineNotFoundError(line_id, user_id)
            product = await self._catalog.get_product(uow, line.product_id)
            if product is None:
                raise ProductNotFoundError(line.product_id)
            if product.stock_quantity < quantity:
                raise InsufficientStockError(line.product_id, quantity, product.stock_quantity)
            updated = await self._carts.update_quantity(uow, user_id, line_id, quantity)
            if updated is None:
                raise CartLineNotFoundError(line_id, user_id)
            return updated

    async def remove_item(self, user_id: int, line_id: int) -> None:
        """
        Remove one line from the user's cart.

        Raises:
            CartLineNotFoundError: If the line is not the user's
        """
        validate_id(line_id, "line_id")
        async with self._database.unit_of_work() as uow:
            if not await self._carts.remove_item(uow, user_id, line_id):
                raise CartLineNotFoundError(line_id, user_id)

    async def clear(self, user_id: int) -> int:
        """Empty the user's cart and return the number of lines removed."""
        async with self._database.unit_of_work() as uow:
            return await self._carts.clear_for_user(uow, user_id)

    async def count(self, user_id: int) -> int:
        """Total quantity of items in the user's cart."""
        async with self._database.unit_of_work(read_only=True) as uow:
            return await self._carts.count_for_user(uow, user_id)

    async def view(self, user_id: int) -> CartView:
        """
        Return the user's cart priced at current effective prices.

        Lines whose product was deleted or deactivated are left out.
        """
        async with self._database.unit_of_work(read_only=True) as uow:
            view_lines = []
            for line in await self._carts.list_for_user(uow, user_id):
                product = await self._catalog.get_product(uow, line.product_id)
                if product is None or not product.is_active:
                    logger.debug(
                        "Skipping stale cart line %s: product %s unavailable",
                        line.id,
                        line.product_id,
                    )
                    continue
                view_lines.append(
                    CartViewLine(
                        line=line,
                        name=product.name,
                        unit_price=product.effective_price,
                        stock_quantity=product.stock_quantity,
                    )
                )

        subtotal = sum((vl.line_total for vl in view_lines), Decimal("0"))
        return CartView(
            user_id=user_id,
            lines=tuple(view_lines),
            subtotal=self._calculator.round(subtotal),
            total_items=sum(vl.line.quantity for vl in view_lines),
        )

    async def _active_product(self, uow: UnitOfWork, product_id: int) -> Product:
        product = await self._catalog.get_product(uow, product_id)
        if product is None or not product.is_active:
            raise ProductNotFoundError(product_id)
        return product


__all__ = ["CartService"]
