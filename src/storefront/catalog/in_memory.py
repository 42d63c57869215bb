"""
In-memory product catalog.

Operates on the working copy held by an InMemoryUnitOfWork. The
InMemoryDatabase serialises units of work, so the check-and-decrement in
``try_reserve`` cannot interleave with another unit.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from storefront.catalog.interface import (
    ProductCatalog,
    validate_id,
    validate_product_fields,
    validate_quantity,
)
from storefront.db.in_memory import InMemoryUnitOfWork
from storefront.db.interface import UnitOfWork, require_unit_of_work
from storefront.exceptions import ProductNotFoundError
from storefront.models import Product, ProductSnapshot
from storefront.observability import (
    ATTR_DB_SYSTEM,
    ATTR_PRODUCT_ID,
    ATTR_QUANTITY,
    ATTR_RESERVED,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)


class InMemoryProductCatalog(ProductCatalog):
    """
    In-memory implementation of the product catalog.

    Example:
        >>> database = InMemoryDatabase()
        >>> catalog = InMemoryProductCatalog()
        >>> async with database.unit_of_work() as uow:
        ...     kettle = await catalog.add_product(
        ...         uow, name="Kettle", price=Decimal("499.00"), stock_quantity=5
        ...     )
        ...     assert await catalog.try_reserve(uow, kettle.id, 3)
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
    def _products(uow: UnitOfWork) -> dict[int, Product]:
        return require_unit_of_work(uow, InMemoryUnitOfWork).state.products

    async def get_for_reservation(
        self,
        uow: UnitOfWork,
        product_id: int,
    ) -> ProductSnapshot | None:
        product = self._products(uow).get(product_id)
        if product is None:
            return None
        return ProductSnapshot(
            product_id=product.id,
            unit_price=product.effective_price,
            stock_quantity=product.stock_quantity,
        )

    async def try_reserve(self, uow: UnitOfWork, product_id: int, quantity: int) -> bool:
        validate_id(product_id, "product_id")
        validate_quantity(quantity)
        with self._tracer.span(
            "storefront.catalog.try_reserve",
            {
                ATTR_PRODUCT_ID: product_id,
                ATTR_QUANTITY: quantity,
                ATTR_DB_SYSTEM: "memory",
            },
        ) as span:
            products = self._products(uow)
            product = products.get(product_id)
            if product is None or product.stock_quantity < quantity:
                logger.debug(
                    "Reservation refused for product %s: requested=%d", product_id, quantity
                )
                if span:
                    span.set_attribute(ATTR_RESERVED, False)
                return False
            products[product_id] = product.model_copy(
                update={"stock_quantity": product.stock_quantity - quantity}
            )
            logger.debug("Reserved %d of product %s", quantity, product_id)
            if span:
                span.set_attribute(ATTR_RESERVED, True)
            return True

    async def release(self, uow: UnitOfWork, product_id: int, quantity: int) -> bool:
        validate_id(product_id, "product_id")
        validate_quantity(quantity)
        with self._tracer.span(
            "storefront.catalog.release",
            {
                ATTR_PRODUCT_ID: product_id,
                ATTR_QUANTITY: quantity,
                ATTR_DB_SYSTEM: "memory",
            },
        ):
            products = self._products(uow)
            product = products.get(product_id)
            if product is None:
                return False
            products[product_id] = product.model_copy(
                update={"stock_quantity": product.stock_quantity + quantity}
            )
            logger.debug("Released %d of product %s", quantity, product_id)
            return True

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
        state = require_unit_of_work(uow, InMemoryUnitOfWork).state
        product = Product(
            id=state.next_id("products"),
            name=name,
            price=price,
            sale_price=sale_price,
            stock_quantity=stock_quantity,
            is_active=is_active,
        )
        state.products[product.id] = product
        return product

    async def get_product(self, uow: UnitOfWork, product_id: int) -> Product | None:
        return self._products(uow).get(product_id)

    async def update_price(
        self,
        uow: UnitOfWork,
        product_id: int,
        price: Decimal,
        sale_price: Decimal | None = None,
    ) -> Product:
        validate_product_fields(price=price, sale_price=sale_price)
        return self._update(uow, product_id, price=price, sale_price=sale_price)

    async def set_stock(self, uow: UnitOfWork, product_id: int, stock_quantity: int) -> Product:
        validate_product_fields(stock_quantity=stock_quantity)
        return self._update(uow, product_id, stock_quantity=stock_quantity)

    async def delete_product(self, uow: UnitOfWork, product_id: int) -> bool:
        return self._products(uow).pop(product_id, None) is not None

    def _update(self, uow: UnitOfWork, product_id: int, **changes: object) -> Product:
        products = self._products(uow)
        product = products.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        updated = product.model_copy(update=changes)
        products[product_id] = updated
        return updated


__all__ = ["InMemoryProductCatalog"]
