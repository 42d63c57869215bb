"""
Product catalog interface.

The catalog owns product records. The order engine reads them through
``get_for_reservation`` and mutates stock only through ``try_reserve`` and
``release``; the maintenance operations exist for catalog administration
and tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from storefront.db.interface import UnitOfWork
from storefront.exceptions import ValidationError
from storefront.models import MAX_ID, MAX_QUANTITY, Product, ProductSnapshot


class ProductCatalog(ABC):
    """
    Abstract base class for product catalogs.

    Every operation runs inside the caller's unit of work.
    """

    # -------------------------------------------------------------------------
    # Reservation contract
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_for_reservation(
        self,
        uow: UnitOfWork,
        product_id: int,
    ) -> ProductSnapshot | None:
        """
        Read a product's effective unit price and current stock.

        Returns:
            ProductSnapshot, or None if the product does not exist
        """
        pass

    @abstractmethod
    async def try_reserve(self, uow: UnitOfWork, product_id: int, quantity: int) -> bool:
        """
        Atomically decrement stock if enough is on hand.

        Implemented as a single conditional update evaluated by the store,
        never as read-then-write.

        Args:
            uow: Current unit of work
            product_id: Product to reserve
            quantity: Units to reserve (must be positive)

        Returns:
            True if stock was decremented, False if stock was insufficient
            or the product does not exist
        """
        pass

    @abstractmethod
    async def release(self, uow: UnitOfWork, product_id: int, quantity: int) -> bool:
        """
        Atomically increment stock, reversing an earlier reservation.

        Returns:
            True if stock was incremented, False if the product no longer exists
        """
        pass

    # -------------------------------------------------------------------------
    # Catalog maintenance
    # -------------------------------------------------------------------------

    @abstractmethod
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
        """Create a product and return it with its assigned id."""
        pass

    @abstractmethod
    async def get_product(self, uow: UnitOfWork, product_id: int) -> Product | None:
        pass

    @abstractmethod
    async def update_price(
        self,
        uow: UnitOfWork,
        product_id: int,
        price: Decimal,
        sale_price: Decimal | None = None,
    ) -> Product:
        """
        Replace a product's list and sale price.

        Raises:
            ProductNotFoundError: If the product does not exist
            ValidationError: If a price is negative
        """
        pass

    @abstractmethod
    async def set_stock(self, uow: UnitOfWork, product_id: int, stock_quantity: int) -> Product:
        """
        Overwrite a product's stock counter (inventory recount).

        Raises:
            ProductNotFoundError: If the product does not exist
            ValidationError: If stock_quantity is negative
        """
        pass

    @abstractmethod
    async def delete_product(self, uow: UnitOfWork, product_id: int) -> bool:
        """
        Hard-delete a product.

        Order lines keep their snapshots; cart lines pointing at the product
        become stale and are skipped on read.

        Returns:
            True if a product was deleted
        """
        pass


def validate_product_fields(
    price: Decimal | None = None,
    sale_price: Decimal | None = None,
    stock_quantity: int | None = None,
    name: str | None = None,
) -> None:
    """
    Check product field values shared by every catalog backend.

    Raises:
        ValidationError: Listing every invalid field
    """
    errors = []
    if name is not None and not name.strip():
        errors.append("name must not be empty")
    if price is not None and price < 0:
        errors.append("price must not be negative")
    if sale_price is not None and sale_price < 0:
        errors.append("sale_price must not be negative")
    if stock_quantity is not None and stock_quantity < 0:
        errors.append("stock_quantity must not be negative")
    if stock_quantity is not None and stock_quantity > MAX_QUANTITY:
        errors.append(f"stock_quantity must not exceed {MAX_QUANTITY}")
    if errors:
        raise ValidationError(errors)


def validate_quantity(quantity: int) -> None:
    """Raise ValidationError unless quantity is positive and fits an INTEGER column."""
    if quantity <= 0:
        raise ValidationError(f"quantity must be positive, got {quantity}")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"quantity must not exceed {MAX_QUANTITY}, got {quantity}")


def validate_id(value: int, name: str = "id") -> None:
    """Raise ValidationError unless value is a non-negative BIGINT."""
    if not 0 <= value <= MAX_ID:
        raise ValidationError(f"{name} must be between 0 and {MAX_ID}, got {value}")


__all__ = [
    "ProductCatalog",
    "validate_id",
    "validate_product_fields",
    "validate_quantity",
]
