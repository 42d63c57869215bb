"""
Cart store interface.

Carts are a convenience cache, not a source of truth: lines hold only a
product reference and a quantity, and may point at products that have
since been deleted or sold out. Readers reconcile such stale lines lazily.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.db.interface import UnitOfWork
from storefront.models import CartLine


class CartStore(ABC):
    """Abstract base class for per-user cart storage."""

    @abstractmethod
    async def list_for_user(self, uow: UnitOfWork, user_id: int) -> list[CartLine]:
        """Return the user's cart lines, oldest first."""
        pass

    @abstractmethod
    async def clear_for_user(self, uow: UnitOfWork, user_id: int) -> int:
        """
        Delete every cart line of the user.

        Returns:
            Number of lines deleted
        """
        pass

    @abstractmethod
    async def get_line(self, uow: UnitOfWork, user_id: int, line_id: int) -> CartLine | None:
        """Return a line if it exists and belongs to the user."""
        pass

    @abstractmethod
    async def add_item(
        self,
        uow: UnitOfWork,
        user_id: int,
        product_id: int,
        quantity: int,
    ) -> CartLine:
        """
        Add a product to the cart.

        If the user already has a line for the product its quantity is
        increased; otherwise a new line is created.

        Returns:
            The created or updated line
        """
        pass

    @abstractmethod
    async def update_quantity(
        self,
        uow: UnitOfWork,
        user_id: int,
        line_id: int,
        quantity: int,
    ) -> CartLine | None:
        """
        Set a line's quantity.

        Returns:
            The updated line, or None if the line is not the user's
        """
        pass

    @abstractmethod
    async def remove_item(self, uow: UnitOfWork, user_id: int, line_id: int) -> bool:
        """
        Delete one line.

        Returns:
            True if the line existed and belonged to the user
        """
        pass

    @abstractmethod
    async def count_for_user(self, uow: UnitOfWork, user_id: int) -> int:
        """Return the total quantity of items in the user's cart."""
        pass


__all__ = ["CartStore"]
