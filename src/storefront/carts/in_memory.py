"""In-memory cart store."""

from __future__ import annotations

from storefront.carts.interface import CartStore
from storefront.catalog.interface import validate_quantity
from storefront.db.in_memory import InMemoryUnitOfWork
from storefront.db.interface import UnitOfWork, require_unit_of_work
from storefront.models import CartLine


class InMemoryCartStore(CartStore):
    """
    In-memory implementation of the cart store.

    Lines live in the unit of work's state, keyed by line id.
    """

    @staticmethod
    def _lines(uow: UnitOfWork) -> dict[int, CartLine]:
        return require_unit_of_work(uow, InMemoryUnitOfWork).state.cart_items

    async def list_for_user(self, uow: UnitOfWork, user_id: int) -> list[CartLine]:
        lines = [line for line in self._lines(uow).values() if line.user_id == user_id]
        return sorted(lines, key=lambda line: line.id)

    async def clear_for_user(self, uow: UnitOfWork, user_id: int) -> int:
        lines = self._lines(uow)
        doomed = [line_id for line_id, line in lines.items() if line.user_id == user_id]
        for line_id in doomed:
            del lines[line_id]
        return len(doomed)

    async def get_line(self, uow: UnitOfWork, user_id: int, line_id: int) -> CartLine | None:
        line = self._lines(uow).get(line_id)
        if line is None or line.user_id != user_id:
            return None
        return line

    async def add_item(
        self,
        uow: UnitOfWork,
        user_id: int,
        product_id: int,
        quantity: int,
    ) -> CartLine:
        validate_quantity(quantity)
        lines = self._lines(uow)
        for line in lines.values():
            if line.user_id == user_id and line.product_id == product_id:
                merged = line.model_copy(update={"quantity": line.quantity + quantity})
                lines[line.id] = merged
                return merged

        state = require_unit_of_work(uow, InMemoryUnitOfWork).state
        line = CartLine(
            id=state.next_id("cart_items"),
            user_id=user_id,
            product_id=product_id,
            quantity=quantity,
        )
        lines[line.id] = line
        return line

    async def update_quantity(
        self,
        uow: UnitOfWork,
        user_id: int,
        line_id: int,
        quantity: int,
    ) -> CartLine | None:
        validate_quantity(quantity)
        line = await self.get_line(uow, user_id, line_id)
        if line is None:
            return None
        updated = line.model_copy(update={"quantity": quantity})
        self._lines(uow)[line_id] = updated
        return updated

    async def remove_item(self, uow: UnitOfWork, user_id: int, line_id: int) -> bool:
        if await self.get_line(uow, user_id, line_id) is None:
            return False
        del self._lines(uow)[line_id]
        return True

    async def count_for_user(self, uow: UnitOfWork, user_id: int) -> int:
        return sum(line.quantity for line in self._lines(uow).values() if line.user_id == user_id)


__all__ = ["InMemoryCartStore"]
