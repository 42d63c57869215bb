"""
In-memory database implementation.

Useful for testing and development. Not suitable for production
as all state is lost when the process terminates.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from storefront.db.interface import Database, UnitOfWork
from storefront.models import CartLine, Order, OrderLine, Product

logger = logging.getLogger(__name__)


@dataclass
class InMemoryState:
    """
    Rows of the four storefront tables, keyed by id.

    Orders are stored without their lines; lines live in ``order_lines``
    keyed by order id, in insertion order.
    """

    products: dict[int, Product] = field(default_factory=dict)
    cart_items: dict[int, CartLine] = field(default_factory=dict)
    orders: dict[int, Order] = field(default_factory=dict)
    order_lines: dict[int, list[OrderLine]] = field(default_factory=dict)
    sequences: dict[str, int] = field(default_factory=dict)

    def next_id(self, table: str) -> int:
        """Return the next auto-increment id for a table."""
        value = self.sequences.get(table, 0) + 1
        self.sequences[table] = value
        return value


class InMemoryUnitOfWork(UnitOfWork):
    """Unit of work over a private working copy of the state."""

    backend = "memory"

    def __init__(self, state: InMemoryState, read_only: bool = False) -> None:
        super().__init__(read_only)
        self.state = state


class InMemoryDatabase(Database):
    """
    In-memory implementation of the database.

    Units of work are serialised by an asyncio.Lock held for their whole
    duration. A writing unit works on a deep copy of the state that replaces
    the live state only on commit, so a rollback is simply dropping the copy.

    Thread-safety:
        Safe for concurrent tasks within one event loop. The lock is bound
        to the loop that first uses it; use the SQLite backend to share a
        database between threads.

    Example:
        >>> database = InMemoryDatabase()
        >>> async with database.unit_of_work() as uow:
        ...     product = await catalog.add_product(uow, name="Kettle", price=Decimal("499"))
    """

    backend = "memory"

    def __init__(self) -> None:
        self._state = InMemoryState()
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @asynccontextmanager
    async def unit_of_work(self, read_only: bool = False) -> AsyncIterator[InMemoryUnitOfWork]:
        async with self._lock:
            if read_only:
                yield InMemoryUnitOfWork(self._state, read_only=True)
                return

            working = copy.deepcopy(self._state)
            try:
                yield InMemoryUnitOfWork(working)
            except BaseException:
                logger.debug("Rolled back in-memory unit of work")
                raise
            self._state = working

    async def clear(self) -> None:
        """Drop every row. Useful between tests."""
        async with self._lock:
            self._state = InMemoryState()

    @property
    def state(self) -> InMemoryState:
        """The committed state. Read-only access for tests and debugging."""
        return self._state


__all__ = [
    "InMemoryDatabase",
    "InMemoryState",
    "InMemoryUnitOfWork",
]
