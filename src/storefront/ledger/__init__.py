"""Order ledger: storage for orders and their immutable line items."""

from storefront.ledger.in_memory import InMemoryOrderLedger
from storefront.ledger.interface import NewOrder, NewOrderLine, OrderLedger
from storefront.ledger.postgresql import PostgreSQLOrderLedger
from storefront.ledger.sqlite import SQLiteOrderLedger

__all__ = [
    "OrderLedger",
    "NewOrder",
    "NewOrderLine",
    "InMemoryOrderLedger",
    "SQLiteOrderLedger",
    "PostgreSQLOrderLedger",
]
