"""Order placement, cancellation and administration."""

from storefront.orders.engine import OrderEngine
from storefront.orders.numbering import OrderNumberGenerator, TimestampOrderNumberGenerator

__all__ = [
    "OrderEngine",
    "OrderNumberGenerator",
    "TimestampOrderNumberGenerator",
]
