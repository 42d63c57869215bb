"""
Configuration for the order engine.

Example:
    >>> from decimal import Decimal
    >>> from storefront.config import OrderEngineConfig
    >>> from storefront.pricing import PricingPolicy
    >>>
    >>> config = OrderEngineConfig(
    ...     pricing=PricingPolicy(free_delivery_threshold=Decimal("999")),
    ...     pricing_tolerance=Decimal("0.05"),
    ... )
"""

from dataclasses import dataclass, field
from decimal import Decimal

from storefront.pricing import PricingPolicy


@dataclass
class OrderEngineConfig:
    """
    Settings for OrderEngine.

    Attributes:
        pricing: Tax and delivery policy used to recompute order totals
        pricing_tolerance: Largest accepted difference between a submitted
            total and the recomputed one (default: 0.01)
        max_order_number_attempts: How many order numbers to try before
            giving up on a collision streak (default: 5)
        order_number_prefix: Prefix of generated order numbers (default: "ORD")
        clear_cart_on_checkout: Whether to clear the user's cart after an
            order commits (default: True)
    """

    pricing: PricingPolicy = field(default_factory=PricingPolicy)
    pricing_tolerance: Decimal = Decimal("0.01")
    max_order_number_attempts: int = 5
    order_number_prefix: str = "ORD"
    clear_cart_on_checkout: bool = True

    def __post_init__(self) -> None:
        self.pricing_tolerance = Decimal(self.pricing_tolerance)
        if self.pricing_tolerance < 0:
            raise ValueError("pricing_tolerance must not be negative")
        if self.max_order_number_attempts < 1:
            raise ValueError("max_order_number_attempts must be at least 1")
        if not self.order_number_prefix:
            raise ValueError("order_number_prefix must not be empty")


__all__ = ["OrderEngineConfig"]
