"""
Order pricing.

PricingCalculator is a pure function of its inputs: line items, a
PricingPolicy and a discount. It never touches storage. All arithmetic is
Decimal; each displayed figure is rounded once to the currency quantum and
the total is the sum of the rounded figures, so

    total == subtotal + cgst + sgst + delivery_charge - discount

holds exactly for every breakdown it produces.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from storefront.exceptions import ValidationError

ZERO = Decimal("0")


@dataclass(frozen=True)
class PricingPolicy:
    """
    Tax and delivery policy.

    Attributes:
        cgst_rate: Central GST rate applied to the subtotal (default: 9%)
        sgst_rate: State GST rate applied to the subtotal (default: 9%)
        free_delivery_threshold: Delivery is free when the subtotal is
            strictly greater than this amount (default: 500)
        delivery_fee: Flat delivery fee otherwise (default: 50)
        quantum: Currency minor unit used for rounding (default: 0.01)
    """

    cgst_rate: Decimal = Decimal("0.09")
    sgst_rate: Decimal = Decimal("0.09")
    free_delivery_threshold: Decimal = Decimal("500")
    delivery_fee: Decimal = Decimal("50")
    quantum: Decimal = Decimal("0.01")

    def __post_init__(self) -> None:
        for name in ("cgst_rate", "sgst_rate", "free_delivery_threshold", "delivery_fee"):
            if getattr(self, name) < ZERO:
                raise ValueError(f"{name} must not be negative")
        if self.quantum <= ZERO:
            raise ValueError("quantum must be positive")


@dataclass(frozen=True)
class PricedLine:
    """A unit price and quantity to be priced."""

    unit_price: Decimal
    quantity: int

    @property
    def amount(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PriceBreakdown:
    """Rounded billing figures for a set of line items."""

    subtotal: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    delivery_charge: Decimal
    discount: Decimal
    total: Decimal

    @property
    def tax_total(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount


class PricingCalculator:
    """
    Computes subtotal, taxes, delivery charge and total for line items.

    Example:
        >>> calculator = PricingCalculator(PricingPolicy(free_delivery_threshold=Decimal("20")))
        >>> breakdown = calculator.calculate(
        ...     [PricedLine(Decimal("10.00"), 2), PricedLine(Decimal("5.00"), 1)]
        ... )
        >>> breakdown.total
        Decimal('29.50')
    """

    def __init__(self, policy: PricingPolicy | None = None) -> None:
        self._policy = policy or PricingPolicy()

    @property
    def policy(self) -> PricingPolicy:
        return self._policy

    def round(self, amount: Decimal) -> Decimal:
        """Round an amount to the currency quantum, half up."""
        return amount.quantize(self._policy.quantum, rounding=ROUND_HALF_UP)

    def calculate(
        self,
        lines: Iterable[PricedLine],
        discount: Decimal = ZERO,
    ) -> PriceBreakdown:
        """
        Price a set of line items.

        Args:
            lines: Unit prices and quantities
            discount: Absolute discount subtracted from the total

        Returns:
            PriceBreakdown with every figure rounded to the currency quantum

        Raises:
            ValidationError: If a quantity or price is negative, or the
                discount exceeds the pre-discount total
        """
        policy = self._policy
        discount = Decimal(discount)
        if discount < ZERO:
            raise ValidationError("discount must not be negative")

        raw_subtotal = ZERO
        for line in lines:
            if line.quantity <= 0:
                raise ValidationError(f"quantity must be positive, got {line.quantity}")
            if line.unit_price < ZERO:
                raise ValidationError(f"unit price must not be negative, got {line.unit_price}")
            raw_subtotal += line.amount

        subtotal = self.round(raw_subtotal)
        cgst = self.round(raw_subtotal * policy.cgst_rate)
        sgst = self.round(raw_subtotal * policy.sgst_rate)
        if raw_subtotal > policy.free_delivery_threshold:
            delivery = self.round(ZERO)
        else:
            delivery = self.round(policy.delivery_fee)
        discount = self.round(discount)

        gross = subtotal + cgst + sgst + delivery
        if discount > gross:
            raise ValidationError(f"discount {discount} exceeds order total {gross}")

        return PriceBreakdown(
            subtotal=subtotal,
            cgst_amount=cgst,
            sgst_amount=sgst,
            delivery_charge=delivery,
            discount=discount,
            total=gross - discount,
        )


__all__ = [
    "PriceBreakdown",
    "PricedLine",
    "PricingCalculator",
    "PricingPolicy",
]
