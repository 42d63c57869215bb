"""Library exceptions for the storefront package."""

from decimal import Decimal


class StorefrontError(Exception):
    """Base exception for the storefront library."""

    pass


class ValidationError(StorefrontError, ValueError):
    """
    Raised when input is malformed or missing required fields.

    Validation always happens before any side effect, so a ValidationError
    guarantees that no stock was reserved and nothing was persisted.

    Attributes:
        errors: One human-readable message per offending field
    """

    def __init__(self, errors: list[str] | str) -> None:
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


class NotFoundError(StorefrontError):
    """Raised when a referenced record does not exist."""

    pass


class ProductNotFoundError(NotFoundError):
    """Raised when a product cannot be found."""

    def __init__(self, product_id: int) -> None:
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class OrderNotFoundError(NotFoundError):
    """Raised when an order cannot be found."""

    def __init__(self, order_id: int) -> None:
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class CartLineNotFoundError(NotFoundError):
    """Raised when a cart line does not exist or belongs to another user."""

    def __init__(self, line_id: int, user_id: int) -> None:
        self.line_id = line_id
        self.user_id = user_id
        super().__init__(f"Cart line {line_id} not found for user {user_id}")


class InsufficientStockError(StorefrontError):
    """
    Raised when a product does not have enough stock for a reservation.

    When raised from order placement the whole order is rejected and every
    reservation made earlier in the same attempt is rolled back.

    Attributes:
        product_id: Product that ran out
        requested: Quantity that was requested
        available: Stock on hand when the reservation was attempted
    """

    def __init__(self, product_id: int, requested: int, available: int) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )


class PricingMismatchError(StorefrontError):
    """Raised when a submitted order total disagrees with the recomputed one."""

    def __init__(
        self,
        submitted_total: Decimal,
        computed_total: Decimal,
        tolerance: Decimal,
    ) -> None:
        self.submitted_total = submitted_total
        self.computed_total = computed_total
        self.tolerance = tolerance
        super().__init__(
            f"Submitted total {submitted_total} does not match computed total "
            f"{computed_total} (tolerance {tolerance})"
        )


class NotCancellableError(StorefrontError):
    """Raised when an order is not owned by the caller or not in a cancellable state."""

    def __init__(self, order_id: int, status: str, reason: str) -> None:
        self.order_id = order_id
        self.status = status
        self.reason = reason
        super().__init__(f"Order {order_id} cannot be cancelled ({status}): {reason}")


class PersistenceError(StorefrontError):
    """
    Raised when the storage layer fails inside a unit of work.

    The unit of work is always rolled back before this is raised. The
    underlying driver exception is available as ``__cause__``.
    """

    pass


class DuplicateOrderNumberError(PersistenceError):
    """Raised when an order number is already taken in the ledger."""

    def __init__(self, order_number: str) -> None:
        self.order_number = order_number
        super().__init__(f"Order number already exists: {order_number}")
