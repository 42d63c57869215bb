"""
Unit tests for exceptions module.

Tests the exception hierarchy and the context each error carries.
"""

from decimal import Decimal

import pytest

from storefront.exceptions import (
    CartLineNotFoundError,
    DuplicateOrderNumberError,
    InsufficientStockError,
    NotCancellableError,
    NotFoundError,
    OrderNotFoundError,
    PersistenceError,
    PricingMismatchError,
    ProductNotFoundError,
    StorefrontError,
    ValidationError,
)


class TestStorefrontError:
    """Tests for the base StorefrontError."""

    def test_base_exception(self) -> None:
        """Test that StorefrontError can be raised with message."""
        with pytest.raises(StorefrontError) as exc_info:
            raise StorefrontError("Test error")
        assert str(exc_info.value) == "Test error"

    @pytest.mark.parametrize(
        "error_class",
        [
            ValidationError,
            NotFoundError,
            ProductNotFoundError,
            OrderNotFoundError,
            CartLineNotFoundError,
            InsufficientStockError,
            PricingMismatchError,
            NotCancellableError,
            PersistenceError,
            DuplicateOrderNumberError,
        ],
    )
    def test_all_errors_share_base(self, error_class: type[Exception]) -> None:
        """Test that every library error can be caught as StorefrontError."""
        assert issubclass(error_class, StorefrontError)


class TestValidationError:
    """Tests for ValidationError."""

    def test_single_message(self) -> None:
        """Test a single message becomes a one-element errors list."""
        error = ValidationError("quantity must be positive")
        assert error.errors == ["quantity must be positive"]
        assert str(error) == "quantity must be positive"

    def test_multiple_messages_joined(self) -> None:
        """Test multiple messages are kept and joined in the message."""
        error = ValidationError(["name must not be empty", "price must not be negative"])
        assert len(error.errors) == 2
        assert str(error) == "name must not be empty; price must not be negative"

    def test_is_value_error(self) -> None:
        """Test ValidationError can be caught as ValueError."""
        assert issubclass(ValidationError, ValueError)


class TestNotFoundErrors:
    """Tests for the NotFoundError family."""

    def test_product_not_found(self) -> None:
        """Test ProductNotFoundError carries the product id."""
        error = ProductNotFoundError(42)
        assert error.product_id == 42
        assert "42" in str(error)
        assert isinstance(error, NotFoundError)

    def test_order_not_found(self) -> None:
        """Test OrderNotFoundError carries the order id."""
        error = OrderNotFoundError(7)
        assert error.order_id == 7
        assert str(error) == "Order not found: 7"

    def test_cart_line_not_found(self) -> None:
        """Test CartLineNotFoundError carries line and user ids."""
        error = CartLineNotFoundError(line_id=3, user_id=9)
        assert error.line_id == 3
        assert error.user_id == 9
        assert "user 9" in str(error)


class TestInsufficientStockError:
    """Tests for InsufficientStockError."""

    def test_error_context(self) -> None:
        """Test error message contains requested and available quantities."""
        error = InsufficientStockError(product_id=5, requested=3, available=2)
        assert error.product_id == 5
        assert error.requested == 3
        assert error.available == 2
        assert "requested 3" in str(error)
        assert "available 2" in str(error)


class TestPricingMismatchError:
    """Tests for PricingMismatchError."""

    def test_error_context(self) -> None:
        """Test error carries both totals and the tolerance."""
        error = PricingMismatchError(Decimal("100.00"), Decimal("118.00"), Decimal("0.01"))
        assert error.submitted_total == Decimal("100.00")
        assert error.computed_total == Decimal("118.00")
        assert error.tolerance == Decimal("0.01")
        assert "100.00" in str(error)
        assert "118.00" in str(error)


class TestNotCancellableError:
    """Tests for NotCancellableError."""

    def test_error_context(self) -> None:
        """Test error carries order id, status and reason."""
        error = NotCancellableError(11, "shipped", "only pending or processing orders")
        assert error.order_id == 11
        assert error.status == "shipped"
        assert error.reason == "only pending or processing orders"
        assert "shipped" in str(error)


class TestPersistenceErrors:
    """Tests for PersistenceError and DuplicateOrderNumberError."""

    def test_duplicate_order_number_is_persistence_error(self) -> None:
        """Test DuplicateOrderNumberError is caught as PersistenceError."""
        error = DuplicateOrderNumberError("ORD-1-ABC")
        assert isinstance(error, PersistenceError)
        assert error.order_number == "ORD-1-ABC"
        assert "ORD-1-ABC" in str(error)

    def test_cause_is_preserved(self) -> None:
        """Test the driver exception is reachable via __cause__."""
        original = RuntimeError("disk I/O error")
        with pytest.raises(PersistenceError) as exc_info:
            try:
                raise original
            except RuntimeError as e:
                raise PersistenceError("unit of work failed") from e
        assert exc_info.value.__cause__ is original
