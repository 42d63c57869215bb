"""
Standard span attributes for storefront.

Storefront-specific attributes live under the ``storefront.`` namespace;
database attributes follow the OpenTelemetry semantic conventions.

Example:
    >>> from storefront.observability.attributes import ATTR_ORDER_ID, ATTR_USER_ID
    >>>
    >>> with tracer.span(
    ...     "storefront.order_engine.cancel_order",
    ...     {ATTR_ORDER_ID: order_id, ATTR_USER_ID: user_id},
    ... ):
    ...     pass
"""

# =============================================================================
# Order Attributes
# =============================================================================

ATTR_ORDER_ID = "storefront.order.id"
"""Ledger identifier of the order (integer)."""

ATTR_ORDER_NUMBER = "storefront.order.number"
"""Customer-facing order number (string)."""

ATTR_ORDER_STATUS = "storefront.order.status"
"""Order status after the operation (string)."""

ATTR_LINE_COUNT = "storefront.order.line_count"
"""Number of line items in a request or order (integer)."""

ATTR_USER_ID = "storefront.user.id"
"""Identifier of the user the operation acts for (integer)."""

# =============================================================================
# Product / Stock Attributes
# =============================================================================

ATTR_PRODUCT_ID = "storefront.product.id"
"""Identifier of the product being reserved or released (integer)."""

ATTR_QUANTITY = "storefront.stock.quantity"
"""Quantity reserved or released (integer)."""

ATTR_RESERVED = "storefront.stock.reserved"
"""Whether a reservation succeeded (boolean)."""

# =============================================================================
# Error/Retry Attributes
# =============================================================================

ATTR_RETRY_COUNT = "storefront.retry.count"
"""Number of order-number attempts used (integer)."""

ATTR_ERROR_TYPE = "error.type"
"""Exception class name when an operation fails (string)."""

# =============================================================================
# Database Attributes (OpenTelemetry semantic conventions)
# =============================================================================

ATTR_DB_SYSTEM = "db.system"
"""Database system identifier ('sqlite', 'postgresql', 'memory')."""

ATTR_DB_OPERATION = "db.operation"
"""Database operation name, e.g. 'UPDATE' (string)."""
