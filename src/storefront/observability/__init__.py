"""
Observability utilities for storefront.

Example:
    >>> from storefront.observability import create_tracer
    >>>
    >>> class MyComponent:
    ...     def __init__(self, tracer=None, enable_tracing: bool = True):
    ...         self._tracer = tracer or create_tracer(__name__, enable_tracing)

Note:
    OpenTelemetry is an optional dependency. All utilities in this module
    handle the case where OpenTelemetry is not installed.
"""

from storefront.observability.attributes import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_ERROR_TYPE,
    ATTR_LINE_COUNT,
    ATTR_ORDER_ID,
    ATTR_ORDER_NUMBER,
    ATTR_ORDER_STATUS,
    ATTR_PRODUCT_ID,
    ATTR_QUANTITY,
    ATTR_RESERVED,
    ATTR_RETRY_COUNT,
    ATTR_USER_ID,
)
from storefront.observability.tracer import (
    MockSpan,
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)
from storefront.observability.tracing import (
    OTEL_AVAILABLE,
    get_tracer,
    should_trace,
)

__all__ = [
    "OTEL_AVAILABLE",
    "get_tracer",
    "should_trace",
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockSpan",
    "MockTracer",
    "create_tracer",
    "ATTR_ORDER_ID",
    "ATTR_ORDER_NUMBER",
    "ATTR_ORDER_STATUS",
    "ATTR_LINE_COUNT",
    "ATTR_USER_ID",
    "ATTR_PRODUCT_ID",
    "ATTR_QUANTITY",
    "ATTR_RESERVED",
    "ATTR_RETRY_COUNT",
    "ATTR_ERROR_TYPE",
    "ATTR_DB_SYSTEM",
    "ATTR_DB_OPERATION",
]
