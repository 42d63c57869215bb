"""
storefront - Order placement and inventory consistency for a retail storefront.

This library provides:
- OrderEngine: cart-to-order checkout with oversell-proof stock reservation,
  cancellation with stock release, and administrative status changes
- PricingCalculator: exact decimal subtotal, GST and delivery pricing
- CartService: per-user cart management with stock checks
- In-memory, SQLite and PostgreSQL backends behind one unit-of-work API
- Synchronous adapter for thread-based callers
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("storefront-orders")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from storefront.carts import (
    CartStore,
    InMemoryCartStore,
    PostgreSQLCartStore,
    SQLiteCartStore,
)
from storefront.carts.service import CartService
from storefront.catalog import (
    InMemoryProductCatalog,
    PostgreSQLProductCatalog,
    ProductCatalog,
    SQLiteProductCatalog,
)
from storefront.config import OrderEngineConfig
from storefront.db import (
    Database,
    InMemoryDatabase,
    PostgreSQLDatabase,
    SQLiteDatabase,
    UnitOfWork,
    get_schema,
)
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
from storefront.ledger import (
    InMemoryOrderLedger,
    NewOrder,
    NewOrderLine,
    OrderLedger,
    PostgreSQLOrderLedger,
    SQLiteOrderLedger,
)
from storefront.models import (
    CANCELLABLE_STATUSES,
    CartLine,
    CartView,
    CartViewLine,
    LineItemRequest,
    Order,
    OrderLine,
    OrderPage,
    OrderStatus,
    OrderSummary,
    PaymentMethod,
    PaymentStatus,
    PlaceOrderRequest,
    Product,
    ProductSnapshot,
)
from storefront.observability import (
    OTEL_AVAILABLE,
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)
from storefront.orders import (
    OrderEngine,
    OrderNumberGenerator,
    TimestampOrderNumberGenerator,
)
from storefront.pricing import PriceBreakdown, PricedLine, PricingCalculator, PricingPolicy
from storefront.repositories import Repositories, default_repositories
from storefront.sync import SyncOrderEngineAdapter

__all__ = [
    "__version__",
    # Engine
    "OrderEngine",
    "OrderEngineConfig",
    "OrderNumberGenerator",
    "TimestampOrderNumberGenerator",
    "SyncOrderEngineAdapter",
    # Pricing
    "PricingCalculator",
    "PricingPolicy",
    "PricedLine",
    "PriceBreakdown",
    # Carts
    "CartService",
    "CartStore",
    "InMemoryCartStore",
    "SQLiteCartStore",
    "PostgreSQLCartStore",
    # Catalog
    "ProductCatalog",
    "InMemoryProductCatalog",
    "SQLiteProductCatalog",
    "PostgreSQLProductCatalog",
    # Ledger
    "OrderLedger",
    "NewOrder",
    "NewOrderLine",
    "InMemoryOrderLedger",
    "SQLiteOrderLedger",
    "PostgreSQLOrderLedger",
    # Databases
    "Database",
    "UnitOfWork",
    "InMemoryDatabase",
    "SQLiteDatabase",
    "PostgreSQLDatabase",
    "Repositories",
    "default_repositories",
    "get_schema",
    # Models
    "CANCELLABLE_STATUSES",
    "CartLine",
    "CartView",
    "CartViewLine",
    "LineItemRequest",
    "Order",
    "OrderLine",
    "OrderPage",
    "OrderStatus",
    "OrderSummary",
    "PaymentMethod",
    "PaymentStatus",
    "PlaceOrderRequest",
    "Product",
    "ProductSnapshot",
    # Exceptions
    "StorefrontError",
    "ValidationError",
    "NotFoundError",
    "ProductNotFoundError",
    "OrderNotFoundError",
    "CartLineNotFoundError",
    "InsufficientStockError",
    "PricingMismatchError",
    "NotCancellableError",
    "PersistenceError",
    "DuplicateOrderNumberError",
    # Observability
    "OTEL_AVAILABLE",
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
]
