"""
Database schema for the storefront tables.

Tables:
    - products: Catalog products with stock counters
    - cart_items: Per-user cart lines
    - orders: Order headers with billing figures and status
    - order_items: Immutable order lines with frozen unit prices

Supported backends:
    - postgresql: NUMERIC money columns, TIMESTAMPTZ timestamps
    - sqlite: money stored as TEXT (exact decimal strings), ISO-8601 timestamps

``products.stock_quantity``, ``price`` and ``sale_price`` must not go negative on
either backend; SQLite casts its TEXT prices to REAL for the comparison.
``order_items.product_id`` and ``cart_items.product_id`` carry no foreign key:
an order line keeps its snapshot after the product is deleted, and a cart line
pointing at a deleted product is skipped on read.

Usage:
    from storefront.db.schema import get_schema, get_statements

    # Whole script, for sqlite executescript()
    script = get_schema("sqlite")

    # Individual statements, for drivers that run one statement at a time
    async with engine.begin() as conn:
        for statement in get_statements("postgresql"):
            await conn.execute(text(statement))
"""

from typing import Literal

BackendName = Literal["postgresql", "sqlite"]

_STATUS_VALUES = "'pending', 'processing', 'shipped', 'delivered', 'cancelled'"
_PAYMENT_METHOD_VALUES = "'cod', 'netbanking', 'paytm', 'phonepe', 'paypal', 'card'"
_PAYMENT_STATUS_VALUES = "'pending', 'paid', 'failed'"

_SQLITE_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS products (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        price TEXT NOT NULL CHECK (CAST(price AS REAL) >= 0),
        sale_price TEXT CHECK (CAST(sale_price AS REAL) >= 0),
        stock_quantity INTEGER NOT NULL DEFAULT 0 CHECK (stock_quantity >= 0),
        is_active INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cart_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        product_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL CHECK (quantity >= 1),
        created_at TEXT NOT NULL,
        UNIQUE (user_id, product_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_cart_items_user_id ON cart_items (user_id)",
    f"""
    CREATE TABLE IF NOT EXISTS orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        order_number TEXT NOT NULL UNIQUE,
        user_id INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ({_STATUS_VALUES})),
        subtotal TEXT NOT NULL,
        cgst_amount TEXT NOT NULL,
        sgst_amount TEXT NOT NULL,
        delivery_charge TEXT NOT NULL,
        discount TEXT NOT NULL,
        total_amount TEXT NOT NULL,
        payment_method TEXT NOT NULL CHECK (payment_method IN ({_PAYMENT_METHOD_VALUES})),
        payment_status TEXT NOT NULL DEFAULT 'pending'
            CHECK (payment_status IN ({_PAYMENT_STATUS_VALUES})),
        shipping_address TEXT NOT NULL,
        billing_address TEXT NOT NULL,
        customer_name TEXT NOT NULL,
        customer_phone TEXT NOT NULL,
        customer_email TEXT NOT NULL,
        notes TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_orders_user_id ON orders (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_orders_status ON orders (status)",
    """
    CREATE TABLE IF NOT EXISTS order_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        order_id INTEGER NOT NULL REFERENCES orders (id) ON DELETE CASCADE,
        product_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL CHECK (quantity >= 1),
        unit_price TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_order_items_order_id ON order_items (order_id)",
)

_POSTGRESQL_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS products (
        id BIGSERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        price NUMERIC(12, 2) NOT NULL CHECK (price >= 0),
        sale_price NUMERIC(12, 2) CHECK (sale_price >= 0),
        stock_quantity INTEGER NOT NULL DEFAULT 0 CHECK (stock_quantity >= 0),
        is_active BOOLEAN NOT NULL DEFAULT TRUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cart_items (
        id BIGSERIAL PRIMARY KEY,
        user_id BIGINT NOT NULL,
        product_id BIGINT NOT NULL,
        quantity INTEGER NOT NULL CHECK (quantity >= 1),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (user_id, product_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_cart_items_user_id ON cart_items (user_id)",
    f"""
    CREATE TABLE IF NOT EXISTS orders (
        id BIGSERIAL PRIMARY KEY,
        order_number VARCHAR(64) NOT NULL UNIQUE,
        user_id BIGINT NOT NULL,
        status VARCHAR(20) NOT NULL DEFAULT 'pending' CHECK (status IN ({_STATUS_VALUES})),
        subtotal NUMERIC(12, 2) NOT NULL,
        cgst_amount NUMERIC(12, 2) NOT NULL,
        sgst_amount NUMERIC(12, 2) NOT NULL,
        delivery_charge NUMERIC(12, 2) NOT NULL,
        discount NUMERIC(12, 2) NOT NULL,
        total_amount NUMERIC(12, 2) NOT NULL,
        payment_method VARCHAR(20) NOT NULL CHECK (payment_method IN ({_PAYMENT_METHOD_VALUES})),
        payment_status VARCHAR(20) NOT NULL DEFAULT 'pending'
            CHECK (payment_status IN ({_PAYMENT_STATUS_VALUES})),
        shipping_address TEXT NOT NULL,
        billing_address TEXT NOT NULL,
        customer_name VARCHAR(255) NOT NULL,
        customer_phone VARCHAR(32) NOT NULL,
        customer_email VARCHAR(255) NOT NULL,
        notes TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_orders_user_id ON orders (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_orders_status ON orders (status)",
    """
    CREATE TABLE IF NOT EXISTS order_items (
        id BIGSERIAL PRIMARY KEY,
        order_id BIGINT NOT NULL REFERENCES orders (id) ON DELETE CASCADE,
        product_id BIGINT NOT NULL,
        quantity INTEGER NOT NULL CHECK (quantity >= 1),
        unit_price NUMERIC(12, 2) NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_order_items_order_id ON order_items (order_id)",
)

_STATEMENTS: dict[str, tuple[str, ...]] = {
    "sqlite": _SQLITE_STATEMENTS,
    "postgresql": _POSTGRESQL_STATEMENTS,
}

TABLES: tuple[str, ...] = ("products", "cart_items", "orders", "order_items")


def get_statements(backend: BackendName = "postgresql") -> tuple[str, ...]:
    """
    Get the DDL statements for a backend, one statement per item.

    Args:
        backend: The database backend ("postgresql" or "sqlite")

    Returns:
        Tuple of CREATE statements, all idempotent (IF NOT EXISTS)

    Raises:
        ValueError: If the backend is not supported
    """
    try:
        return _STATEMENTS[backend]
    except KeyError:
        raise ValueError(
            f"Unknown backend: {backend!r}. Valid backends: {', '.join(sorted(_STATEMENTS))}"
        ) from None


def get_schema(backend: BackendName = "postgresql") -> str:
    """
    Get the complete schema script for a backend.

    Args:
        backend: The database backend ("postgresql" or "sqlite")

    Returns:
        SQL script with every statement terminated by a semicolon

    Raises:
        ValueError: If the backend is not supported
    """
    return "\n".join(f"{statement.strip()};" for statement in get_statements(backend))


__all__ = [
    "BackendName",
    "TABLES",
    "get_schema",
    "get_statements",
]
