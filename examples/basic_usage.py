"""
Basic Usage Example

This example walks through a storefront checkout:
- Stocking the catalog
- Filling a cart and quoting it
- Placing an order that reserves stock atomically
- Cancelling the order and getting the stock back

Run with: python examples/basic_usage.py
"""

import asyncio
import logging
from decimal import Decimal

from storefront import (
    CartService,
    InMemoryDatabase,
    LineItemRequest,
    OrderEngine,
    PaymentMethod,
    PlaceOrderRequest,
    default_repositories,
)
from storefront.exceptions import InsufficientStockError

USER_ID = 42


async def main() -> None:
    print("=" * 60)
    print("Storefront Checkout Example")
    print("=" * 60)

    # =========================================================================
    # Step 1: Set up the database and repositories
    # =========================================================================
    # Swap InMemoryDatabase for SQLiteDatabase("shop.db") or
    # PostgreSQLDatabase.from_url(...) without changing anything else.

    database = InMemoryDatabase()
    await database.initialize()
    repositories = default_repositories(database, enable_tracing=False)
    engine = OrderEngine(database, enable_tracing=False)
    carts = CartService(database, enable_tracing=False)

    print("\n1. Stocking the catalog:")
    async with database.unit_of_work() as uow:
        kettle = await repositories.catalog.add_product(
            uow, name="Kettle", price=Decimal("40.00"), stock_quantity=3
        )
        mug = await repositories.catalog.add_product(
            uow,
            name="Mug",
            price=Decimal("8.00"),
            sale_price=Decimal("6.50"),
            stock_quantity=10,
        )
    print(f"   {kettle.name}: {kettle.effective_price} ({kettle.stock_quantity} in stock)")
    print(f"   {mug.name}: {mug.effective_price} ({mug.stock_quantity} in stock)")

    # =========================================================================
    # Step 2: Fill the cart and quote it
    # =========================================================================

    print("\n2. Filling the cart:")
    await carts.add_item(USER_ID, kettle.id, 2)
    await carts.add_item(USER_ID, mug.id, 4)
    view = await carts.view(USER_ID)
    for line in view.lines:
        print(f"   {line.line.quantity} x {line.name} @ {line.unit_price}")

    quote = await engine.quote_cart(USER_ID)
    print(f"   Subtotal: {quote.subtotal}")
    print(f"   CGST + SGST: {quote.cgst_amount} + {quote.sgst_amount}")
    print(f"   Delivery: {quote.delivery_charge}")
    print(f"   Total: {quote.total}")

    # =========================================================================
    # Step 3: Place the order
    # =========================================================================
    # The engine recomputes the bill and rejects totals that disagree.

    print("\n3. Placing the order:")
    items = [
        LineItemRequest(product_id=line.line.product_id, quantity=line.line.quantity)
        for line in view.lines
    ]
    request = PlaceOrderRequest(
        user_id=USER_ID,
        customer_name="Asha Rao",
        customer_phone="9876543210",
        customer_email="asha@example.com",
        shipping_address="12 MG Road, Bengaluru",
        billing_address="12 MG Road, Bengaluru",
        payment_method=PaymentMethod.PHONEPE,
        items=items,
        subtotal=quote.subtotal,
        cgst_amount=quote.cgst_amount,
        sgst_amount=quote.sgst_amount,
        delivery_charge=quote.delivery_charge,
        total_amount=quote.total,
    )
    order = await engine.place_order(request)
    print(f"   Order {order.order_number} is {order.status.value}, total {order.total_amount}")
    print(f"   Items left in cart: {await carts.count(USER_ID)}")

    # =========================================================================
    # Step 4: Stock is reserved
    # =========================================================================

    print("\n4. Ordering more kettles than are left:")
    try:
        await engine.place_order(
            request.model_copy(
                update={"items": [LineItemRequest(product_id=kettle.id, quantity=2)]}
            )
        )
    except InsufficientStockError as e:
        print(f"   Refused: {e}")

    # =========================================================================
    # Step 5: Cancel and release the stock
    # =========================================================================

    print("\n5. Cancelling the order:")
    cancelled = await engine.cancel_order(order.id, user_id=USER_ID)
    async with database.unit_of_work(read_only=True) as uow:
        restocked = await repositories.catalog.get_product(uow, kettle.id)
    print(f"   Order {cancelled.order_number} is {cancelled.status.value}")
    print(f"   Kettles back in stock: {restocked.stock_quantity}")

    print("\n6. Order history:")
    for summary in await engine.list_orders_for_user(USER_ID):
        print(f"   {summary.order_number}: {summary.status.value}, {summary.item_count} lines")

    await database.close()

    print("\n" + "=" * 60)
    print("Example completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    asyncio.run(main())
