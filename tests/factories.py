"""Small builders for rows the tests need directly in the database."""

import itertools
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.models import (
    Customer,
    MenuCategory,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    Reservation,
)

_order_numbers = itertools.count(1)


async def make_customer(db: AsyncSession, **overrides) -> Customer:
    values = {"name": "John Doe", "email": "john@example.com", "phone": "555-123-4567"}
    values.update(overrides)
    customer = Customer(**values)
    db.add(customer)
    await db.commit()
    return customer


async def make_menu_item(db: AsyncSession, **overrides) -> MenuItem:
    values = {"name": "Burger", "category": MenuCategory.MAINS, "price": 10.0, "cost": 4.0}
    values.update(overrides)
    item = MenuItem(**values)
    db.add(item)
    await db.commit()
    return item


async def make_reservation(db: AsyncSession, customer: Customer, **overrides) -> Reservation:
    values = {
        "customer_id": customer.id,
        "date": date(2030, 6, 1),
        "time": "19:00",
        "party_size": 2,
        "table_number": 5,
        "contact_phone": customer.phone,
        "contact_email": customer.email,
    }
    values.update(overrides)
    reservation = Reservation(**values)
    db.add(reservation)
    await db.commit()
    return reservation


async def make_order(
    db: AsyncSession,
    created_at: datetime,
    lines: list[tuple[MenuItem, int]] = (),
    total: float = None,
    status: OrderStatus = OrderStatus.COMPLETED,
    order_type: OrderType = OrderType.DINE_IN,
    **overrides,
) -> Order:
    """Insert an order as-is, bypassing pricing and counters."""
    subtotal = round(sum(item.price * qty for item, qty in lines), 2)
    if total is None:
        total = round(subtotal * 1.08, 2)
    order = Order(
        order_number=f"TEST-{next(_order_numbers):05d}",
        order_type=order_type,
        status=status,
        subtotal=subtotal,
        tax=round(total - subtotal, 2) if lines else 0.0,
        total=total,
        created_at=created_at,
        **overrides,
    )
    for item, qty in lines:
        order.items.append(OrderItem(menu_item=item, quantity=qty, price=item.price))
    db.add(order)
    await db.commit()
    return order
