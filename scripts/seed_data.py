"""
Database Seeding Script

Resets the schema and loads demo users, customers, menu items,
inventory, orders and reservations through the service layer.
Run from project root: python scripts/seed_data.py

Author: Khalil_Bannouri
Version: 3.0.0
"""

import asyncio
import logging
import os
import sys
from datetime import date, timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from restaurant_crm.core.config import setup_logging
from restaurant_crm.database import Base, async_session_maker, engine
from restaurant_crm.models import OrderStatus, User, UserRole
from restaurant_crm.schemas import (
    CustomerCreate,
    InventoryItemCreate,
    MenuItemCreate,
    OrderCreate,
    OrderStatusUpdate,
    ReservationCreate,
    UsageLink,
)
from restaurant_crm.services import (
    CustomerService,
    InventoryService,
    MenuService,
    OrderService,
    ReservationService,
)

logger = logging.getLogger("seed")

USERS = [
    {"name": "Admin User", "email": "admin@restaurant.com", "role": UserRole.ADMIN, "phone": "+1-555-0001"},
    {"name": "Manager Smith", "email": "manager@restaurant.com", "role": UserRole.MANAGER, "phone": "+1-555-0002"},
    {"name": "Staff Johnson", "email": "staff@restaurant.com", "role": UserRole.STAFF, "phone": "+1-555-0003"},
    {"name": "Alice Cooper", "email": "alice@restaurant.com", "role": UserRole.STAFF, "phone": "+1-555-0004"},
]

CUSTOMERS = [
    {"name": "John Doe", "email": "john.doe@email.com", "phone": "555-123-4567", "tags": ["regular"]},
    {"name": "Jane Smith", "email": "jane.smith@email.com", "phone": "555-234-5678", "tags": ["vegetarian"]},
    {"name": "Mike Johnson", "email": "mike.j@email.com", "phone": "555-345-6789"},
    {"name": "Sarah Wilson", "email": "sarah.w@email.com", "phone": "555-456-7890", "status": "vip"},
]

MENU = [
    {"name": "Caesar Salad", "category": "salads", "price": 12.99, "cost": 4.50,
     "ingredients": ["romaine lettuce", "parmesan", "croutons"], "allergens": ["dairy", "gluten"]},
    {"name": "Grilled Salmon", "category": "mains", "price": 24.99, "cost": 11.00,
     "ingredients": ["salmon", "lemon", "asparagus"], "allergens": ["fish"], "is_gluten_free": True},
    {"name": "Margherita Pizza", "category": "mains", "price": 16.99, "cost": 5.25,
     "ingredients": ["tomato", "mozzarella", "basil"], "allergens": ["dairy", "gluten"], "is_vegetarian": True},
    {"name": "Tomato Soup", "category": "soups", "price": 7.99, "cost": 2.10,
     "ingredients": ["tomato", "cream"], "allergens": ["dairy"], "is_vegetarian": True},
    {"name": "Chocolate Cake", "category": "desserts", "price": 8.99, "cost": 2.75,
     "ingredients": ["chocolate", "flour", "eggs"], "allergens": ["gluten", "eggs", "dairy"]},
    {"name": "Fresh Lemonade", "category": "beverages", "price": 4.99, "cost": 0.80,
     "ingredients": ["lemon", "sugar"], "is_vegan": True},
]

INVENTORY = [
    ({"name": "Salmon fillet", "quantity": 30, "unit": "pcs", "low_stock_threshold": 8}, "Grilled Salmon", 1),
    ({"name": "Mozzarella", "quantity": 12, "unit": "kg", "low_stock_threshold": 3}, "Margherita Pizza", 0.15),
    ({"name": "Lemons", "quantity": 4, "unit": "kg", "low_stock_threshold": 5}, "Fresh Lemonade", 0.1),
]


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("🗑️  Schema reset")

    async with async_session_maker() as db:
        users = [User(**u) for u in USERS]
        db.add_all(users)
        await db.commit()
        logger.info(f"👥 Created {len(users)} users")

        customers = [await CustomerService.create_customer(db, CustomerCreate(**c)) for c in CUSTOMERS]
        menu = {
            m["name"]: await MenuService.create_item(db, MenuItemCreate(**m)) for m in MENU
        }
        logger.info(f"🍽️  Created {len(customers)} customers and {len(menu)} menu items")

        for data, menu_name, per_serving in INVENTORY:
            item = await InventoryService.create_item(db, InventoryItemCreate(**data), created_by=users[0])
            await InventoryService.set_links(
                db, item.id, [UsageLink(menu_item_id=menu[menu_name].id, quantity_per_serving=per_serving)]
            )

        names = list(menu)
        for i, customer in enumerate(customers):
            order = await OrderService.create_order(
                db,
                OrderCreate(
                    customer=customer.id,
                    order_type="dine-in" if i % 2 == 0 else "takeout",
                    table_number=i + 1 if i % 2 == 0 else None,
                    items=[
                        {"menu_item": menu[names[i % len(names)]].id, "quantity": 2},
                        {"menu_item": menu[names[(i + 3) % len(names)]].id, "quantity": 1},
                    ],
                ),
                staff=users[2],
            )
            for step in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.COMPLETED):
                await OrderService.update_status(db, order.id, OrderStatusUpdate(status=step))
        logger.info(f"🧾 Created {len(customers)} completed orders")

        tomorrow = date.today() + timedelta(days=1)
        for i, customer in enumerate(customers[:3]):
            await ReservationService.create_reservation(
                db,
                ReservationCreate(
                    customer=customer.id,
                    date=tomorrow,
                    time="19:00",
                    party_size=2 + i,
                    table_number=i + 1,
                    contact_phone=customer.phone,
                    contact_email=customer.email,
                ),
                created_by=users[1],
            )
        logger.info("📅 Created 3 reservations")

    await engine.dispose()
    logger.info("✅ Seeding complete")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())
