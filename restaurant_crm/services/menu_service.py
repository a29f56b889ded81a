"""
Menu Service

Catalog CRUD with case-insensitive duplicate names, availability toggles
and the menu listings used by the front of house (popular, active,
out of stock, specials, performance).
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.core.exceptions import ConflictError, NotFoundError
from restaurant_crm.models import InventoryItem, InventoryUsage, MenuCategory, MenuItem
from restaurant_crm.schemas import MenuItemCreate, MenuItemUpdate
from restaurant_crm.services.common import paginate, percentage, to_columns

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "name": MenuItem.name,
    "price": MenuItem.price,
    "category": MenuItem.category,
    "times_ordered": MenuItem.times_ordered,
    "rating": MenuItem.rating_average,
    "created_at": MenuItem.created_at,
}


async def _ensure_unique_name(
    db: AsyncSession, name: str, exclude_id: Optional[int] = None
) -> None:
    query = select(MenuItem.id).where(func.lower(MenuItem.name) == name.lower())
    if exclude_id is not None:
        query = query.where(MenuItem.id != exclude_id)
    if await db.scalar(query.limit(1)):
        raise ConflictError("Menu item with this name already exists")


def _performance_row(item: MenuItem) -> dict:
    revenue = round(item.price * item.times_ordered, 2)
    cost = round((item.cost or 0.0) * item.times_ordered, 2)
    return {
        "id": item.id,
        "name": item.name,
        "category": item.category.value,
        "price": item.price,
        "times_ordered": item.times_ordered,
        "revenue": revenue,
        "profit": round(revenue - cost, 2),
        "margin": percentage(revenue - cost, revenue),
        "rating": item.rating,
    }


class MenuService:

    @staticmethod
    async def get_item(db: AsyncSession, item_id: int) -> MenuItem:
        item = await db.get(MenuItem, item_id, populate_existing=True)
        if not item:
            raise NotFoundError("Menu item")
        return item

    @staticmethod
    async def list_items(
        db: AsyncSession,
        page: int,
        limit: int,
        category: Optional[MenuCategory] = None,
        available: Optional[bool] = None,
        search: Optional[str] = None,
        sort_by: str = "name",
        sort_order: str = "asc",
    ) -> tuple[list[MenuItem], int]:
        query = select(MenuItem)
        if category:
            query = query.where(MenuItem.category == category)
        if available is not None:
            query = query.where(MenuItem.is_available.is_(available))
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    MenuItem.name.ilike(pattern),
                    MenuItem.description.ilike(pattern),
                    cast(MenuItem.ingredients, String).ilike(pattern),
                )
            )

        column = SORTABLE_FIELDS.get(sort_by, MenuItem.name)
        ordering = column.desc() if sort_order == "desc" else column.asc()
        query = query.order_by(ordering, MenuItem.id)
        return await paginate(db, query, page, limit)

    @staticmethod
    async def create_item(db: AsyncSession, data: MenuItemCreate) -> MenuItem:
        await _ensure_unique_name(db, data.name)

        item = MenuItem(**to_columns(data))
        db.add(item)
        await db.commit()

        logger.info(f"🍽️ Menu item #{item.id} created: {item.name} ({item.price:.2f})")
        return await MenuService.get_item(db, item.id)

    @staticmethod
    async def update_item(db: AsyncSession, item_id: int, data: MenuItemUpdate) -> MenuItem:
        item = await MenuService.get_item(db, item_id)
        changes = to_columns(data, exclude_unset=True)

        if changes.get("name") and changes["name"].lower() != item.name.lower():
            await _ensure_unique_name(db, changes["name"], exclude_id=item.id)

        for key, value in changes.items():
            setattr(item, key, value)
        await db.commit()
        return await MenuService.get_item(db, item_id)

    @staticmethod
    async def delete_item(db: AsyncSession, item_id: int) -> None:
        item = await MenuService.get_item(db, item_id)
        await db.delete(item)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("Menu item is referenced by existing orders, mark it unavailable instead")
        logger.info(f"🗑️ Menu item #{item_id} deleted")

    @staticmethod
    async def set_availability(db: AsyncSession, item_id: int, is_available: bool) -> MenuItem:
        item = await MenuService.get_item(db, item_id)
        item.is_available = is_available
        await db.commit()
        logger.info(
            f"🍽️ {item.name} is now {'available' if is_available else 'unavailable'}"
        )
        return await MenuService.get_item(db, item_id)

    @staticmethod
    async def popular(db: AsyncSession, limit: int = 10) -> list[MenuItem]:
        result = await db.execute(
            select(MenuItem)
            .where(MenuItem.is_available.is_(True), MenuItem.times_ordered > 0)
            .order_by(MenuItem.times_ordered.desc(), MenuItem.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def category_stats(db: AsyncSession) -> list[dict]:
        result = await db.execute(
            select(
                MenuItem.category,
                func.count(MenuItem.id),
                func.avg(MenuItem.price),
                func.min(MenuItem.price),
                func.max(MenuItem.price),
                func.coalesce(func.sum(MenuItem.times_ordered), 0),
            )
            .group_by(MenuItem.category)
            .order_by(MenuItem.category)
        )
        return [
            {
                "category": category.value,
                "count": count,
                "average_price": round(float(avg_price), 2),
                "min_price": min_price,
                "max_price": max_price,
                "total_orders": int(total_orders),
            }
            for category, count, avg_price, min_price, max_price, total_orders in result.all()
        ]

    @staticmethod
    async def active(db: AsyncSession, limit: int = 50) -> list[MenuItem]:
        result = await db.execute(
            select(MenuItem)
            .where(MenuItem.is_available.is_(True))
            .order_by(MenuItem.category, MenuItem.name)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def out_of_stock(db: AsyncSession, limit: int = 50) -> list[MenuItem]:
        """Items switched off, plus items using an inventory item that has run out."""
        depleted = (
            select(InventoryUsage.menu_item_id)
            .join(InventoryItem, InventoryUsage.inventory_item_id == InventoryItem.id)
            .where(InventoryItem.quantity <= 0)
        )
        result = await db.execute(
            select(MenuItem)
            .where(or_(MenuItem.is_available.is_(False), MenuItem.id.in_(depleted)))
            .order_by(MenuItem.name)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def specials(db: AsyncSession, now: Optional[datetime] = None) -> list[MenuItem]:
        """Available items flagged as specials or inside their special window."""
        now = now or datetime.now()
        in_window = (
            MenuItem.special_start.is_not(None)
            & (MenuItem.special_start <= now)
            & (MenuItem.special_end.is_(None) | (MenuItem.special_end >= now))
        )
        result = await db.execute(
            select(MenuItem)
            .where(
                MenuItem.is_available.is_(True),
                or_(MenuItem.is_special.is_(True), MenuItem.category == MenuCategory.SPECIALS, in_window),
            )
            .order_by(MenuItem.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def performance(db: AsyncSession, limit: int = 20) -> list[dict]:
        result = await db.execute(
            select(MenuItem).order_by(MenuItem.times_ordered.desc(), MenuItem.id).limit(limit)
        )
        return [_performance_row(item) for item in result.scalars().all()]
