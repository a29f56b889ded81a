"""
Inventory Service

Stock items, low-stock listing and the explicit links that say how much
of an inventory item one serving of a menu item uses.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.core.exceptions import NotFoundError, ValidationError
from restaurant_crm.models import InventoryItem, InventoryUsage, MenuItem, User
from restaurant_crm.schemas import InventoryItemCreate, InventoryItemUpdate, UsageLink
from restaurant_crm.services.common import to_columns

logger = logging.getLogger(__name__)


class InventoryService:

    @staticmethod
    async def get_item(db: AsyncSession, item_id: int) -> InventoryItem:
        result = await db.execute(
            select(InventoryItem)
            .where(InventoryItem.id == item_id)
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one_or_none()
        if not item:
            raise NotFoundError("Inventory item")
        return item

    @staticmethod
    async def list_items(db: AsyncSession) -> list[InventoryItem]:
        result = await db.execute(select(InventoryItem).order_by(InventoryItem.name))
        return list(result.scalars().all())

    @staticmethod
    async def low_stock(db: AsyncSession) -> list[InventoryItem]:
        result = await db.execute(
            select(InventoryItem)
            .where(InventoryItem.quantity <= InventoryItem.low_stock_threshold)
            .order_by(InventoryItem.quantity, InventoryItem.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_item(
        db: AsyncSession, data: InventoryItemCreate, created_by: Optional[User] = None
    ) -> InventoryItem:
        item = InventoryItem(
            **to_columns(data),
            created_by_id=created_by.id if created_by else None,
        )
        db.add(item)
        await db.commit()

        logger.info(f"📦 Inventory item #{item.id} created: {item.name} ({item.quantity} {item.unit})")
        return await InventoryService.get_item(db, item.id)

    @staticmethod
    async def update_item(db: AsyncSession, item_id: int, data: InventoryItemUpdate) -> InventoryItem:
        item = await InventoryService.get_item(db, item_id)
        for key, value in to_columns(data, exclude_unset=True).items():
            setattr(item, key, value)
        await db.commit()

        if item.is_low_stock:
            logger.warning(f"⚠️ {item.name} is low on stock ({item.quantity} {item.unit})")
        return await InventoryService.get_item(db, item_id)

    @staticmethod
    async def set_links(db: AsyncSession, item_id: int, links: list[UsageLink]) -> InventoryItem:
        """Replace every menu-item link of an inventory item."""
        item = await InventoryService.get_item(db, item_id)

        menu_ids = [link.menu_item_id for link in links]
        if len(set(menu_ids)) != len(menu_ids):
            raise ValidationError("Each menu item may be linked only once")
        if menu_ids:
            result = await db.execute(select(MenuItem.id).where(MenuItem.id.in_(menu_ids)))
            unknown = set(menu_ids) - set(result.scalars().all())
            if unknown:
                raise NotFoundError("Menu item", f"Menu items not found: {sorted(unknown)}")

        item.usage_links.clear()
        await db.flush()
        for link in links:
            item.usage_links.append(
                InventoryUsage(
                    menu_item_id=link.menu_item_id,
                    quantity_per_serving=link.quantity_per_serving,
                )
            )
        await db.commit()
        return await InventoryService.get_item(db, item_id)

    @staticmethod
    async def delete_item(db: AsyncSession, item_id: int) -> None:
        item = await InventoryService.get_item(db, item_id)
        await db.delete(item)
        await db.commit()
        logger.info(f"🗑️ Inventory item #{item_id} deleted")
