"""Inventory routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.api.deps import get_current_user, require_manager
from restaurant_crm.database import get_db
from restaurant_crm.models import User
from restaurant_crm.schemas import (
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    MessageResponse,
    UsageLinksUpdate,
)
from restaurant_crm.services import reports
from restaurant_crm.services.inventory_service import InventoryService

router = APIRouter(prefix="/api/inventory", tags=["Inventory"])


def _items(items) -> list[InventoryItemResponse]:
    return [InventoryItemResponse.model_validate(item) for item in items]


@router.get("", summary="List Inventory")
async def list_inventory(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"items": _items(await InventoryService.list_items(db))}


@router.get("/low-stock", summary="Low Stock Items")
async def low_stock(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"items": _items(await InventoryService.low_stock(db))}


@router.get("/usage", summary="Estimated Usage")
async def usage(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"usage": await reports.inventory_usage_report(db, date_from, date_to)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Add Inventory Item")
async def create_inventory_item(
    data: InventoryItemCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_manager),
):
    item = await InventoryService.create_item(db, data, created_by=user)
    return {
        "message": "Inventory item created successfully",
        "item": InventoryItemResponse.model_validate(item),
    }


@router.put("/{item_id}", summary="Update Inventory Item")
async def update_inventory_item(
    item_id: int,
    data: InventoryItemUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    item = await InventoryService.update_item(db, item_id, data)
    return {
        "message": "Inventory item updated successfully",
        "item": InventoryItemResponse.model_validate(item),
    }


@router.put("/{item_id}/links", summary="Set Menu Usage Links")
async def set_usage_links(
    item_id: int,
    data: UsageLinksUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    item = await InventoryService.set_links(db, item_id, data.links)
    return {
        "message": "Usage links updated successfully",
        "item": InventoryItemResponse.model_validate(item),
    }


@router.delete("/{item_id}", response_model=MessageResponse, summary="Delete Inventory Item")
async def delete_inventory_item(
    item_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    await InventoryService.delete_item(db, item_id)
    return {"message": "Inventory item deleted successfully"}
