"""Menu routes."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.api.deps import PageParams, get_current_user, page_params, require_manager
from restaurant_crm.database import get_db
from restaurant_crm.models import MenuCategory, User
from restaurant_crm.schemas import (
    AvailabilityUpdate,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MessageResponse,
    paginated,
)
from restaurant_crm.services.menu_service import MenuService

router = APIRouter(prefix="/api/menu", tags=["Menu"])


def _items(items) -> list[MenuItemResponse]:
    return [MenuItemResponse.model_validate(item) for item in items]


@router.get("", summary="List Menu Items")
async def list_menu_items(
    category: Optional[MenuCategory] = Query(None),
    available: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: str = Query("name"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    items, total = await MenuService.list_items(
        db, paging.page, paging.limit, category, available, search, sort_by, sort_order
    )
    return paginated("menu_items", _items(items), paging.page, paging.limit, total)


@router.get("/stats/popular", summary="Most Ordered Items")
async def popular_items(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"menu_items": _items(await MenuService.popular(db, limit))}


@router.get("/stats/categories", summary="Category Statistics")
async def category_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"categories": await MenuService.category_stats(db)}


@router.get("/active", summary="Available Items")
async def active_items(
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"menu_items": _items(await MenuService.active(db, limit))}


@router.get("/out-of-stock", summary="Unavailable Items")
async def out_of_stock_items(
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"menu_items": _items(await MenuService.out_of_stock(db, limit))}


@router.get("/specials", summary="Current Specials")
async def special_items(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"menu_items": _items(await MenuService.specials(db))}


@router.get("/performance", summary="Item Performance")
async def item_performance(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"performance": await MenuService.performance(db, limit)}


@router.get("/{item_id}", summary="Get Menu Item")
async def get_menu_item(
    item_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    item = await MenuService.get_item(db, item_id)
    return {"menu_item": MenuItemResponse.model_validate(item)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create Menu Item")
async def create_menu_item(
    data: MenuItemCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    item = await MenuService.create_item(db, data)
    return {
        "message": "Menu item created successfully",
        "menu_item": MenuItemResponse.model_validate(item),
    }


@router.put("/{item_id}", summary="Update Menu Item")
async def update_menu_item(
    item_id: int,
    data: MenuItemUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    item = await MenuService.update_item(db, item_id, data)
    return {
        "message": "Menu item updated successfully",
        "menu_item": MenuItemResponse.model_validate(item),
    }


@router.delete("/{item_id}", response_model=MessageResponse, summary="Delete Menu Item")
async def delete_menu_item(
    item_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    await MenuService.delete_item(db, item_id)
    return {"message": "Menu item deleted successfully"}


@router.patch("/{item_id}/availability", summary="Toggle Availability")
async def set_availability(
    item_id: int,
    data: AvailabilityUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    item = await MenuService.set_availability(db, item_id, data.is_available)
    state = "available" if item.is_available else "unavailable"
    return {
        "message": f"Menu item marked as {state}",
        "menu_item": MenuItemResponse.model_validate(item),
    }
