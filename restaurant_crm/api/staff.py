"""Staff management routes (admin and manager only)."""

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.api.deps import PageParams, page_params, require_admin, require_manager
from restaurant_crm.database import get_db
from restaurant_crm.models import User, UserRole
from restaurant_crm.schemas import (
    MessageResponse,
    StaffCreate,
    StaffUpdate,
    UserResponse,
    paginated,
)
from restaurant_crm.services.staff_service import StaffService

router = APIRouter(prefix="/api/staff", tags=["Staff"])


@router.get("", summary="List Staff")
async def list_staff(
    search: Optional[str] = Query(None),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    users, total = await StaffService.list_users(
        db, paging.page, paging.limit, search, role, is_active
    )
    items = [UserResponse.model_validate(u) for u in users]
    return paginated("staff", items, paging.page, paging.limit, total)


@router.get("/stats/overview", summary="Staff Statistics")
async def staff_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    return {"stats": await StaffService.stats_overview(db)}


@router.get("/{user_id}", summary="Get Staff Member")
async def get_staff(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    """Staff member with their last 30 days of order performance."""
    user = await StaffService.get_user(db, user_id)
    today = date.today()
    performance = await StaffService.performance(
        db, user.id, date_from=today - timedelta(days=30), date_to=today
    )
    return {
        "staff": UserResponse.model_validate(user),
        "performance": performance["overall"],
    }


@router.get("/{user_id}/performance", summary="Staff Performance")
async def staff_performance(
    user_id: int,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    return {"performance": await StaffService.performance(db, user_id, date_from, date_to)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create Staff Member")
async def create_staff(
    data: StaffCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    user = await StaffService.create_staff(db, data)
    return {
        "message": "Staff member created successfully",
        "staff": UserResponse.model_validate(user),
    }


@router.put("/{user_id}", summary="Update Staff Member")
async def update_staff(
    user_id: int,
    data: StaffUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    user = await StaffService.update_staff(db, user_id, data, current_user)
    return {
        "message": "Staff member updated successfully",
        "staff": UserResponse.model_validate(user),
    }


@router.delete("/{user_id}", response_model=MessageResponse, summary="Delete Staff Member")
async def delete_staff(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    await StaffService.delete_staff(db, user_id)
    return {"message": "Staff member deleted successfully"}
