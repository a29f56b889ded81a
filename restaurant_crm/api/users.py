"""User profile and account administration routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.api.deps import PageParams, get_current_user, page_params, require_admin
from restaurant_crm.database import get_db
from restaurant_crm.models import User
from restaurant_crm.schemas import (
    ActiveStatusUpdate,
    ProfileUpdate,
    RoleUpdate,
    UserResponse,
    paginated,
)
from restaurant_crm.services.staff_service import StaffService

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/profile", summary="Current User")
async def get_profile(user: User = Depends(get_current_user)):
    return {"user": UserResponse.model_validate(user)}


@router.put("/profile", summary="Update Current User")
async def update_profile(
    data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    user = await StaffService.update_profile(db, user, data)
    return {
        "message": "Profile updated successfully",
        "user": UserResponse.model_validate(user),
    }


@router.get("", summary="List Users")
async def list_users(
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    users, total = await StaffService.list_users(db, paging.page, paging.limit)
    items = [UserResponse.model_validate(u) for u in users]
    return paginated("users", items, paging.page, paging.limit, total)


@router.put("/{user_id}/role", summary="Change User Role")
async def change_role(
    user_id: int,
    data: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = await StaffService.change_role(db, user_id, data.role, current_user)
    return {
        "message": "User role updated successfully",
        "user": UserResponse.model_validate(user),
    }


@router.put("/{user_id}/status", summary="Activate or Deactivate User")
async def change_status(
    user_id: int,
    data: ActiveStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = await StaffService.change_status(db, user_id, data.is_active, current_user)
    state = "activated" if user.is_active else "deactivated"
    return {
        "message": f"User {state} successfully",
        "user": UserResponse.model_validate(user),
    }
