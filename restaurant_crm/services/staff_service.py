"""
Staff Service

Staff accounts and user administration:
- CRUD with duplicate email checks
- Role and active-status changes guarded so the last active admin stays
- Per-staff order performance (overall and daily)

Author: Khalil Bannouri
Version: 3.0.0
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

import pandas as pd
from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from restaurant_crm.models import Order, OrderStatus, User, UserRole
from restaurant_crm.schemas import ProfileUpdate, StaffCreate, StaffUpdate
from restaurant_crm.services.common import paginate, report_window, to_columns

logger = logging.getLogger(__name__)


async def _active_admin_count(db: AsyncSession) -> int:
    return await db.scalar(
        select(func.count(User.id)).where(User.role == UserRole.ADMIN, User.is_active.is_(True))
    ) or 0


async def _ensure_not_last_admin(db: AsyncSession, user: User) -> None:
    if user.role == UserRole.ADMIN and user.is_active and await _active_admin_count(db) <= 1:
        raise ValidationError("Cannot remove the last active admin account")


async def _ensure_unique_email(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> None:
    query = select(User.id).where(User.email == email)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    if await db.scalar(query.limit(1)):
        raise ConflictError("User with this email already exists")


def _order_metrics(total, completed, cancelled, revenue, tips, avg_time) -> dict:
    total = total or 0
    revenue = float(revenue or 0.0)
    completed = int(completed or 0)
    return {
        "total_orders": total,
        "completed_orders": completed,
        "cancelled_orders": int(cancelled or 0),
        "total_revenue": round(revenue, 2),
        "total_tips": round(float(tips or 0.0), 2),
        "average_order_value": round(revenue / completed, 2) if completed else 0.0,
        "average_service_time": round(float(avg_time), 1) if avg_time else None,
        "completion_rate": round(completed / total * 100, 2) if total else 0.0,
    }


def _metric_columns():
    completed = Order.status == OrderStatus.COMPLETED
    return (
        func.count(Order.id),
        func.sum(case((completed, 1), else_=0)),
        func.sum(case((Order.status == OrderStatus.CANCELLED, 1), else_=0)),
        func.sum(case((completed, Order.total), else_=0.0)),
        func.sum(case((completed, Order.tip), else_=0.0)),
        func.avg(Order.actual_time),
    )


class StaffService:

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    @staticmethod
    async def get_user(db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id, populate_existing=True)
        if not user:
            raise NotFoundError("Staff member")
        return user

    @staticmethod
    async def list_users(
        db: AsyncSession,
        page: int,
        limit: int,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
    ) -> tuple[list[User], int]:
        query = select(User)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        if role:
            query = query.where(User.role == role)
        if is_active is not None:
            query = query.where(User.is_active.is_(is_active))

        query = query.order_by(User.name, User.id)
        return await paginate(db, query, page, limit)

    @staticmethod
    async def create_staff(db: AsyncSession, data: StaffCreate) -> User:
        await _ensure_unique_email(db, data.email)

        user = User(**to_columns(data), is_active=True)
        db.add(user)
        await db.commit()

        logger.info(f"👥 Staff member #{user.id} created: {user.email} ({user.role.value})")
        return await StaffService.get_user(db, user.id)

    @staticmethod
    async def update_staff(
        db: AsyncSession, user_id: int, data: StaffUpdate, current_user: User
    ) -> User:
        user = await StaffService.get_user(db, user_id)
        promoting = data.role == UserRole.ADMIN
        if current_user.role == UserRole.MANAGER and (user.role == UserRole.ADMIN or promoting):
            raise ForbiddenError("Managers cannot modify admin accounts")

        changes = to_columns(data, exclude_unset=True)
        if changes.get("email"):
            await _ensure_unique_email(db, changes["email"], exclude_id=user.id)

        demoting = "role" in changes and changes["role"] != UserRole.ADMIN
        deactivating = changes.get("is_active") is False
        if demoting or deactivating:
            await _ensure_not_last_admin(db, user)

        for key, value in changes.items():
            setattr(user, key, value)
        await db.commit()
        return await StaffService.get_user(db, user_id)

    @staticmethod
    async def delete_staff(db: AsyncSession, user_id: int) -> None:
        user = await StaffService.get_user(db, user_id)
        await _ensure_not_last_admin(db, user)

        await db.delete(user)
        await db.commit()
        logger.info(f"🗑️ Staff member #{user_id} deleted")

    @staticmethod
    async def update_profile(db: AsyncSession, user: User, data: ProfileUpdate) -> User:
        for key, value in to_columns(data, exclude_unset=True).items():
            setattr(user, key, value)
        await db.commit()
        return await StaffService.get_user(db, user.id)

    @staticmethod
    async def change_role(
        db: AsyncSession, user_id: int, role: UserRole, current_user: User
    ) -> User:
        if user_id == current_user.id:
            raise ValidationError("Cannot change your own role")

        user = await StaffService.get_user(db, user_id)
        if role != UserRole.ADMIN:
            await _ensure_not_last_admin(db, user)

        user.role = role
        await db.commit()
        logger.info(f"👥 User #{user_id} role changed to {role.value}")
        return await StaffService.get_user(db, user_id)

    @staticmethod
    async def change_status(
        db: AsyncSession, user_id: int, is_active: bool, current_user: User
    ) -> User:
        if user_id == current_user.id:
            raise ValidationError("Cannot change your own status")

        user = await StaffService.get_user(db, user_id)
        if not is_active:
            await _ensure_not_last_admin(db, user)

        user.is_active = is_active
        await db.commit()
        logger.info(f"👥 User #{user_id} {'activated' if is_active else 'deactivated'}")
        return await StaffService.get_user(db, user_id)

    # =========================================================================
    # PERFORMANCE
    # =========================================================================

    @staticmethod
    async def performance(
        db: AsyncSession,
        user_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> dict:
        """Order metrics for one staff member plus a daily breakdown of completed orders."""
        user = await StaffService.get_user(db, user_id)
        start, end = report_window(date_from, date_to)
        in_range = (Order.staff_id == user.id, Order.created_at >= start, Order.created_at < end)

        row = (await db.execute(select(*_metric_columns()).where(*in_range))).one()

        result = await db.execute(
            select(Order.created_at, Order.total).where(
                *in_range, Order.status == OrderStatus.COMPLETED
            )
        )
        frame = pd.DataFrame(result.all(), columns=["created_at", "total"])
        daily = []
        if not frame.empty:
            frame["day"] = pd.to_datetime(frame["created_at"]).dt.strftime("%Y-%m-%d")
            grouped = frame.groupby("day", sort=True)["total"].agg(["count", "sum"])
            daily = [
                {"date": day, "orders": int(values["count"]), "revenue": round(float(values["sum"]), 2)}
                for day, values in grouped.iterrows()
            ]

        return {
            "staff": {"id": user.id, "name": user.name, "role": user.role.value},
            "period": {"start": start.date().isoformat(), "end": (end - timedelta(days=1)).date().isoformat()},
            "overall": _order_metrics(*row),
            "daily": daily,
        }

    @staticmethod
    async def stats_overview(db: AsyncSession, now: Optional[datetime] = None) -> dict:
        """Head counts by role and the five best performers of the last 30 days."""
        now = now or datetime.now()

        by_role = await db.execute(
            select(
                User.role,
                func.count(User.id),
                func.sum(case((User.is_active.is_(True), 1), else_=0)),
            )
            .group_by(User.role)
            .order_by(User.role)
        )
        roles = [
            {"role": role.value, "total": total, "active": int(active or 0)}
            for role, total, active in by_role.all()
        ]

        completed = Order.status == OrderStatus.COMPLETED
        revenue = func.sum(case((completed, Order.total), else_=0.0)).label("revenue")
        top = await db.execute(
            select(
                User.id,
                User.name,
                User.role,
                func.count(Order.id).label("orders"),
                revenue,
            )
            .join(Order, Order.staff_id == User.id)
            .where(Order.created_at >= now - timedelta(days=30))
            .group_by(User.id, User.name, User.role)
            .order_by(revenue.desc(), User.id)
            .limit(5)
        )

        return {
            "total_staff": sum(r["total"] for r in roles),
            "active_staff": sum(r["active"] for r in roles),
            "by_role": roles,
            "top_performers": [
                {
                    "id": user_id,
                    "name": name,
                    "role": role.value,
                    "orders": orders,
                    "revenue": round(float(rev or 0.0), 2),
                }
                for user_id, name, role, orders, rev in top.all()
            ],
        }
