"""
Customer Service

CRUD with duplicate email/phone checks, search, feedback and overview
statistics.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.core.exceptions import ConflictError, CustomerNotFound
from restaurant_crm.models import Customer, CustomerFeedback, CustomerStatus, loyalty_tier
from restaurant_crm.schemas import CustomerCreate, CustomerUpdate, FeedbackCreate
from restaurant_crm.services.common import paginate, to_columns

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "name": Customer.name,
    "email": Customer.email,
    "total_spent": Customer.total_spent,
    "visits": Customer.visits,
    "loyalty_points": Customer.loyalty_points,
    "last_visit": Customer.last_visit,
    "created_at": Customer.created_at,
}


async def _ensure_unique(
    db: AsyncSession, email: Optional[str], phone: Optional[str], exclude_id: Optional[int] = None
) -> None:
    clauses = []
    if email:
        clauses.append(Customer.email == email)
    if phone:
        clauses.append(Customer.phone == phone)
    if not clauses:
        return

    query = select(Customer.id).where(or_(*clauses))
    if exclude_id is not None:
        query = query.where(Customer.id != exclude_id)
    if await db.scalar(query.limit(1)):
        raise ConflictError("Customer already exists with this email or phone number")


class CustomerService:

    @staticmethod
    async def get_customer(db: AsyncSession, customer_id: int) -> Customer:
        result = await db.execute(
            select(Customer)
            .where(Customer.id == customer_id)
            .execution_options(populate_existing=True)
        )
        customer = result.scalar_one_or_none()
        if not customer:
            raise CustomerNotFound(customer_id)
        return customer

    @staticmethod
    async def list_customers(
        db: AsyncSession,
        page: int,
        limit: int,
        search: Optional[str] = None,
        status: Optional[CustomerStatus] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[Customer], int]:
        query = select(Customer)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Customer.name.ilike(pattern),
                    Customer.email.ilike(pattern),
                    Customer.phone.ilike(pattern),
                )
            )
        if status:
            query = query.where(Customer.status == status)

        column = SORTABLE_FIELDS.get(sort_by, Customer.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        query = query.order_by(ordering, Customer.id)
        return await paginate(db, query, page, limit)

    @staticmethod
    async def create_customer(db: AsyncSession, data: CustomerCreate) -> Customer:
        await _ensure_unique(db, data.email, data.phone)

        customer = Customer(**to_columns(data))
        db.add(customer)
        await db.commit()

        logger.info(f"👤 Customer #{customer.id} created: {customer.email}")
        return await CustomerService.get_customer(db, customer.id)

    @staticmethod
    async def update_customer(db: AsyncSession, customer_id: int, data: CustomerUpdate) -> Customer:
        customer = await CustomerService.get_customer(db, customer_id)
        changes = to_columns(data, exclude_unset=True)

        await _ensure_unique(db, changes.get("email"), changes.get("phone"), exclude_id=customer.id)

        for key, value in changes.items():
            setattr(customer, key, value)
        await db.commit()
        return await CustomerService.get_customer(db, customer_id)

    @staticmethod
    async def delete_customer(db: AsyncSession, customer_id: int) -> None:
        customer = await CustomerService.get_customer(db, customer_id)
        await db.delete(customer)
        await db.commit()
        logger.info(f"🗑️ Customer #{customer_id} deleted")

    @staticmethod
    async def add_feedback(db: AsyncSession, customer_id: int, data: FeedbackCreate) -> Customer:
        customer = await CustomerService.get_customer(db, customer_id)
        customer.feedback.append(
            CustomerFeedback(
                rating=data.rating,
                comment=data.comment,
                order_id=data.order_id,
                date=datetime.now(),
            )
        )
        await db.commit()
        return await CustomerService.get_customer(db, customer_id)

    @staticmethod
    async def stats_overview(db: AsyncSession) -> dict:
        row = (
            await db.execute(
                select(
                    func.count(Customer.id),
                    func.sum(case((Customer.status == CustomerStatus.ACTIVE, 1), else_=0)),
                    func.sum(case((Customer.status == CustomerStatus.VIP, 1), else_=0)),
                    func.coalesce(func.sum(Customer.total_spent), 0.0),
                    func.avg(Customer.total_spent),
                    func.avg(Customer.visits),
                    func.coalesce(func.sum(Customer.loyalty_points), 0),
                )
            )
        ).one()
        total, active, vip, revenue, avg_spent, avg_visits, points = row

        tiers = {"Bronze": 0, "Silver": 0, "Gold": 0, "VIP": 0}
        spent = await db.execute(select(Customer.total_spent))
        for (value,) in spent.all():
            tiers[loyalty_tier(value)] += 1

        return {
            "total_customers": total,
            "active_customers": int(active or 0),
            "vip_customers": int(vip or 0),
            "total_revenue": round(float(revenue), 2),
            "average_spent": round(float(avg_spent), 2) if avg_spent else 0.0,
            "average_visits": round(float(avg_visits), 1) if avg_visits else 0.0,
            "total_loyalty_points": int(points),
            "tiers": tiers,
        }
