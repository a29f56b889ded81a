"""
Order Service

Order lifecycle for the restaurant:
- Creation with customer/menu validation, server-side pricing and
  per-day order numbers
- Customer and menu-item counter updates in the same transaction
- Status and payment transitions
- Order feedback and overview statistics

Author: Khalil Bannouri
Version: 3.0.0
"""

import logging
import math
from datetime import datetime, date
from typing import Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.core.config import get_settings
from restaurant_crm.core.exceptions import (
    ConflictError,
    CustomerNotFound,
    InvalidStatusTransition,
    MenuItemUnavailable,
    NotFoundError,
)
from restaurant_crm.models import (
    Customer,
    CustomerFeedback,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    PaymentStatus,
    User,
)
from restaurant_crm.schemas import (
    OrderCreate,
    OrderFeedbackCreate,
    OrderStatusUpdate,
    PaymentUpdate,
)
from restaurant_crm.services.common import day_bounds, paginate

logger = logging.getLogger(__name__)

TAX_RATE = 0.08

# Allowed next states for each order status
VALID_STATUS_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.SERVED, OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.SERVED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


def calculate_totals(lines: list[tuple[float, int]]) -> dict[str, float]:
    """
    Price a list of `(unit_price, quantity)` lines.

    Returns:
        dict with subtotal, tax (8%) and total, each rounded to cents
    """
    subtotal = round(sum(price * quantity for price, quantity in lines), 2)
    tax = round(subtotal * TAX_RATE, 2)
    return {"subtotal": subtotal, "tax": tax, "total": round(subtotal + tax, 2)}


async def generate_order_number(db: AsyncSession, now: datetime) -> str:
    """
    Next `ORD-YYYYMMDD-NNN` for the calendar day of `now`.

    NNN is one more than the number of orders already created that day,
    so the sequence restarts at 001 every day.
    """
    start, end = day_bounds(now.date())
    count = await db.scalar(
        select(func.count(Order.id)).where(Order.created_at >= start, Order.created_at < end)
    )
    return f"ORD-{now:%Y%m%d}-{(count or 0) + 1:03d}"


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    if current == requested:
        return True
    return requested in VALID_STATUS_TRANSITIONS.get(current, set())


class OrderService:
    """Business logic for orders. All methods commit their own changes."""

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int) -> Order:
        result = await db.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order")
        return order

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        page: int,
        limit: int,
        status: Optional[OrderStatus] = None,
        order_type: Optional[OrderType] = None,
        payment_status: Optional[PaymentStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        customer_id: Optional[int] = None,
        staff_id: Optional[int] = None,
    ) -> tuple[list[Order], int]:
        query = select(Order)
        if status:
            query = query.where(Order.status == status)
        if order_type:
            query = query.where(Order.order_type == order_type)
        if payment_status:
            query = query.where(Order.payment_status == payment_status)
        if date_from:
            query = query.where(Order.created_at >= day_bounds(date_from)[0])
        if date_to:
            query = query.where(Order.created_at < day_bounds(date_to)[1])
        if customer_id:
            query = query.where(Order.customer_id == customer_id)
        if staff_id:
            query = query.where(Order.staff_id == staff_id)

        query = query.order_by(Order.created_at.desc(), Order.id.desc())
        return await paginate(db, query, page, limit)

    @staticmethod
    async def create_order(
        db: AsyncSession,
        data: OrderCreate,
        staff: Optional[User] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        """
        Create an order and update customer and menu counters atomically.

        Raises:
            CustomerNotFound: unknown customer
            MenuItemUnavailable: any item missing or not available
            ConflictError: no unique order number after the configured retries
        """
        retries = max(get_settings().order_number_retries, 1)

        for attempt in range(1, retries + 1):
            try:
                order = await OrderService._create_once(db, data, staff, now or datetime.now())
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.warning(f"⚠️ Order number collision (attempt {attempt}/{retries})")
                continue
            except Exception:
                await db.rollback()
                raise

            logger.info(
                f"🧾 Order {order.order_number} created: "
                f"customer #{order.customer_id}, total {order.total:.2f}"
            )
            return await OrderService.get_order(db, order.id)

        raise ConflictError("Could not allocate a unique order number, please retry")

    @staticmethod
    async def _create_once(
        db: AsyncSession, data: OrderCreate, staff: Optional[User], now: datetime
    ) -> Order:
        customer = await db.get(Customer, data.customer)
        if not customer:
            raise CustomerNotFound(data.customer)

        requested_ids = {line.menu_item for line in data.items}
        result = await db.execute(
            select(MenuItem).where(
                MenuItem.id.in_(requested_ids),
                MenuItem.is_available.is_(True),
            )
        )
        menu = {item.id: item for item in result.scalars().all()}
        missing = requested_ids - menu.keys()
        if missing:
            logger.info(f"Order rejected, unavailable menu items: {sorted(missing)}")
            raise MenuItemUnavailable(sorted(missing))

        # The stored menu price wins over whatever the client sent
        lines = [(menu[line.menu_item].price, line.quantity) for line in data.items]
        totals = calculate_totals(lines)

        order = Order(
            order_number=await generate_order_number(db, now),
            customer=customer,
            staff=staff,
            order_type=data.order_type,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            subtotal=totals["subtotal"],
            tax=totals["tax"],
            tip=0.0,
            discount_amount=0.0,
            total=totals["total"],
            table_number=data.table_number,
            delivery_address=(
                data.delivery_address.model_dump(mode="json") if data.delivery_address else None
            ),
            estimated_time=data.estimated_time,
            notes=data.notes,
            created_at=now,
        )
        for line in data.items:
            order.items.append(
                OrderItem(
                    menu_item=menu[line.menu_item],
                    quantity=line.quantity,
                    price=menu[line.menu_item].price,
                    special_instructions=line.special_instructions,
                )
            )
        db.add(order)
        await db.flush()

        await db.execute(
            update(Customer)
            .where(Customer.id == customer.id)
            .values(
                visits=Customer.visits + 1,
                total_spent=Customer.total_spent + order.total,
                loyalty_points=Customer.loyalty_points + math.floor(order.total),
                last_visit=now,
            )
        )

        quantities: dict[int, int] = {}
        for line in data.items:
            quantities[line.menu_item] = quantities.get(line.menu_item, 0) + line.quantity
        for menu_item_id, quantity in quantities.items():
            await db.execute(
                update(MenuItem)
                .where(MenuItem.id == menu_item_id)
                .values(times_ordered=MenuItem.times_ordered + quantity)
            )

        return order

    @staticmethod
    async def update_status(db: AsyncSession, order_id: int, data: OrderStatusUpdate) -> Order:
        order = await OrderService.get_order(db, order_id)

        if get_settings().enforce_status_transitions and not can_transition(
            order.status, data.status
        ):
            logger.info(
                f"Rejected order {order.order_number} transition "
                f"{order.status.value} → {data.status.value}"
            )
            raise InvalidStatusTransition("order", order.status, data.status)

        order.status = data.status
        if data.actual_time is not None:
            order.actual_time = data.actual_time

        await db.commit()
        logger.info(f"📦 Order {order.order_number} is now {order.status.value}")
        return await OrderService.get_order(db, order_id)

    @staticmethod
    async def update_payment(db: AsyncSession, order_id: int, data: PaymentUpdate) -> Order:
        order = await OrderService.get_order(db, order_id)

        order.payment_status = data.payment_status
        if data.payment_method is not None:
            order.payment_method = data.payment_method
        if data.tip is not None:
            order.tip = round(data.tip, 2)
            order.recalculate_total()

        await db.commit()
        logger.info(
            f"💳 Order {order.order_number} payment {order.payment_status.value}, "
            f"total {order.total:.2f}"
        )
        return await OrderService.get_order(db, order_id)

    @staticmethod
    async def add_feedback(
        db: AsyncSession, order_id: int, data: OrderFeedbackCreate, now: Optional[datetime] = None
    ) -> Order:
        """Store feedback on the order and copy it to the customer's feedback list."""
        order = await OrderService.get_order(db, order_id)
        now = now or datetime.now()

        order.feedback_rating = data.rating
        order.feedback_comment = data.comment
        order.feedback_date = now

        if order.customer_id:
            db.add(
                CustomerFeedback(
                    customer_id=order.customer_id,
                    rating=data.rating,
                    comment=data.comment,
                    date=now,
                    order_id=order.id,
                )
            )

        await db.commit()
        return await OrderService.get_order(db, order_id)

    @staticmethod
    async def stats_overview(db: AsyncSession, today: Optional[date] = None) -> dict:
        """Totals across all orders, today's activity and a per-type breakdown."""
        start, end = day_bounds(today or date.today())

        overall = (
            await db.execute(
                select(
                    func.count(Order.id),
                    func.coalesce(func.sum(Order.total), 0.0),
                    func.sum(case((Order.status == OrderStatus.COMPLETED, 1), else_=0)),
                    func.sum(case((Order.status == OrderStatus.PENDING, 1), else_=0)),
                    func.sum(case((Order.status == OrderStatus.CANCELLED, 1), else_=0)),
                )
            )
        ).one()
        total_orders, total_revenue, completed, pending, cancelled = overall

        todays = (
            await db.execute(
                select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0.0)).where(
                    Order.created_at >= start, Order.created_at < end
                )
            )
        ).one()

        by_type = await db.execute(
            select(Order.order_type, func.count(Order.id), func.coalesce(func.sum(Order.total), 0.0))
            .group_by(Order.order_type)
            .order_by(Order.order_type)
        )

        return {
            "overall": {
                "total_orders": total_orders,
                "total_revenue": round(float(total_revenue), 2),
                "average_order_value": (
                    round(float(total_revenue) / total_orders, 2) if total_orders else 0.0
                ),
                "completed_orders": int(completed or 0),
                "pending_orders": int(pending or 0),
                "cancelled_orders": int(cancelled or 0),
            },
            "today": {
                "orders": todays[0],
                "revenue": round(float(todays[1]), 2),
            },
            "by_type": [
                {"order_type": order_type.value, "count": count, "revenue": round(float(revenue), 2)}
                for order_type, count, revenue in by_type.all()
            ],
        }
