"""
Report Aggregators

Read-only analytics recomputed on every call:
- Sales (day / week / month buckets, per order type)
- Customers (acquisition, spend segments, top spenders, retention)
- Menu (top sellers, categories, profitability, low performers)
- Reservations (daily trends, peak hours, table utilization)
- Dashboard and inventory usage

Totals come from SQL aggregates; calendar bucketing and segmentation are
done in pandas so the same code runs on SQLite and PostgreSQL.

Author: Khalil Bannouri
Version: 3.0.0
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

import pandas as pd
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.core.exceptions import ValidationError
from restaurant_crm.models import (
    ACTIVE_RESERVATION_STATUSES,
    Customer,
    InventoryItem,
    MenuCategory,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    Reservation,
    ReservationStatus,
)
from restaurant_crm.services.common import day_bounds, percentage, report_window

logger = logging.getLogger(__name__)

PERIOD_FORMATS = {
    "day": "%Y-%m-%d",
    "week": "%Y-W%U",
    "month": "%Y-%m",
}

SPEND_BINS = [0, 100, 500, 1000, 5000]
SPEND_LABELS = ["0-99", "100-499", "500-999", "1000-4999"]
TOP_SPEND_LABEL = "5000+"


def _period(start: datetime, end: datetime) -> dict:
    return {
        "start": start.date().isoformat(),
        "end": (end - timedelta(days=1)).date().isoformat(),
    }


def _money(value) -> float:
    return round(float(value or 0.0), 2)


def bucket_labels(values: pd.Series, group_by: str) -> pd.Series:
    """Format timestamps into day, week (`%Y-W%U`) or month labels."""
    try:
        fmt = PERIOD_FORMATS[group_by]
    except KeyError:
        raise ValidationError(f"group_by must be one of: {', '.join(PERIOD_FORMATS)}")
    return pd.to_datetime(values).dt.strftime(fmt)


def spend_segments(spent: list[float]) -> list[dict]:
    """Customers grouped into the lifetime-spend buckets."""
    if not spent:
        return []

    frame = pd.DataFrame({"total_spent": spent})
    buckets = pd.cut(frame["total_spent"], bins=SPEND_BINS, labels=SPEND_LABELS, right=False)
    frame["segment"] = buckets.astype(object).where(buckets.notna(), TOP_SPEND_LABEL)

    grouped = frame.groupby("segment")["total_spent"].agg(["count", "sum", "mean"])
    segments = []
    for label in SPEND_LABELS + [TOP_SPEND_LABEL]:
        if label not in grouped.index:
            continue
        row = grouped.loc[label]
        segments.append({
            "segment": label,
            "count": int(row["count"]),
            "total_spent": _money(row["sum"]),
            "average_spent": _money(row["mean"]),
        })
    return segments


# =============================================================================
# SALES
# =============================================================================

async def sales_report(
    db: AsyncSession,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    group_by: str = "day",
    order_type: Optional[OrderType] = None,
) -> dict:
    """
    Completed-order revenue over a period.

    `average_order_value` is the reported total revenue divided by the number
    of completed orders, unrounded.
    """
    if group_by not in PERIOD_FORMATS:
        raise ValidationError(f"group_by must be one of: {', '.join(PERIOD_FORMATS)}")

    start, end = report_window(date_from, date_to)
    filters = [
        Order.status == OrderStatus.COMPLETED,
        Order.created_at >= start,
        Order.created_at < end,
    ]
    if order_type:
        filters.append(Order.order_type == order_type)

    count, revenue, tax, tips, largest, smallest = (
        await db.execute(
            select(
                func.count(Order.id),
                func.sum(Order.total),
                func.sum(Order.tax),
                func.sum(Order.tip),
                func.max(Order.total),
                func.min(Order.total),
            ).where(*filters)
        )
    ).one()

    rows = await db.execute(
        select(Order.created_at, Order.order_type, Order.total, Order.tax, Order.tip).where(*filters)
    )
    frame = pd.DataFrame(rows.all(), columns=["created_at", "order_type", "total", "tax", "tip"])

    buckets = []
    if not frame.empty:
        frame["period"] = bucket_labels(frame["created_at"], group_by)
        frame["order_type"] = [t.value for t in frame["order_type"]]

        grouped = frame.groupby("period", sort=True).agg(
            total_orders=("total", "size"),
            total_revenue=("total", "sum"),
            total_tax=("tax", "sum"),
            total_tips=("tip", "sum"),
        )
        by_type = frame.pivot_table(
            index="period", columns="order_type", values="total", aggfunc="sum", fill_value=0
        )

        for period, values in grouped.iterrows():
            orders = int(values["total_orders"])
            period_revenue = _money(values["total_revenue"])
            buckets.append({
                "period": period,
                "total_orders": orders,
                "total_revenue": period_revenue,
                "total_tax": _money(values["total_tax"]),
                "total_tips": _money(values["total_tips"]),
                "average_order_value": period_revenue / orders,
                "revenue_by_type": {
                    str(t): _money(by_type.loc[period, t]) for t in by_type.columns
                },
            })

    total_revenue = _money(revenue or 0.0)
    return {
        "period": _period(start, end),
        "group_by": group_by,
        "summary": {
            "total_orders": count,
            "total_revenue": total_revenue,
            "total_tax": _money(tax),
            "total_tips": _money(tips),
            "average_order_value": total_revenue / count if count else 0.0,
            "max_order_value": _money(largest),
            "min_order_value": _money(smallest),
        },
        "sales_data": buckets,
    }


# =============================================================================
# CUSTOMERS
# =============================================================================

async def customer_report(
    db: AsyncSession,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> dict:
    start, end = report_window(date_from, date_to)

    created = await db.execute(
        select(Customer.created_at).where(Customer.created_at >= start, Customer.created_at < end)
    )
    frame = pd.DataFrame(created.all(), columns=["created_at"])
    acquisition = []
    if not frame.empty:
        counts = bucket_labels(frame["created_at"], "day").value_counts().sort_index()
        acquisition = [{"date": day, "new_customers": int(n)} for day, n in counts.items()]

    spent = await db.execute(select(Customer.total_spent))
    segments = spend_segments([value for (value,) in spent.all()])

    top = await db.execute(
        select(Customer).order_by(Customer.total_spent.desc(), Customer.id).limit(10)
    )
    top_customers = [
        {
            "id": c.id,
            "name": c.name,
            "email": c.email,
            "total_spent": _money(c.total_spent),
            "visits": c.visits,
            "loyalty_points": c.loyalty_points,
            "tier": c.tier,
        }
        for c in top.scalars().all()
    ]

    total, returning, one_time, avg_visits, avg_spent, points = (
        await db.execute(
            select(
                func.count(Customer.id),
                func.sum(case((Customer.visits > 1, 1), else_=0)),
                func.sum(case((Customer.visits == 1, 1), else_=0)),
                func.avg(Customer.visits),
                func.avg(Customer.total_spent),
                func.sum(Customer.loyalty_points),
            )
        )
    ).one()
    returning = int(returning or 0)

    return {
        "period": _period(start, end),
        "acquisition": acquisition,
        "segments": segments,
        "top_customers": top_customers,
        "retention": {
            "total_customers": total,
            "returning_customers": returning,
            "one_time_customers": int(one_time or 0),
            "retention_rate": percentage(returning, total),
            "average_visits": round(float(avg_visits), 1) if avg_visits else 0.0,
            "average_spent": _money(avg_spent),
            "total_loyalty_points": int(points or 0),
        },
    }


# =============================================================================
# MENU
# =============================================================================

async def menu_report(
    db: AsyncSession,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    category: Optional[MenuCategory] = None,
    now: Optional[datetime] = None,
) -> dict:
    start, end = report_window(date_from, date_to)
    now = now or datetime.now()

    sold = [
        Order.status == OrderStatus.COMPLETED,
        Order.created_at >= start,
        Order.created_at < end,
    ]
    if category:
        sold.append(MenuItem.category == category)

    quantity = func.sum(OrderItem.quantity).label("total_quantity")
    line_revenue = func.sum(OrderItem.quantity * OrderItem.price)
    top = await db.execute(
        select(
            MenuItem.id,
            MenuItem.name,
            MenuItem.category,
            MenuItem.price,
            quantity,
            line_revenue,
            func.count(func.distinct(OrderItem.order_id)),
        )
        .select_from(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
        .where(*sold)
        .group_by(MenuItem.id, MenuItem.name, MenuItem.category, MenuItem.price)
        .order_by(quantity.desc(), MenuItem.id)
        .limit(20)
    )
    top_selling = [
        {
            "id": item_id,
            "name": name,
            "category": cat.value,
            "price": price,
            "total_quantity": int(qty),
            "total_revenue": _money(rev),
            "order_count": orders,
        }
        for item_id, name, cat, price, qty, rev, orders in top.all()
    ]

    categories = await db.execute(
        select(
            MenuItem.category,
            func.sum(OrderItem.quantity),
            line_revenue,
            func.count(func.distinct(OrderItem.menu_item_id)),
            func.avg(OrderItem.price),
            func.sum(OrderItem.quantity * func.coalesce(MenuItem.cost, 0.0)),
        )
        .select_from(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
        .where(*sold)
        .group_by(MenuItem.category)
        .order_by(line_revenue.desc())
    )
    category_performance = []
    for cat, qty, rev, unique_items, avg_price, cost in categories.all():
        rev = float(rev or 0.0)
        category_performance.append({
            "category": cat.value,
            "total_quantity": int(qty or 0),
            "total_revenue": _money(rev),
            "unique_items": unique_items,
            "average_price": _money(avg_price),
            "profit_margin": percentage(rev - float(cost or 0.0), rev),
        })

    costed = select(MenuItem).where(MenuItem.cost > 0)
    if category:
        costed = costed.where(MenuItem.category == category)
    profitability = []
    for item in (await db.execute(costed)).scalars().all():
        per_item = round(item.price - item.cost, 2)
        profitability.append({
            "id": item.id,
            "name": item.name,
            "category": item.category.value,
            "price": item.price,
            "cost": item.cost,
            "profit_margin": item.profit_margin,
            "profit_per_item": per_item,
            "times_ordered": item.times_ordered,
            "total_profit": round(per_item * item.times_ordered, 2),
        })
    profitability.sort(key=lambda row: row["total_profit"], reverse=True)

    weak = select(MenuItem).where(
        MenuItem.times_ordered < 5,
        MenuItem.created_at < now - timedelta(days=7),
    )
    if category:
        weak = weak.where(MenuItem.category == category)
    weak = weak.order_by(MenuItem.times_ordered, MenuItem.id).limit(10)
    low_performers = [
        {
            "id": item.id,
            "name": item.name,
            "category": item.category.value,
            "price": item.price,
            "times_ordered": item.times_ordered,
            "is_available": item.is_available,
        }
        for item in (await db.execute(weak)).scalars().all()
    ]

    return {
        "period": _period(start, end),
        "top_selling": top_selling,
        "category_performance": category_performance,
        "profitability": profitability[:20],
        "low_performers": low_performers,
    }


# =============================================================================
# RESERVATIONS
# =============================================================================

async def reservation_report(
    db: AsyncSession,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> dict:
    start, end = report_window(date_from, date_to)
    in_range = (Reservation.date >= start.date(), Reservation.date < end.date())

    def count_status(*statuses):
        return func.sum(case((Reservation.status.in_(statuses), 1), else_=0))

    trends = await db.execute(
        select(
            Reservation.date,
            func.count(Reservation.id),
            func.sum(Reservation.party_size),
            count_status(ReservationStatus.COMPLETED),
            count_status(ReservationStatus.CANCELLED),
            count_status(ReservationStatus.NO_SHOW),
        )
        .where(*in_range)
        .group_by(Reservation.date)
        .order_by(Reservation.date)
    )
    daily = [
        {
            "date": day.isoformat(),
            "total_reservations": total,
            "total_guests": int(guests or 0),
            "completed": int(completed or 0),
            "cancelled": int(cancelled or 0),
            "no_shows": int(no_shows or 0),
        }
        for day, total, guests, completed, cancelled, no_shows in trends.all()
    ]

    peak = await db.execute(
        select(Reservation.time, func.count(Reservation.id), func.avg(Reservation.party_size))
        .where(
            *in_range,
            Reservation.status.in_(
                (ReservationStatus.CONFIRMED, ReservationStatus.SEATED, ReservationStatus.COMPLETED)
            ),
        )
        .group_by(Reservation.time)
        .order_by(func.count(Reservation.id).desc(), Reservation.time)
    )
    peak_hours = [
        {"time": slot, "reservations": n, "average_party_size": round(float(avg), 1)}
        for slot, n, avg in peak.all()
    ]

    tables = await db.execute(
        select(
            Reservation.table_number,
            func.count(Reservation.id),
            func.sum(Reservation.party_size),
            func.avg(Reservation.party_size),
        )
        .where(*in_range, Reservation.table_number.is_not(None))
        .group_by(Reservation.table_number)
        .order_by(Reservation.table_number)
    )
    table_utilization = [
        {
            "table_number": table,
            "reservations": n,
            "total_guests": int(guests or 0),
            "average_party_size": round(float(avg), 1),
        }
        for table, n, guests, avg in tables.all()
    ]

    total, guests, avg_party, completed, cancelled, no_shows = (
        await db.execute(
            select(
                func.count(Reservation.id),
                func.sum(Reservation.party_size),
                func.avg(Reservation.party_size),
                count_status(ReservationStatus.COMPLETED),
                count_status(ReservationStatus.CANCELLED),
                count_status(ReservationStatus.NO_SHOW),
            ).where(*in_range)
        )
    ).one()

    return {
        "period": _period(start, end),
        "daily_trends": daily,
        "peak_hours": peak_hours,
        "table_utilization": table_utilization,
        "summary": {
            "total_reservations": total,
            "total_guests": int(guests or 0),
            "average_party_size": round(float(avg_party), 1) if avg_party else 0.0,
            "completed": int(completed or 0),
            "cancelled": int(cancelled or 0),
            "no_shows": int(no_shows or 0),
            "completion_rate": percentage(int(completed or 0), total),
            "no_show_rate": percentage(int(no_shows or 0), total),
        },
    }


# =============================================================================
# DASHBOARD
# =============================================================================

async def dashboard(db: AsyncSession, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now()
    today_start, today_end = day_bounds(now.date())
    month_start = today_start.replace(day=1)

    completed_today = (
        await db.execute(
            select(func.count(Order.id), func.sum(Order.total)).where(
                Order.status == OrderStatus.COMPLETED,
                Order.created_at >= today_start,
                Order.created_at < today_end,
            )
        )
    ).one()
    open_orders = await db.scalar(
        select(func.count(Order.id)).where(
            Order.status.not_in((OrderStatus.COMPLETED, OrderStatus.CANCELLED))
        )
    )
    reservations_today = await db.scalar(
        select(func.count(Reservation.id)).where(
            Reservation.date == now.date(),
            Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
        )
    )

    month_orders = (
        await db.execute(
            select(func.count(Order.id), func.sum(Order.total)).where(
                Order.status == OrderStatus.COMPLETED,
                Order.created_at >= month_start,
            )
        )
    ).one()
    new_customers = await db.scalar(
        select(func.count(Customer.id)).where(Customer.created_at >= month_start)
    )

    quantity = func.sum(OrderItem.quantity).label("quantity")
    top_items = await db.execute(
        select(MenuItem.id, MenuItem.name, quantity, func.sum(OrderItem.quantity * OrderItem.price))
        .select_from(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
        .where(Order.status == OrderStatus.COMPLETED, Order.created_at >= now - timedelta(days=30))
        .group_by(MenuItem.id, MenuItem.name)
        .order_by(quantity.desc(), MenuItem.id)
        .limit(5)
    )

    recent_orders = await db.execute(
        select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(5)
    )
    upcoming = await db.execute(
        select(Reservation)
        .where(Reservation.date >= now.date(), Reservation.status.in_(ACTIVE_RESERVATION_STATUSES))
        .order_by(Reservation.date, Reservation.time)
        .limit(5)
    )

    return {
        "today": {
            "completed_orders": completed_today[0],
            "revenue": _money(completed_today[1]),
            "reservations": reservations_today or 0,
            "open_orders": open_orders or 0,
        },
        "this_month": {
            "orders": month_orders[0],
            "revenue": _money(month_orders[1]),
            "new_customers": new_customers or 0,
        },
        "top_items": [
            {"id": item_id, "name": name, "quantity": int(qty), "revenue": _money(rev)}
            for item_id, name, qty, rev in top_items.all()
        ],
        "recent_orders": [
            {
                "id": o.id,
                "order_number": o.order_number,
                "customer": o.customer.name if o.customer else None,
                "status": o.status.value,
                "total": o.total,
                "created_at": o.created_at.isoformat(),
            }
            for o in recent_orders.scalars().all()
        ],
        "upcoming_reservations": [
            {
                "id": r.id,
                "customer": r.customer.name if r.customer else None,
                "date": r.date.isoformat(),
                "time": r.time,
                "party_size": r.party_size,
                "table_number": r.table_number,
                "status": r.status.value,
            }
            for r in upcoming.scalars().all()
        ],
    }


# =============================================================================
# INVENTORY
# =============================================================================

async def inventory_usage_report(
    db: AsyncSession,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> dict:
    """
    Estimated consumption from completed orders through the usage links.

    `days_remaining` is current quantity divided by the daily usage rate,
    or None when nothing linked was sold in the period.
    """
    start, end = report_window(date_from, date_to)
    days = max((end - start).days, 1)

    sold = await db.execute(
        select(OrderItem.menu_item_id, func.sum(OrderItem.quantity))
        .join(Order, OrderItem.order_id == Order.id)
        .where(
            Order.status == OrderStatus.COMPLETED,
            Order.created_at >= start,
            Order.created_at < end,
        )
        .group_by(OrderItem.menu_item_id)
    )
    servings = {menu_item_id: int(qty) for menu_item_id, qty in sold.all()}

    items = await db.execute(select(InventoryItem).order_by(InventoryItem.name))
    usage = []
    for item in items.scalars().all():
        used = sum(
            servings.get(link.menu_item_id, 0) * link.quantity_per_serving
            for link in item.usage_links
        )
        daily_rate = used / days
        usage.append({
            "id": item.id,
            "name": item.name,
            "unit": item.unit,
            "current_quantity": item.quantity,
            "estimated_usage": round(used, 2),
            "daily_usage": round(daily_rate, 2),
            "days_remaining": round(item.quantity / daily_rate, 1) if daily_rate > 0 else None,
            "is_low_stock": item.is_low_stock,
        })

    return {"period": _period(start, end), "days": days, "items": usage}
