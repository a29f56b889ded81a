"""
Shared helpers for the service layer: request-model to column mapping,
pagination and report date windows.
"""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.core.config import get_settings


def to_columns(data: BaseModel, *, exclude_unset: bool = False, exclude=()) -> dict[str, Any]:
    """
    Flatten a request model into column values.

    Nested models become plain dicts for JSON columns and enum lists become
    lists of their values.
    """
    names = data.model_fields_set if exclude_unset else type(data).model_fields.keys()
    payload = {}
    for name in names:
        if name in exclude:
            continue
        value = getattr(data, name)
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        elif isinstance(value, list):
            value = [v.value if isinstance(v, Enum) else v for v in value]
        payload[name] = value
    return payload


async def paginate(
    db: AsyncSession, query, page: int, limit: int
) -> Tuple[list, int]:
    """Run `query` for one page and return `(rows, total)`."""
    total = await db.scalar(select(func.count()).select_from(query.order_by(None).subquery()))
    result = await db.execute(query.offset((page - 1) * limit).limit(limit))
    return list(result.scalars().all()), total or 0


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Half-open `[start, end)` datetimes covering one calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def report_window(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    days: Optional[int] = None,
) -> Tuple[datetime, datetime]:
    """
    Resolve a report date range to half-open datetimes.

    Missing bounds default to the trailing `report_default_days` ending today.
    """
    if days is None:
        days = get_settings().report_default_days
    end_day = date_to or date.today()
    start_day = date_from or (end_day - timedelta(days=days))
    return datetime.combine(start_day, time.min), day_bounds(end_day)[1]


def percentage(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0
