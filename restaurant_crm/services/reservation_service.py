"""
Reservation Service

Table bookings:
- Conflict detection against active reservations on the same table
- Create / update / delete with status side effects
- Availability grid per day and overview statistics

Author: Khalil Bannouri
Version: 3.0.0
"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.core.config import get_settings
from restaurant_crm.core.exceptions import (
    CustomerNotFound,
    InvalidStatusTransition,
    NotFoundError,
    TableConflict,
)
from restaurant_crm.models import (
    ACTIVE_RESERVATION_STATUSES,
    Customer,
    Reservation,
    ReservationStatus,
    User,
)
from restaurant_crm.schemas import ReservationCreate, ReservationUpdate
from restaurant_crm.services.common import paginate, to_columns

logger = logging.getLogger(__name__)

VALID_STATUS_TRANSITIONS = {
    ReservationStatus.PENDING: {
        ReservationStatus.CONFIRMED,
        ReservationStatus.SEATED,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    },
    ReservationStatus.CONFIRMED: {
        ReservationStatus.SEATED,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    },
    ReservationStatus.SEATED: {ReservationStatus.COMPLETED},
    ReservationStatus.COMPLETED: set(),
    ReservationStatus.CANCELLED: set(),
    ReservationStatus.NO_SHOW: set(),
}


def within_booking_window(existing: str, requested: str) -> bool:
    """
    Loose overlap test used when booking: hours within 2 and minutes within 30.

    Hour and minute deltas are compared independently, so 18:00 vs 20:00
    overlaps while 18:00 vs 18:45 does not.
    """
    existing_hour, existing_minute = (int(part) for part in existing.split(":"))
    requested_hour, requested_minute = (int(part) for part in requested.split(":"))
    return (
        abs(existing_hour - requested_hour) <= 2
        and abs(existing_minute - requested_minute) <= 30
    )


async def find_conflict(
    db: AsyncSession,
    table_number: int,
    day: date,
    time: str,
    exclude_id: Optional[int] = None,
    use_window: bool = False,
) -> Optional[Reservation]:
    """Return an active reservation holding the table at that slot, if any."""
    query = select(Reservation).where(
        Reservation.table_number == table_number,
        Reservation.date == day,
        Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
    )
    if exclude_id is not None:
        query = query.where(Reservation.id != exclude_id)

    for existing in (await db.execute(query)).scalars():
        if existing.time == time:
            return existing
        if use_window and within_booking_window(existing.time, time):
            return existing
    return None


class ReservationService:

    @staticmethod
    async def get_reservation(db: AsyncSession, reservation_id: int) -> Reservation:
        result = await db.execute(
            select(Reservation)
            .where(Reservation.id == reservation_id)
            .execution_options(populate_existing=True)
        )
        reservation = result.scalar_one_or_none()
        if not reservation:
            raise NotFoundError("Reservation")
        return reservation

    @staticmethod
    async def list_reservations(
        db: AsyncSession,
        page: int,
        limit: int,
        status: Optional[ReservationStatus] = None,
        day: Optional[date] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        customer_id: Optional[int] = None,
        table_number: Optional[int] = None,
    ) -> tuple[list[Reservation], int]:
        query = select(Reservation)
        if status:
            query = query.where(Reservation.status == status)
        if day:
            query = query.where(Reservation.date == day)
        else:
            if date_from:
                query = query.where(Reservation.date >= date_from)
            if date_to:
                query = query.where(Reservation.date <= date_to)
        if customer_id:
            query = query.where(Reservation.customer_id == customer_id)
        if table_number:
            query = query.where(Reservation.table_number == table_number)

        query = query.order_by(Reservation.date, Reservation.time, Reservation.id)
        return await paginate(db, query, page, limit)

    @staticmethod
    async def create_reservation(
        db: AsyncSession, data: ReservationCreate, created_by: Optional[User] = None
    ) -> Reservation:
        """
        Book a table.

        Raises:
            CustomerNotFound: unknown customer
            TableConflict: the table is held near that time on that day
        """
        customer = await db.get(Customer, data.customer)
        if not customer:
            raise CustomerNotFound(data.customer)

        if data.table_number:
            conflict = await find_conflict(
                db, data.table_number, data.date, data.time, use_window=True
            )
            if conflict:
                logger.info(
                    f"Table {data.table_number} conflict on {data.date} at {data.time} "
                    f"(reservation #{conflict.id} at {conflict.time})"
                )
                raise TableConflict(data.table_number, data.date, data.time)

        reservation = Reservation(
            **to_columns(data, exclude={"customer"}),
            customer_id=customer.id,
            created_by_id=created_by.id if created_by else None,
        )
        db.add(reservation)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise TableConflict(data.table_number, data.date, data.time)

        logger.info(
            f"📅 Reservation #{reservation.id} created: {reservation.date} {reservation.time}, "
            f"party of {reservation.party_size}"
        )
        return await ReservationService.get_reservation(db, reservation.id)

    @staticmethod
    async def update_reservation(
        db: AsyncSession,
        reservation_id: int,
        data: ReservationUpdate,
        now: Optional[datetime] = None,
    ) -> Reservation:
        reservation = await ReservationService.get_reservation(db, reservation_id)
        changes = to_columns(data, exclude_unset=True)
        new_status = changes.get("status")

        table_number = changes.get("table_number", reservation.table_number)
        day = changes.get("date", reservation.date)
        time = changes.get("time", reservation.time)

        moving = any(key in changes for key in ("date", "time", "table_number"))
        if moving and new_status != ReservationStatus.CANCELLED:
            if table_number and await find_conflict(
                db, table_number, day, time, exclude_id=reservation.id
            ):
                raise TableConflict(table_number, day, time)

        if new_status and new_status != reservation.status:
            allowed = VALID_STATUS_TRANSITIONS.get(reservation.status, set())
            if get_settings().enforce_status_transitions and new_status not in allowed:
                raise InvalidStatusTransition("reservation", reservation.status, new_status)

            now = now or datetime.now()
            if new_status == ReservationStatus.SEATED and not reservation.arrival_time:
                reservation.arrival_time = now
            elif new_status == ReservationStatus.COMPLETED and not reservation.departure_time:
                reservation.departure_time = now
                if reservation.arrival_time:
                    elapsed = now - reservation.arrival_time
                    reservation.actual_duration = round(elapsed.total_seconds() / 60)

        for key, value in changes.items():
            setattr(reservation, key, value)

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise TableConflict(table_number, day, time)

        logger.info(f"📅 Reservation #{reservation.id} updated ({reservation.status.value})")
        return await ReservationService.get_reservation(db, reservation_id)

    @staticmethod
    async def delete_reservation(db: AsyncSession, reservation_id: int) -> None:
        reservation = await ReservationService.get_reservation(db, reservation_id)
        await db.delete(reservation)
        await db.commit()
        logger.info(f"🗑️ Reservation #{reservation_id} deleted")

    @staticmethod
    async def availability(db: AsyncSession, day: date) -> dict:
        """Free tables per configured time slot on `day`."""
        settings = get_settings()
        result = await db.execute(
            select(Reservation.time, Reservation.table_number).where(
                Reservation.date == day,
                Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
                Reservation.table_number.is_not(None),
            )
        )
        reserved: dict[str, set[int]] = {}
        for time, table_number in result.all():
            reserved.setdefault(time, set()).add(table_number)

        tables = range(1, settings.total_tables + 1)
        slots = []
        for slot in settings.time_slots_list:
            free = [t for t in tables if t not in reserved.get(slot, set())]
            slots.append({
                "time": slot,
                "available_tables": free,
                "available_count": len(free),
                "reserved_count": settings.total_tables - len(free),
            })

        return {"date": day.isoformat(), "total_tables": settings.total_tables, "slots": slots}

    @staticmethod
    async def stats_overview(db: AsyncSession, today: Optional[date] = None) -> dict:
        today = today or date.today()

        def count_status(status: ReservationStatus):
            return func.sum(case((Reservation.status == status, 1), else_=0))

        row = (
            await db.execute(
                select(
                    func.count(Reservation.id),
                    count_status(ReservationStatus.PENDING),
                    count_status(ReservationStatus.CONFIRMED),
                    count_status(ReservationStatus.COMPLETED),
                    count_status(ReservationStatus.CANCELLED),
                    count_status(ReservationStatus.NO_SHOW),
                    func.avg(Reservation.party_size),
                )
            )
        ).one()
        total, pending, confirmed, completed, cancelled, no_shows, avg_party = row

        todays = await db.scalar(
            select(func.count(Reservation.id)).where(Reservation.date == today)
        )
        upcoming = await db.scalar(
            select(func.count(Reservation.id)).where(
                Reservation.date >= today,
                Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
            )
        )

        return {
            "total_reservations": total,
            "pending": int(pending or 0),
            "confirmed": int(confirmed or 0),
            "completed": int(completed or 0),
            "cancelled": int(cancelled or 0),
            "no_shows": int(no_shows or 0),
            "average_party_size": round(float(avg_party), 1) if avg_party else 0.0,
            "today": todays or 0,
            "upcoming": upcoming or 0,
        }
