"""Reservation routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.api.deps import PageParams, get_current_user, page_params, require_manager
from restaurant_crm.database import get_db
from restaurant_crm.models import ReservationStatus, User
from restaurant_crm.schemas import (
    MessageResponse,
    ReservationCreate,
    ReservationResponse,
    ReservationUpdate,
    paginated,
)
from restaurant_crm.services.reservation_service import ReservationService

router = APIRouter(prefix="/api/reservations", tags=["Reservations"])


@router.get("", summary="List Reservations")
async def list_reservations(
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    day: Optional[date] = Query(None, alias="date"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    customer_id: Optional[int] = Query(None),
    table_number: Optional[int] = Query(None),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    reservations, total = await ReservationService.list_reservations(
        db,
        paging.page,
        paging.limit,
        status=status_filter,
        day=day,
        date_from=date_from,
        date_to=date_to,
        customer_id=customer_id,
        table_number=table_number,
    )
    items = [ReservationResponse.model_validate(r) for r in reservations]
    return paginated("reservations", items, paging.page, paging.limit, total)


@router.get("/stats/overview", summary="Reservation Statistics")
async def reservation_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"stats": await ReservationService.stats_overview(db)}


@router.get("/availability/{day}", summary="Table Availability")
async def availability(
    day: date,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"availability": await ReservationService.availability(db, day)}


@router.get("/{reservation_id}", summary="Get Reservation")
async def get_reservation(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    reservation = await ReservationService.get_reservation(db, reservation_id)
    return {"reservation": ReservationResponse.model_validate(reservation)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create Reservation")
async def create_reservation(
    data: ReservationCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    reservation = await ReservationService.create_reservation(db, data, created_by=user)
    return {
        "message": "Reservation created successfully",
        "reservation": ReservationResponse.model_validate(reservation),
    }


@router.put("/{reservation_id}", summary="Update Reservation")
async def update_reservation(
    reservation_id: int,
    data: ReservationUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    reservation = await ReservationService.update_reservation(db, reservation_id, data)
    return {
        "message": "Reservation updated successfully",
        "reservation": ReservationResponse.model_validate(reservation),
    }


@router.delete("/{reservation_id}", response_model=MessageResponse, summary="Delete Reservation")
async def delete_reservation(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    await ReservationService.delete_reservation(db, reservation_id)
    return {"message": "Reservation deleted successfully"}
