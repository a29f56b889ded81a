"""Analytics report routes."""

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.api.deps import get_current_user, require_manager
from restaurant_crm.database import get_db
from restaurant_crm.models import MenuCategory, OrderType, User
from restaurant_crm.schemas import ExportQueuedResponse
from restaurant_crm.services import reports
from restaurant_crm.services.excel_manager import ExcelManager
from restaurant_crm.tasks import export_report_to_excel

router = APIRouter(prefix="/api/reports", tags=["Reports"])

GroupBy = Literal["day", "week", "month"]


@router.get("/sales", summary="Sales Report")
async def sales_report(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    group_by: GroupBy = Query("day"),
    order_type: Optional[OrderType] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    return await reports.sales_report(db, date_from, date_to, group_by, order_type)


@router.get("/customers", summary="Customer Analytics")
async def customer_report(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    return await reports.customer_report(db, date_from, date_to)


@router.get("/menu", summary="Menu Performance")
async def menu_report(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    category: Optional[MenuCategory] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    return await reports.menu_report(db, date_from, date_to, category)


@router.get("/reservations", summary="Reservation Analytics")
async def reservation_report(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    return await reports.reservation_report(db, date_from, date_to)


@router.get("/dashboard", summary="Dashboard Summary")
async def dashboard(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return await reports.dashboard(db)


@router.post(
    "/sales/export",
    response_model=ExportQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue Sales Export",
)
async def export_sales_report(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    group_by: GroupBy = Query("day"),
    order_type: Optional[OrderType] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    """Compute the sales report now and hand it to a worker for the Excel write."""
    report = await reports.sales_report(db, date_from, date_to, group_by, order_type)
    task = export_report_to_excel.delay("sales", jsonable_encoder(report))
    return ExportQueuedResponse(
        message="Sales report export queued",
        task_id=str(task.id),
        report="sales",
        filename=ExcelManager.report_path("sales").name,
    )
