"""Order routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.api.deps import PageParams, get_current_user, page_params
from restaurant_crm.database import get_db
from restaurant_crm.models import OrderStatus, OrderType, PaymentStatus, User
from restaurant_crm.schemas import (
    OrderCreate,
    OrderFeedbackCreate,
    OrderResponse,
    OrderStatusUpdate,
    PaymentUpdate,
    paginated,
)
from restaurant_crm.services.order_service import OrderService

router = APIRouter(prefix="/api/orders", tags=["Orders"])


@router.get("", summary="List Orders")
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    order_type: Optional[OrderType] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    customer_id: Optional[int] = Query(None),
    staff_id: Optional[int] = Query(None),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    orders, total = await OrderService.list_orders(
        db,
        paging.page,
        paging.limit,
        status=status_filter,
        order_type=order_type,
        payment_status=payment_status,
        date_from=date_from,
        date_to=date_to,
        customer_id=customer_id,
        staff_id=staff_id,
    )
    items = [OrderResponse.model_validate(o) for o in orders]
    return paginated("orders", items, paging.page, paging.limit, total)


@router.get("/stats/overview", summary="Order Statistics")
async def order_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"stats": await OrderService.stats_overview(db)}


@router.get("/{order_id}", summary="Get Order")
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    order = await OrderService.get_order(db, order_id)
    return {"order": OrderResponse.model_validate(order)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create Order")
async def create_order(
    data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Create a new order.

    Prices come from the menu, not from the request. The customer's visits,
    spend and loyalty points and each item's order count are updated in the
    same transaction.
    """
    order = await OrderService.create_order(db, data, staff=user)
    return {
        "message": "Order created successfully",
        "order": OrderResponse.model_validate(order),
    }


@router.put("/{order_id}/status", summary="Update Order Status")
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    order = await OrderService.update_status(db, order_id, data)
    return {
        "message": "Order status updated successfully",
        "order": OrderResponse.model_validate(order),
    }


@router.put("/{order_id}/payment", summary="Update Payment")
async def update_payment(
    order_id: int,
    data: PaymentUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    order = await OrderService.update_payment(db, order_id, data)
    return {
        "message": "Payment status updated successfully",
        "order": OrderResponse.model_validate(order),
    }


@router.post("/{order_id}/feedback", summary="Add Order Feedback")
async def add_order_feedback(
    order_id: int,
    data: OrderFeedbackCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    order = await OrderService.add_feedback(db, order_id, data)
    return {
        "message": "Feedback added successfully",
        "order": OrderResponse.model_validate(order),
    }
