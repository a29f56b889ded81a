"""Customer routes."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_crm.api.deps import PageParams, get_current_user, page_params, require_manager
from restaurant_crm.database import get_db
from restaurant_crm.models import CustomerStatus, User
from restaurant_crm.schemas import (
    CustomerCreate,
    CustomerResponse,
    CustomerUpdate,
    FeedbackCreate,
    MessageResponse,
    paginated,
)
from restaurant_crm.services.customer_service import CustomerService

router = APIRouter(prefix="/api/customers", tags=["Customers"])


@router.get("", summary="List Customers")
async def list_customers(
    search: Optional[str] = Query(None),
    status_filter: Optional[CustomerStatus] = Query(None, alias="status"),
    sort_by: str = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    customers, total = await CustomerService.list_customers(
        db, paging.page, paging.limit, search, status_filter, sort_by, sort_order
    )
    items = [CustomerResponse.model_validate(c) for c in customers]
    return paginated("customers", items, paging.page, paging.limit, total)


@router.get("/stats/overview", summary="Customer Statistics")
async def customer_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return {"stats": await CustomerService.stats_overview(db)}


@router.get("/{customer_id}", summary="Get Customer")
async def get_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    customer = await CustomerService.get_customer(db, customer_id)
    return {"customer": CustomerResponse.model_validate(customer)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create Customer")
async def create_customer(
    data: CustomerCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    customer = await CustomerService.create_customer(db, data)
    return {
        "message": "Customer created successfully",
        "customer": CustomerResponse.model_validate(customer),
    }


@router.put("/{customer_id}", summary="Update Customer")
async def update_customer(
    customer_id: int,
    data: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    customer = await CustomerService.update_customer(db, customer_id, data)
    return {
        "message": "Customer updated successfully",
        "customer": CustomerResponse.model_validate(customer),
    }


@router.delete("/{customer_id}", response_model=MessageResponse, summary="Delete Customer")
async def delete_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_manager),
):
    await CustomerService.delete_customer(db, customer_id)
    return {"message": "Customer deleted successfully"}


@router.post("/{customer_id}/feedback", summary="Add Customer Feedback")
async def add_feedback(
    customer_id: int,
    data: FeedbackCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    customer = await CustomerService.add_feedback(db, customer_id, data)
    return {
        "message": "Feedback added successfully",
        "customer": CustomerResponse.model_validate(customer),
    }
