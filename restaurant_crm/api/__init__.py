"""
API routers, one per resource, all mounted under `/api`.
"""

from fastapi import APIRouter

from restaurant_crm.api import customers, inventory, menu, orders, reports, reservations, staff, users

api_router = APIRouter()
for module in (customers, menu, orders, reservations, staff, users, inventory, reports):
    api_router.include_router(module.router)

__all__ = ["api_router"]
