"""
                        Services Module

Business logic behind the API routers. Routers stay thin: they resolve
the current user, call a service and shape the response.

Services:
    - order_service: order creation, transitions, feedback
    - reservation_service: booking conflicts, availability
    - customer_service / menu_service / staff_service / inventory_service: CRUD
    - reports: analytics aggregations
    - excel_manager: locked Excel exports
"""

from restaurant_crm.services.customer_service import CustomerService
from restaurant_crm.services.excel_manager import ExcelManager
from restaurant_crm.services.inventory_service import InventoryService
from restaurant_crm.services.menu_service import MenuService
from restaurant_crm.services.order_service import OrderService
from restaurant_crm.services.reservation_service import ReservationService
from restaurant_crm.services.staff_service import StaffService

__all__ = [
    "CustomerService",
    "ExcelManager",
    "InventoryService",
    "MenuService",
    "OrderService",
    "ReservationService",
    "StaffService",
]
