"""
Domain exceptions for the restaurant backend.

Services raise these; the FastAPI exception handlers in `main.py` turn
them into `{"message": ...}` responses with the carried status code.
"""

from typing import Optional


class RestaurantError(Exception):
    """Base exception for restaurant domain errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(RestaurantError):
    """Raised when input is well-formed but violates a business rule."""

    status_code = 400


class NotFoundError(RestaurantError):
    """Raised when a referenced entity does not exist."""

    status_code = 404

    def __init__(self, entity: str, message: Optional[str] = None):
        self.entity = entity
        super().__init__(message or f"{entity} not found")


class CustomerNotFound(NotFoundError):
    """Raised when an order or reservation references an unknown customer."""

    def __init__(self, customer_id=None):
        self.customer_id = customer_id
        super().__init__("Customer")


class ConflictError(RestaurantError):
    """Raised for duplicates (email, phone, menu name) and double bookings."""

    status_code = 400


class TableConflict(ConflictError):
    """Raised when a table is already reserved for the requested slot."""

    def __init__(self, table_number: int, date, time: str):
        self.table_number = table_number
        self.date = date
        self.time = time
        super().__init__("Table is already reserved for this time slot")


class MenuItemUnavailable(ValidationError):
    """Raised when an order references missing or unavailable menu items."""

    def __init__(self, menu_item_ids):
        self.menu_item_ids = list(menu_item_ids)
        super().__init__("Some menu items are not available")


class InvalidStatusTransition(ValidationError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, entity: str, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change {entity} status from '{current.value}' to '{requested.value}'"
        )


class UnauthorizedError(RestaurantError):
    """Raised when the request carries no usable identity."""

    status_code = 401


class ForbiddenError(RestaurantError):
    """Raised when the current role may not perform the action."""

    status_code = 403
