"""
Pydantic Schemas for Request/Response Validation

Request bodies for every resource plus the response shapes returned by
the API routers.

Author: Khalil Bannouri
Version: 3.0.0
"""

import re
from datetime import date as Date, datetime
from typing import Optional, List, Any

from pydantic import BaseModel, Field, field_validator, EmailStr

from restaurant_crm.models import (
    UserRole,
    CustomerStatus,
    SeatingPreference,
    MenuCategory,
    Allergen,
    SpiceLevel,
    OrderType,
    OrderStatus,
    PaymentStatus,
    PaymentMethod,
    ReservationStatus,
    Occasion,
)

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


def _validate_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    cleaned = re.sub(r"[^\d]", "", v)
    if len(cleaned) < 10:
        raise ValueError("Phone number must have at least 10 digits")
    return v.strip()


def _reject_null(v: Any) -> Any:
    """Partial updates may omit a required column but never clear it."""
    if v is None:
        raise ValueError("Field may not be null")
    return v


def _normalize_time(v: Optional[str]) -> Optional[str]:
    """Zero-pad the hour so '9:30' and '09:30' compare equal."""
    if v is None:
        return v
    hours, minutes = v.split(":")
    return f"{int(hours):02d}:{minutes}"


# =============================================================================
# SHARED
# =============================================================================

class Pagination(BaseModel):
    current: int
    pages: int
    total: int
    limit: int


class MessageResponse(BaseModel):
    message: str


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    message: Optional[str] = None
    errors: Optional[List[ErrorDetail]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    environment: str
    timestamp: datetime


# =============================================================================
# USERS / STAFF
# =============================================================================

class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    is_active: bool
    permissions: List[str] = []
    created_at: datetime

    class Config:
        from_attributes = True


class StaffCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50, examples=["Staff Johnson"])
    email: EmailStr
    role: UserRole
    phone: Optional[str] = Field(None, max_length=30)
    permissions: List[str] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class StaffUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    phone: Optional[str] = Field(None, max_length=30)
    is_active: Optional[bool] = None
    permissions: Optional[List[str]] = None

    @field_validator("name", "email", "role", "is_active", "permissions")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        return _reject_null(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("name")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        return _reject_null(v)


class RoleUpdate(BaseModel):
    role: UserRole


class ActiveStatusUpdate(BaseModel):
    is_active: bool


# =============================================================================
# CUSTOMERS
# =============================================================================

class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = "USA"


class CustomerPreferences(BaseModel):
    dietary_restrictions: List[str] = Field(default_factory=list)
    favorite_items: List[str] = Field(default_factory=list)
    seating_preference: SeatingPreference = SeatingPreference.NO_PREFERENCE


class CustomerCreate(BaseModel):
    """Request schema for creating a customer."""
    name: str = Field(..., min_length=2, max_length=100, examples=["John Doe"])
    email: EmailStr = Field(..., examples=["john@example.com"])
    phone: str = Field(..., min_length=10, max_length=30, examples=["555-123-4567"])
    address: Optional[Address] = None
    date_of_birth: Optional[Date] = None
    loyalty_points: int = Field(default=0, ge=0)
    preferences: Optional[CustomerPreferences] = None
    status: CustomerStatus = CustomerStatus.ACTIVE
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _validate_phone(v)


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=10, max_length=30)
    address: Optional[Address] = None
    date_of_birth: Optional[Date] = None
    loyalty_points: Optional[int] = Field(None, ge=0)
    preferences: Optional[CustomerPreferences] = None
    status: Optional[CustomerStatus] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None

    @field_validator("name", "email", "phone", "loyalty_points", "status", "tags")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        return _reject_null(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)


class FeedbackCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)
    order_id: Optional[int] = None


class FeedbackResponse(BaseModel):
    rating: int
    comment: Optional[str] = None
    date: datetime
    order_id: Optional[int] = None

    class Config:
        from_attributes = True


class CustomerSummary(BaseModel):
    id: int
    name: str
    email: str
    phone: str

    class Config:
        from_attributes = True


class CustomerResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    address: Optional[Address] = None
    date_of_birth: Optional[Date] = None
    loyalty_points: int
    total_spent: float
    visits: int
    last_visit: Optional[datetime] = None
    preferences: Optional[CustomerPreferences] = None
    feedback: List[FeedbackResponse] = []
    status: CustomerStatus
    tier: str
    tags: List[str] = []
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# MENU
# =============================================================================

class NutritionalInfo(BaseModel):
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    fiber: Optional[float] = None


class MenuItemCreate(BaseModel):
    """Request schema for creating a menu item."""
    name: str = Field(..., min_length=2, max_length=100, examples=["Caesar Salad"])
    description: Optional[str] = Field(None, max_length=500)
    category: MenuCategory
    price: float = Field(..., ge=0, examples=[8.99])
    cost: Optional[float] = Field(None, ge=0)
    image: str = ""
    ingredients: List[str] = Field(default_factory=list)
    allergens: List[Allergen] = Field(default_factory=list)
    nutritional_info: Optional[NutritionalInfo] = None
    preparation_time: Optional[int] = Field(None, ge=0)
    is_available: bool = True
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    spice_level: SpiceLevel = SpiceLevel.NONE
    tags: List[str] = Field(default_factory=list)
    is_special: bool = False
    special_start: Optional[datetime] = None
    special_end: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[MenuCategory] = None
    price: Optional[float] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    ingredients: Optional[List[str]] = None
    allergens: Optional[List[Allergen]] = None
    nutritional_info: Optional[NutritionalInfo] = None
    preparation_time: Optional[int] = Field(None, ge=0)
    is_available: Optional[bool] = None
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    is_gluten_free: Optional[bool] = None
    spice_level: Optional[SpiceLevel] = None
    tags: Optional[List[str]] = None
    is_special: Optional[bool] = None
    special_start: Optional[datetime] = None
    special_end: Optional[datetime] = None

    @field_validator(
        "name", "category", "price", "image", "ingredients", "allergens",
        "is_available", "is_vegetarian", "is_vegan", "is_gluten_free",
        "spice_level", "tags", "is_special",
    )
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        return _reject_null(v)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class AvailabilityUpdate(BaseModel):
    is_available: bool


class Rating(BaseModel):
    average: float
    count: int


class MenuItemSummary(BaseModel):
    id: int
    name: str
    category: MenuCategory
    price: float

    class Config:
        from_attributes = True


class MenuItemResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: MenuCategory
    price: float
    cost: Optional[float] = None
    image: str = ""
    ingredients: List[str] = []
    allergens: List[Allergen] = []
    nutritional_info: Optional[NutritionalInfo] = None
    preparation_time: Optional[int] = None
    is_available: bool
    is_vegetarian: bool
    is_vegan: bool
    is_gluten_free: bool
    spice_level: SpiceLevel
    times_ordered: int
    rating: Rating
    tags: List[str] = []
    is_special: bool
    special_start: Optional[datetime] = None
    special_end: Optional[datetime] = None
    profit_margin: float
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemCreate(BaseModel):
    """Single line of an order. `price` is informational; the menu price wins."""
    menu_item: int = Field(..., ge=1, examples=[1])
    quantity: int = Field(..., ge=1, examples=[2])
    price: float = Field(default=0.0, ge=0, examples=[10.0])
    special_instructions: Optional[str] = Field(None, max_length=200)


class DeliveryAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    instructions: Optional[str] = None


class OrderCreate(BaseModel):
    """Request schema for creating a new order."""
    customer: int = Field(..., ge=1, examples=[1])
    order_type: OrderType = Field(..., examples=["dine-in"])
    items: List[OrderItemCreate] = Field(..., min_length=1)
    table_number: Optional[int] = Field(None, ge=1)
    estimated_time: Optional[int] = Field(None, ge=0)
    delivery_address: Optional[DeliveryAddress] = None
    notes: Optional[str] = Field(None, max_length=500)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    actual_time: Optional[int] = Field(None, ge=0)


class PaymentUpdate(BaseModel):
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    tip: Optional[float] = Field(None, ge=0)


class OrderFeedbackCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class Discount(BaseModel):
    amount: float = 0.0
    reason: Optional[str] = None


class OrderFeedback(BaseModel):
    rating: int
    comment: Optional[str] = None
    date: Optional[datetime] = None


class OrderItemResponse(BaseModel):
    menu_item_id: int
    menu_item: Optional[MenuItemSummary] = None
    quantity: int
    price: float
    special_instructions: Optional[str] = None

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: int
    order_number: str
    customer: Optional[CustomerSummary] = None
    staff: Optional[UserSummary] = None
    items: List[OrderItemResponse]
    order_type: OrderType
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    subtotal: float
    tax: float
    tip: float
    discount: Discount
    total: float
    table_number: Optional[int] = None
    delivery_address: Optional[DeliveryAddress] = None
    estimated_time: Optional[int] = None
    actual_time: Optional[int] = None
    notes: Optional[str] = None
    feedback: Optional[OrderFeedback] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# RESERVATIONS
# =============================================================================

class ReservationCreate(BaseModel):
    customer: int = Field(..., ge=1)
    date: Date
    time: str = Field(..., pattern=TIME_PATTERN, examples=["19:30"])
    party_size: int = Field(..., ge=1, le=20)
    contact_phone: str
    contact_email: EmailStr
    table_number: Optional[int] = Field(None, ge=1)
    special_requests: Optional[str] = Field(None, max_length=500)
    occasion: Occasion = Occasion.OTHER
    seating_preference: SeatingPreference = SeatingPreference.NO_PREFERENCE
    estimated_duration: int = Field(default=90, ge=1)
    notes: Optional[str] = None

    @field_validator("time")
    @classmethod
    def normalize_time(cls, v: str) -> str:
        return _normalize_time(v)

    @field_validator("contact_phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _validate_phone(v)


class ReservationUpdate(BaseModel):
    date: Optional[Date] = None
    time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    party_size: Optional[int] = Field(None, ge=1, le=20)
    table_number: Optional[int] = Field(None, ge=1)
    status: Optional[ReservationStatus] = None
    special_requests: Optional[str] = Field(None, max_length=500)
    occasion: Optional[Occasion] = None
    seating_preference: Optional[SeatingPreference] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    estimated_duration: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None

    @field_validator(
        "date", "time", "party_size", "status", "occasion", "seating_preference",
        "contact_phone", "contact_email", "estimated_duration",
    )
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        return _reject_null(v)

    @field_validator("time")
    @classmethod
    def normalize_time(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_time(v)

    @field_validator("contact_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)


class ReservationResponse(BaseModel):
    id: int
    customer: Optional[CustomerSummary] = None
    created_by: Optional[UserSummary] = None
    date: Date
    time: str
    starts_at: datetime = Field(serialization_alias="datetime")
    party_size: int
    table_number: Optional[int] = None
    status: ReservationStatus
    special_requests: Optional[str] = None
    occasion: Occasion
    seating_preference: SeatingPreference
    contact_phone: str
    contact_email: str
    estimated_duration: int
    actual_duration: Optional[int] = None
    arrival_time: Optional[datetime] = None
    departure_time: Optional[datetime] = None
    notes: Optional[str] = None
    reminder_sent: bool
    confirmation_sent: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# INVENTORY
# =============================================================================

class InventoryItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    quantity: float = Field(default=0, ge=0)
    unit: str = Field(default="", max_length=20)
    notes: str = ""
    low_stock_threshold: float = Field(default=5, ge=0)


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    quantity: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = None
    low_stock_threshold: Optional[float] = Field(None, ge=0)

    @field_validator("name", "quantity", "unit", "notes", "low_stock_threshold")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        return _reject_null(v)


class UsageLink(BaseModel):
    menu_item_id: int = Field(..., ge=1)
    quantity_per_serving: float = Field(..., gt=0)

    class Config:
        from_attributes = True


class UsageLinksUpdate(BaseModel):
    links: List[UsageLink]


class InventoryItemResponse(BaseModel):
    id: int
    name: str
    quantity: float
    unit: str
    notes: str
    low_stock_threshold: float
    is_low_stock: bool
    usage_links: List[UsageLink] = []
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# REPORTS
# =============================================================================

class ExportQueuedResponse(BaseModel):
    message: str
    task_id: str
    report: str
    filename: str


def paginated(key: str, items: List[Any], page: int, limit: int, total: int) -> dict[str, Any]:
    """Build the standard list envelope: `{key: [...], "pagination": {...}}`."""
    pages = (total + limit - 1) // limit if limit else 0
    return {
        key: items,
        "pagination": Pagination(current=page, pages=pages, total=total, limit=limit),
    }
