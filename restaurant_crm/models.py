"""
SQLAlchemy Database Models

Restaurant back-office data:
- Staff users and roles
- Customers with rolling stats and feedback
- Menu catalog
- Orders with line items
- Table reservations
- Inventory with explicit menu-item usage links

Author: Khalil Bannouri
Version: 3.0.0
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, Text, Enum, Boolean, JSON,
    ForeignKey, Index, UniqueConstraint, text,
)
from sqlalchemy.orm import relationship

from restaurant_crm.database import Base


def _values_enum(enum_cls: type[enum.Enum]) -> Enum:
    """Store enum values (e.g. 'dine-in') rather than member names."""
    return Enum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=20,
    )


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, enum.Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"


class CustomerStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    VIP = "vip"
    BLACKLISTED = "blacklisted"


class SeatingPreference(str, enum.Enum):
    WINDOW = "window"
    BOOTH = "booth"
    BAR = "bar"
    PATIO = "patio"
    PRIVATE = "private"
    NO_PREFERENCE = "no-preference"


class MenuCategory(str, enum.Enum):
    APPETIZERS = "appetizers"
    SALADS = "salads"
    SOUPS = "soups"
    MAINS = "mains"
    DESSERTS = "desserts"
    BEVERAGES = "beverages"
    SPECIALS = "specials"


class Allergen(str, enum.Enum):
    GLUTEN = "gluten"
    DAIRY = "dairy"
    NUTS = "nuts"
    SHELLFISH = "shellfish"
    EGGS = "eggs"
    SOY = "soy"
    FISH = "fish"


class SpiceLevel(str, enum.Enum):
    NONE = "none"
    MILD = "mild"
    MEDIUM = "medium"
    HOT = "hot"
    VERY_HOT = "very-hot"


class OrderType(str, enum.Enum):
    DINE_IN = "dine-in"
    TAKEOUT = "takeout"
    DELIVERY = "delivery"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    DIGITAL_WALLET = "digital-wallet"
    GIFT_CARD = "gift-card"
    LOYALTY_POINTS = "loyalty-points"


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SEATED = "seated"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class Occasion(str, enum.Enum):
    BIRTHDAY = "birthday"
    ANNIVERSARY = "anniversary"
    BUSINESS = "business"
    DATE = "date"
    FAMILY = "family"
    CELEBRATION = "celebration"
    OTHER = "other"


ACTIVE_RESERVATION_STATUSES = (
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.SEATED,
)


def loyalty_tier(total_spent: float) -> str:
    """Customer tier derived from lifetime spend."""
    spent = total_spent or 0
    if spent >= 1000:
        return "VIP"
    if spent >= 500:
        return "Gold"
    if spent >= 200:
        return "Silver"
    return "Bronze"


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """Staff account. Credentials are managed by the auth provider."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(_values_enum(UserRole), default=UserRole.STAFF, nullable=False, index=True)
    phone = Column(String(30), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    permissions = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, onupdate=datetime.now)

    def __repr__(self):
        return f"<User #{self.id} - {self.email} - {self.role.value}>"


# =============================================================================
# CUSTOMERS
# =============================================================================

class Customer(Base):
    """
    Customer record with rolling stats.

    `loyalty_points`, `total_spent`, `visits` and `last_visit` are
    maintained by order creation; `tier` is derived at read time.
    """
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(30), nullable=False, index=True)
    address = Column(JSON, nullable=True)
    date_of_birth = Column(Date, nullable=True)

    # Rolling stats
    loyalty_points = Column(Integer, default=0, nullable=False, index=True)
    total_spent = Column(Float, default=0.0, nullable=False, index=True)
    visits = Column(Integer, default=0, nullable=False)
    last_visit = Column(DateTime, nullable=True)

    preferences = Column(JSON, nullable=True)
    status = Column(
        _values_enum(CustomerStatus),
        default=CustomerStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    tags = Column(JSON, default=list, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, onupdate=datetime.now)

    feedback = relationship(
        "CustomerFeedback",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="CustomerFeedback.id",
        lazy="selectin",
    )

    @property
    def tier(self) -> str:
        return loyalty_tier(self.total_spent)

    def __repr__(self):
        return f"<Customer #{self.id} - {self.name}>"


class CustomerFeedback(Base):
    __tablename__ = "customer_feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(
        Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    date = Column(DateTime, default=datetime.now, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)

    customer = relationship("Customer", back_populates="feedback")


# =============================================================================
# MENU
# =============================================================================

class MenuItem(Base):
    """Catalog entry. `times_ordered` is incremented by every order line."""
    __tablename__ = "menu_items"
    __table_args__ = (
        Index("ix_menu_items_category_available", "category", "is_available"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    category = Column(_values_enum(MenuCategory), nullable=False)
    price = Column(Float, nullable=False)
    cost = Column(Float, nullable=True)
    image = Column(String(500), default="", nullable=False)
    ingredients = Column(JSON, default=list, nullable=False)
    allergens = Column(JSON, default=list, nullable=False)
    nutritional_info = Column(JSON, nullable=True)
    preparation_time = Column(Integer, nullable=True)  # minutes

    is_available = Column(Boolean, default=True, nullable=False)
    is_vegetarian = Column(Boolean, default=False, nullable=False)
    is_vegan = Column(Boolean, default=False, nullable=False)
    is_gluten_free = Column(Boolean, default=False, nullable=False)
    spice_level = Column(_values_enum(SpiceLevel), default=SpiceLevel.NONE, nullable=False)

    times_ordered = Column(Integer, default=0, nullable=False, index=True)
    rating_average = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    tags = Column(JSON, default=list, nullable=False)

    # Featured specials
    is_special = Column(Boolean, default=False, nullable=False)
    special_start = Column(DateTime, nullable=True)
    special_end = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, onupdate=datetime.now)

    @property
    def profit_margin(self) -> float:
        if self.cost and self.price:
            return round((self.price - self.cost) / self.price * 100, 2)
        return 0.0

    @property
    def rating(self) -> dict:
        return {"average": self.rating_average, "count": self.rating_count}

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} - {self.price}>"


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    Snapshot of ordered menu items.

    `order_number` is assigned once at creation. `total` is always
    subtotal + tax + tip - discount_amount.
    """
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_status_created", "status", "created_at"),
        Index("ix_orders_customer_created", "customer_id", "created_at"),
        Index("ix_orders_staff_created", "staff_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_number = Column(String(20), nullable=False, unique=True, index=True)

    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    staff_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    order_type = Column(_values_enum(OrderType), nullable=False, index=True)
    status = Column(_values_enum(OrderStatus), default=OrderStatus.PENDING, nullable=False)
    payment_status = Column(
        _values_enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    payment_method = Column(_values_enum(PaymentMethod), nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Float, nullable=False)
    tax = Column(Float, default=0.0, nullable=False)
    tip = Column(Float, default=0.0, nullable=False)
    discount_amount = Column(Float, default=0.0, nullable=False)
    discount_reason = Column(String(200), nullable=True)
    total = Column(Float, nullable=False)

    # =========================================================================
    # SERVICE DETAILS
    # =========================================================================
    table_number = Column(Integer, nullable=True)
    delivery_address = Column(JSON, nullable=True)
    estimated_time = Column(Integer, nullable=True)  # minutes
    actual_time = Column(Integer, nullable=True)  # minutes
    notes = Column(Text, nullable=True)

    # =========================================================================
    # FEEDBACK
    # =========================================================================
    feedback_rating = Column(Integer, nullable=True)
    feedback_comment = Column(Text, nullable=True)
    feedback_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, onupdate=datetime.now)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )
    customer = relationship("Customer", lazy="selectin")
    staff = relationship("User", lazy="selectin")

    @property
    def discount(self) -> dict:
        return {"amount": self.discount_amount or 0.0, "reason": self.discount_reason}

    @property
    def feedback(self):
        if self.feedback_rating is None:
            return None
        return {
            "rating": self.feedback_rating,
            "comment": self.feedback_comment,
            "date": self.feedback_date,
        }

    def recalculate_total(self) -> float:
        self.total = round(
            self.subtotal + self.tax + (self.tip or 0.0) - (self.discount_amount or 0.0), 2
        )
        return self.total

    def __repr__(self):
        return f"<Order {self.order_number} - {self.order_type.value} - {self.status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)  # price at time of order
    special_instructions = Column(String(200), nullable=True)

    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem", lazy="selectin")

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)


# =============================================================================
# RESERVATIONS
# =============================================================================

class Reservation(Base):
    """
    Table booking.

    Two active reservations (pending/confirmed/seated) may not share the
    same table, date and time; the partial unique index enforces it.
    """
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_date_time", "date", "time"),
        Index("ix_reservations_status_date", "status", "date"),
        Index(
            "uq_reservations_active_slot",
            "table_number", "date", "time",
            unique=True,
            sqlite_where=text("status IN ('pending', 'confirmed', 'seated')"),
            postgresql_where=text("status IN ('pending', 'confirmed', 'seated')"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)  # HH:MM
    party_size = Column(Integer, nullable=False)
    table_number = Column(Integer, nullable=True)
    status = Column(
        _values_enum(ReservationStatus),
        default=ReservationStatus.PENDING,
        nullable=False,
    )
    special_requests = Column(String(500), nullable=True)
    occasion = Column(_values_enum(Occasion), default=Occasion.OTHER, nullable=False)
    seating_preference = Column(
        _values_enum(SeatingPreference),
        default=SeatingPreference.NO_PREFERENCE,
        nullable=False,
    )
    contact_phone = Column(String(30), nullable=False)
    contact_email = Column(String(255), nullable=False)

    estimated_duration = Column(Integer, default=90, nullable=False)  # minutes
    actual_duration = Column(Integer, nullable=True)  # minutes
    arrival_time = Column(DateTime, nullable=True)
    departure_time = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    reminder_sent = Column(Boolean, default=False, nullable=False)
    confirmation_sent = Column(Boolean, default=False, nullable=False)

    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, onupdate=datetime.now)

    customer = relationship("Customer", lazy="selectin")
    created_by = relationship("User", lazy="selectin")

    @property
    def starts_at(self) -> datetime:
        hours, minutes = self.time.split(":")
        return datetime(
            self.date.year, self.date.month, self.date.day, int(hours), int(minutes)
        )

    def __repr__(self):
        return f"<Reservation #{self.id} - {self.date} {self.time} - table {self.table_number}>"


# =============================================================================
# INVENTORY
# =============================================================================

class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    quantity = Column(Float, default=0.0, nullable=False)
    unit = Column(String(20), default="", nullable=False)
    notes = Column(Text, default="", nullable=False)
    low_stock_threshold = Column(Float, default=5.0, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, onupdate=datetime.now)

    usage_links = relationship(
        "InventoryUsage",
        back_populates="inventory_item",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_threshold


class InventoryUsage(Base):
    """How much of an inventory item one serving of a menu item consumes."""
    __tablename__ = "inventory_usage"
    __table_args__ = (
        UniqueConstraint("inventory_item_id", "menu_item_id", name="uq_inventory_usage_pair"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    inventory_item_id = Column(
        Integer, ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id = Column(
        Integer, ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity_per_serving = Column(Float, nullable=False)

    inventory_item = relationship("InventoryItem", back_populates="usage_links")
    menu_item = relationship("MenuItem", lazy="selectin")
