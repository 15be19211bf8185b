"""
SQLAlchemy Database Models

One collection per entity, every record scoped by restaurant (tenant):
- Restaurant: the tenant itself
- User: admin/staff/customer principals
- MenuItem / Table: keyed by (restaurant_id, id)
- Order: line items and customer contact kept as JSON documents

Author: Khalil Bannouri
Version: 1.0.0
"""

import enum
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from restro.database import Base


def _enum_column(enum_cls: type[enum.Enum], **kwargs) -> Column:
    """Enum column that stores values ("Main Course"), not member names."""
    return Column(
        Enum(enum_cls, values_callable=lambda e: [m.value for m in e], native_enum=False),
        **kwargs,
    )


class OrderStatus(str, enum.Enum):
    """Order lifecycle, in canonical order. Placed is initial, Completed terminal."""
    PLACED = "Placed"
    PREPARING = "Preparing"
    READY = "Ready"
    COMPLETED = "Completed"

    @property
    def position(self) -> int:
        return list(OrderStatus).index(self)

    @property
    def next_status(self) -> Optional["OrderStatus"]:
        members = list(OrderStatus)
        if self.position + 1 < len(members):
            return members[self.position + 1]
        return None

    @property
    def is_terminal(self) -> bool:
        return self.next_status is None


class MenuCategory(str, enum.Enum):
    APPETIZER = "Appetizer"
    MAIN_COURSE = "Main Course"
    DESSERT = "Dessert"
    BEVERAGE = "Beverage"


class TableStatus(str, enum.Enum):
    FREE = "Free"
    OCCUPIED = "Occupied"
    REQUIRES_CLEANING = "Requires-Cleaning"


class PaymentMethod(str, enum.Enum):
    CASH = "Cash"
    ONLINE = "Online"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"


class Restaurant(Base):
    """A tenant. Deactivated rather than deleted in normal operation."""
    __tablename__ = "restaurants"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=True)
    address = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    image_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Restaurant {self.id} - {self.name}>"


class User(Base):
    """
    A principal. Admin and staff are bound to one restaurant; customers are not.

    The password and reset token are stored hashed and never serialized.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(30), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = _enum_column(UserRole, default=UserRole.CUSTOMER, nullable=False)
    restaurant_id = Column(String(64), nullable=True, index=True)
    image = Column(Text, nullable=True)  # data URL

    # =========================================================================
    # PASSWORD RESET
    # =========================================================================
    reset_token = Column(String(64), nullable=True, index=True)
    reset_token_expiry = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User #{self.id} - {self.email} - {self.role.value}>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    # Identifier is unique per restaurant, not globally
    restaurant_id = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True)

    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False, default="")
    price = Column(Float, nullable=False)
    category = _enum_column(MenuCategory, nullable=False, index=True)
    image_url = Column(String(500), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_menu_items_restaurant_category", "restaurant_id", "category"),
    )

    def __repr__(self):
        return f"<MenuItem {self.restaurant_id}/{self.id} - {self.name}>"


class Table(Base):
    __tablename__ = "tables"

    # Table numbers are unique per restaurant
    restaurant_id = Column(String(64), primary_key=True)
    id = Column(Integer, primary_key=True, autoincrement=False)

    capacity = Column(Integer, nullable=False)
    status = _enum_column(TableStatus, default=TableStatus.FREE, nullable=False)
    qr_code_url = Column(String(500), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_tables_restaurant_status", "restaurant_id", "status"),
    )

    def __repr__(self):
        return f"<Table {self.restaurant_id}/{self.id} - {self.status.value}>"


class Order(Base):
    """
    A customer order placed from a table.

    ``items`` is a price snapshot taken at order time:
        [{"menu_item_id", "name", "unit_price", "quantity"}, ...]
    ``total`` is always the sum of unit_price * quantity over ``items``.
    """
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    restaurant_id = Column(String(64), nullable=False, index=True)
    table_number = Column(Integer, nullable=False)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False)
    total = Column(Float, nullable=False)
    status = _enum_column(OrderStatus, default=OrderStatus.PLACED, nullable=False, index=True)
    payment_method = _enum_column(PaymentMethod, nullable=True)

    # =========================================================================
    # CUSTOMER
    # =========================================================================
    customer = Column(JSON, nullable=False)  # {"name", "email", "phone"}

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    timestamp = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_orders_restaurant_status", "restaurant_id", "status"),
        Index("ix_orders_restaurant_timestamp", "restaurant_id", "timestamp"),
    )

    def __repr__(self):
        return f"<Order {self.id} - table {self.table_number} - {self.status.value}>"
