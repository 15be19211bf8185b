"""
Pydantic Schemas for Request/Response Validation

Wire format is camelCase (``restaurantId``, ``tableNumber``); snake_case
field names are accepted too. Responses are wrapped in ``ApiResponse``:
``{"success": true, "message": "...", "data": ...}``.

Author: Khalil Bannouri
Version: 1.0.0
"""

import re
from datetime import datetime
from typing import Annotated, Any, Generic, List, Optional, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from restro.models import (
    MenuCategory,
    OrderStatus,
    PaymentMethod,
    TableStatus,
    UserRole,
)

EMAIL_PATTERN = re.compile(r"^[\w\.+-]+@[\w\.-]+\.\w+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")
# Restaurant ids end up in URLs, channel names and export file names
RESTAURANT_ID_PATTERN = r"^[A-Za-z0-9_-]+$"

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def check_email(v: str) -> str:
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email format")
    return v.lower()


def check_phone(v: str) -> str:
    if not PHONE_PATTERN.match(v):
        raise ValueError("Please enter a valid phone number")
    return v


Email = Annotated[str, AfterValidator(check_email)]
Phone = Annotated[str, Field(min_length=10), AfterValidator(check_phone)]


# =============================================================================
# ENVELOPE
# =============================================================================

class ApiResponse(CamelModel, Generic[T]):
    """Standard success envelope."""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class ErrorResponse(CamelModel):
    """Standard error response."""
    success: bool = False
    error: str
    message: str
    errors: Optional[List[dict[str, str]]] = None


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemCreate(CamelModel):
    """Single line of an order, with the price the customer saw."""
    menu_item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, examples=[2])
    name: str = Field(..., min_length=1, max_length=100, examples=["Paneer Tikka"])
    unit_price: float = Field(..., ge=0, examples=[100.0])

    @model_validator(mode="before")
    @classmethod
    def accept_price_key(cls, data: Any) -> Any:
        # Menu pages send the captured price as "price"
        if isinstance(data, dict) and "price" in data:
            if "unitPrice" not in data and "unit_price" not in data:
                data = {**data, "unitPrice": data["price"]}
        return data


class CustomerInfo(CamelModel):
    name: str = Field(..., min_length=1, examples=["Asha Rao"])
    email: str = Field(..., min_length=1, examples=["asha@example.com"])
    phone: str = Field(..., min_length=1, examples=["+91 98765 43210"])

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class OrderCreate(CamelModel):
    """
    Request schema for placing an order.

    There is deliberately no ``total`` field: the total is always computed
    from the line items.
    """
    restaurant_id: str = Field(..., min_length=1)
    table_number: int = Field(..., ge=1)
    items: List[OrderItemCreate] = Field(..., min_length=1)
    customer: CustomerInfo
    payment_method: Optional[PaymentMethod] = None


class OrderStatusUpdate(CamelModel):
    """
    Advance an order to ``status``.

    ``expected_status`` turns the update into a compare-and-swap against the
    stored value. ``payment_method`` confirms payment on Ready -> Completed.
    ``override`` lets an admin set any status.
    """
    status: OrderStatus
    expected_status: Optional[OrderStatus] = None
    payment_method: Optional[PaymentMethod] = None
    override: bool = False


class OrderItemResponse(CamelModel):
    menu_item_id: str
    quantity: int
    name: str
    unit_price: float


class OrderResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    restaurant_id: str
    table_number: int
    items: List[OrderItemResponse]
    total: float
    status: OrderStatus
    payment_method: Optional[PaymentMethod] = None
    customer: CustomerInfo
    timestamp: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# MENU
# =============================================================================

class MenuItemCreate(CamelModel):
    id: Optional[str] = Field(None, min_length=1, max_length=64)
    restaurant_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=2, max_length=100)
    description: str = Field(default="", max_length=500)
    price: float = Field(..., ge=0)
    category: MenuCategory
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: bool = True


class MenuItemUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[MenuCategory] = None
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: Optional[bool] = None


class MenuItemResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    restaurant_id: str
    name: str
    description: str
    price: float
    category: MenuCategory
    image_url: Optional[str] = None
    is_available: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# TABLES
# =============================================================================

class TableCreate(CamelModel):
    id: int = Field(..., ge=1)
    restaurant_id: str = Field(..., min_length=1)
    capacity: int = Field(..., ge=1, le=20)


class TableStatusUpdate(CamelModel):
    status: TableStatus


class TableResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    restaurant_id: str
    capacity: int
    status: TableStatus
    qr_code_url: str
    qr_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# RESTAURANTS
# =============================================================================

class RestaurantCreate(CamelModel):
    id: str = Field(..., min_length=1, max_length=64, pattern=RESTAURANT_ID_PATTERN)
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    address: str = Field(..., min_length=5)
    phone: Phone
    email: Email
    image_url: Optional[str] = None


class RestaurantUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, min_length=5)
    phone: Optional[str] = Field(None, min_length=10)
    email: Optional[str] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else check_email(v)


class RestaurantResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    address: str
    phone: str
    email: str
    image_url: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# AUTH
# =============================================================================

class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: Email
    phone: Phone
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.CUSTOMER
    restaurant_id: Optional[str] = None
    restaurant_name: Optional[str] = None
    address: Optional[str] = None


class LoginRequest(CamelModel):
    email: Email
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(CamelModel):
    email: Email


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)


class UserResponse(CamelModel):
    """Principal as exposed to clients. Never includes credentials."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: str
    role: UserRole
    restaurant_id: Optional[str] = None
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthResponse(CamelModel):
    success: bool = True
    message: str
    user: UserResponse
    restaurant_id: Optional[str] = None
    token: Optional[str] = None


class MessageResponse(CamelModel):
    success: bool = True
    message: str
    token: Optional[str] = None


# =============================================================================
# REPORTS
# =============================================================================

class CategorySales(CamelModel):
    name: str
    value: float
    count: int


class ItemSales(CamelModel):
    menu_item_id: str
    name: str
    quantity: int
    revenue: float


class SalesReport(CamelModel):
    restaurant_id: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    total_orders: int
    completed_orders: int
    total_revenue: float
    sales_by_category: List[CategorySales]
    top_items: List[ItemSales]


class DashboardSummary(CamelModel):
    restaurant_id: str
    completed_revenue: float
    active_orders: int
    total_orders: int
    occupied_tables: int
    total_tables: int


class ExportResponse(CamelModel):
    success: bool = True
    message: str
    task_id: Optional[str] = None


# =============================================================================
# HEALTH
# =============================================================================

class HealthResponse(CamelModel):
    """Health check response."""
    status: str
    database: str
    change_feed: str
    notification_service: str
    config: dict[str, bool]
    environment: str
    timestamp: datetime
