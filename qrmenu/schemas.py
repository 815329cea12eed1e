"""
Pydantic Schemas for Request/Response Validation

Two families live here:
- Shapes the restaurant REST API sends back (menu items, orders, tables,
  sales reports). These are lenient: the backend mixes 1/0, booleans and
  numeric strings, and the dashboard must not crash on a sloppy row.
- Request bodies accepted by this service's own routes.
"""

import json
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class OrderStatusEnum(str, Enum):
    IN_PROGRESS = "Dalam Proses"
    COMPLETED = "Selesai"
    CANCELLED = "Dibatalkan"


class PaymentStatusEnum(str, Enum):
    UNPAID = "Belum Bayar"
    PAID = "Sudah Bayar"
    PENDING = "Pending"


class CheckoutMethodEnum(str, Enum):
    """How a customer pays for a table order."""
    CASHIER = "cashier"
    ONLINE = "online"


class PaymentOutcomeEnum(str, Enum):
    """Branches the Snap widget reports back through."""
    SUCCESS = "success"
    PENDING = "pending"
    ERROR = "error"
    CLOSE = "close"


class UserRoleEnum(str, Enum):
    ADMIN = "admin"
    CASHIER = "cashier"


TAKE_AWAY = "Take Away"

CATEGORY_DISPLAY_NAMES = {
    "makanan-nasi": "MAKANAN - NASI",
    "makanan-pelengkap": "MAKANAN - PELENGKAP",
    "minuman-kopi": "MINUMAN - KOPI",
    "minuman-nonkopi": "MINUMAN - NON KOPI",
    "menu mie-banggodrong": "MENU MIE - BANGGONDRONG",
    "menu mie-aceh": "MENU MIE - ACEH",
    "menu mie-toping": "MENU MIE - TOPING",
    "camilan-manis": "CAMILAN - MANIS",
    "camilan-gurih": "CAMILAN - GURIH",
    "lain-lain": "LAIN-LAIN",
}
DEFAULT_CATEGORY = "lain-lain"


def category_display_name(category: str) -> str:
    return CATEGORY_DISPLAY_NAMES.get(category, category.upper())


def _to_int(value: Any) -> int:
    """Coerce numeric strings like '15000.00' to whole Rupiah."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return int(value)
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, OverflowError, ValueError):
        raise ValueError(f"Not a number: {value!r}")


def _to_flag(value: Any) -> bool:
    return value in (1, True, "1", "true")


# =============================================================================
# BACKEND SHAPES
# =============================================================================

class MenuItem(BaseModel):
    """A menu entry as served by GET /menu."""
    model_config = ConfigDict(extra="ignore")

    id_menu: int
    name: str
    description: Optional[str] = ""
    price: int = Field(..., ge=0)
    category: str = DEFAULT_CATEGORY
    is_available: bool = True
    image_url: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def parse_price(cls, v: Any) -> int:
        return _to_int(v)

    @field_validator("is_available", mode="before")
    @classmethod
    def parse_availability(cls, v: Any) -> bool:
        return _to_flag(v)

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> str:
        return v or DEFAULT_CATEGORY


class OrderItem(BaseModel):
    """One serialized line of a placed order."""
    model_config = ConfigDict(extra="ignore")

    menu_item_id: int = 0
    menu_name: Optional[str] = None
    quantity: int = 0
    price_at_order: int = 0
    spiciness_level: Optional[str] = None
    temperature_level: Optional[str] = None

    @field_validator("menu_item_id", "quantity", "price_at_order", mode="before")
    @classmethod
    def parse_numbers(cls, v: Any) -> int:
        return _to_int(v)

    @property
    def subtotal(self) -> int:
        return self.quantity * self.price_at_order

    @property
    def options_label(self) -> str:
        parts = [f"* {level}" for level in (self.spiciness_level, self.temperature_level) if level]
        return " ".join(parts)


class Order(BaseModel):
    """An order as served by GET /orders."""
    model_config = ConfigDict(extra="ignore")

    order_id: int
    table_number: Optional[str] = None
    customer_name: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)
    order_status: Optional[str] = None
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None
    order_time: Optional[datetime] = None
    total_amount: int = 0

    @field_validator("items", mode="before")
    @classmethod
    def parse_items(cls, v: Any) -> list:
        # Stored as a JSON string by the backend; a broken blob shows no items.
        if v is None:
            return []
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except json.JSONDecodeError:
                logger.warning("Order items are not valid JSON; showing none")
                return []
            return parsed if isinstance(parsed, list) else []
        return v

    @field_validator("table_number", mode="before")
    @classmethod
    def table_as_text(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("order_time", mode="before")
    @classmethod
    def parse_time(cls, v: Any) -> Any:
        if not v:
            return None
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError:
                return None
        return v

    @field_validator("total_amount", mode="before")
    @classmethod
    def parse_total(cls, v: Any) -> int:
        return _to_int(v)

    @property
    def is_takeaway(self) -> bool:
        return self.table_number == TAKE_AWAY

    @property
    def table_label(self) -> str:
        if self.is_takeaway and self.customer_name:
            return f"{self.table_number} - {self.customer_name}"
        return self.table_number or "N/A"

    @property
    def order_time_label(self) -> str:
        if self.order_time is None:
            return "Invalid Date"
        return self.order_time.strftime("%d/%m/%Y %H:%M")


class Table(BaseModel):
    model_config = ConfigDict(extra="ignore")

    table_number: str
    capacity: Optional[int] = None
    status: str = "Available"

    @field_validator("table_number", mode="before")
    @classmethod
    def table_as_text(cls, v: Any) -> str:
        return str(v)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v: Any) -> str:
        return v or "Available"


class TopSellingItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    menu_name: str = "Unknown"
    total_quantity: int = 0
    total_revenue: int = 0

    @field_validator("total_quantity", "total_revenue", mode="before")
    @classmethod
    def parse_numbers(cls, v: Any) -> int:
        return _to_int(v)

    @field_validator("menu_name", mode="before")
    @classmethod
    def default_name(cls, v: Any) -> str:
        return v or "Unknown"


class SalesReport(BaseModel):
    """GET /reports/sales. Missing or null fields read as zero/empty."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_sales: int = Field(0, alias="totalSales")
    total_orders: int = Field(0, alias="totalOrders")
    completed_orders: int = Field(0, alias="completedOrders")
    cancelled_orders: int = Field(0, alias="cancelledOrders")
    pending_orders: int = Field(0, alias="pendingOrders")
    total_sales_today: int = Field(0, alias="totalSalesToday")
    total_orders_today: int = Field(0, alias="totalOrdersToday")
    top_selling_items: List[TopSellingItem] = Field(default_factory=list, alias="topSellingItems")
    sales_by_payment_method: List[dict] = Field(default_factory=list, alias="salesByPaymentMethod")
    sales_by_date: List[dict] = Field(default_factory=list, alias="salesByDate")

    @field_validator(
        "total_sales", "total_orders", "completed_orders", "cancelled_orders",
        "pending_orders", "total_sales_today", "total_orders_today",
        mode="before",
    )
    @classmethod
    def parse_numbers(cls, v: Any) -> int:
        return _to_int(v)

    @field_validator(
        "top_selling_items", "sales_by_payment_method", "sales_by_date",
        mode="before",
    )
    @classmethod
    def default_list(cls, v: Any) -> list:
        return v or []


class LoginResult(BaseModel):
    token: str
    role: str = ""
    username: Optional[str] = None


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OptionSelectionRequest(BaseModel):
    """Choose spiciness or temperature for a menu item before adding it."""
    option: Literal["spiciness", "temperature"]
    value: str = ""


class CartAddRequest(BaseModel):
    menu_item_id: int


class CartLineRequest(BaseModel):
    """Identifies a cart line by its full key."""
    menu_item_id: int
    spiciness: str = ""
    temperature: str = ""


class CheckoutRequest(BaseModel):
    payment_method: CheckoutMethodEnum


class PaymentCallbackRequest(BaseModel):
    """Outcome forwarded by the browser from the Snap widget."""
    checkout_id: str
    outcome: PaymentOutcomeEnum
    transaction_id: Optional[str] = None
    payment_type: Optional[str] = None


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator("username", "password")
    @classmethod
    def strip_value(cls, v: str) -> str:
        return v.strip()


class MenuItemForm(BaseModel):
    """Full replacement of a menu entry from the management form."""
    name: str
    description: str = ""
    price: int = Field(..., gt=0)
    category: str = "makanan-nasi"
    is_available: bool = True
    image_link: str = ""
    keep_existing_image: bool = True

    @field_validator("name", "description", "image_link")
    @classmethod
    def strip_value(cls, v: str) -> str:
        return v.strip()


class TableCreate(BaseModel):
    table_number: str
    capacity: Optional[int] = Field(None, ge=1)

    @field_validator("table_number", mode="before")
    @classmethod
    def strip_number(cls, v: Any) -> str:
        return str(v).strip()


class OrderStatusUpdate(BaseModel):
    status: OrderStatusEnum


class PaymentStatusUpdate(BaseModel):
    """Status as picked in the cashier payment modal."""
    status: Literal["paid", "unpaid", "Pending"]
    method: Optional[str] = None


class CashPaymentRequest(BaseModel):
    cash_received: int = Field(..., ge=0)


class NewOrderRequest(BaseModel):
    customer_name: Optional[str] = None


class EditOrderSaveRequest(BaseModel):
    note: str = ""


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    backend_service: str
    payment_service: str
    active_customer_sessions: int
    active_admin_sessions: int
    timestamp: datetime
