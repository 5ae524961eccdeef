from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from ..catalog.models import MenuCategory

_PHONE_PATTERN = r"^[\+]?[1-9][\d]{0,15}$"
_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class OrderStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    preparing = "preparing"
    ready = "ready"
    delivered = "delivered"
    cancelled = "cancelled"


class OrderType(str, Enum):
    dine_in = "dine-in"
    takeaway = "takeaway"
    delivery = "delivery"


class SpiceLevel(str, Enum):
    mild = "mild"
    medium = "medium"
    hot = "hot"
    extra_hot = "extra-hot"


class PaymentMethod(str, Enum):
    cash = "cash"
    card = "card"
    online = "online"
    pending = "pending"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"
    refunded = "refunded"


class Priority(str, Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


# Kitchen display ordering, most urgent first.
PRIORITY_RANK = {Priority.urgent: 0, Priority.high: 1, Priority.normal: 2, Priority.low: 3}


class CustomerDietary(BaseModel):
    vegetarian: bool = False
    vegan: bool = False
    gluten_free: bool = False
    dairy_free: bool = False


class CustomerProfilePreferences(BaseModel):
    dietary: CustomerDietary = Field(default_factory=CustomerDietary)
    allergies: list[str] = Field(default_factory=list)
    spice_level: SpiceLevel = SpiceLevel.medium


class Customer(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    phone: str | None = Field(default=None, pattern=_PHONE_PATTERN)
    email: str | None = Field(default=None, pattern=_EMAIL_PATTERN)
    preferences: CustomerProfilePreferences = Field(default_factory=CustomerProfilePreferences)

    @model_validator(mode="after")
    def _normalise_email(self) -> "Customer":
        if self.email:
            self.email = self.email.strip().lower()
        return self


class DeliveryAddress(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    instructions: str | None = None


class Customization(BaseModel):
    name: str = Field(..., min_length=1)
    price: float = Field(default=0.0, ge=0)


class OrderItem(BaseModel):
    """An ordered line with a snapshot of the menu item at purchase time."""

    menu_item_id: str
    name: str
    category: MenuCategory
    ingredients: list[str] = Field(default_factory=list)
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)
    special_instructions: str = ""
    customization: list[Customization] = Field(default_factory=list)

    @property
    def line_total(self) -> float:
        return self.price * self.quantity + sum(c.price for c in self.customization)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    order_number: str
    customer: Customer
    items: list[OrderItem] = Field(default_factory=list)
    status: OrderStatus = OrderStatus.pending
    order_type: OrderType
    table_number: int | None = None
    delivery_address: DeliveryAddress | None = None
    estimated_delivery_time: datetime | None = None
    actual_delivery_time: datetime | None = None
    subtotal: float = Field(default=0.0, ge=0)
    tax: float = Field(default=0.0, ge=0)
    tip: float = Field(default=0.0, ge=0)
    total: float = Field(default=0.0, ge=0)
    payment_method: PaymentMethod = PaymentMethod.pending
    payment_status: PaymentStatus = PaymentStatus.pending
    notes: str = ""
    priority: Priority = Priority.normal
    assigned_to: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)


# ── Request bodies ───────────────────────────────────────────────────────


class OrderItemRequest(BaseModel):
    menu_item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=50)
    special_instructions: str | None = Field(default=None, max_length=200)
    customization: list[Customization] = Field(default_factory=list)


class OrderCreate(BaseModel):
    customer: Customer
    items: list[OrderItemRequest] = Field(..., min_length=1)
    order_type: OrderType
    table_number: int | None = Field(default=None, ge=1)
    delivery_address: DeliveryAddress | None = None
    tip: float = Field(default=0.0, ge=0, le=100)
    notes: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _check_order_type_fields(self) -> "OrderCreate":
        if self.order_type == OrderType.dine_in:
            if self.table_number is None:
                raise ValueError("table_number is required for dine-in orders")
        elif self.table_number is not None:
            raise ValueError("table_number is only allowed for dine-in orders")

        if self.order_type == OrderType.delivery:
            if self.delivery_address is None:
                raise ValueError("delivery_address is required for delivery orders")
        elif self.delivery_address is not None:
            raise ValueError("delivery_address is only allowed for delivery orders")
        return self


class OrderUpdate(BaseModel):
    status: OrderStatus | None = None
    notes: str | None = Field(default=None, max_length=500)
    assigned_to: str | None = None
    priority: Priority | None = None
    estimated_delivery_time: datetime | None = None


class StatusUpdate(BaseModel):
    status: OrderStatus
    notes: str | None = None


class CancelRequest(BaseModel):
    reason: str | None = None
