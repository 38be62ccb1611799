from pydantic import (
    AliasChoices, BaseModel, Field, PlainSerializer, TypeAdapter, ValidationError,
    field_serializer, field_validator,
)
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional, List, Any
from decimal import Decimal
from datetime import datetime
from enum import Enum

from storefront.utils import DecodingException

# Decimal in Python, plain number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

ALL_PRODUCTS_SECTION = "all-products"


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


def split_sections(v):
    if v is None:
        return []
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    return v


# --- Products ---
class Product(CamelModel):
    id: int
    name: str
    brand: str
    description: Optional[str] = None
    price: Money
    category: str
    stock_quantity: Optional[int] = None
    release_date: Optional[str] = None
    product_available: bool
    sections: List[str] = []
    image_name: Optional[str] = None
    image_type: Optional[str] = None
    # Fetched separately from /product/{id}/image
    image: Optional[bytes] = Field(None, exclude=True)

    @field_validator("sections", mode="before")
    def parse_sections(cls, v):
        return split_sections(v)

    @field_serializer("sections")
    def join_sections(self, v):
        return ",".join(v)


class ProductForm(CamelModel):
    name: str = Field(..., min_length=1)
    brand: str = Field(..., min_length=1)
    description: str = ""
    price: Money = Field(..., gt=0)
    category: str = Field(..., min_length=1)
    stock_quantity: int = Field(0, ge=0)
    release_date: Optional[str] = None
    product_available: bool = False
    sections: List[str] = Field(default_factory=lambda: [ALL_PRODUCTS_SECTION])

    @field_validator("sections", mode="before")
    def parse_sections(cls, v):
        return split_sections(v) or [ALL_PRODUCTS_SECTION]

    @field_serializer("sections")
    def join_sections(self, v):
        return ",".join(v)

    def toggle_section(self, section_id: str):
        # Never leaves a product without a section
        if section_id in self.sections:
            remaining = [s for s in self.sections if s != section_id]
            self.sections = remaining or [ALL_PRODUCTS_SECTION]
        else:
            self.sections = self.sections + [section_id]


# --- Cart ---
class CartEntry(CamelModel):
    product_id: int
    name: str
    brand: str
    category: Optional[str] = None
    unit_price: Money
    quantity: int = Field(1, ge=1)
    image_ref: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class CartLine(CamelModel):
    id: int
    name: str
    brand: str
    category: Optional[str] = None
    price: Money
    quantity: int
    image_url: Optional[str] = None


# --- Checkout ---
class ShippingDetails(CamelModel):
    full_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    country: str = "India"

    def one_line_address(self) -> str:
        return f"{self.address}, {self.city}, {self.state} - {self.pincode}"


class PaymentMethod(str, Enum):
    ONLINE = "ONLINE"
    COD = "COD"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


class CreateOrderRequest(CamelModel):
    amount: int  # minor units
    currency: str
    receipt: str
    shipping_details: ShippingDetails
    cart: List[CartLine]
    total: Money


class GatewayOrder(CamelModel):
    id: str
    amount: int
    currency: str


class CodOrderRequest(CamelModel):
    shipping_details: ShippingDetails
    cart: List[CartLine]
    subtotal: Money
    shipping_cost: Money
    total: Money
    payment_method: PaymentMethod = PaymentMethod.COD


class CodOrderConfirmation(CamelModel):
    order_number: str = Field(..., min_length=1)


class VerifyPaymentRequest(CamelModel):
    razorpay_order_id: str = Field(..., alias="razorpay_order_id")
    razorpay_payment_id: str = Field(..., alias="razorpay_payment_id")
    razorpay_signature: str = Field(..., alias="razorpay_signature")
    shipping_details: ShippingDetails
    cart: List[CartLine]
    total: Money


class VerificationResult(CamelModel):
    success: bool
    order_number: Optional[str] = None


# --- Orders (admin) ---
class OrderItem(CamelModel):
    product_name: str = Field(..., validation_alias=AliasChoices("productName", "name"))
    brand: Optional[str] = None
    category: Optional[str] = None
    price: Money
    quantity: int


class Order(CamelModel):
    id: int
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_state: Optional[str] = None
    shipping_pincode: Optional[str] = None
    shipping_country: Optional[str] = None
    order_items: List[OrderItem] = Field(
        default_factory=list, validation_alias=AliasChoices("orderItems", "items")
    )
    subtotal: Optional[Money] = None
    shipping_cost: Optional[Money] = None
    tax: Optional[Money] = None
    total_amount: Money
    payment_method: PaymentMethod
    status: OrderStatus
    created_at: datetime
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None


class StatusUpdate(CamelModel):
    status: OrderStatus


# --- Auth ---
class LoginRequest(CamelModel):
    username: str
    password: str


class LoginResponse(CamelModel):
    token: str = Field(..., min_length=1)


class RazorpayKey(CamelModel):
    key: str


def decode(model: Any, data: Any):
    """Validate a backend payload, failing loudly instead of defaulting."""
    name = getattr(model, "__name__", None) or repr(model)
    try:
        return TypeAdapter(model).validate_python(data)
    except ValidationError as exc:
        raise DecodingException(f"Malformed {name} payload from server") from exc
