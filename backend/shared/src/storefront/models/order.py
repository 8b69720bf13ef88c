"""Order models for checkout and the order store.

Rupee amounts are Decimal (DynamoDB rejects floats) and are rendered as
JSON numbers. Field names are snake_case in Python and storage, camelCase
on the wire.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from .enums import OrderStatus, PaymentStatus

Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

CAMEL_CASE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ItemVariant(BaseModel):
    """Selected product variant."""

    model_config = CAMEL_CASE_CONFIG

    size: str | None = None
    color: str | None = None
    material: str | None = None


class OrderItem(BaseModel):
    """A single cart line."""

    model_config = CAMEL_CASE_CONFIG

    product_id: str = Field(..., description="Catalog product ID")
    product_name: str = Field(..., description="Product name at time of purchase")
    quantity: int = Field(..., ge=1, description="Number of units")
    price: Money = Field(..., ge=0, description="Unit price in rupees")
    image: str | None = None
    variant: ItemVariant | None = None


class ShippingAddress(BaseModel):
    """Postal address for delivery (also used for billing)."""

    model_config = CAMEL_CASE_CONFIG

    full_name: str
    phone: str
    email: str
    address_line1: str
    address_line2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str = "India"


class Customer(BaseModel):
    """Contact details of the paying customer."""

    model_config = CAMEL_CASE_CONFIG

    name: str
    email: str
    phone: str


class OrderCreate(BaseModel):
    """Checkout request submitted by the storefront."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "amount": 1500,
                    "currency": "INR",
                    "customer": {
                        "name": "Asha Verma",
                        "email": "asha@example.com",
                        "phone": "9876543210",
                    },
                    "items": [
                        {
                            "productId": "PRD-TEAK-STOOL",
                            "productName": "Teak Stool",
                            "quantity": 1,
                            "price": 1500,
                        }
                    ],
                    "shippingAddress": {
                        "fullName": "Asha Verma",
                        "phone": "9876543210",
                        "email": "asha@example.com",
                        "addressLine1": "12 MG Road",
                        "city": "Jaipur",
                        "state": "Rajasthan",
                        "postalCode": "302001",
                        "country": "India",
                    },
                }
            ]
        },
    )

    amount: Money = Field(..., description="Client-computed total in rupees")
    currency: str = Field(default="INR", description="ISO currency code")
    receipt: str | None = None
    notes: dict[str, Any] | None = None
    user_id: str | None = None
    customer: Customer
    items: list[OrderItem]
    shipping_address: ShippingAddress | None = None
    billing_address: ShippingAddress | None = None


class Order(BaseModel):
    """Order document persisted in the order store.

    Items, addresses, customer and amounts are written once at creation.
    Status fields are mutated only by payment reconciliation.
    """

    model_config = CAMEL_CASE_CONFIG

    order_id: str = Field(..., description="Internal order ID (ORD-...)")
    razorpay_order_id: str | None = Field(
        default=None, description="Gateway order ID (order_...)"
    )
    user_id: str | None = None

    items: list[OrderItem]
    subtotal: Money
    tax: Money = Decimal("0")
    shipping_charges: Money = Decimal("0")
    discount: Money = Decimal("0")
    total_amount: Money
    currency: str = "INR"

    customer: Customer
    shipping_address: ShippingAddress
    billing_address: ShippingAddress | None = None

    status: OrderStatus
    payment_status: PaymentStatus
    payment_id: str | None = None
    payment_method: str | None = None
    signature_verified: bool = False

    reservation_id: str | None = Field(
        default=None, description="Inventory reservation settled by the payment outcome"
    )
    invoice_paid: bool = False

    receipt: str | None = None
    notes: dict[str, str] | None = None

    created_at: datetime
    updated_at: datetime
    paid_at: datetime | None = None

    refund_id: str | None = None
    refund_amount: Money | None = None
    refunded_at: datetime | None = None


class OrderCreated(BaseModel):
    """Result of a successful order creation."""

    model_config = CAMEL_CASE_CONFIG

    order_id: str
    razorpay_order_id: str
    amount: int = Field(..., description="Gateway amount in paise")
    currency: str
    key_id: str = Field(..., description="Public gateway key for the checkout widget")
