"""Payment model for gateway payment records."""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import OrderStatus, PaymentStatus
from .order import CAMEL_CASE_CONFIG, Order


class Payment(BaseModel):
    """A gateway payment, keyed by the gateway payment ID.

    Upserted by webhook reconciliation: the first event for a payment
    creates the record and later events update it. Amounts are in paise.
    """

    model_config = CAMEL_CASE_CONFIG

    payment_id: str = Field(..., description="Gateway payment ID (pay_...)")
    razorpay_order_id: str | None = Field(
        default=None, description="Gateway order ID the payment belongs to"
    )
    order_id: str | None = Field(default=None, description="Internal order ID")
    amount: int | None = Field(default=None, ge=0, description="Amount in paise")
    currency: str | None = None
    status: PaymentStatus | None = None
    method: str | None = Field(
        default=None, description="card, netbanking, upi, wallet, ..."
    )
    email: str | None = None
    contact: str | None = None
    signature_verified: bool = False

    error_code: str | None = None
    error_description: str | None = None
    error_reason: str | None = None

    refunded: bool = False
    refund_id: str | None = None
    refund_status: str | None = None
    refund_amount: int | None = Field(default=None, ge=0, description="Paise")

    dispute_id: str | None = None
    dispute_status: str | None = None

    captured_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PaymentVerification(BaseModel):
    """Checkout callback fields posted by the payment widget."""

    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class PaymentVerificationResult(BaseModel):
    """Outcome of a checkout-callback verification."""

    model_config = CAMEL_CASE_CONFIG

    success: bool = True
    verified: bool = True
    order_id: str
    payment_id: str
    status: OrderStatus
    message: str
    order: Order | None = None
