"""Response envelopes for the Razorpay endpoints.

Bodies are camelCase on the wire, matching the checkout frontend.
"""

from pydantic import BaseModel, Field

from storefront.models import Order, OrderCreated, Payment
from storefront.models.order import CAMEL_CASE_CONFIG


class CreateOrderResponse(OrderCreated):
    """201 body for POST /razorpay/create-order."""

    success: bool = True
    message: str = "Order created successfully"


class OrderResponse(BaseModel):
    """Body for GET /razorpay/create-order."""

    model_config = CAMEL_CASE_CONFIG

    success: bool = True
    order: Order


class PaymentLookupResponse(BaseModel):
    """Body for GET /razorpay/verify-payment."""

    model_config = CAMEL_CASE_CONFIG

    success: bool = True
    payment: Payment


class CheckEnvResponse(BaseModel):
    """Gateway configuration report. Never contains secret values."""

    model_config = CAMEL_CASE_CONFIG

    success: bool
    environment: str
    key_id: bool
    key_secret: bool
    webhook_secret: bool
    key_id_prefix: str | None = Field(
        default=None, description="First characters of the key id (rzp_test_/rzp_live_)"
    )
    troubleshooting: list[str] | None = None
