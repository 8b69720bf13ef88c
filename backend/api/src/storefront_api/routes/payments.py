"""Payment endpoints for checkout-callback verification.

Provides REST endpoints for:
- Verifying the payment signature posted by the checkout widget
- Looking up a stored payment
- Reporting whether gateway credentials are configured
"""

from fastapi import APIRouter, Depends, Query

from storefront.models import ErrorResponse, PaymentVerification, PaymentVerificationResult
from storefront.services.payment_verification import PaymentVerificationService
from storefront.services.razorpay_service import GatewayConfigError, RazorpayService
from storefront_api.dependencies import get_gateway, get_payment_verification_service
from storefront_api.models import CheckEnvResponse, PaymentLookupResponse

router = APIRouter(tags=["payments"])


@router.post(
    "/razorpay/verify-payment",
    summary="Verify checkout payment",
    description="""
Verify `razorpay_signature` (HMAC-SHA256 of `order_id|payment_id` with the key
secret), confirm the payment with the gateway and update the order.

**Idempotent**: a payment already verified returns 200 without changes.
""",
    response_model=PaymentVerificationResult,
    responses={
        400: {"description": "Invalid signature or unsuccessful payment", "model": ErrorResponse},
        404: {"description": "Order not found", "model": ErrorResponse},
    },
)
async def verify_payment(
    body: PaymentVerification,
    verification: PaymentVerificationService = Depends(get_payment_verification_service),
) -> PaymentVerificationResult:
    """Verify a checkout callback."""
    return verification.verify(body)


@router.get(
    "/razorpay/verify-payment",
    summary="Get payment",
    description="Look up a stored payment by `paymentId`, or by `orderId` (internal or gateway).",
    response_model=PaymentLookupResponse,
    responses={
        400: {"description": "Neither paymentId nor orderId given", "model": ErrorResponse},
        404: {"description": "Payment not found", "model": ErrorResponse},
    },
)
async def get_payment(
    payment_id: str | None = Query(default=None, alias="paymentId"),
    order_id: str | None = Query(default=None, alias="orderId"),
    verification: PaymentVerificationService = Depends(get_payment_verification_service),
) -> PaymentLookupResponse:
    """Look up a payment."""
    return PaymentLookupResponse(payment=verification.lookup(payment_id, order_id))


@router.get(
    "/razorpay/check-env",
    summary="Check gateway configuration",
    description="Report which Razorpay parameters resolve in SSM. Secret values are never returned.",
    response_model=CheckEnvResponse,
)
async def check_env(gateway: RazorpayService = Depends(get_gateway)) -> CheckEnvResponse:
    """Report gateway configuration status."""
    status = gateway.config_status()
    missing = [
        name for name in ("key_id", "key_secret", "webhook_secret") if not status[name]
    ]
    return CheckEnvResponse(
        success=not missing,
        environment=status["environment"],
        key_id=status["key_id"],
        key_secret=status["key_secret"],
        webhook_secret=status["webhook_secret"],
        key_id_prefix=status.get("key_id_prefix"),
        troubleshooting=(
            GatewayConfigError(missing, status["environment"]).troubleshooting
            if missing
            else None
        ),
    )
