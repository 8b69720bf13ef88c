"""Webhook endpoint for Razorpay payment lifecycle events.

This endpoint does NOT require authentication: payloads are signed by the
gateway and verified against the webhook secret before any processing.
"""

from fastapi import APIRouter, Depends, Request

from storefront.models import ErrorResponse, WebhookResponse
from storefront.services.webhook_handler import WebhookHandler
from storefront_api.dependencies import get_webhook_handler

router = APIRouter(tags=["webhooks"])

SIGNATURE_HEADER = "X-Razorpay-Signature"
EVENT_ID_HEADER = "X-Razorpay-Event-Id"


@router.post(
    "/razorpay/webhook",
    summary="Receive Razorpay webhook events",
    description="""
Endpoint for Razorpay webhook events. Handles payment.authorized,
payment.captured, payment.failed, order.paid, refund.created,
refund.processed, refund.failed, payment.dispute.created/won/lost and
invoice.paid. Other event types are acknowledged and skipped.

**No authentication required** - the `X-Razorpay-Signature` header is
verified over the raw body using the webhook secret.

**Idempotent**: an event already processed (same event id) returns 200
with a 'duplicate' result.
""",
    response_model=WebhookResponse,
    responses={
        200: {"description": "Event received and processed (or acknowledged)"},
        400: {"description": "Missing/invalid signature or payload", "model": ErrorResponse},
        500: {"description": "Processing failed; the gateway will retry", "model": ErrorResponse},
    },
)
async def razorpay_webhook(
    request: Request,
    handler: WebhookHandler = Depends(get_webhook_handler),
) -> WebhookResponse:
    """Handle an incoming Razorpay webhook delivery."""
    payload = await request.body()
    return handler.handle(
        payload,
        request.headers.get(SIGNATURE_HEADER),
        request.headers.get(EVENT_ID_HEADER),
    )
