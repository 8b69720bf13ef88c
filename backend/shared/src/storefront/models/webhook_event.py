"""Webhook event record for idempotency and auditing."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import ProcessingResult


class WebhookEventRecord(BaseModel):
    """Log of a received Razorpay webhook delivery.

    Used for:
    - Idempotency: an event already marked processed is never dispatched again
    - Auditing: every verified delivery is kept, never deleted
    - Debugging: failed deliveries keep their error message
    """

    model_config = ConfigDict(strict=True)

    event_id: str = Field(
        ...,
        description="Gateway event ID (X-Razorpay-Event-Id), or a generated fallback",
        examples=["evt_Nk3cJ2sXv1Yb8Q"],
    )
    event: str = Field(
        ...,
        description="Gateway event name",
        examples=["payment.captured", "refund.processed"],
    )
    entity: str = Field(default="unknown", description="payment, order, refund, ...")
    payload: str = Field(..., description="Raw request body as received")
    payload_hash: str = Field(..., description="SHA-256 of the raw body")
    signature_verified: bool = True
    processed: bool = False
    processing_result: ProcessingResult | None = None
    error: str | None = None
    received_at: datetime
    processed_at: datetime | None = None


class WebhookResponse(BaseModel):
    """Acknowledgement returned to the gateway for a verified delivery."""

    success: bool = True
    message: str
    event_id: str | None = None
    event: str | None = None
    processing_result: ProcessingResult
