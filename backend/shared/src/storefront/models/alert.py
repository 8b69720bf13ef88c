"""Alert and dispute records raised for manual admin follow-up."""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import AlertType


class Alert(BaseModel):
    """An append-only admin alert created as a reconciliation side effect."""

    alert_id: str
    type: AlertType
    message: str
    payment_id: str | None = None
    order_id: str | None = None
    reference_id: str | None = Field(
        default=None, description="Refund, dispute or reservation the alert is about"
    )
    event_id: str | None = Field(default=None, description="Webhook event that raised it")
    resolved: bool = False
    created_at: datetime


class Dispute(BaseModel):
    """A chargeback opened by the customer's bank."""

    dispute_id: str = Field(..., description="Gateway dispute ID (disp_...)")
    payment_id: str
    amount: int | None = Field(default=None, ge=0, description="Disputed amount in paise")
    currency: str | None = None
    reason_code: str | None = None
    reason_description: str | None = None
    phase: str | None = None
    status: str
    requires_action: bool = True
    respond_by: int | None = Field(default=None, description="Unix timestamp deadline")
    created_at: datetime
    resolved_at: datetime | None = None
