"""Typed Razorpay webhook payloads.

Each handled event name maps to one model carrying only the entities its
reconciliation handler reads. Parsing goes through WEBHOOK_EVENT_ADAPTER,
which discriminates on the ``event`` field.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


# === Entities ===


class PaymentEntity(BaseModel):
    """Gateway payment entity (payload.payment.entity)."""

    id: str
    order_id: str | None = None
    amount: int | None = None
    currency: str | None = None
    status: str | None = None
    method: str | None = None
    email: str | None = None
    contact: str | None = None
    error_code: str | None = None
    error_description: str | None = None
    error_reason: str | None = None


class OrderEntity(BaseModel):
    """Gateway order entity (payload.order.entity)."""

    id: str
    amount: int | None = None
    amount_paid: int | None = None
    status: str | None = None


class RefundEntity(BaseModel):
    """Gateway refund entity (payload.refund.entity)."""

    id: str
    payment_id: str
    amount: int | None = None
    currency: str | None = None
    status: str | None = None


class DisputeEntity(BaseModel):
    """Gateway dispute entity (payload.dispute.entity)."""

    id: str
    payment_id: str
    amount: int | None = None
    currency: str | None = None
    reason_code: str | None = None
    reason_description: str | None = None
    phase: str | None = None
    status: str | None = None
    respond_by: int | None = None


class InvoiceEntity(BaseModel):
    """Gateway invoice entity (payload.invoice.entity)."""

    id: str
    order_id: str | None = None
    payment_id: str | None = None
    status: str | None = None


class PaymentWrapper(BaseModel):
    entity: PaymentEntity


class OrderWrapper(BaseModel):
    entity: OrderEntity


class RefundWrapper(BaseModel):
    entity: RefundEntity


class DisputeWrapper(BaseModel):
    entity: DisputeEntity


class InvoiceWrapper(BaseModel):
    entity: InvoiceEntity


# === Payloads ===


class PaymentPayload(BaseModel):
    payment: PaymentWrapper


class OrderPaidPayload(BaseModel):
    order: OrderWrapper
    payment: PaymentWrapper | None = None


class RefundPayload(BaseModel):
    refund: RefundWrapper
    payment: PaymentWrapper | None = None


class DisputePayload(BaseModel):
    dispute: DisputeWrapper
    payment: PaymentWrapper | None = None


class InvoicePayload(BaseModel):
    invoice: InvoiceWrapper
    order: OrderWrapper | None = None
    payment: PaymentWrapper | None = None


# === Events ===


class _WebhookEnvelope(BaseModel):
    account_id: str | None = None
    contains: list[str] = Field(default_factory=list)
    created_at: int | None = None


class PaymentAuthorizedEvent(_WebhookEnvelope):
    event: Literal["payment.authorized"]
    payload: PaymentPayload


class PaymentCapturedEvent(_WebhookEnvelope):
    event: Literal["payment.captured"]
    payload: PaymentPayload


class PaymentFailedEvent(_WebhookEnvelope):
    event: Literal["payment.failed"]
    payload: PaymentPayload


class OrderPaidEvent(_WebhookEnvelope):
    event: Literal["order.paid"]
    payload: OrderPaidPayload


class RefundCreatedEvent(_WebhookEnvelope):
    event: Literal["refund.created"]
    payload: RefundPayload


class RefundProcessedEvent(_WebhookEnvelope):
    event: Literal["refund.processed"]
    payload: RefundPayload


class RefundFailedEvent(_WebhookEnvelope):
    event: Literal["refund.failed"]
    payload: RefundPayload


class DisputeCreatedEvent(_WebhookEnvelope):
    event: Literal["payment.dispute.created"]
    payload: DisputePayload


class DisputeWonEvent(_WebhookEnvelope):
    event: Literal["payment.dispute.won"]
    payload: DisputePayload


class DisputeLostEvent(_WebhookEnvelope):
    event: Literal["payment.dispute.lost"]
    payload: DisputePayload


class InvoicePaidEvent(_WebhookEnvelope):
    event: Literal["invoice.paid"]
    payload: InvoicePayload


RazorpayWebhookEvent = Annotated[
    Union[
        PaymentAuthorizedEvent,
        PaymentCapturedEvent,
        PaymentFailedEvent,
        OrderPaidEvent,
        RefundCreatedEvent,
        RefundProcessedEvent,
        RefundFailedEvent,
        DisputeCreatedEvent,
        DisputeWonEvent,
        DisputeLostEvent,
        InvoicePaidEvent,
    ],
    Field(discriminator="event"),
]

WEBHOOK_EVENT_ADAPTER: TypeAdapter[RazorpayWebhookEvent] = TypeAdapter(RazorpayWebhookEvent)

HANDLED_EVENT_TYPES: frozenset[str] = frozenset(
    {
        "payment.authorized",
        "payment.captured",
        "payment.failed",
        "order.paid",
        "refund.created",
        "refund.processed",
        "refund.failed",
        "payment.dispute.created",
        "payment.dispute.won",
        "payment.dispute.lost",
        "invoice.paid",
    }
)
