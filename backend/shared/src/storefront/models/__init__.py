"""Pydantic models for storefront payment data entities."""

from .alert import Alert, Dispute
from .enums import (
    TERMINAL_ORDER_STATUSES,
    AlertType,
    OrderStatus,
    PaymentStatus,
    ProcessingResult,
    ReservationStatus,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    RAZORPAY_ERROR_CODES,
    ErrorCode,
    ErrorResponse,
    PaymentError,
)
from .order import (
    Customer,
    ItemVariant,
    Money,
    Order,
    OrderCreate,
    OrderCreated,
    OrderItem,
    ShippingAddress,
)
from .payment import Payment, PaymentVerification, PaymentVerificationResult
from .razorpay_webhook import (
    HANDLED_EVENT_TYPES,
    WEBHOOK_EVENT_ADAPTER,
    DisputeCreatedEvent,
    DisputeEntity,
    DisputeLostEvent,
    DisputeWonEvent,
    InvoiceEntity,
    InvoicePaidEvent,
    OrderEntity,
    OrderPaidEvent,
    PaymentAuthorizedEvent,
    PaymentCapturedEvent,
    PaymentEntity,
    PaymentFailedEvent,
    RazorpayWebhookEvent,
    RefundCreatedEvent,
    RefundEntity,
    RefundFailedEvent,
    RefundProcessedEvent,
)
from .reservation import Reservation, ReservedItem
from .webhook_event import WebhookEventRecord, WebhookResponse

__all__ = [
    # Enums
    "AlertType",
    "OrderStatus",
    "PaymentStatus",
    "ProcessingResult",
    "ReservationStatus",
    "TERMINAL_ORDER_STATUSES",
    # Orders
    "Customer",
    "ItemVariant",
    "Money",
    "Order",
    "OrderCreate",
    "OrderCreated",
    "OrderItem",
    "ShippingAddress",
    # Payments
    "Payment",
    "PaymentVerification",
    "PaymentVerificationResult",
    # Reservations
    "Reservation",
    "ReservedItem",
    # Alerts
    "Alert",
    "Dispute",
    # Webhooks
    "DisputeCreatedEvent",
    "DisputeEntity",
    "DisputeLostEvent",
    "DisputeWonEvent",
    "HANDLED_EVENT_TYPES",
    "InvoiceEntity",
    "InvoicePaidEvent",
    "OrderEntity",
    "OrderPaidEvent",
    "PaymentAuthorizedEvent",
    "PaymentCapturedEvent",
    "PaymentEntity",
    "PaymentFailedEvent",
    "RazorpayWebhookEvent",
    "RefundCreatedEvent",
    "RefundEntity",
    "RefundFailedEvent",
    "RefundProcessedEvent",
    "WEBHOOK_EVENT_ADAPTER",
    "WebhookEventRecord",
    "WebhookResponse",
    # Errors
    "ErrorCode",
    "ErrorResponse",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "PaymentError",
    "RAZORPAY_ERROR_CODES",
]
