"""Backend services for storefront payment reconciliation."""

from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .inventory import (
    ReservationAlreadySettledError,
    ReservationLedger,
    ReservationNotFoundError,
)
from .order_service import OrderService, sanitize_notes
from .payment_verification import PaymentVerificationService
from .razorpay_service import (
    GatewayConfigError,
    RazorpayService,
    RazorpayServiceError,
    get_razorpay_service,
)
from .reconciliation import ReconciliationService
from .repositories import (
    AlertRepository,
    OrderRepository,
    PaymentRepository,
    WebhookEventRepository,
)
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .webhook_handler import WebhookHandler

__all__ = [
    "AlertRepository",
    "DynamoDBService",
    "GatewayConfigError",
    "OrderRepository",
    "OrderService",
    "PaymentRepository",
    "PaymentVerificationService",
    "RazorpayService",
    "RazorpayServiceError",
    "ReconciliationService",
    "ReservationAlreadySettledError",
    "ReservationLedger",
    "ReservationNotFoundError",
    "SSMService",
    "SSMServiceError",
    "WebhookEventRepository",
    "WebhookHandler",
    "get_dynamodb_service",
    "get_razorpay_service",
    "get_ssm_service",
    "reset_dynamodb_service",
    "sanitize_notes",
]
