"""Status enums for orders, payments, reservations and webhook processing."""

from enum import Enum


class OrderStatus(str, Enum):
    """Lifecycle status of a storefront order."""

    CREATED = "created"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    """Gateway payment state, mirrored on both orders and payments."""

    CREATED = "created"
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    FAILED = "failed"
    REFUNDED = "refunded"


class ReservationStatus(str, Enum):
    """Settlement state of an inventory reservation."""

    HELD = "held"
    FINALIZED = "finalized"
    RESTORED = "restored"


class ProcessingResult(str, Enum):
    """Outcome of processing a single webhook delivery."""

    SUCCESS = "success"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    ERROR = "error"


class AlertType(str, Enum):
    """Kinds of alerts raised for manual admin follow-up."""

    REFUND_FAILED = "refund_failed"
    DISPUTE_LOST = "dispute_lost"
    RESERVATION_CONFLICT = "reservation_conflict"


# Order statuses that a late, non-terminal event must never overwrite.
TERMINAL_ORDER_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.PAID, OrderStatus.FAILED, OrderStatus.REFUNDED}
)
