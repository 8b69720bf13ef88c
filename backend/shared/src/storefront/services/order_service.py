"""Order creation service.

Validates a checkout request, recomputes the total server-side, creates the
gateway order and inventory reservation, and persists the order record.
"""

import datetime as dt
import re
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from storefront.models import (
    ErrorCode,
    Order,
    OrderCreate,
    OrderCreated,
    OrderStatus,
    PaymentError,
    PaymentStatus,
)
from storefront.utils.logging import get_logger, log_payment_operation

from .inventory import ReservationLedger
from .razorpay_service import GatewayConfigError, RazorpayService, RazorpayServiceError
from .repositories import OrderRepository

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INDIAN_MOBILE_PATTERN = re.compile(r"^[6-9]\d{9}$")

MIN_AMOUNT = Decimal("1")
MAX_AMOUNT = Decimal("1000000")
# Allowed divergence between client total and recomputed total, in rupees
AMOUNT_TOLERANCE = Decimal("1")
NOTE_VALUE_LIMIT = 512


def sanitize_notes(notes: dict[str, Any]) -> dict[str, str]:
    """Keep only string and number note values, truncated to the gateway limit."""
    sanitized: dict[str, str] = {}
    for key, value in notes.items():
        # bool is an int subclass but not a note value
        if isinstance(value, bool):
            continue
        if isinstance(value, (str, int, float, Decimal)):
            sanitized[key] = str(value)[:NOTE_VALUE_LIMIT]
    return sanitized


def normalize_phone(phone: str) -> str:
    """Strip formatting and country code, keeping the last 10 digits."""
    return re.sub(r"\D", "", phone)[-10:]


def to_paise(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class OrderService:
    """Creates and fetches storefront orders."""

    def __init__(
        self,
        orders: OrderRepository,
        reservations: ReservationLedger,
        gateway: RazorpayService,
    ) -> None:
        """Initialize order service.

        Args:
            orders: Order Store repository
            reservations: Inventory reservation ledger
            gateway: Razorpay gateway service
        """
        self.orders = orders
        self.reservations = reservations
        self.gateway = gateway

    def _generate_order_id(self) -> str:
        return f"ORD-{uuid.uuid4().hex[:12].upper()}"

    def _generate_receipt(self) -> str:
        return f"RCPT-{uuid.uuid4().hex[:12].upper()}"

    def _release_reservation(self, order_id: str, reservation_id: str) -> None:
        """Restore stock held for an order that was never saved."""
        try:
            self.reservations.restore_reservation(reservation_id)
        except Exception as e:
            log_payment_operation(
                logger,
                "release_unsaved_reservation",
                order_id=order_id,
                reservation_id=reservation_id,
                error=str(e),
            )

    def validate(self, request: OrderCreate) -> Decimal:
        """Validate a checkout request.

        Returns:
            The server-side items subtotal.

        Raises:
            PaymentError: With a field-specific code on the first failed check.
        """
        if not request.items or not request.amount:
            raise PaymentError(ErrorCode.INVALID_REQUEST)

        if not MIN_AMOUNT <= request.amount <= MAX_AMOUNT:
            raise PaymentError(ErrorCode.INVALID_AMOUNT)

        customer = request.customer
        if not (customer.name.strip() and customer.email.strip() and customer.phone.strip()):
            raise PaymentError(
                ErrorCode.INVALID_REQUEST,
                "Customer name, email, and phone are required",
            )

        if not EMAIL_PATTERN.match(customer.email):
            raise PaymentError(ErrorCode.INVALID_EMAIL)

        if not INDIAN_MOBILE_PATTERN.match(normalize_phone(customer.phone)):
            raise PaymentError(ErrorCode.INVALID_PHONE)

        if request.shipping_address is None:
            raise PaymentError(ErrorCode.MISSING_SHIPPING_ADDRESS)

        subtotal = sum((item.price * item.quantity for item in request.items), Decimal("0"))
        if abs(subtotal - request.amount) > AMOUNT_TOLERANCE:
            raise PaymentError(
                ErrorCode.AMOUNT_MISMATCH,
                details={
                    "submitted": str(request.amount),
                    "calculated": str(subtotal),
                },
            )
        return subtotal

    def create_order(self, request: OrderCreate) -> OrderCreated:
        """Create a gateway order and persist the local order record.

        Args:
            request: Validated checkout payload

        Returns:
            Gateway order handle and public key for the checkout widget.

        Raises:
            PaymentError: On validation, configuration, gateway or storage failure.
        """
        try:
            self.gateway.ensure_configured()
            key_id = self.gateway.get_key_id()
        except GatewayConfigError as e:
            logger.error("Payment gateway not configured: %s", e)
            raise PaymentError(
                ErrorCode.GATEWAY_NOT_CONFIGURED,
                details={"missing": e.missing, "troubleshooting": e.troubleshooting},
            ) from e

        subtotal = self.validate(request)

        customer = request.customer
        notes = sanitize_notes(
            {
                "customer_name": customer.name,
                "customer_email": customer.email,
                "customer_phone": customer.phone,
                "items_count": len(request.items),
                **(request.notes or {}),
            }
        )
        receipt = request.receipt or self._generate_receipt()

        try:
            gateway_order = self.gateway.create_order(
                amount_paise=to_paise(request.amount),
                currency=request.currency,
                receipt=receipt,
                notes=notes,
            )
        except RazorpayServiceError as e:
            log_payment_operation(
                logger,
                "create_gateway_order",
                amount=request.amount,
                error=str(e),
                gateway_error_code=e.gateway_error_code,
            )
            raise PaymentError(
                ErrorCode.GATEWAY_ERROR,
                str(e) or None,
                details={"gateway_error_code": e.gateway_error_code},
                status_code=e.status_code,
            ) from e

        order_id = self._generate_order_id()
        try:
            reservation = self.reservations.create_reservation(order_id, request.items)
        except Exception as e:
            logger.exception("Failed to reserve inventory for order %s", order_id)
            raise PaymentError(ErrorCode.ORDER_SAVE_FAILED, details={"error": str(e)}) from e

        now = dt.datetime.now(dt.UTC)
        order = Order(
            order_id=order_id,
            razorpay_order_id=gateway_order["id"],
            user_id=request.user_id,
            items=request.items,
            subtotal=subtotal,
            total_amount=request.amount,
            currency=gateway_order.get("currency", request.currency),
            customer=customer,
            shipping_address=request.shipping_address,
            billing_address=request.billing_address,
            status=OrderStatus.CREATED,
            payment_status=PaymentStatus.CREATED,
            reservation_id=reservation.reservation_id,
            receipt=gateway_order.get("receipt", receipt),
            notes=notes,
            created_at=now,
            updated_at=now,
        )

        try:
            saved = self.orders.insert(order)
        except Exception as e:
            logger.exception("Failed to save order %s", order_id)
            self._release_reservation(order_id, reservation.reservation_id)
            raise PaymentError(ErrorCode.ORDER_SAVE_FAILED, details={"error": str(e)}) from e
        if not saved:
            self._release_reservation(order_id, reservation.reservation_id)
            raise PaymentError(ErrorCode.ORDER_SAVE_FAILED)

        log_payment_operation(
            logger,
            "create_order",
            order_id=order_id,
            reservation_id=reservation.reservation_id,
            amount=request.amount,
            status=OrderStatus.CREATED.value,
            razorpay_order_id=gateway_order["id"],
        )

        return OrderCreated(
            order_id=order_id,
            razorpay_order_id=gateway_order["id"],
            amount=int(gateway_order.get("amount", to_paise(request.amount))),
            currency=order.currency,
            key_id=key_id,
        )

    def get_order(self, order_id: str) -> Order:
        """Fetch an order by internal ID.

        Raises:
            PaymentError: ORDER_NOT_FOUND if absent.
        """
        order = self.orders.get(order_id)
        if order is None:
            raise PaymentError(ErrorCode.ORDER_NOT_FOUND, details={"order_id": order_id})
        return order
