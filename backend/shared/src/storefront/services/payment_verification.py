"""Checkout-callback payment verification and payment lookup.

The checkout widget posts the order id, payment id and signature once the
customer completes payment. The signature is checked, the payment is fetched
from the gateway, and the result is applied through the same reconciliation
steps as the matching webhook, so the reservation is still settled once.
"""

from storefront.models import (
    ErrorCode,
    OrderStatus,
    Payment,
    PaymentEntity,
    PaymentError,
    PaymentStatus,
    PaymentVerification,
    PaymentVerificationResult,
)
from storefront.utils.logging import get_logger, log_payment_operation

from .order_service import to_paise
from .razorpay_service import GatewayConfigError, RazorpayService, RazorpayServiceError
from .reconciliation import ReconciliationService
from .repositories import OrderRepository, PaymentRepository

logger = get_logger(__name__)

SUCCESSFUL_PAYMENT_STATUSES = frozenset({"captured", "authorized"})


class PaymentVerificationService:
    """Verifies checkout callbacks and looks up stored payments."""

    def __init__(
        self,
        orders: OrderRepository,
        payments: PaymentRepository,
        gateway: RazorpayService,
        reconciliation: ReconciliationService,
    ) -> None:
        self.orders = orders
        self.payments = payments
        self.gateway = gateway
        self.reconciliation = reconciliation

    def verify(self, data: PaymentVerification) -> PaymentVerificationResult:
        """Verify a checkout callback and reconcile the payment.

        Args:
            data: Order id, payment id and signature posted by the widget

        Returns:
            Verification result with the updated order.

        Raises:
            PaymentError: Invalid signature, unknown order, unsuccessful
                payment or amount mismatch.
        """
        try:
            valid = self.gateway.verify_payment_signature(
                data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature
            )
        except GatewayConfigError as e:
            raise PaymentError(
                ErrorCode.GATEWAY_NOT_CONFIGURED,
                details={"missing": e.missing, "troubleshooting": e.troubleshooting},
            ) from e
        if not valid:
            logger.warning(
                "Invalid checkout signature for payment %s (order %s)",
                data.razorpay_payment_id,
                data.razorpay_order_id,
            )
            raise PaymentError(ErrorCode.INVALID_PAYMENT_SIGNATURE)

        order = self.orders.find_by_razorpay_order_id(data.razorpay_order_id)
        if order is None:
            raise PaymentError(
                ErrorCode.ORDER_NOT_FOUND,
                details={"razorpay_order_id": data.razorpay_order_id},
            )

        existing = self.payments.get(data.razorpay_payment_id)
        if existing is not None and existing.signature_verified:
            return PaymentVerificationResult(
                order_id=order.order_id,
                payment_id=data.razorpay_payment_id,
                status=order.status,
                message="Payment already verified",
                order=order,
            )

        try:
            gateway_payment = self.gateway.fetch_payment(data.razorpay_payment_id)
        except RazorpayServiceError as e:
            # Fall back to the verified signature; the webhook fills in the rest
            logger.warning(
                "Could not fetch payment %s, trusting verified signature: %s",
                data.razorpay_payment_id,
                e,
            )
            entity = PaymentEntity(id=data.razorpay_payment_id, order_id=data.razorpay_order_id)
            self.reconciliation.apply_captured(entity, data.razorpay_payment_id, signature_verified=True)
            return self._result(order.order_id, data.razorpay_payment_id)

        status = gateway_payment.get("status")
        if status not in SUCCESSFUL_PAYMENT_STATUSES:
            raise PaymentError(
                ErrorCode.PAYMENT_NOT_SUCCESSFUL,
                f"Payment not successful. Status: {status}",
            )

        expected = to_paise(order.total_amount)
        if gateway_payment.get("amount") != expected:
            log_payment_operation(
                logger,
                "verify_payment",
                order_id=order.order_id,
                payment_id=data.razorpay_payment_id,
                amount=gateway_payment.get("amount"),
                error="amount mismatch",
                expected_amount=expected,
            )
            raise PaymentError(
                ErrorCode.PAYMENT_AMOUNT_MISMATCH,
                details={"expected": expected, "received": gateway_payment.get("amount")},
            )

        entity = PaymentEntity.model_validate(
            {**gateway_payment, "order_id": data.razorpay_order_id}
        )
        if status == "captured":
            self.reconciliation.apply_captured(
                entity, data.razorpay_payment_id, signature_verified=True
            )
        else:
            self.reconciliation.apply_authorized(entity, data.razorpay_payment_id)
            self.payments.upsert(data.razorpay_payment_id, signature_verified=True)

        log_payment_operation(
            logger,
            "verify_payment",
            order_id=order.order_id,
            payment_id=data.razorpay_payment_id,
            amount=entity.amount,
            status=status,
        )
        return self._result(order.order_id, data.razorpay_payment_id)

    def _result(self, order_id: str, payment_id: str) -> PaymentVerificationResult:
        order = self.orders.get(order_id)
        return PaymentVerificationResult(
            order_id=order_id,
            payment_id=payment_id,
            status=order.status if order else OrderStatus.PAID,
            message="Payment verified successfully",
            order=order,
        )

    def lookup(self, payment_id: str | None = None, order_id: str | None = None) -> Payment:
        """Find a stored payment by payment id, or by internal or gateway order id.

        Raises:
            PaymentError: If neither id is given, or nothing matches.
        """
        if not payment_id and not order_id:
            raise PaymentError(
                ErrorCode.INVALID_REQUEST, "Payment ID or Order ID is required"
            )

        if payment_id:
            payment = self.payments.get(payment_id)
        else:
            order = self.orders.get(order_id)
            razorpay_order_id = order.razorpay_order_id if order else order_id
            candidates = self.payments.find_by_razorpay_order_id(razorpay_order_id)
            # Prefer the captured attempt when the customer retried
            candidates.sort(key=lambda p: p.status != PaymentStatus.CAPTURED)
            payment = candidates[0] if candidates else None

        if payment is None:
            raise PaymentError(
                ErrorCode.PAYMENT_NOT_FOUND,
                details={"payment_id": payment_id, "order_id": order_id},
            )
        return payment
