"""Reconciliation handlers for Razorpay payment lifecycle events.

Each handler applies one event's state transition to the Order Store, the
payment records and the reservation ledger, and returns a
``(processing_result, error_message)`` tuple.

Order status updates are conditional writes, so a late or repeated event
never moves an order out of a terminal state it should keep. Payment state
is authoritative: once it is written, failures in inventory side effects are
logged (and raised as alerts) but never undo it.
"""

import datetime as dt
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from storefront.models import (
    TERMINAL_ORDER_STATUSES,
    Alert,
    AlertType,
    Dispute,
    DisputeCreatedEvent,
    DisputeEntity,
    DisputeLostEvent,
    DisputeWonEvent,
    InvoicePaidEvent,
    Order,
    OrderPaidEvent,
    OrderStatus,
    PaymentAuthorizedEvent,
    PaymentCapturedEvent,
    PaymentEntity,
    PaymentFailedEvent,
    PaymentStatus,
    ProcessingResult,
    RazorpayWebhookEvent,
    RefundCreatedEvent,
    RefundEntity,
    RefundFailedEvent,
    RefundProcessedEvent,
)
from storefront.utils.logging import get_logger, log_payment_operation, log_webhook_event

from .inventory import (
    ReservationAlreadySettledError,
    ReservationLedger,
    ReservationNotFoundError,
)
from .repositories import AlertRepository, OrderRepository, PaymentRepository

logger = get_logger(__name__)

HandlerResult = tuple[ProcessingResult, str | None]

# Payment states a late authorized/failed event must not overwrite
SETTLED_PAYMENT_STATUSES = frozenset(
    {PaymentStatus.CAPTURED, PaymentStatus.FAILED, PaymentStatus.REFUNDED}
)

# Order states an authorized or failed event may still move
OPEN_ORDER_STATUSES = tuple(s for s in OrderStatus if s not in TERMINAL_ORDER_STATUSES)


def _now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class ReconciliationService:
    """Applies verified gateway events to local state."""

    def __init__(
        self,
        orders: OrderRepository,
        payments: PaymentRepository,
        alerts: AlertRepository,
        reservations: ReservationLedger,
    ) -> None:
        self.orders = orders
        self.payments = payments
        self.alerts = alerts
        self.reservations = reservations
        self._handlers: dict[str, Callable[[Any, str], HandlerResult]] = {
            "payment.authorized": self.handle_payment_authorized,
            "payment.captured": self.handle_payment_captured,
            "payment.failed": self.handle_payment_failed,
            "order.paid": self.handle_order_paid,
            "refund.created": self.handle_refund_created,
            "refund.processed": self.handle_refund_processed,
            "refund.failed": self.handle_refund_failed,
            "payment.dispute.created": self.handle_dispute_created,
            "payment.dispute.won": self.handle_dispute_won,
            "payment.dispute.lost": self.handle_dispute_lost,
            "invoice.paid": self.handle_invoice_paid,
        }

    def reconcile(self, event: RazorpayWebhookEvent, event_id: str) -> HandlerResult:
        """Dispatch a parsed event to its handler.

        Args:
            event: Typed webhook event
            event_id: Idempotency key of the delivery

        Returns:
            Tuple of (processing_result, error_message)
        """
        handler = self._handlers[event.event]
        return handler(event, event_id)

    # === Shared steps ===

    def _find_order(self, razorpay_order_id: str | None) -> Order | None:
        if not razorpay_order_id:
            return None
        return self.orders.find_by_razorpay_order_id(razorpay_order_id)

    def _guarded_payment_status(
        self, payment_id: str, status: PaymentStatus, protected: frozenset[PaymentStatus]
    ) -> PaymentStatus | None:
        """Return ``status`` unless the stored payment is already in ``protected``."""
        existing = self.payments.get(payment_id)
        if existing is not None and existing.status in protected:
            logger.info(
                "Payment %s already %s, not overwriting with %s",
                payment_id,
                existing.status.value,
                status.value,
            )
            return None
        return status

    def _upsert_payment(
        self,
        entity: PaymentEntity,
        status: PaymentStatus | None,
        order: Order | None,
        **fields: Any,
    ) -> None:
        self.payments.upsert(
            entity.id,
            razorpay_order_id=entity.order_id,
            order_id=order.order_id if order else None,
            amount=entity.amount,
            currency=entity.currency,
            status=status,
            method=entity.method,
            email=entity.email,
            contact=entity.contact,
            **fields,
        )

    def _settle_reservation(
        self,
        order: Order,
        status: OrderStatus,
        *,
        source_id: str,
        payment_id: str,
    ) -> None:
        """Finalize or restore the order's reservation, never raising."""
        reservation_id = order.reservation_id
        if not reservation_id:
            logger.warning("Order %s has no reservation to settle", order.order_id)
            return

        settle = (
            self.reservations.finalize_reservation
            if status == OrderStatus.PAID
            else self.reservations.restore_reservation
        )
        try:
            settle(reservation_id)
        except ReservationAlreadySettledError as e:
            log_payment_operation(
                logger,
                "settle_reservation",
                order_id=order.order_id,
                payment_id=payment_id,
                reservation_id=reservation_id,
                error=str(e),
            )
            self.alerts.create_alert(
                Alert(
                    alert_id=f"ALR-RSV-{reservation_id}",
                    type=AlertType.RESERVATION_CONFLICT,
                    message=(
                        f"Order {order.order_id} is {status.value} but reservation "
                        f"{reservation_id} was already {e.current.value}"
                    ),
                    payment_id=payment_id,
                    order_id=order.order_id,
                    reference_id=reservation_id,
                    event_id=source_id,
                    created_at=_now(),
                )
            )
        except ReservationNotFoundError as e:
            logger.warning("Cannot settle reservation for order %s: %s", order.order_id, e)
        except Exception:
            logger.exception(
                "Reservation %s settlement failed for order %s", reservation_id, order.order_id
            )

    # === Payment events ===

    def apply_authorized(self, entity: PaymentEntity, source_id: str) -> HandlerResult:
        """Record an authorized payment and move a fresh order to pending."""
        order = self._find_order(entity.order_id)
        status = self._guarded_payment_status(
            entity.id, PaymentStatus.AUTHORIZED, SETTLED_PAYMENT_STATUSES
        )
        self._upsert_payment(entity, status, order)

        if order is None:
            log_webhook_event(
                logger,
                "payment.authorized",
                source_id,
                payment_id=entity.id,
                result="skipped",
                razorpay_order_id=entity.order_id,
            )
            return ProcessingResult.SKIPPED, f"Order not found for {entity.order_id}"

        updated = self.orders.update_status(
            order.order_id,
            OrderStatus.PENDING,
            PaymentStatus.AUTHORIZED,
            only_from=OPEN_ORDER_STATUSES,
            payment_id=entity.id,
            payment_method=entity.method,
        )
        if updated is None:
            logger.info(
                "Order %s already %s, ignoring late authorization",
                order.order_id,
                order.status.value,
            )

        log_webhook_event(
            logger,
            "payment.authorized",
            source_id,
            order_id=order.order_id,
            payment_id=entity.id,
            result="success",
        )
        return ProcessingResult.SUCCESS, None

    def apply_captured(
        self, entity: PaymentEntity, source_id: str, *, signature_verified: bool = False
    ) -> HandlerResult:
        """Mark the order paid and finalize its reservation (once)."""
        order = self._find_order(entity.order_id)
        status = self._guarded_payment_status(
            entity.id, PaymentStatus.CAPTURED, frozenset({PaymentStatus.REFUNDED})
        )
        now = _now()
        self._upsert_payment(
            entity,
            status,
            order,
            captured_at=now,
            signature_verified=signature_verified or None,
        )

        if order is None:
            log_webhook_event(
                logger,
                "payment.captured",
                source_id,
                payment_id=entity.id,
                result="skipped",
                razorpay_order_id=entity.order_id,
            )
            return ProcessingResult.SKIPPED, f"Order not found for {entity.order_id}"

        # Captured overrides an earlier failed attempt on the same order
        updated = self.orders.update_status(
            order.order_id,
            OrderStatus.PAID,
            PaymentStatus.CAPTURED,
            never_from=(OrderStatus.REFUNDED,),
            payment_id=entity.id,
            payment_method=entity.method,
            paid_at=now,
            signature_verified=signature_verified or None,
        )
        if updated is None:
            logger.warning("Order %s already refunded, capture not applied", order.order_id)
            return ProcessingResult.SKIPPED, f"Order {order.order_id} already refunded"

        self._settle_reservation(
            updated, OrderStatus.PAID, source_id=source_id, payment_id=entity.id
        )

        log_webhook_event(
            logger,
            "payment.captured",
            source_id,
            order_id=order.order_id,
            payment_id=entity.id,
            result="success",
        )
        return ProcessingResult.SUCCESS, None

    def apply_failed(self, entity: PaymentEntity, source_id: str) -> HandlerResult:
        """Mark the order failed and restore its reservation."""
        order = self._find_order(entity.order_id)
        status = self._guarded_payment_status(
            entity.id,
            PaymentStatus.FAILED,
            frozenset({PaymentStatus.CAPTURED, PaymentStatus.REFUNDED}),
        )
        self._upsert_payment(
            entity,
            status,
            order,
            error_code=entity.error_code,
            error_description=entity.error_description,
            error_reason=entity.error_reason,
        )

        if order is None:
            log_webhook_event(
                logger,
                "payment.failed",
                source_id,
                payment_id=entity.id,
                result="skipped",
                razorpay_order_id=entity.order_id,
            )
            return ProcessingResult.SKIPPED, f"Order not found for {entity.order_id}"

        updated = self.orders.update_status(
            order.order_id,
            OrderStatus.FAILED,
            PaymentStatus.FAILED,
            only_from=OPEN_ORDER_STATUSES,
            payment_id=entity.id,
        )
        if updated is None:
            current = self.orders.get(order.order_id)
            if current is None or current.status != OrderStatus.FAILED:
                logger.info(
                    "Order %s is %s, ignoring failed payment %s",
                    order.order_id,
                    current.status.value if current else "missing",
                    entity.id,
                )
                return ProcessingResult.SUCCESS, None
            updated = current

        self._settle_reservation(
            updated, OrderStatus.FAILED, source_id=source_id, payment_id=entity.id
        )

        log_webhook_event(
            logger,
            "payment.failed",
            source_id,
            order_id=order.order_id,
            payment_id=entity.id,
            result="success",
            error_description=entity.error_description,
        )
        return ProcessingResult.SUCCESS, None

    def handle_payment_authorized(
        self, event: PaymentAuthorizedEvent, event_id: str
    ) -> HandlerResult:
        return self.apply_authorized(event.payload.payment.entity, event_id)

    def handle_payment_captured(self, event: PaymentCapturedEvent, event_id: str) -> HandlerResult:
        return self.apply_captured(event.payload.payment.entity, event_id)

    def handle_payment_failed(self, event: PaymentFailedEvent, event_id: str) -> HandlerResult:
        return self.apply_failed(event.payload.payment.entity, event_id)

    def handle_order_paid(self, event: OrderPaidEvent, event_id: str) -> HandlerResult:
        """Redundant paid confirmation. Never settles the reservation."""
        gateway_order = event.payload.order.entity
        payment = event.payload.payment.entity if event.payload.payment else None

        order = self._find_order(gateway_order.id)
        if payment is not None:
            status = self._guarded_payment_status(
                payment.id, PaymentStatus.CAPTURED, frozenset({PaymentStatus.REFUNDED})
            )
            self._upsert_payment(payment, status, order)

        if order is None:
            log_webhook_event(
                logger, "order.paid", event_id, result="skipped", razorpay_order_id=gateway_order.id
            )
            return ProcessingResult.SKIPPED, f"Order not found for {gateway_order.id}"

        updated = self.orders.update_status(
            order.order_id,
            OrderStatus.PAID,
            PaymentStatus.CAPTURED,
            never_from=(OrderStatus.REFUNDED,),
            payment_id=payment.id if payment else None,
            paid_at=order.paid_at or _now(),
        )
        if updated is None:
            logger.warning("Order %s already refunded, order.paid ignored", order.order_id)

        log_webhook_event(
            logger,
            "order.paid",
            event_id,
            order_id=order.order_id,
            payment_id=payment.id if payment else None,
            result="success",
        )
        return ProcessingResult.SUCCESS, None

    # === Refund events ===

    def _order_for_payment(self, payment_id: str, fallback_order_id: str | None) -> Order | None:
        payment = self.payments.get(payment_id)
        razorpay_order_id = payment.razorpay_order_id if payment else None
        return self._find_order(razorpay_order_id or fallback_order_id)

    def handle_refund_created(self, event: RefundCreatedEvent, event_id: str) -> HandlerResult:
        refund: RefundEntity = event.payload.refund.entity
        payment = event.payload.payment.entity if event.payload.payment else None

        self.payments.upsert(
            refund.payment_id,
            refunded=True,
            refund_id=refund.id,
            refund_status=refund.status or "created",
            refund_amount=refund.amount,
        )

        order = self._order_for_payment(refund.payment_id, payment.order_id if payment else None)
        if order is None:
            log_webhook_event(
                logger, "refund.created", event_id, payment_id=refund.payment_id, result="skipped"
            )
            return ProcessingResult.SKIPPED, f"Order not found for payment {refund.payment_id}"

        now = _now()
        self.orders.update_status(
            order.order_id,
            OrderStatus.REFUNDED,
            PaymentStatus.REFUNDED,
            refund_id=refund.id,
            refund_amount=(
                Decimal(refund.amount) / 100 if refund.amount is not None else None
            ),
            refunded_at=now,
        )

        log_webhook_event(
            logger,
            "refund.created",
            event_id,
            order_id=order.order_id,
            payment_id=refund.payment_id,
            result="success",
            refund_id=refund.id,
        )
        return ProcessingResult.SUCCESS, None

    def handle_refund_processed(self, event: RefundProcessedEvent, event_id: str) -> HandlerResult:
        refund: RefundEntity = event.payload.refund.entity
        self.payments.upsert(
            refund.payment_id,
            refunded=True,
            refund_id=refund.id,
            refund_status="processed",
        )
        log_webhook_event(
            logger,
            "refund.processed",
            event_id,
            payment_id=refund.payment_id,
            result="success",
            refund_id=refund.id,
        )
        return ProcessingResult.SUCCESS, None

    def handle_refund_failed(self, event: RefundFailedEvent, event_id: str) -> HandlerResult:
        refund: RefundEntity = event.payload.refund.entity
        self.payments.upsert(
            refund.payment_id,
            refund_id=refund.id,
            refund_status="failed",
        )
        order = self._order_for_payment(refund.payment_id, None)
        self.alerts.create_alert(
            Alert(
                alert_id=f"ALR-REFUND-{refund.id}",
                type=AlertType.REFUND_FAILED,
                message=f"Refund {refund.id} for payment {refund.payment_id} failed",
                payment_id=refund.payment_id,
                order_id=order.order_id if order else None,
                reference_id=refund.id,
                event_id=event_id,
                created_at=_now(),
            )
        )
        log_webhook_event(
            logger,
            "refund.failed",
            event_id,
            payment_id=refund.payment_id,
            result="success",
            refund_id=refund.id,
        )
        return ProcessingResult.SUCCESS, None

    # === Dispute events ===

    def handle_dispute_created(self, event: DisputeCreatedEvent, event_id: str) -> HandlerResult:
        dispute: DisputeEntity = event.payload.dispute.entity
        self.payments.upsert(
            dispute.payment_id, dispute_id=dispute.id, dispute_status="created"
        )
        self.alerts.create_dispute(
            Dispute(
                dispute_id=dispute.id,
                payment_id=dispute.payment_id,
                amount=dispute.amount,
                currency=dispute.currency,
                reason_code=dispute.reason_code,
                reason_description=dispute.reason_description,
                phase=dispute.phase,
                status=dispute.status or "open",
                requires_action=True,
                respond_by=dispute.respond_by,
                created_at=_now(),
            )
        )
        log_webhook_event(
            logger,
            "payment.dispute.created",
            event_id,
            payment_id=dispute.payment_id,
            result="success",
            dispute_id=dispute.id,
        )
        return ProcessingResult.SUCCESS, None

    def _close_dispute(
        self,
        event_name: str,
        event: DisputeWonEvent | DisputeLostEvent,
        event_id: str,
        outcome: str,
    ) -> DisputeEntity:
        dispute: DisputeEntity = event.payload.dispute.entity
        self.payments.upsert(dispute.payment_id, dispute_id=dispute.id, dispute_status=outcome)
        self.alerts.resolve_dispute(dispute.id, dispute.payment_id, outcome)
        log_webhook_event(
            logger,
            event_name,
            event_id,
            payment_id=dispute.payment_id,
            result="success",
            dispute_id=dispute.id,
        )
        return dispute

    def handle_dispute_won(self, event: DisputeWonEvent, event_id: str) -> HandlerResult:
        self._close_dispute("payment.dispute.won", event, event_id, "won")
        return ProcessingResult.SUCCESS, None

    def handle_dispute_lost(self, event: DisputeLostEvent, event_id: str) -> HandlerResult:
        dispute = self._close_dispute("payment.dispute.lost", event, event_id, "lost")
        order = self._order_for_payment(dispute.payment_id, None)
        self.alerts.create_alert(
            Alert(
                alert_id=f"ALR-DISPUTE-{dispute.id}",
                type=AlertType.DISPUTE_LOST,
                message=f"Dispute {dispute.id} on payment {dispute.payment_id} was lost",
                payment_id=dispute.payment_id,
                order_id=order.order_id if order else None,
                reference_id=dispute.id,
                event_id=event_id,
                created_at=_now(),
            )
        )
        return ProcessingResult.SUCCESS, None

    # === Invoice events ===

    def handle_invoice_paid(self, event: InvoicePaidEvent, event_id: str) -> HandlerResult:
        invoice = event.payload.invoice.entity
        razorpay_order_id = invoice.order_id or (
            event.payload.order.entity.id if event.payload.order else None
        )
        order = self._find_order(razorpay_order_id)
        if order is None or not self.orders.mark_invoice_paid(order.order_id):
            log_webhook_event(logger, "invoice.paid", event_id, result="skipped")
            return ProcessingResult.SKIPPED, f"Order not found for invoice {invoice.id}"

        log_webhook_event(
            logger, "invoice.paid", event_id, order_id=order.order_id, result="success"
        )
        return ProcessingResult.SUCCESS, None
