"""Repository interfaces over the DynamoDB tables.

Reconciliation handlers receive these explicitly instead of reaching for
a process-wide table handle. Each repository owns the item conversion for
its table: snake_case attribute names, ISO-8601 timestamps, enum values
and Decimal numbers.
"""

import datetime as dt
import logging
from collections.abc import Iterable
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from storefront.models import (
    Alert,
    Dispute,
    Order,
    OrderStatus,
    Payment,
    PaymentStatus,
    ProcessingResult,
    WebhookEventRecord,
)

from .dynamodb import (
    ALERTS_TABLE,
    DISPUTES_TABLE,
    ORDERS_TABLE,
    PAYMENTS_TABLE,
    RAZORPAY_ORDER_INDEX,
    WEBHOOK_EVENTS_TABLE,
)

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = logging.getLogger(__name__)


def to_dynamo_value(value: Any) -> Any:
    """Convert a Python value to something boto3 can store."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dt.datetime):
        return value.isoformat()
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, BaseModel):
        return to_dynamo_item(value)
    if isinstance(value, dict):
        return {k: to_dynamo_value(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [to_dynamo_value(v) for v in value]
    return value


def to_dynamo_item(model: BaseModel) -> dict[str, Any]:
    """Convert a model to a DynamoDB item, dropping None attributes.

    GSI key attributes must be absent rather than null, so None is never
    written.
    """
    return to_dynamo_value(model.model_dump(exclude_none=True))


def _now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


def _status_condition(
    values: dict[str, Any],
    only_from: Iterable[OrderStatus] | None,
    never_from: Iterable[OrderStatus] | None,
) -> str:
    """Build an order-status guard.

    OR chains instead of IN keep the expression portable to moto.
    """
    clauses = ["attribute_exists(order_id)"]
    if only_from:
        options = []
        for i, status in enumerate(only_from):
            values[f":from{i}"] = status.value
            options.append(f"#status = :from{i}")
        clauses.append("(" + " OR ".join(options) + ")")
    for i, status in enumerate(never_from or ()):
        values[f":not{i}"] = status.value
        clauses.append(f"#status <> :not{i}")
    return " AND ".join(clauses)


class OrderRepository:
    """Order Store: orders keyed by internal order ID."""

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def insert(self, order: Order) -> bool:
        """Insert a new order. Returns False if the order ID already exists."""
        return self.db.put_item(
            ORDERS_TABLE,
            to_dynamo_item(order),
            condition_expression="attribute_not_exists(order_id)",
        )

    def get(self, order_id: str) -> Order | None:
        item = self.db.get_item(ORDERS_TABLE, {"order_id": order_id})
        if item is None:
            return None
        return Order.model_validate(item)

    def find_by_razorpay_order_id(self, razorpay_order_id: str) -> Order | None:
        """Look up an order by its gateway order ID (GSI)."""
        items = self.db.query_by_gsi(
            ORDERS_TABLE,
            RAZORPAY_ORDER_INDEX,
            "razorpay_order_id",
            razorpay_order_id,
        )
        if not items:
            return None
        if len(items) > 1:
            logger.warning(
                "Multiple orders share gateway order %s, using %s",
                razorpay_order_id,
                items[0]["order_id"],
            )
        return Order.model_validate(items[0])

    def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        payment_status: PaymentStatus | None = None,
        *,
        only_from: Iterable[OrderStatus] | None = None,
        never_from: Iterable[OrderStatus] | None = None,
        **fields: Any,
    ) -> Order | None:
        """Conditionally move an order to a new status.

        Args:
            order_id: Internal order ID
            status: New order status
            payment_status: New payment status, if it changes
            only_from: Apply only when the current status is one of these
            never_from: Never apply when the current status is one of these
            **fields: Extra attributes to set (payment_id, paid_at, ...)

        Returns:
            The updated order, or None if the order is missing or the guard
            rejected the transition.
        """
        attributes = {
            "status": status.value,
            "payment_status": payment_status.value if payment_status else None,
            "updated_at": _now().isoformat(),
        }
        attributes.update({k: to_dynamo_value(v) for k, v in fields.items()})

        condition_values: dict[str, Any] = {}
        condition = _status_condition(condition_values, only_from, never_from)

        updated = self.db.set_attributes(
            ORDERS_TABLE,
            {"order_id": order_id},
            attributes,
            condition_expression=condition,
            condition_values=condition_values,
        )
        if updated is None:
            return None
        return Order.model_validate(updated)

    def mark_invoice_paid(self, order_id: str) -> bool:
        updated = self.db.set_attributes(
            ORDERS_TABLE,
            {"order_id": order_id},
            {"invoice_paid": True, "updated_at": _now().isoformat()},
            condition_expression="attribute_exists(order_id)",
        )
        return updated is not None


class PaymentRepository:
    """Payments keyed by gateway payment ID, upserted by reconciliation."""

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def upsert(self, payment_id: str, **fields: Any) -> Payment:
        """Create or update a payment record.

        The first call for a payment creates it; later calls only overwrite
        the attributes they pass. None values are left untouched.
        """
        now = _now().isoformat()
        attributes = {k: to_dynamo_value(v) for k, v in fields.items()}
        attributes["updated_at"] = now

        updated = self.db.set_attributes(
            PAYMENTS_TABLE,
            {"payment_id": payment_id},
            attributes,
            set_if_missing={"created_at": now},
        )
        return Payment.model_validate(updated)

    def get(self, payment_id: str) -> Payment | None:
        item = self.db.get_item(PAYMENTS_TABLE, {"payment_id": payment_id})
        if item is None:
            return None
        return Payment.model_validate(item)

    def find_by_razorpay_order_id(self, razorpay_order_id: str) -> list[Payment]:
        items = self.db.query_by_gsi(
            PAYMENTS_TABLE,
            RAZORPAY_ORDER_INDEX,
            "razorpay_order_id",
            razorpay_order_id,
        )
        return [Payment.model_validate(item) for item in items]


class WebhookEventRepository:
    """Audit and idempotency log of webhook deliveries. Never deleted."""

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def get(self, event_id: str) -> dict[str, Any] | None:
        return self.db.get_item(WEBHOOK_EVENTS_TABLE, {"event_id": event_id})

    def record_receipt(self, record: WebhookEventRecord) -> bool:
        """Persist a newly received event before dispatch.

        Returns:
            False if a record with this event ID already exists.
        """
        return self.db.put_item(
            WEBHOOK_EVENTS_TABLE,
            to_dynamo_item(record),
            condition_expression="attribute_not_exists(event_id)",
        )

    def mark_processed(
        self,
        event_id: str,
        result: ProcessingResult,
        error: str | None = None,
    ) -> None:
        self.db.set_attributes(
            WEBHOOK_EVENTS_TABLE,
            {"event_id": event_id},
            {
                "processed": True,
                "processing_result": result.value,
                "processed_at": _now().isoformat(),
                "error": error,
            },
        )

    def record_error(self, event_id: str, error: str) -> bool:
        """Attach an error to an event left unprocessed for gateway retry.

        Returns:
            False if no record exists for the event.
        """
        updated = self.db.set_attributes(
            WEBHOOK_EVENTS_TABLE,
            {"event_id": event_id},
            {
                "processed": False,
                "processing_result": ProcessingResult.ERROR.value,
                "error": error,
                "failed_at": _now().isoformat(),
            },
            condition_expression="attribute_exists(event_id)",
        )
        return updated is not None


class AlertRepository:
    """Append-only alerts and dispute records for admin follow-up."""

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def create_alert(self, alert: Alert) -> bool:
        """Store an alert. Returns False if an alert with the same ID exists."""
        created = self.db.put_item(
            ALERTS_TABLE,
            to_dynamo_item(alert),
            condition_expression="attribute_not_exists(alert_id)",
        )
        if created:
            logger.warning(
                "Alert raised: %s (%s) %s", alert.type.value, alert.alert_id, alert.message
            )
        return created

    def create_dispute(self, dispute: Dispute) -> bool:
        return self.db.put_item(
            DISPUTES_TABLE,
            to_dynamo_item(dispute),
            condition_expression="attribute_not_exists(dispute_id)",
        )

    def resolve_dispute(self, dispute_id: str, payment_id: str, status: str) -> Dispute:
        """Close a dispute with its final status.

        Creates the record when the opening event was never received.
        """
        now = _now().isoformat()
        updated = self.db.set_attributes(
            DISPUTES_TABLE,
            {"dispute_id": dispute_id},
            {
                "payment_id": payment_id,
                "status": status,
                "requires_action": False,
                "resolved_at": now,
            },
            set_if_missing={"created_at": now},
        )
        return Dispute.model_validate(updated)

    def get_dispute(self, dispute_id: str) -> Dispute | None:
        item = self.db.get_item(DISPUTES_TABLE, {"dispute_id": dispute_id})
        if item is None:
            return None
        return Dispute.model_validate(item)
