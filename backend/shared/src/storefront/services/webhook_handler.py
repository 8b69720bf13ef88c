"""Razorpay webhook ingestion.

Verifies the signature over the raw body, records each delivery keyed by
its event ID before dispatch, skips deliveries already processed and hands
typed events to the reconciliation handlers.
"""

import datetime as dt
import json
import uuid
from typing import Any

from pydantic import ValidationError

from storefront.models import (
    HANDLED_EVENT_TYPES,
    WEBHOOK_EVENT_ADAPTER,
    ErrorCode,
    PaymentError,
    ProcessingResult,
    WebhookEventRecord,
    WebhookResponse,
)
from storefront.utils.logging import get_logger, log_webhook_event

from .razorpay_service import GatewayConfigError, RazorpayService
from .reconciliation import ReconciliationService
from .repositories import WebhookEventRepository

logger = get_logger(__name__)


class WebhookHandler:
    """Processes Razorpay webhook deliveries.

    Usage:
        handler = WebhookHandler(gateway, events, reconciliation)
        response = handler.handle(raw_body, signature, event_id_header)
    """

    def __init__(
        self,
        gateway: RazorpayService,
        events: WebhookEventRepository,
        reconciliation: ReconciliationService,
    ) -> None:
        self.gateway = gateway
        self.events = events
        self.reconciliation = reconciliation

    def handle(
        self,
        raw_body: bytes,
        signature: str | None,
        event_id_header: str | None = None,
    ) -> WebhookResponse:
        """Verify, record and dispatch one webhook delivery.

        Args:
            raw_body: Request body exactly as received
            signature: X-Razorpay-Signature header value
            event_id_header: X-Razorpay-Event-Id header value

        Returns:
            Acknowledgement for the gateway.

        Raises:
            PaymentError: Missing/invalid signature or payload (400),
                missing webhook secret or processing failure (500).
        """
        if not signature:
            logger.warning("Webhook request missing X-Razorpay-Signature header")
            raise PaymentError(ErrorCode.MISSING_WEBHOOK_SIGNATURE)

        body = self._verify(raw_body, signature, event_id_header)

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise PaymentError(
                ErrorCode.INVALID_WEBHOOK_PAYLOAD, details={"error": str(e)}
            ) from e
        if not isinstance(data, dict) or not isinstance(data.get("event"), str):
            raise PaymentError(
                ErrorCode.INVALID_WEBHOOK_PAYLOAD, details={"error": "Missing event name"}
            )

        event_name: str = data["event"]
        event_id = event_id_header or data.get("event_id")
        if not event_id:
            event_id = f"evt_{uuid.uuid4().hex}"
            logger.info("Webhook %s carried no event id, generated %s", event_name, event_id)
        event_id = str(event_id)

        try:
            return self._process(event_id, event_name, data, body, raw_body)
        except PaymentError:
            raise
        except Exception as e:
            logger.exception("Webhook %s (%s) processing failed", event_name, event_id)
            self._record_failure(event_id, str(e))
            log_webhook_event(logger, event_name, event_id, result="error", error=str(e))
            raise PaymentError(
                ErrorCode.WEBHOOK_PROCESSING_FAILED,
                details={"event_id": event_id},
            ) from e

    def _verify(self, raw_body: bytes, signature: str, event_id_header: str | None) -> str:
        """Check the signature and return the decoded body."""
        try:
            body = raw_body.decode("utf-8")
        except UnicodeDecodeError:
            body = None

        try:
            verified = body is not None and self.gateway.verify_webhook_signature(
                body, signature
            )
        except GatewayConfigError as e:
            logger.error("Webhook secret not configured, delivery left for retry: %s", e)
            raise PaymentError(
                ErrorCode.GATEWAY_NOT_CONFIGURED,
                details={"missing": e.missing, "troubleshooting": e.troubleshooting},
            ) from e

        if not verified or body is None:
            logger.warning(
                "Invalid webhook signature (event_id=%s, body_length=%d)",
                event_id_header or "unknown",
                len(raw_body),
            )
            raise PaymentError(ErrorCode.INVALID_WEBHOOK_SIGNATURE)
        return body

    def _duplicate(self, event_id: str, event_name: str) -> WebhookResponse:
        log_webhook_event(logger, event_name, event_id, result="duplicate")
        return WebhookResponse(
            message="Event already processed",
            event_id=event_id,
            event=event_name,
            processing_result=ProcessingResult.DUPLICATE,
        )

    def _process(
        self,
        event_id: str,
        event_name: str,
        data: dict[str, Any],
        body: str,
        raw_body: bytes,
    ) -> WebhookResponse:
        existing = self.events.get(event_id)
        if existing is not None and existing.get("processed"):
            return self._duplicate(event_id, event_name)

        if existing is None:
            contains = data.get("contains") or []
            recorded = self.events.record_receipt(
                WebhookEventRecord(
                    event_id=event_id,
                    event=event_name,
                    entity=str(contains[0]) if contains else "unknown",
                    payload=body,
                    payload_hash=RazorpayService.compute_payload_hash(raw_body),
                    received_at=dt.datetime.now(dt.UTC),
                )
            )
            if not recorded:
                # A concurrent delivery of the same event recorded it first
                winner = self.events.get(event_id)
                if winner is not None and winner.get("processed"):
                    return self._duplicate(event_id, event_name)
                logger.warning(
                    "Concurrent delivery of webhook event %s still in progress, processing again",
                    event_id,
                )
        else:
            logger.info("Retrying unprocessed webhook event %s", event_id)

        if event_name not in HANDLED_EVENT_TYPES:
            self.events.mark_processed(event_id, ProcessingResult.SKIPPED)
            log_webhook_event(logger, event_name, event_id, result="skipped")
            return WebhookResponse(
                message=f"Event type '{event_name}' not handled",
                event_id=event_id,
                event=event_name,
                processing_result=ProcessingResult.SKIPPED,
            )

        try:
            event = WEBHOOK_EVENT_ADAPTER.validate_python(data)
        except ValidationError as e:
            fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
            self.events.record_error(event_id, f"Invalid payload: {', '.join(fields)}")
            log_webhook_event(logger, event_name, event_id, result="error", error="invalid payload")
            raise PaymentError(
                ErrorCode.INVALID_WEBHOOK_PAYLOAD,
                details={"event_id": event_id, "fields": fields},
            ) from e

        result, error = self.reconciliation.reconcile(event, event_id)
        self.events.mark_processed(event_id, result, error)

        return WebhookResponse(
            message=error or "Webhook processed successfully",
            event_id=event_id,
            event=event_name,
            processing_result=result,
        )

    def _record_failure(self, event_id: str, error: str) -> None:
        """Attach the error to the event record, best effort."""
        try:
            self.events.record_error(event_id, error)
        except Exception:
            logger.exception("Could not record failure on webhook event %s", event_id)
