"""Unit tests for WebhookHandler.

Covers signature checks, idempotency, unhandled event types, malformed
payloads and failure recording. Deliveries are signed with the test
webhook secret.
"""

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from storefront.models import ErrorCode, Order, OrderStatus, PaymentError, ProcessingResult
from storefront.services.razorpay_service import RazorpayService
from storefront.services.reconciliation import ReconciliationService
from storefront.services.repositories import OrderRepository, WebhookEventRepository
from storefront.services.webhook_handler import WebhookHandler

Signer = Callable[[dict[str, Any]], tuple[bytes, str]]


class TestSignatureChecks:
    def test_missing_signature(self, webhook_handler: WebhookHandler, mock_tables: Any) -> None:
        with pytest.raises(PaymentError) as exc_info:
            webhook_handler.handle(b'{"event":"payment.captured"}', None)

        assert exc_info.value.code == ErrorCode.MISSING_WEBHOOK_SIGNATURE

    def test_invalid_signature_writes_nothing(
        self,
        webhook_handler: WebhookHandler,
        table: Callable[[str], Any],
        make_payment_event: Callable[..., dict[str, Any]],
        signed: Signer,
    ) -> None:
        raw, signature = signed(make_payment_event("payment.captured"))
        tampered = raw.replace(b"150000", b"100")

        with pytest.raises(PaymentError) as exc_info:
            webhook_handler.handle(tampered, signature, "evt_1")

        assert exc_info.value.code == ErrorCode.INVALID_WEBHOOK_SIGNATURE
        assert table("webhook-events").scan()["Items"] == []
        assert table("payments").scan()["Items"] == []

    def test_non_utf8_body_is_rejected(
        self, webhook_handler: WebhookHandler, mock_tables: Any
    ) -> None:
        with pytest.raises(PaymentError) as exc_info:
            webhook_handler.handle(b"\xff\xfe", "deadbeef")

        assert exc_info.value.code == ErrorCode.INVALID_WEBHOOK_SIGNATURE

    def test_missing_webhook_secret(
        self,
        events: WebhookEventRepository,
        reconciliation: ReconciliationService,
        unconfigured_ssm: MagicMock,
    ) -> None:
        handler = WebhookHandler(
            gateway=RazorpayService(environment="test", ssm=unconfigured_ssm),
            events=events,
            reconciliation=reconciliation,
        )

        with pytest.raises(PaymentError) as exc_info:
            handler.handle(b"{}", "deadbeef")

        assert exc_info.value.code == ErrorCode.GATEWAY_NOT_CONFIGURED
        assert exc_info.value.details is not None
        assert exc_info.value.details["missing"] == ["webhook_secret"]


class TestPayloadChecks:
    def test_body_that_is_not_json(
        self,
        webhook_handler: WebhookHandler,
        mock_tables: Any,
        sign_raw: Callable[[bytes], str],
    ) -> None:
        raw = b"not json"

        with pytest.raises(PaymentError) as exc_info:
            webhook_handler.handle(raw, sign_raw(raw))

        assert exc_info.value.code == ErrorCode.INVALID_WEBHOOK_PAYLOAD

    def test_body_without_event_name(
        self, webhook_handler: WebhookHandler, mock_tables: Any, signed: Signer
    ) -> None:
        raw, signature = signed({"payload": {}})

        with pytest.raises(PaymentError) as exc_info:
            webhook_handler.handle(raw, signature)

        assert exc_info.value.code == ErrorCode.INVALID_WEBHOOK_PAYLOAD

    def test_handled_event_missing_entity_is_recorded(
        self,
        webhook_handler: WebhookHandler,
        events: WebhookEventRepository,
        signed: Signer,
    ) -> None:
        raw, signature = signed({"event": "payment.captured", "payload": {}})

        with pytest.raises(PaymentError) as exc_info:
            webhook_handler.handle(raw, signature, "evt_bad")

        assert exc_info.value.code == ErrorCode.INVALID_WEBHOOK_PAYLOAD
        assert exc_info.value.details is not None
        assert "payment.captured.payload.payment" in exc_info.value.details["fields"]

        record = events.get("evt_bad")
        assert record is not None
        assert record["processed"] is False
        assert record["processing_result"] == "error"


class TestProcessing:
    def test_records_and_processes_event(
        self,
        webhook_handler: WebhookHandler,
        events: WebhookEventRepository,
        orders: OrderRepository,
        created_order: Order,
        make_payment_event: Callable[..., dict[str, Any]],
        signed: Signer,
    ) -> None:
        raw, signature = signed(make_payment_event("payment.captured"))

        response = webhook_handler.handle(raw, signature, "evt_1")

        assert response.success is True
        assert response.processing_result == ProcessingResult.SUCCESS
        assert response.event == "payment.captured"
        assert response.event_id == "evt_1"

        record = events.get("evt_1")
        assert record is not None
        assert record["processed"] is True
        assert record["processing_result"] == "success"
        assert record["entity"] == "payment"
        assert record["payload"] == raw.decode("utf-8")
        assert record["signature_verified"] is True

        order = orders.get(created_order.order_id)
        assert order is not None
        assert order.status == OrderStatus.PAID

    def test_duplicate_delivery_is_not_reprocessed(
        self,
        webhook_handler: WebhookHandler,
        reconciliation: ReconciliationService,
        created_order: Order,
        make_payment_event: Callable[..., dict[str, Any]],
        signed: Signer,
    ) -> None:
        raw, signature = signed(make_payment_event("payment.captured"))
        webhook_handler.handle(raw, signature, "evt_1")

        with patch.object(reconciliation, "reconcile") as reconcile:
            response = webhook_handler.handle(raw, signature, "evt_1")

        assert response.processing_result == ProcessingResult.DUPLICATE
        assert response.message == "Event already processed"
        reconcile.assert_not_called()

    def test_lost_receipt_race_after_processing_is_duplicate(
        self,
        webhook_handler: WebhookHandler,
        reconciliation: ReconciliationService,
        events: WebhookEventRepository,
        created_order: Order,
        make_payment_event: Callable[..., dict[str, Any]],
        signed: Signer,
    ) -> None:
        raw, signature = signed(make_payment_event("payment.captured"))
        webhook_handler.handle(raw, signature, "evt_1")
        processed = events.get("evt_1")

        # First read misses, as it would for a delivery racing the one above
        with (
            patch.object(events, "get", side_effect=[None, processed]),
            patch.object(reconciliation, "reconcile") as reconcile,
        ):
            response = webhook_handler.handle(raw, signature, "evt_1")

        assert response.processing_result == ProcessingResult.DUPLICATE
        reconcile.assert_not_called()

    def test_lost_receipt_race_in_progress_is_processed(
        self,
        webhook_handler: WebhookHandler,
        reconciliation: ReconciliationService,
        events: WebhookEventRepository,
        created_order: Order,
        make_payment_event: Callable[..., dict[str, Any]],
        signed: Signer,
    ) -> None:
        raw, signature = signed(make_payment_event("payment.captured"))
        with patch.object(reconciliation, "reconcile", side_effect=RuntimeError("boom")):
            with pytest.raises(PaymentError):
                webhook_handler.handle(raw, signature, "evt_1")
        unprocessed = events.get("evt_1")

        with patch.object(events, "get", side_effect=[None, unprocessed]):
            response = webhook_handler.handle(raw, signature, "evt_1")

        assert response.processing_result == ProcessingResult.SUCCESS
        assert events.get("evt_1")["processed"] is True  # type: ignore[index]

    def test_event_id_falls_back_to_body(
        self,
        webhook_handler: WebhookHandler,
        events: WebhookEventRepository,
        mock_tables: Any,
        signed: Signer,
    ) -> None:
        raw, signature = signed({"event": "subscription.charged", "event_id": "evt_body"})

        response = webhook_handler.handle(raw, signature)

        assert response.event_id == "evt_body"
        assert events.get("evt_body") is not None

    def test_event_id_generated_when_absent(
        self, webhook_handler: WebhookHandler, mock_tables: Any, signed: Signer
    ) -> None:
        raw, signature = signed({"event": "subscription.charged"})

        response = webhook_handler.handle(raw, signature)

        assert response.event_id is not None
        assert response.event_id.startswith("evt_")

    def test_unhandled_event_is_skipped(
        self,
        webhook_handler: WebhookHandler,
        events: WebhookEventRepository,
        mock_tables: Any,
        signed: Signer,
    ) -> None:
        raw, signature = signed({"event": "subscription.charged", "contains": ["subscription"]})

        response = webhook_handler.handle(raw, signature, "evt_sub")

        assert response.processing_result == ProcessingResult.SKIPPED
        assert response.message == "Event type 'subscription.charged' not handled"
        record = events.get("evt_sub")
        assert record is not None
        assert record["processed"] is True
        assert record["processing_result"] == "skipped"

    def test_unexpected_failure_leaves_event_for_retry(
        self,
        webhook_handler: WebhookHandler,
        reconciliation: ReconciliationService,
        events: WebhookEventRepository,
        created_order: Order,
        make_payment_event: Callable[..., dict[str, Any]],
        signed: Signer,
    ) -> None:
        raw, signature = signed(make_payment_event("payment.captured"))

        with patch.object(reconciliation, "reconcile", side_effect=RuntimeError("boom")):
            with pytest.raises(PaymentError) as exc_info:
                webhook_handler.handle(raw, signature, "evt_1")

        assert exc_info.value.code == ErrorCode.WEBHOOK_PROCESSING_FAILED
        record = events.get("evt_1")
        assert record is not None
        assert record["processed"] is False
        assert record["error"] == "boom"

        # The gateway's retry is processed normally
        response = webhook_handler.handle(raw, signature, "evt_1")
        assert response.processing_result == ProcessingResult.SUCCESS
        assert events.get("evt_1")["processed"] is True  # type: ignore[index]

    def test_payload_is_stored_verbatim(
        self,
        webhook_handler: WebhookHandler,
        events: WebhookEventRepository,
        mock_tables: Any,
        sign_raw: Callable[[bytes], str],
    ) -> None:
        raw = json.dumps({"event": "subscription.charged"}, indent=2).encode("utf-8")

        webhook_handler.handle(raw, sign_raw(raw), "evt_pretty")

        record = events.get("evt_pretty")
        assert record is not None
        assert record["payload"] == raw.decode("utf-8")
        assert record["payload_hash"] == RazorpayService.compute_payload_hash(raw)
