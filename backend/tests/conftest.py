"""Pytest configuration and fixtures for storefront payment backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (all six tables)
- SSM parameter and Razorpay client mocks
- Repositories and services wired to the mocked tables
- Sample checkout requests and signed webhook payloads
"""

import hashlib
import hmac
import json
import os
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ["AWS_DEFAULT_REGION"] = "ap-south-1"
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["DYNAMODB_TABLE_PREFIX"] = "test-storefront"

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from storefront.services.dynamodb import DynamoDBService  # noqa: E402
from storefront.services.inventory import ReservationLedger  # noqa: E402
from storefront.services.order_service import OrderService  # noqa: E402
from storefront.services.payment_verification import PaymentVerificationService  # noqa: E402
from storefront.services.razorpay_service import RazorpayService  # noqa: E402
from storefront.services.reconciliation import ReconciliationService  # noqa: E402
from storefront.services.repositories import (  # noqa: E402
    AlertRepository,
    OrderRepository,
    PaymentRepository,
    WebhookEventRepository,
)
from storefront.services.ssm_service import SSMServiceError  # noqa: E402
from storefront.services.webhook_handler import WebhookHandler  # noqa: E402

TABLE_PREFIX = "test-storefront"
REGION = "ap-south-1"

TEST_KEY_ID = "rzp_test_AbCdEfGh123456"
TEST_KEY_SECRET = "test_key_secret_123"
TEST_WEBHOOK_SECRET = "test_webhook_secret_456"
TEST_RAZORPAY_ORDER_ID = "order_TEST123ABC"

SSM_PARAMETERS = {
    "/storefront/test/razorpay/key_id": TEST_KEY_ID,
    "/storefront/test/razorpay/key_secret": TEST_KEY_SECRET,
    "/storefront/test/razorpay/webhook_secret": TEST_WEBHOOK_SECRET,
}


# === Singleton Reset ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset cached services before and after each test.

    Tests using mock_aws get fresh boto3 resources inside the mock context
    instead of reusing a singleton from a previous test.
    """
    from storefront_api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


# === DynamoDB Fixtures ===


def _table(name: str, key: str, gsi_key: str | None = None) -> dict[str, Any]:
    definition: dict[str, Any] = {
        "TableName": f"{TABLE_PREFIX}-{name}",
        "KeySchema": [{"AttributeName": key, "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": key, "AttributeType": "S"}],
        "BillingMode": "PAY_PER_REQUEST",
    }
    if gsi_key:
        definition["AttributeDefinitions"].append(
            {"AttributeName": gsi_key, "AttributeType": "S"}
        )
        definition["GlobalSecondaryIndexes"] = [
            {
                "IndexName": f"{gsi_key}-index",
                "KeySchema": [{"AttributeName": gsi_key, "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        ]
    return definition


@pytest.fixture
def mock_tables() -> Generator[DynamoDBService, None, None]:
    """Create all DynamoDB tables inside a moto context."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name=REGION)
        for definition in (
            _table("orders", "order_id", "razorpay_order_id"),
            _table("payments", "payment_id", "razorpay_order_id"),
            _table("webhook-events", "event_id"),
            _table("inventory-reservations", "reservation_id"),
            _table("alerts", "alert_id"),
            _table("disputes", "dispute_id"),
        ):
            client.create_table(**definition)

        yield DynamoDBService(environment="test")


@pytest.fixture
def dynamodb_resource(mock_tables: DynamoDBService) -> Any:
    """Raw boto3 resource for asserting on stored items."""
    return boto3.resource("dynamodb", region_name=REGION)


@pytest.fixture
def table(dynamodb_resource: Any) -> Callable[[str], Any]:
    """Return a table handle by short name (e.g. "orders")."""
    return lambda name: dynamodb_resource.Table(f"{TABLE_PREFIX}-{name}")


# === Gateway Fixtures ===


def _ssm_lookup(parameters: dict[str, str]) -> Callable[..., str]:
    def get_parameter(name: str, **kwargs: Any) -> str:
        if name not in parameters:
            raise SSMServiceError(f"SSM parameter not found: {name}", parameter_name=name)
        return parameters[name]

    return get_parameter


@pytest.fixture
def mock_ssm() -> MagicMock:
    """SSM service returning the test Razorpay credentials."""
    ssm = MagicMock()
    ssm.get_parameter.side_effect = _ssm_lookup(SSM_PARAMETERS)
    return ssm


@pytest.fixture
def unconfigured_ssm() -> MagicMock:
    """SSM service with no Razorpay parameters at all."""
    ssm = MagicMock()
    ssm.get_parameter.side_effect = _ssm_lookup({})
    return ssm


@pytest.fixture
def razorpay_client() -> MagicMock:
    """Mock Razorpay SDK client."""
    client = MagicMock()

    def create_order(data: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": TEST_RAZORPAY_ORDER_ID,
            "entity": "order",
            "amount": data["amount"],
            "amount_paid": 0,
            "currency": data["currency"],
            "receipt": data["receipt"],
            "notes": data["notes"],
            "status": "created",
        }

    client.order.create.side_effect = create_order
    client.payment.fetch.return_value = {
        "id": "pay_TEST001",
        "entity": "payment",
        "order_id": TEST_RAZORPAY_ORDER_ID,
        "amount": 150000,
        "currency": "INR",
        "status": "captured",
        "method": "upi",
        "email": "asha@example.com",
        "contact": "+919876543210",
    }
    return client


@pytest.fixture
def gateway(mock_ssm: MagicMock, razorpay_client: MagicMock) -> RazorpayService:
    """RazorpayService with mocked SSM and SDK client."""
    return RazorpayService(environment="test", ssm=mock_ssm, client=razorpay_client)


# === Repositories and Services ===


@pytest.fixture
def orders(mock_tables: DynamoDBService) -> OrderRepository:
    return OrderRepository(mock_tables)


@pytest.fixture
def payments(mock_tables: DynamoDBService) -> PaymentRepository:
    return PaymentRepository(mock_tables)


@pytest.fixture
def events(mock_tables: DynamoDBService) -> WebhookEventRepository:
    return WebhookEventRepository(mock_tables)


@pytest.fixture
def alerts(mock_tables: DynamoDBService) -> AlertRepository:
    return AlertRepository(mock_tables)


@pytest.fixture
def ledger(mock_tables: DynamoDBService) -> ReservationLedger:
    return ReservationLedger(mock_tables)


@pytest.fixture
def order_service(
    orders: OrderRepository, ledger: ReservationLedger, gateway: RazorpayService
) -> OrderService:
    return OrderService(orders=orders, reservations=ledger, gateway=gateway)


@pytest.fixture
def reconciliation(
    orders: OrderRepository,
    payments: PaymentRepository,
    alerts: AlertRepository,
    ledger: ReservationLedger,
) -> ReconciliationService:
    return ReconciliationService(
        orders=orders, payments=payments, alerts=alerts, reservations=ledger
    )


@pytest.fixture
def webhook_handler(
    gateway: RazorpayService,
    events: WebhookEventRepository,
    reconciliation: ReconciliationService,
) -> WebhookHandler:
    return WebhookHandler(gateway=gateway, events=events, reconciliation=reconciliation)


@pytest.fixture
def verification(
    orders: OrderRepository,
    payments: PaymentRepository,
    gateway: RazorpayService,
    reconciliation: ReconciliationService,
) -> PaymentVerificationService:
    return PaymentVerificationService(
        orders=orders, payments=payments, gateway=gateway, reconciliation=reconciliation
    )


# === API Client ===


@pytest.fixture
def client(
    gateway: RazorpayService,
    order_service: OrderService,
    webhook_handler: WebhookHandler,
    verification: PaymentVerificationService,
) -> Generator[Any, None, None]:
    """TestClient with service providers overridden to the mocked stack."""
    from fastapi.testclient import TestClient

    from storefront_api.dependencies import (
        get_gateway,
        get_order_service,
        get_payment_verification_service,
        get_webhook_handler,
    )
    from storefront_api.main import app

    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_order_service] = lambda: order_service
    app.dependency_overrides[get_webhook_handler] = lambda: webhook_handler
    app.dependency_overrides[get_payment_verification_service] = lambda: verification
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


# === Sample Data ===


@pytest.fixture
def checkout_payload() -> dict[str, Any]:
    """Valid create-order request body (camelCase, as sent by the storefront)."""
    return {
        "amount": 1500,
        "currency": "INR",
        "customer": {
            "name": "Asha Verma",
            "email": "asha@example.com",
            "phone": "+91 98765 43210",
        },
        "items": [
            {
                "productId": "PRD-TEAK-STOOL",
                "productName": "Teak Stool",
                "quantity": 1,
                "price": 1500,
            }
        ],
        "shippingAddress": {
            "fullName": "Asha Verma",
            "phone": "9876543210",
            "email": "asha@example.com",
            "addressLine1": "12 MG Road",
            "city": "Jaipur",
            "state": "Rajasthan",
            "postalCode": "302001",
            "country": "India",
        },
        "notes": {"gift_wrap": "yes"},
    }


def sign(body: bytes, secret: str = TEST_WEBHOOK_SECRET) -> str:
    """HMAC-SHA256 hex digest, as sent in X-Razorpay-Signature."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def payment_event(
    event: str,
    payment_id: str = "pay_TEST001",
    order_id: str = TEST_RAZORPAY_ORDER_ID,
    amount: int = 150000,
    **entity: Any,
) -> dict[str, Any]:
    """Build a payment.* webhook body."""
    return {
        "entity": "event",
        "account_id": "acc_TEST",
        "event": event,
        "contains": ["payment"],
        "payload": {
            "payment": {
                "entity": {
                    "id": payment_id,
                    "entity": "payment",
                    "order_id": order_id,
                    "amount": amount,
                    "currency": "INR",
                    "status": event.split(".")[-1],
                    "method": "card",
                    **entity,
                }
            }
        },
        "created_at": 1767225600,
    }


def refund_event(
    event: str,
    refund_id: str = "rfnd_TEST001",
    payment_id: str = "pay_TEST001",
    amount: int = 150000,
) -> dict[str, Any]:
    """Build a refund.* webhook body."""
    return {
        "entity": "event",
        "event": event,
        "contains": ["refund", "payment"],
        "payload": {
            "refund": {
                "entity": {
                    "id": refund_id,
                    "entity": "refund",
                    "payment_id": payment_id,
                    "amount": amount,
                    "currency": "INR",
                    "status": event.split(".")[-1],
                }
            }
        },
    }


def dispute_event(
    event: str, dispute_id: str = "disp_TEST001", payment_id: str = "pay_TEST001"
) -> dict[str, Any]:
    """Build a payment.dispute.* webhook body."""
    return {
        "entity": "event",
        "event": event,
        "contains": ["dispute", "payment"],
        "payload": {
            "dispute": {
                "entity": {
                    "id": dispute_id,
                    "entity": "dispute",
                    "payment_id": payment_id,
                    "amount": 150000,
                    "currency": "INR",
                    "reason_code": "chargeback",
                    "phase": "chargeback",
                    "status": event.split(".")[-1],
                    "respond_by": 1767830400,
                }
            }
        },
    }


@pytest.fixture
def signed() -> Callable[[dict[str, Any]], tuple[bytes, str]]:
    """Serialize a webhook body and sign it with the test secret."""

    def _signed(body: dict[str, Any]) -> tuple[bytes, str]:
        raw = json.dumps(body).encode("utf-8")
        return raw, sign(raw)

    return _signed


@pytest.fixture
def created_order(order_service: OrderService, checkout_payload: dict[str, Any]) -> Any:
    """An order created through the order service (status created, reservation held)."""
    from storefront.models import OrderCreate

    created = order_service.create_order(OrderCreate.model_validate(checkout_payload))
    return order_service.get_order(created.order_id)


@pytest.fixture
def make_payment_event() -> Callable[..., dict[str, Any]]:
    return payment_event


@pytest.fixture
def make_refund_event() -> Callable[..., dict[str, Any]]:
    return refund_event


@pytest.fixture
def make_dispute_event() -> Callable[..., dict[str, Any]]:
    return dispute_event


@pytest.fixture
def sign_raw() -> Callable[[bytes], str]:
    """Sign an arbitrary raw body with the test webhook secret."""
    return sign
