"""Workspace import integration tests.

Validates that both workspace packages (storefront, storefront_api) are
importable and their public interfaces are accessible.
"""


class TestSharedPackageImports:
    """Tests for the storefront package public interface."""

    def test_can_import_shared_package(self):
        import storefront

        assert hasattr(storefront, "__version__")

    def test_can_import_models(self):
        from storefront.models import (  # noqa: F401
            Alert,
            Dispute,
            ErrorCode,
            Order,
            OrderCreate,
            OrderStatus,
            Payment,
            PaymentStatus,
            Reservation,
            ReservationStatus,
            WebhookEventRecord,
        )

    def test_can_import_services(self):
        from storefront.services import (  # noqa: F401
            DynamoDBService,
            OrderService,
            PaymentVerificationService,
            RazorpayService,
            ReconciliationService,
            ReservationLedger,
            SSMService,
            WebhookHandler,
        )


class TestApiPackageImports:
    """Tests for the API package."""

    def test_app_exposes_razorpay_routes(self):
        from storefront_api.main import app

        paths = set(app.openapi()["paths"])
        assert {
            "/api/ping",
            "/api/razorpay/create-order",
            "/api/razorpay/verify-payment",
            "/api/razorpay/webhook",
            "/api/razorpay/check-env",
        } <= paths

    def test_lambda_handler_exists(self):
        from storefront_api.main import handler

        assert callable(handler)
