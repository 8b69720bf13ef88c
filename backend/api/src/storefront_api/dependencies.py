"""FastAPI dependency injection providers for shared services.

Services are lazily instantiated and cached with @lru_cache. Repositories
wrap the DynamoDB singleton and are passed explicitly into the services
that need them.

Usage in routes:
    from storefront_api.dependencies import get_webhook_handler

    @router.post("/razorpay/webhook")
    async def razorpay_webhook(
        handler: WebhookHandler = Depends(get_webhook_handler),
    ):
        ...

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        ├── OrderRepository ─┬── OrderService (+ ReservationLedger, RazorpayService)
        ├── PaymentRepository├── ReconciliationService (+ AlertRepository, ReservationLedger)
        │                    │       ├── WebhookHandler (+ WebhookEventRepository)
        │                    │       └── PaymentVerificationService
        └── ReservationLedger

Testing:
    Use reset_services() to clear cached instances between tests, or
    app.dependency_overrides to substitute a provider.
"""

from functools import lru_cache

from storefront.services.dynamodb import get_dynamodb_service
from storefront.services.inventory import ReservationLedger
from storefront.services.order_service import OrderService
from storefront.services.payment_verification import PaymentVerificationService
from storefront.services.razorpay_service import RazorpayService, get_razorpay_service
from storefront.services.reconciliation import ReconciliationService
from storefront.services.repositories import (
    AlertRepository,
    OrderRepository,
    PaymentRepository,
    WebhookEventRepository,
)
from storefront.services.webhook_handler import WebhookHandler


def get_gateway() -> RazorpayService:
    """Get the shared RazorpayService instance."""
    return get_razorpay_service()


@lru_cache
def get_order_repository() -> OrderRepository:
    return OrderRepository(get_dynamodb_service())


@lru_cache
def get_payment_repository() -> PaymentRepository:
    return PaymentRepository(get_dynamodb_service())


@lru_cache
def get_reservation_ledger() -> ReservationLedger:
    return ReservationLedger(get_dynamodb_service())


@lru_cache
def get_order_service() -> OrderService:
    """Get cached OrderService instance.

    Returns:
        OrderService configured with the order store, ledger and gateway.
    """
    return OrderService(
        orders=get_order_repository(),
        reservations=get_reservation_ledger(),
        gateway=get_gateway(),
    )


@lru_cache
def get_reconciliation_service() -> ReconciliationService:
    """Get cached ReconciliationService instance.

    Returns:
        ReconciliationService configured with all repositories.
    """
    db = get_dynamodb_service()
    return ReconciliationService(
        orders=get_order_repository(),
        payments=get_payment_repository(),
        alerts=AlertRepository(db),
        reservations=get_reservation_ledger(),
    )


@lru_cache
def get_webhook_handler() -> WebhookHandler:
    """Get cached WebhookHandler instance."""
    return WebhookHandler(
        gateway=get_gateway(),
        events=WebhookEventRepository(get_dynamodb_service()),
        reconciliation=get_reconciliation_service(),
    )


@lru_cache
def get_payment_verification_service() -> PaymentVerificationService:
    """Get cached PaymentVerificationService instance."""
    return PaymentVerificationService(
        orders=get_order_repository(),
        payments=get_payment_repository(),
        gateway=get_gateway(),
        reconciliation=get_reconciliation_service(),
    )


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the underlying DynamoDB, SSM and gateway singletons.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    from storefront.services.dynamodb import reset_dynamodb_service
    from storefront.services.ssm_service import SSMService, get_ssm_service

    get_order_repository.cache_clear()
    get_payment_repository.cache_clear()
    get_reservation_ledger.cache_clear()
    get_order_service.cache_clear()
    get_reconciliation_service.cache_clear()
    get_webhook_handler.cache_clear()
    get_payment_verification_service.cache_clear()

    get_razorpay_service.cache_clear()
    get_ssm_service.cache_clear()
    SSMService._instance = None
    SSMService._cache.clear()

    reset_dynamodb_service()
