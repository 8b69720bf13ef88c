"""API-specific response models.

Domain models (Order, Payment, WebhookResponse, ...) live in
storefront.models and are reused here where appropriate.
"""

from storefront_api.models.responses import (
    CheckEnvResponse,
    CreateOrderResponse,
    OrderResponse,
    PaymentLookupResponse,
)

__all__ = [
    "CheckEnvResponse",
    "CreateOrderResponse",
    "OrderResponse",
    "PaymentLookupResponse",
]
