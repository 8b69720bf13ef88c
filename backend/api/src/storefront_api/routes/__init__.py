"""API routes package.

- orders: Razorpay order creation and lookup
- payments: Checkout-callback verification, payment lookup, config check
- webhooks: Razorpay webhook ingestion

All routers are registered in main.py with /api prefix.
"""

from storefront_api.routes.orders import router as orders_router
from storefront_api.routes.payments import router as payments_router
from storefront_api.routes.webhooks import router as webhooks_router

__all__ = ["orders_router", "payments_router", "webhooks_router"]
