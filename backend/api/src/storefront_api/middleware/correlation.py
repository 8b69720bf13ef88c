"""Correlation ID middleware for request tracing.

The correlation ID is taken from X-Correlation-ID, or for gateway webhook
deliveries from X-Razorpay-Event-Id, so every log line of a delivery can be
matched to the event in the Razorpay dashboard. Otherwise a new one is
generated. It is available throughout the request via contextvars.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from storefront.utils.logging import clear_correlation_id, set_correlation_id

CORRELATION_ID_HEADER = "X-Correlation-ID"
GATEWAY_EVENT_ID_HEADER = "X-Razorpay-Event-Id"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Sets the request correlation ID and echoes it in the response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        incoming_id = request.headers.get(CORRELATION_ID_HEADER) or request.headers.get(
            GATEWAY_EVENT_ID_HEADER
        )
        correlation_id = set_correlation_id(incoming_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()
