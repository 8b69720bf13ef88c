"""FastAPI exception handlers for converting PaymentError to HTTP responses.

Every error answered by the API uses the ErrorResponse body
(``success=false, error_code, message, recovery, details``).

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: validation failures, webhook signature/payload errors,
  checkout-callback verification failures
- 404 Not Found: unknown order or payment
- 500 Internal Server Error: gateway configuration, storage and webhook
  processing failures (the gateway retries webhooks on any non-2xx)

Usage:
    from storefront_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from storefront.models.errors import ErrorCode, ErrorResponse, PaymentError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    # Not found errors -> 404 Not Found
    ErrorCode.ORDER_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.PAYMENT_NOT_FOUND: HTTP_404_NOT_FOUND,
    # Server-side failures -> 500
    ErrorCode.GATEWAY_NOT_CONFIGURED: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.GATEWAY_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.ORDER_SAVE_FAILED: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.WEBHOOK_PROCESSING_FAILED: HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode.

    Args:
        code: The ErrorCode to map

    Returns:
        HTTP status code, defaults to 400 if not explicitly mapped.
    """
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def payment_error_handler(request: Request, exc: PaymentError) -> JSONResponse:
    """Convert a PaymentError to a JSON response.

    The exception's own status code (set for gateway errors) wins over the
    code-derived one.
    """
    status_code = exc.status_code or get_http_status_for_error(exc.code)
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code.value
        )

    return JSONResponse(
        status_code=status_code,
        content=exc.to_error_response().model_dump(mode="json"),
    )


def _field_path(loc: tuple[int | str, ...]) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query")]
    return ".".join(parts) or "body"


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Answer request validation failures with 400 and a field-specific message."""
    errors = exc.errors()
    first = errors[0] if errors else {"loc": (), "type": "", "msg": "Invalid request"}
    field = _field_path(tuple(first.get("loc", ())))

    if first.get("type") == "missing":
        message = f"Missing required field: {field}"
    else:
        message = f"Invalid value for field {field}: {first.get('msg')}"

    error_response = ErrorResponse.from_code(
        ErrorCode.INVALID_REQUEST,
        message,
        details={"fields": [_field_path(tuple(e.get("loc", ()))) for e in errors]},
    )
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content=error_response.model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic error response.

    Args:
        request: The incoming request
        exc: The uncaught exception

    Returns:
        JSONResponse with 500 status and generic error message.
    """
    logger.exception("Unhandled exception: %s", exc)

    error_response = {
        "success": False,
        "error_code": "ERR_INTERNAL",
        "message": "An unexpected error occurred",
        "recovery": "Please try again later or contact support",
        "details": None,
    }

    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(PaymentError, payment_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
