"""Standard error codes for the storefront payment backend.

Every failure surfaced to a caller (checkout page, gateway webhook,
operator) carries one of these codes, a human-readable message and a
recovery hint.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes."""

    # Order creation validation (ERR_ORDER_001-ERR_ORDER_008)
    INVALID_REQUEST = "ERR_ORDER_001"
    INVALID_EMAIL = "ERR_ORDER_002"
    INVALID_PHONE = "ERR_ORDER_003"
    INVALID_AMOUNT = "ERR_ORDER_004"
    AMOUNT_MISMATCH = "ERR_ORDER_005"
    MISSING_SHIPPING_ADDRESS = "ERR_ORDER_006"
    ORDER_NOT_FOUND = "ERR_ORDER_007"
    ORDER_SAVE_FAILED = "ERR_ORDER_008"

    # Gateway errors (ERR_GATEWAY_001-ERR_GATEWAY_002)
    GATEWAY_NOT_CONFIGURED = "ERR_GATEWAY_001"
    GATEWAY_ERROR = "ERR_GATEWAY_002"

    # Webhook errors (ERR_WEBHOOK_001-ERR_WEBHOOK_004)
    MISSING_WEBHOOK_SIGNATURE = "ERR_WEBHOOK_001"
    INVALID_WEBHOOK_SIGNATURE = "ERR_WEBHOOK_002"
    INVALID_WEBHOOK_PAYLOAD = "ERR_WEBHOOK_003"
    WEBHOOK_PROCESSING_FAILED = "ERR_WEBHOOK_004"

    # Checkout callback verification (ERR_PAYMENT_001-ERR_PAYMENT_004)
    INVALID_PAYMENT_SIGNATURE = "ERR_PAYMENT_001"
    PAYMENT_NOT_SUCCESSFUL = "ERR_PAYMENT_002"
    PAYMENT_AMOUNT_MISMATCH = "ERR_PAYMENT_003"
    PAYMENT_NOT_FOUND = "ERR_PAYMENT_004"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_REQUEST: "Missing required fields: amount, customer, or items",
    ErrorCode.INVALID_EMAIL: "Invalid email format",
    ErrorCode.INVALID_PHONE: "Invalid phone number format",
    ErrorCode.INVALID_AMOUNT: "Invalid payment amount. Must be between ₹1 and ₹10,00,000",
    ErrorCode.AMOUNT_MISMATCH: "Order amount does not match items total",
    ErrorCode.MISSING_SHIPPING_ADDRESS: "Shipping address is required",
    ErrorCode.ORDER_NOT_FOUND: "Order not found",
    ErrorCode.ORDER_SAVE_FAILED: "Failed to save order",
    ErrorCode.GATEWAY_NOT_CONFIGURED: "Payment gateway not configured",
    ErrorCode.GATEWAY_ERROR: "Failed to create payment order",
    ErrorCode.MISSING_WEBHOOK_SIGNATURE: "Webhook signature missing",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
    ErrorCode.INVALID_WEBHOOK_PAYLOAD: "Invalid webhook payload",
    ErrorCode.WEBHOOK_PROCESSING_FAILED: "Webhook processing failed",
    ErrorCode.INVALID_PAYMENT_SIGNATURE: "Payment verification failed. Invalid signature.",
    ErrorCode.PAYMENT_NOT_SUCCESSFUL: "Payment not successful",
    ErrorCode.PAYMENT_AMOUNT_MISMATCH: "Payment amount does not match order amount",
    ErrorCode.PAYMENT_NOT_FOUND: "Payment not found",
}

ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.INVALID_REQUEST: "Complete the checkout form and try again",
    ErrorCode.INVALID_EMAIL: "Enter a valid email address",
    ErrorCode.INVALID_PHONE: "Enter a 10-digit Indian mobile number",
    ErrorCode.INVALID_AMOUNT: "Adjust the cart so the total is within the allowed range",
    ErrorCode.AMOUNT_MISMATCH: "Refresh the cart and retry checkout",
    ErrorCode.MISSING_SHIPPING_ADDRESS: "Add a shipping address",
    ErrorCode.ORDER_NOT_FOUND: "Verify the order ID",
    ErrorCode.ORDER_SAVE_FAILED: "Try again or contact support",
    ErrorCode.GATEWAY_NOT_CONFIGURED: "Operator: set the Razorpay parameters in SSM and redeploy",
    ErrorCode.GATEWAY_ERROR: "Try again or use a different payment method",
    ErrorCode.MISSING_WEBHOOK_SIGNATURE: "Send the X-Razorpay-Signature header",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Verify webhook secret configuration",
    ErrorCode.INVALID_WEBHOOK_PAYLOAD: "Check the webhook payload format",
    ErrorCode.WEBHOOK_PROCESSING_FAILED: "The gateway will retry the delivery",
    ErrorCode.INVALID_PAYMENT_SIGNATURE: "Contact support with your payment ID",
    ErrorCode.PAYMENT_NOT_SUCCESSFUL: "Retry the payment",
    ErrorCode.PAYMENT_AMOUNT_MISMATCH: "Contact support with your payment ID",
    ErrorCode.PAYMENT_NOT_FOUND: "Verify the payment or order ID",
}


class ErrorResponse(BaseModel):
    """Standard JSON body for every error answered by the API."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, Any]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            message: Optional message overriding the default for the code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=message or ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class PaymentError(Exception):
    """Exception raised by order and payment operations.

    Converted to an ErrorResponse by the API exception handlers.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        # Overrides the code-derived HTTP status (gateway errors carry their own)
        self.status_code = status_code
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.code, self.message, self.details)


# Razorpay error codes, as returned in the gateway's error.code field
RAZORPAY_ERROR_CODES: frozenset[str] = frozenset(
    {
        "BAD_REQUEST_ERROR",
        "GATEWAY_ERROR",
        "SERVER_ERROR",
        "AUTHENTICATION_ERROR",
        "RATE_LIMIT_ERROR",
    }
)
