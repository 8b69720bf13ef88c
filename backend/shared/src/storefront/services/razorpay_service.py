"""Razorpay gateway service for order creation, payment lookup and signatures.

Credentials are read from SSM Parameter Store on first use. The SDK client is
created lazily so that webhook verification works with only the webhook
secret configured.
"""

import hashlib
import logging
import os
from functools import lru_cache
from typing import Any

import razorpay
from razorpay.errors import (
    BadRequestError,
    GatewayError,
    ServerError,
    SignatureVerificationError,
)

from .ssm_service import SSMService, SSMServiceError, get_ssm_service

logger = logging.getLogger(__name__)

KEY_ID = "key_id"
KEY_SECRET = "key_secret"
WEBHOOK_SECRET = "webhook_secret"


class RazorpayServiceError(Exception):
    """Raised when a Razorpay API call fails."""

    def __init__(
        self,
        message: str,
        gateway_error_code: str | None = None,
        status_code: int = 500,
    ) -> None:
        """Initialize with message and the gateway's error classification.

        Args:
            message: Gateway error description.
            gateway_error_code: Razorpay error code (BAD_REQUEST_ERROR, ...).
            status_code: HTTP status to surface to the caller.
        """
        super().__init__(message)
        self.gateway_error_code = gateway_error_code
        self.status_code = status_code


class GatewayConfigError(Exception):
    """Raised when a required Razorpay parameter is missing from SSM."""

    def __init__(self, missing: list[str], environment: str) -> None:
        self.missing = missing
        self.environment = environment
        super().__init__(
            f"Razorpay configuration missing for {environment}: {', '.join(missing)}"
        )

    @property
    def troubleshooting(self) -> list[str]:
        """Operator remediation steps for the missing parameters."""
        steps = [
            f"Create SecureString parameter /storefront/{self.environment}/razorpay/{name}"
            for name in self.missing
        ]
        steps.append("Grant the API role ssm:GetParameter on /storefront/*")
        steps.append("Redeploy or restart the API so the parameter cache is refreshed")
        return steps


def _classify_gateway_error(exc: Exception) -> tuple[str, int]:
    if isinstance(exc, BadRequestError):
        return "BAD_REQUEST_ERROR", 400
    if isinstance(exc, GatewayError):
        return "GATEWAY_ERROR", 500
    return "SERVER_ERROR", 500


class RazorpayService:
    """Service for Razorpay gateway operations.

    Handles:
    - Gateway order creation (amounts in paise)
    - Payment lookup for checkout verification
    - Webhook and checkout-callback signature verification

    Usage:
        razorpay_svc = get_razorpay_service()
        order = razorpay_svc.create_order(
            amount_paise=150000, currency="INR", receipt="RCPT-1A2B3C4D5E6F"
        )
    """

    def __init__(
        self,
        environment: str | None = None,
        ssm: SSMService | None = None,
        client: Any | None = None,
    ) -> None:
        """Initialize the gateway service.

        Args:
            environment: Environment name (dev, prod). Defaults to ENVIRONMENT env var.
            ssm: Parameter store service. Defaults to the shared instance.
            client: Pre-built SDK client (tests inject a mock here).
        """
        self.environment = environment or os.environ.get("ENVIRONMENT", "dev")
        self._ssm = ssm or get_ssm_service()
        self._client = client
        self._utility = razorpay.Utility()

    def _parameter_path(self, name: str) -> str:
        return f"/storefront/{self.environment}/razorpay/{name}"

    def _get_parameter(self, name: str) -> str:
        try:
            return self._ssm.get_parameter(self._parameter_path(name))
        except SSMServiceError as e:
            logger.error(
                "Razorpay parameter %s unavailable: %s", self._parameter_path(name), e
            )
            raise GatewayConfigError([name], self.environment) from e

    def get_key_id(self) -> str:
        """Public key id handed to the checkout widget."""
        return self._get_parameter(KEY_ID)

    def ensure_configured(self) -> None:
        """Check that the API credentials resolve.

        Raises:
            GatewayConfigError: Listing every missing credential.
        """
        missing = []
        for name in (KEY_ID, KEY_SECRET):
            try:
                self._get_parameter(name)
            except GatewayConfigError:
                missing.append(name)
        if missing:
            raise GatewayConfigError(missing, self.environment)

    def _get_client(self) -> Any:
        """Get or create the SDK client (lazy initialization)."""
        if self._client is None:
            self.ensure_configured()
            self._client = razorpay.Client(
                auth=(self._get_parameter(KEY_ID), self._get_parameter(KEY_SECRET))
            )
            logger.info("Razorpay client initialized for environment: %s", self.environment)
        return self._client

    def config_status(self) -> dict[str, Any]:
        """Report which gateway parameters resolve, without exposing secrets."""
        status: dict[str, Any] = {"environment": self.environment}
        for name in (KEY_ID, KEY_SECRET, WEBHOOK_SECRET):
            try:
                value = self._get_parameter(name)
                status[name] = True
                if name == KEY_ID:
                    status["key_id_prefix"] = value[:8]
            except GatewayConfigError:
                status[name] = False
        return status

    def create_order(
        self,
        *,
        amount_paise: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Create a gateway order.

        Args:
            amount_paise: Amount in the smallest currency unit.
            currency: ISO currency code.
            receipt: Merchant receipt id (RCPT-...).
            notes: Sanitized key/value notes shown in the dashboard.

        Returns:
            The gateway order dict (id, amount, currency, status, ...).

        Raises:
            GatewayConfigError: If credentials are missing.
            RazorpayServiceError: If the gateway rejects the request.
        """
        client = self._get_client()
        try:
            logger.info(
                "Creating Razorpay order for receipt %s, amount %d paise",
                receipt,
                amount_paise,
            )
            order: dict[str, Any] = client.order.create(
                data={
                    "amount": amount_paise,
                    "currency": currency,
                    "receipt": receipt,
                    "notes": notes or {},
                }
            )
        except (BadRequestError, GatewayError, ServerError) as e:
            error_code, status_code = _classify_gateway_error(e)
            logger.error("Razorpay order creation failed: %s (code: %s)", e, error_code)
            raise RazorpayServiceError(str(e), error_code, status_code) from e

        logger.info("Razorpay order created: %s for receipt %s", order.get("id"), receipt)
        return order

    def fetch_payment(self, payment_id: str) -> dict[str, Any]:
        """Fetch a payment entity from the gateway.

        Raises:
            RazorpayServiceError: If the gateway lookup fails.
        """
        client = self._get_client()
        try:
            payment: dict[str, Any] = client.payment.fetch(payment_id)
        except (BadRequestError, GatewayError, ServerError) as e:
            error_code, status_code = _classify_gateway_error(e)
            logger.warning("Razorpay payment fetch failed for %s: %s", payment_id, e)
            raise RazorpayServiceError(str(e), error_code, status_code) from e
        return payment

    def verify_webhook_signature(self, body: str, signature: str) -> bool:
        """Check the X-Razorpay-Signature header against the raw body.

        HMAC-SHA256 over the exact body text using the webhook secret,
        compared in constant time.

        Args:
            body: Raw request body, decoded but never re-serialized.
            signature: Hex digest from the header.

        Returns:
            True if the signature matches.

        Raises:
            GatewayConfigError: If the webhook secret is not configured.
        """
        secret = self._get_parameter(WEBHOOK_SECRET)
        try:
            self._utility.verify_webhook_signature(body, signature, secret)
        except SignatureVerificationError:
            return False
        return True

    def verify_payment_signature(
        self, razorpay_order_id: str, razorpay_payment_id: str, signature: str
    ) -> bool:
        """Check a checkout callback signature (HMAC of "order_id|payment_id").

        Raises:
            GatewayConfigError: If the key secret is not configured.
        """
        secret = self._get_parameter(KEY_SECRET)
        message = f"{razorpay_order_id}|{razorpay_payment_id}"
        try:
            self._utility.verify_signature(message, signature, secret)
        except SignatureVerificationError:
            return False
        return True

    @staticmethod
    def compute_payload_hash(payload: bytes) -> str:
        """Compute SHA-256 hash of a webhook payload for auditing.

        Args:
            payload: Raw webhook payload bytes.

        Returns:
            Hex-encoded SHA-256 hash.
        """
        return hashlib.sha256(payload).hexdigest()


@lru_cache(maxsize=1)
def get_razorpay_service() -> RazorpayService:
    """Get the shared RazorpayService instance (singleton pattern).

    Returns:
        RazorpayService: Shared service instance.
    """
    return RazorpayService()
