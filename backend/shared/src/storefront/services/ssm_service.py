"""SSM Parameter Store access for gateway credentials.

Razorpay key id, key secret and webhook secret live as SecureString
parameters under ``/storefront/{environment}/razorpay/``.
"""

import logging
from functools import lru_cache
from typing import ClassVar

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class SSMServiceError(Exception):
    """Raised when SSM parameter retrieval fails."""

    def __init__(self, message: str, parameter_name: str | None = None) -> None:
        super().__init__(message)
        self.parameter_name = parameter_name


class SSMService:
    """Retrieves decrypted parameters and caches them for the process lifetime.

    Usage:
        ssm = get_ssm_service()
        key_secret = ssm.get_parameter("/storefront/dev/razorpay/key_secret")
    """

    _instance: ClassVar["SSMService | None"] = None
    _cache: ClassVar[dict[str, str]] = {}

    def __init__(self) -> None:
        self._client = boto3.client("ssm")

    @classmethod
    def get_instance(cls) -> "SSMService":
        """Get singleton instance of SSMService."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Retrieve a parameter value from SSM Parameter Store.

        Args:
            name: Full parameter path (e.g., "/storefront/dev/razorpay/key_id")
            use_cache: Whether to use cached value if available (default: True)

        Returns:
            The decrypted parameter value.

        Raises:
            SSMServiceError: If parameter cannot be retrieved.
        """
        if use_cache and name in self._cache:
            logger.debug("SSM cache hit for %s", name)
            return self._cache[name]

        try:
            logger.info("Fetching SSM parameter: %s", name)
            response = self._client.get_parameter(Name=name, WithDecryption=True)
            value: str = response["Parameter"]["Value"]
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ParameterNotFound":
                raise SSMServiceError(
                    f"SSM parameter not found: {name}", parameter_name=name
                ) from e
            if error_code == "AccessDeniedException":
                raise SSMServiceError(
                    f"Access denied to SSM parameter: {name}. "
                    "Check IAM permissions for ssm:GetParameter.",
                    parameter_name=name,
                ) from e
            raise SSMServiceError(
                f"Failed to retrieve SSM parameter {name}: {e}", parameter_name=name
            ) from e

        if not value.strip():
            raise SSMServiceError(f"SSM parameter is empty: {name}", parameter_name=name)

        self._cache[name] = value
        return value

    def clear_cache(self) -> None:
        """Clear all cached parameters."""
        self._cache.clear()
        logger.info("SSM parameter cache cleared")


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance (singleton pattern).

    Returns:
        SSMService: Shared service instance.
    """
    return SSMService.get_instance()
