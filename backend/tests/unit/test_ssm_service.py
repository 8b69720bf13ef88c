"""Unit tests for SSMService against moto Parameter Store."""

from collections.abc import Generator

import boto3
import pytest
from moto import mock_aws

from storefront.services.razorpay_service import GatewayConfigError, RazorpayService
from storefront.services.ssm_service import SSMService, SSMServiceError

KEY_ID_PATH = "/storefront/dev/razorpay/key_id"


@pytest.fixture
def ssm() -> Generator[SSMService, None, None]:
    with mock_aws():
        client = boto3.client("ssm")
        client.put_parameter(Name=KEY_ID_PATH, Value="rzp_test_123", Type="SecureString")
        SSMService._cache.clear()
        yield SSMService()
        SSMService._cache.clear()


class TestGetParameter:
    def test_reads_secure_string(self, ssm: SSMService) -> None:
        assert ssm.get_parameter(KEY_ID_PATH) == "rzp_test_123"

    def test_caches_values(self, ssm: SSMService) -> None:
        ssm.get_parameter(KEY_ID_PATH)
        boto3.client("ssm").put_parameter(
            Name=KEY_ID_PATH, Value="rzp_test_rotated", Type="SecureString", Overwrite=True
        )

        assert ssm.get_parameter(KEY_ID_PATH) == "rzp_test_123"
        assert ssm.get_parameter(KEY_ID_PATH, use_cache=False) == "rzp_test_rotated"

    def test_clear_cache(self, ssm: SSMService) -> None:
        ssm.get_parameter(KEY_ID_PATH)

        ssm.clear_cache()

        assert SSMService._cache == {}

    def test_missing_parameter(self, ssm: SSMService) -> None:
        with pytest.raises(SSMServiceError) as exc_info:
            ssm.get_parameter("/storefront/dev/razorpay/webhook_secret")

        assert exc_info.value.parameter_name == "/storefront/dev/razorpay/webhook_secret"
        assert "not found" in str(exc_info.value)


def test_gateway_reports_missing_secret_from_parameter_store(ssm: SSMService) -> None:
    gateway = RazorpayService(environment="dev", ssm=ssm)

    assert gateway.get_key_id() == "rzp_test_123"
    with pytest.raises(GatewayConfigError) as exc_info:
        gateway.ensure_configured()

    assert exc_info.value.missing == ["key_secret"]
