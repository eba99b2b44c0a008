"""Unit tests for SSMService (moto SSM)."""

from typing import Generator

import boto3
import pytest
from moto import mock_aws

from rental.services.ssm_service import SSMService, SSMServiceError

KEY_PATH = "/rental/test/midtrans/server_key"


@pytest.fixture
def ssm(aws_credentials: None) -> Generator[SSMService, None, None]:
    with mock_aws():
        client = boto3.client("ssm")
        client.put_parameter(
            Name=KEY_PATH, Value="SB-Mid-server-secret", Type="SecureString"
        )
        service = SSMService()
        service.clear_cache()
        yield service
        service.clear_cache()


class TestGetParameter:
    """Reading SecureString parameters."""

    def test_returns_decrypted_value(self, ssm: SSMService) -> None:
        assert ssm.get_parameter(KEY_PATH) == "SB-Mid-server-secret"

    def test_value_is_cached(self, ssm: SSMService) -> None:
        ssm.get_parameter(KEY_PATH)
        boto3.client("ssm").delete_parameter(Name=KEY_PATH)

        assert ssm.get_parameter(KEY_PATH) == "SB-Mid-server-secret"

        with pytest.raises(SSMServiceError):
            ssm.get_parameter(KEY_PATH, use_cache=False)

    def test_missing_parameter(self, ssm: SSMService) -> None:
        with pytest.raises(SSMServiceError, match="not found"):
            ssm.get_parameter("/rental/test/missing")
