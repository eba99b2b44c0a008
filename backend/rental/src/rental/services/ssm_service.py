"""SSM Parameter Store access for gateway credentials.

The Midtrans server key is a SecureString under
/rental/{environment}/midtrans/server_key unless MIDTRANS_SERVER_KEY is set.
"""

import logging
from functools import lru_cache
from typing import ClassVar

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class SSMServiceError(Exception):
    """Raised when a parameter cannot be read."""

    pass


class SSMService:
    """Reads decrypted SecureString parameters with an in-process cache.

    Usage:
        ssm = get_ssm_service()
        server_key = ssm.get_parameter("/rental/dev/midtrans/server_key")
    """

    _cache: ClassVar[dict[str, str]] = {}

    def __init__(self) -> None:
        self._client = boto3.client("ssm")

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Read a parameter value.

        Args:
            name: Full parameter path
            use_cache: Return a previously read value without calling SSM

        Returns:
            The decrypted value.

        Raises:
            SSMServiceError: If the parameter is missing or unreadable.
        """
        if use_cache and name in self._cache:
            return self._cache[name]

        try:
            logger.info("Fetching SSM parameter: %s", name)
            response = self._client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ParameterNotFound":
                raise SSMServiceError(f"SSM parameter not found: {name}") from e
            raise SSMServiceError(
                f"Failed to retrieve SSM parameter {name}: {error_code}"
            ) from e

        value: str = response["Parameter"]["Value"]
        self._cache[name] = value
        return value

    def clear_cache(self) -> None:
        """Forget all cached values."""
        self._cache.clear()


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance."""
    return SSMService()
