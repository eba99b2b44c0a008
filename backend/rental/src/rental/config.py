"""Runtime configuration read from environment variables."""

import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


class RentalSettings(BaseModel):
    """Settings for the order engine and its collaborators."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev", description="Deployment environment")
    table_prefix: str = Field(
        default="rental-dev", description="Prefix prepended to DynamoDB table names"
    )
    midtrans_is_production: bool = Field(
        default=False, description="Use Midtrans production hosts instead of sandbox"
    )
    midtrans_server_key: str | None = Field(
        default=None,
        description="Server key; read from SSM when not set",
    )
    midtrans_timeout_seconds: float = Field(default=10.0, gt=0)
    strict_payment_verification: bool = Field(
        default=True,
        description=(
            "Reject CONFIRMED when the payment gateway cannot be reached. "
            "When false the transition proceeds with a warning."
        ),
    )
    default_customer_phone: str = "08123456789"

    @property
    def midtrans_server_key_parameter(self) -> str:
        """SSM parameter path holding the Midtrans server key."""
        return f"/rental/{self.environment}/midtrans/server_key"

    @classmethod
    def from_env(cls) -> "RentalSettings":
        """Build settings from the process environment."""
        environment = os.getenv("ENVIRONMENT", "dev")
        return cls(
            environment=environment,
            table_prefix=os.getenv("DYNAMODB_TABLE_PREFIX", f"rental-{environment}"),
            midtrans_is_production=_env_flag("MIDTRANS_IS_PRODUCTION", False),
            midtrans_server_key=os.getenv("MIDTRANS_SERVER_KEY") or None,
            midtrans_timeout_seconds=float(os.getenv("MIDTRANS_TIMEOUT_SECONDS", "10")),
            strict_payment_verification=_env_flag("STRICT_PAYMENT_VERIFICATION", True),
            default_customer_phone=os.getenv("DEFAULT_CUSTOMER_PHONE", "08123456789"),
        )


@lru_cache(maxsize=1)
def get_settings() -> RentalSettings:
    """Get the shared settings instance.

    Call get_settings.cache_clear() after changing the environment in tests.
    """
    return RentalSettings.from_env()
