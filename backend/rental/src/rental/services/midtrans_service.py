"""Midtrans payment gateway client.

Creates Snap transactions (hosted payment pages) and polls the Core API for
transaction status. The server key comes from settings or, when unset, from
SSM Parameter Store.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Any

import httpx

from rental.config import RentalSettings, get_settings
from rental.models import GatewayStatus, GatewayTransaction, GatewayTransactionStatus
from rental.utils.logging import get_logger

from .ssm_service import SSMService, SSMServiceError, get_ssm_service

logger = get_logger(__name__)

ORDER_ID_PREFIX = "ORDER-"


class MidtransServiceError(Exception):
    """Raised when a Midtrans request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize with message and optional HTTP status.

        Args:
            message: Human-readable error message.
            status_code: HTTP status returned by Midtrans, if any.
        """
        super().__init__(message)
        self.status_code = status_code


def format_order_id(order_id: str) -> str:
    """External order ID for Midtrans: ORDER-<id>, never prefixed twice."""
    return ORDER_ID_PREFIX + strip_order_prefix(order_id)


def strip_order_prefix(order_id: str) -> str:
    """Local order ID from an external one."""
    order_id = str(order_id)
    if order_id.startswith(ORDER_ID_PREFIX):
        return order_id[len(ORDER_ID_PREFIX) :]
    return order_id


class MidtransService:
    """Client for the Midtrans Snap and Core APIs.

    Usage:
        midtrans = get_midtrans_service()
        txn = midtrans.create_transaction(
            order_id="ORD-3F2A9C1B7D4E",
            amount=300000,
            customer_name="Budi",
            customer_email="budi@example.com",
            description="Car rental: Toyota Avanza (B 1234 XYZ)",
        )
    """

    def __init__(
        self,
        settings: RentalSettings | None = None,
        ssm: SSMService | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Runtime settings. Defaults to the shared settings.
            ssm: Parameter store used when no server key is configured.
            http_client: HTTP client, injectable for tests.
        """
        self._settings = settings or get_settings()
        self._ssm = ssm
        self._http = http_client or httpx.Client(
            timeout=self._settings.midtrans_timeout_seconds
        )
        self._server_key: str | None = self._settings.midtrans_server_key

    @property
    def snap_url(self) -> str:
        host = (
            "app.midtrans.com"
            if self._settings.midtrans_is_production
            else "app.sandbox.midtrans.com"
        )
        return f"https://{host}/snap/v1/transactions"

    @property
    def core_url(self) -> str:
        host = (
            "api.midtrans.com"
            if self._settings.midtrans_is_production
            else "api.sandbox.midtrans.com"
        )
        return f"https://{host}/v2"

    def _get_server_key(self) -> str:
        """Get the server key (lazy SSM lookup).

        Raises:
            MidtransServiceError: If the key cannot be retrieved.
        """
        if self._server_key is None:
            ssm = self._ssm or get_ssm_service()
            try:
                self._server_key = ssm.get_parameter(
                    self._settings.midtrans_server_key_parameter
                )
            except SSMServiceError as e:
                raise MidtransServiceError(
                    f"Failed to load Midtrans server key: {e}"
                ) from e
        return self._server_key

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._http.request(
                method,
                url,
                auth=httpx.BasicAuth(self._get_server_key(), ""),
                headers={"Accept": "application/json"},
                timeout=self._settings.midtrans_timeout_seconds,
                **kwargs,
            )
        except httpx.HTTPError as e:
            logger.error("Midtrans request to %s failed: %s", url, e)
            raise MidtransServiceError(f"Midtrans request failed: {e}") from e

    def create_transaction(
        self,
        *,
        order_id: str,
        amount: int | float | Decimal,
        customer_name: str | None = None,
        customer_email: str | None = None,
        customer_phone: str | None = None,
        description: str | None = None,
    ) -> GatewayTransaction:
        """Create a Snap transaction for an order.

        Args:
            order_id: Local or external order ID.
            amount: Amount to charge; fractions are truncated.
            customer_name: Defaults to "Customer".
            customer_email: Customer email for the receipt.
            customer_phone: Defaults to the configured phone number.
            description: Item name shown on the payment page.

        Returns:
            Snap token, redirect URL and the external order ID.

        Raises:
            MidtransServiceError: On network failure or a non-2xx response.
        """
        external_id = format_order_id(order_id)
        gross_amount = int(amount)

        payload = {
            "transaction_details": {
                "order_id": external_id,
                "gross_amount": gross_amount,
            },
            "customer_details": {
                "first_name": customer_name or "Customer",
                "email": customer_email or "",
                "phone": customer_phone or self._settings.default_customer_phone,
            },
            "item_details": [
                {
                    "id": strip_order_prefix(order_id),
                    "price": gross_amount,
                    "quantity": 1,
                    "name": description or "Order Payment",
                }
            ],
            "credit_card": {"secure": True},
        }

        logger.info(
            "Creating Midtrans transaction for %s, amount %d", external_id, gross_amount
        )
        response = self._request("POST", self.snap_url, json=payload)

        if not response.is_success:
            logger.error(
                "Midtrans transaction creation failed for %s: %s %s",
                external_id,
                response.status_code,
                response.text,
            )
            raise MidtransServiceError(
                "Failed to create payment link", status_code=response.status_code
            )

        data = response.json()
        return GatewayTransaction(
            token=str(data.get("token") or ""),
            redirect_url=str(data.get("redirect_url") or ""),
            order_id=external_id,
        )

    def get_transaction_status(self, order_id: str) -> GatewayStatus:
        """Get the current transaction status for an order.

        A transaction Midtrans does not know about is reported with
        transaction_status "not_found" rather than raised.

        Raises:
            MidtransServiceError: On network failure or any other non-2xx response.
        """
        external_id = format_order_id(order_id)
        response = self._request("GET", f"{self.core_url}/{external_id}/status")

        if response.status_code == 404:
            logger.info("Midtrans has no transaction for %s", external_id)
            return GatewayStatus(
                transaction_status=GatewayTransactionStatus.NOT_FOUND.value
            )

        if not response.is_success:
            logger.error(
                "Midtrans status check failed for %s: %s %s",
                external_id,
                response.status_code,
                response.text,
            )
            raise MidtransServiceError(
                "Failed to get transaction status", status_code=response.status_code
            )

        data: dict[str, Any] = response.json()
        # Core API reports unknown transactions with HTTP 200 and status_code "404"
        if str(data.get("status_code", "")) == "404":
            logger.info("Midtrans has no transaction for %s", external_id)
            return GatewayStatus(
                transaction_status=GatewayTransactionStatus.NOT_FOUND.value,
                raw=data,
            )

        return GatewayStatus(
            transaction_status=str(data.get("transaction_status", "")),
            fraud_status=data.get("fraud_status"),
            raw=data,
        )


@lru_cache(maxsize=1)
def get_midtrans_service() -> MidtransService:
    """Get the shared MidtransService instance."""
    return MidtransService()
