"""Payment models for gateway transactions and notifications."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import GatewayTransactionStatus, PaymentStatus

SUCCESS_TRANSACTION_STATUSES = frozenset({"capture", "settlement"})
FAILED_TRANSACTION_STATUSES = frozenset({"cancel", "deny", "expire"})


class GatewayTransaction(BaseModel):
    """Result of creating a Midtrans Snap transaction."""

    model_config = ConfigDict(strict=True)

    token: str = Field(..., description="Snap token")
    redirect_url: str = Field(..., description="Hosted payment page URL")
    order_id: str = Field(
        ...,
        description="External order ID sent to Midtrans",
        examples=["ORDER-ORD-3F2A9C1B7D4E"],
    )


class GatewayStatus(BaseModel):
    """Transaction status as reported by the Midtrans status API."""

    transaction_status: str = Field(
        ...,
        description="capture, settlement, pending, cancel, deny, expire, refund or not_found",
    )
    fraud_status: str | None = Field(default=None, description="accept, deny, challenge")
    raw: dict[str, Any] = Field(default_factory=dict, description="Full gateway response")

    @property
    def is_not_found(self) -> bool:
        """Whether the gateway has no transaction for this order."""
        return self.transaction_status == GatewayTransactionStatus.NOT_FOUND.value

    def is_successful(self, *, allow_missing_fraud_status: bool = True) -> bool:
        """Whether the transaction is captured or settled and not flagged.

        Args:
            allow_missing_fraud_status: Treat an absent fraud_status as accepted.
                The status check endpoint requires an explicit "accept".
        """
        if self.transaction_status not in SUCCESS_TRANSACTION_STATUSES:
            return False
        if self.fraud_status is None or self.fraud_status == "":
            return allow_missing_fraud_status
        return self.fraud_status == "accept"

    def is_failed(self) -> bool:
        """Whether the transaction was cancelled, denied or expired."""
        return self.transaction_status in FAILED_TRANSACTION_STATUSES


class PaymentNotification(BaseModel):
    """Webhook payload pushed by Midtrans.

    Only the fields the engine acts on are declared; everything else is
    kept in the raw payload for the notification log.
    """

    model_config = ConfigDict(extra="allow")

    order_id: str = Field(..., examples=["ORDER-ORD-3F2A9C1B7D4E"])
    transaction_status: str = Field(..., examples=["settlement"])
    fraud_status: str | None = Field(default=None, examples=["accept"])
    transaction_id: str | None = None
    status_code: str | None = None
    gross_amount: str | None = None

    def to_gateway_status(self) -> GatewayStatus:
        """View the notification as a gateway status."""
        return GatewayStatus(
            transaction_status=self.transaction_status,
            fraud_status=self.fraud_status,
            raw=self.model_dump(mode="json"),
        )


class PaymentCheckResult(BaseModel):
    """Result of polling the gateway for an order's payment."""

    order_id: str
    payment_status: PaymentStatus
    gateway_status: dict[str, Any] = Field(default_factory=dict)


class PaymentDetails(BaseModel):
    """Gateway transaction details plus the stored payment URL."""

    order_id: str
    payment_status: PaymentStatus
    payment_url: str | None = None
    gateway_status: dict[str, Any] = Field(default_factory=dict)


class PaymentNotificationLog(BaseModel):
    """Audit record of a received payment notification."""

    model_config = ConfigDict(strict=True)

    notification_id: str = Field(..., description="Log record ID")
    external_order_id: str = Field(..., description="order_id as sent by Midtrans")
    order_id: str | None = Field(default=None, description="Matched local order")
    transaction_status: str
    fraud_status: str | None = None
    payload_hash: str = Field(..., description="SHA-256 of the canonical payload")
    processing_result: str = Field(
        ..., description="success, skipped or not_found"
    )
    payment_status: PaymentStatus | None = Field(
        default=None, description="Payment status after processing"
    )
    received_at: datetime
