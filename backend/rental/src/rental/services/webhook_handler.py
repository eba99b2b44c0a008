"""Handler for Midtrans payment notifications.

Maps gateway pushes onto local payment status and keeps an audit record of
every notification received. Kept separate from HTTP routing so it can be
unit tested without a request cycle.
"""

import datetime as dt
import hashlib
import json
import uuid
from typing import TYPE_CHECKING, Any

from rental.models import (
    ErrorCode,
    PaymentNotification,
    PaymentNotificationLog,
    PaymentStatus,
    RentalError,
)
from rental.utils.logging import get_logger, log_payment_notification

from .midtrans_service import strip_order_prefix

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService
    from .order_store import OrderStore

logger = get_logger(__name__)


def compute_payload_hash(payload: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of a notification payload."""
    return hashlib.sha256(
        json.dumps(payload, sort_keys=True, default=str).encode()
    ).hexdigest()


def map_payment_status(notification: PaymentNotification) -> PaymentStatus | None:
    """Local payment status implied by a notification, or None for no change.

    capture/settlement with fraud accept (or none) means PAID;
    cancel/deny/expire means FAILED; anything else (pending, refund, ...)
    leaves the order alone.
    """
    status = notification.to_gateway_status()
    if status.is_successful():
        return PaymentStatus.PAID
    if status.is_failed():
        return PaymentStatus.FAILED
    return None


class PaymentNotificationHandler:
    """Applies Midtrans notifications to orders.

    Processing the same notification twice leaves the order in the same
    state as processing it once.
    """

    NOTIFICATIONS_TABLE = "payment-notifications"

    def __init__(self, orders: "OrderStore", db: "DynamoDBService") -> None:
        """Initialize handler.

        Args:
            orders: Order store
            db: DynamoDB service used for the notification log
        """
        self.orders = orders
        self.db = db

    def handle(self, notification: PaymentNotification) -> dict[str, str]:
        """Process one notification.

        Args:
            notification: Parsed webhook body

        Returns:
            Acknowledgement body {"status": "OK"}

        Raises:
            RentalError: ORDER_NOT_FOUND when no order has exactly this ID
        """
        payload = notification.model_dump(mode="json")
        payload_hash = compute_payload_hash(payload)
        order_id = strip_order_prefix(notification.order_id)

        order = self.orders.get_order(order_id)
        if order is None:
            self._log(notification, payload_hash, None, "not_found", None)
            log_payment_notification(
                logger,
                notification.order_id,
                notification.transaction_status,
                fraud_status=notification.fraud_status,
                result="not_found",
            )
            raise RentalError(
                ErrorCode.ORDER_NOT_FOUND, details={"order_id": notification.order_id}
            )

        new_status = map_payment_status(notification)
        if new_status is None:
            result = "skipped"
            payment_status = order.payment_status
        else:
            result = "success"
            payment_status = new_status
            if order.payment_status != new_status:
                self.orders.update_payment_status(order.order_id, new_status)

        self._log(notification, payload_hash, order.order_id, result, payment_status)
        log_payment_notification(
            logger,
            notification.order_id,
            notification.transaction_status,
            order_id=order.order_id,
            fraud_status=notification.fraud_status,
            result=result,
            payment_status=payment_status.value,
        )
        return {"status": "OK"}

    def _log(
        self,
        notification: PaymentNotification,
        payload_hash: str,
        order_id: str | None,
        processing_result: str,
        payment_status: PaymentStatus | None,
    ) -> PaymentNotificationLog:
        record = PaymentNotificationLog(
            notification_id=f"NTF-{uuid.uuid4().hex[:12].upper()}",
            external_order_id=notification.order_id,
            order_id=order_id,
            transaction_status=notification.transaction_status,
            fraud_status=notification.fraud_status,
            payload_hash=payload_hash,
            processing_result=processing_result,
            payment_status=payment_status,
            received_at=dt.datetime.now(dt.UTC),
        )

        item: dict[str, Any] = {
            "notification_id": record.notification_id,
            "external_order_id": record.external_order_id,
            "transaction_status": record.transaction_status,
            "payload_hash": record.payload_hash,
            "processing_result": record.processing_result,
            "received_at": record.received_at.isoformat(),
        }
        if record.order_id:
            item["order_id"] = record.order_id
        if record.fraud_status:
            item["fraud_status"] = record.fraud_status
        if record.payment_status:
            item["payment_status"] = record.payment_status.value

        self.db.put_item(self.NOTIFICATIONS_TABLE, item)
        return record
