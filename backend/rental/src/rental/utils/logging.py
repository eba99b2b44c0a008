"""Logging helpers: request correlation IDs and payment event lines.

The API middleware stores the X-Correlation-ID of each request in a
ContextVar; CorrelationIdFilter copies it onto every record so all lines
of one request can be grepped together in CloudWatch.

    logger = get_logger(__name__)
    logger.info("Order %s created", order_id)
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

NO_CORRELATION_ID = "no-correlation-id"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context, generating one if needed."""
    cid = correlation_id or generate_correlation_id()
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Attach the current correlation ID to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Prefix formatted lines with [correlation_id]."""

    def format(self, record: logging.LogRecord) -> str:
        cid = getattr(record, "correlation_id", None) or (
            get_correlation_id() or NO_CORRELATION_ID
        )
        return f"[{cid}] {super().format(record)}"


def get_logger(name: str) -> logging.Logger:
    """logging.getLogger with a CorrelationIdFilter installed once."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def configure_logging(level: int = logging.INFO) -> None:
    """Install the structured formatter on the root logger.

    Safe to call more than once; existing handlers are reused.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    for handler in root.handlers:
        handler.setFormatter(
            StructuredFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(CorrelationIdFilter())


def log_payment_operation(
    logger: logging.Logger,
    operation: str,
    *,
    order_id: str | None = None,
    amount: int | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a payment operation with structured context.

    Args:
        logger: Logger instance
        operation: Operation name (e.g., "create_transaction", "payment_gate")
        order_id: Order ID if available
        amount: Amount in currency units if relevant
        status: Payment/transaction status
        error: Error message if operation failed
        **extra: Additional context fields
    """
    context: dict[str, Any] = {"operation": operation}

    if order_id:
        context["order_id"] = order_id
    if amount is not None:
        context["amount"] = amount
    if status:
        context["status"] = status
    if error:
        context["error"] = error

    context.update(extra)

    msg_parts = [f"Payment operation: {operation}"]
    for key, value in context.items():
        if key != "operation":
            msg_parts.append(f"{key}={value}")

    message = " | ".join(msg_parts)

    if error:
        logger.error(message, extra=context)
    else:
        logger.info(message, extra=context)


def log_payment_notification(
    logger: logging.Logger,
    external_order_id: str,
    transaction_status: str,
    *,
    order_id: str | None = None,
    fraud_status: str | None = None,
    result: str | None = None,
    **extra: Any,
) -> None:
    """Log a gateway payment notification with structured context.

    Args:
        logger: Logger instance
        external_order_id: order_id as sent by Midtrans (ORDER-...)
        transaction_status: Midtrans transaction_status
        order_id: Matched local order ID if any
        fraud_status: Midtrans fraud_status if present
        result: Processing result (success, skipped, not_found)
        **extra: Additional context fields
    """
    context: dict[str, Any] = {
        "external_order_id": external_order_id,
        "transaction_status": transaction_status,
    }

    if order_id:
        context["order_id"] = order_id
    if fraud_status:
        context["fraud_status"] = fraud_status
    if result:
        context["result"] = result

    context.update(extra)

    msg_parts = [f"Payment notification: {external_order_id} ({transaction_status})"]
    if result:
        msg_parts.append(f"result={result}")
    if order_id:
        msg_parts.append(f"order={order_id}")

    message = " | ".join(msg_parts)

    if result == "not_found":
        logger.warning(message, extra=context)
    else:
        logger.info(message, extra=context)
