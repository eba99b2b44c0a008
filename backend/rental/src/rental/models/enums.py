"""Enumeration types for car rental data models."""

from enum import Enum


class OrderStatus(str, Enum):
    """Lifecycle status of a rental order."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    """Supported payment methods."""

    CASH = "CASH"
    VIRTUAL_ACCOUNT = "VIRTUAL_ACCOUNT"
    CREDIT_CARD = "CREDIT_CARD"
    E_WALLET = "E_WALLET"

    @property
    def is_online(self) -> bool:
        """Whether this method is settled through the payment gateway."""
        return self in ONLINE_PAYMENT_METHODS


class PaymentStatus(str, Enum):
    """Local payment status of an order."""

    UNPAID = "UNPAID"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class GatewayTransactionStatus(str, Enum):
    """Transaction statuses reported by Midtrans.

    NOT_FOUND is a local sentinel for a transaction the gateway does not know.
    """

    CAPTURE = "capture"
    SETTLEMENT = "settlement"
    PENDING = "pending"
    CANCEL = "cancel"
    DENY = "deny"
    EXPIRE = "expire"
    REFUND = "refund"
    NOT_FOUND = "not_found"


ONLINE_PAYMENT_METHODS: frozenset[PaymentMethod] = frozenset(
    {
        PaymentMethod.VIRTUAL_ACCOUNT,
        PaymentMethod.CREDIT_CARD,
        PaymentMethod.E_WALLET,
    }
)

# Orders in these statuses block overlapping bookings on the same car
ACTIVE_ORDER_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.ONGOING}
)

# Orders in these statuses keep the car marked unavailable
HOLDING_ORDER_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.CONFIRMED, OrderStatus.ONGOING}
)
