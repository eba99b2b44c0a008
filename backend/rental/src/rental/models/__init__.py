"""Pydantic models for car rental data entities."""

from .car import Car, Customer
from .enums import (
    ACTIVE_ORDER_STATUSES,
    HOLDING_ORDER_STATUSES,
    ONLINE_PAYMENT_METHODS,
    GatewayTransactionStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ErrorCode,
    ErrorResponse,
    RentalError,
)
from .order import CarBooking, Order, OrderCreate, OrderWithCar
from .payment import (
    GatewayStatus,
    GatewayTransaction,
    PaymentCheckResult,
    PaymentDetails,
    PaymentNotification,
    PaymentNotificationLog,
)

__all__ = [
    # Enums
    "GatewayTransactionStatus",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "ACTIVE_ORDER_STATUSES",
    "HOLDING_ORDER_STATUSES",
    "ONLINE_PAYMENT_METHODS",
    # Car
    "Car",
    "Customer",
    # Order
    "CarBooking",
    "Order",
    "OrderCreate",
    "OrderWithCar",
    # Payment
    "GatewayStatus",
    "GatewayTransaction",
    "PaymentCheckResult",
    "PaymentDetails",
    "PaymentNotification",
    "PaymentNotificationLog",
    # Errors
    "ErrorCode",
    "ErrorResponse",
    "RentalError",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
]
