"""Backend services for the car rental order engine."""

from .car_store import CarStore, UserDirectory
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .midtrans_service import (
    MidtransService,
    MidtransServiceError,
    format_order_id,
    get_midtrans_service,
)
from .order_service import ALLOWED_TRANSITIONS, OrderService, is_valid_transition
from .order_store import OrderStore
from .pricing import calculate_total_price, rental_days
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .webhook_handler import PaymentNotificationHandler, map_payment_status

__all__ = [
    "DynamoDBService",
    "get_dynamodb_service",
    "reset_dynamodb_service",
    "CarStore",
    "UserDirectory",
    "OrderStore",
    "OrderService",
    "ALLOWED_TRANSITIONS",
    "is_valid_transition",
    "PaymentNotificationHandler",
    "map_payment_status",
    "MidtransService",
    "MidtransServiceError",
    "format_order_id",
    "get_midtrans_service",
    "SSMService",
    "SSMServiceError",
    "get_ssm_service",
    "calculate_total_price",
    "rental_days",
]
