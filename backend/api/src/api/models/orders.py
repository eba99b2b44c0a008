"""API models for order and payment endpoints.

Domain models in rental.models are strict; these mirror them for the HTTP
layer, where datetimes and enums arrive as JSON strings.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from rental.models import OrderStatus, PaymentMethod, PaymentStatus


class OrderCreateRequest(BaseModel):
    """Request to place an order.

    The customer is the acting user, not part of the body.
    """

    model_config = ConfigDict(
        # JSON has no datetime type, dates arrive as ISO strings
        strict=False,
        json_schema_extra={
            "examples": [
                {
                    "car_id": "car-001",
                    "start_date": "2026-07-15T09:00:00+07:00",
                    "end_date": "2026-07-18T09:00:00+07:00",
                    "payment_method": "CREDIT_CARD",
                }
            ]
        },
    )

    car_id: str = Field(..., min_length=1, description="Car to rent")
    start_date: datetime = Field(..., description="Rental start (ISO 8601)")
    end_date: datetime = Field(..., description="Rental end (ISO 8601)")
    payment_method: PaymentMethod = Field(..., examples=["CREDIT_CARD"])


class OrderStatusUpdateRequest(BaseModel):
    """Request to change an order's status.

    Kept as a plain string so unknown values reach the engine and are
    reported as ERR_VALIDATION.
    """

    status: str = Field(..., description="Target status", examples=["CONFIRMED"])


class CarSummary(BaseModel):
    """Car fields returned with an order."""

    car_id: str
    owner_id: str
    brand: str = ""
    model: str = ""
    license_plate: str = ""
    price: int
    is_available: bool


class OrderResponse(BaseModel):
    """Order as returned by the API."""

    order_id: str
    car_id: str
    customer_id: str
    seller_id: str
    start_date: datetime
    end_date: datetime
    total_price: int
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    status: OrderStatus
    payment_token: str | None = None
    payment_url: str | None = None
    created_at: datetime
    updated_at: datetime
    car: CarSummary | None = None


class OrderMutationResponse(BaseModel):
    """Order plus a human-readable message, for create and status updates."""

    message: str
    order: OrderResponse


class PaymentStatusResponse(BaseModel):
    """Result of polling the gateway for an order's payment."""

    message: str = "Payment status checked successfully"
    order_id: str
    payment_status: PaymentStatus
    gateway_status: dict[str, Any] = Field(default_factory=dict)


class PaymentDetailsResponse(BaseModel):
    """Gateway transaction details for an order."""

    order_id: str
    payment_status: PaymentStatus
    payment_url: str | None = None
    gateway_status: dict[str, Any] = Field(default_factory=dict)


class PaymentRetryResponse(BaseModel):
    """Fresh payment link for an order."""

    order_id: str
    payment_token: str | None = None
    payment_url: str | None = None


class WebhookAck(BaseModel):
    """Acknowledgement returned to the payment gateway."""

    status: str = Field(default="OK", examples=["OK"])
