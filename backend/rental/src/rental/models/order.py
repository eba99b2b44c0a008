"""Order model for rental bookings."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .car import Car
from .enums import OrderStatus, PaymentMethod, PaymentStatus


class Order(BaseModel):
    """A time-bounded rental of one car by one customer.

    Amounts are whole currency units. seller_id is copied from the car
    owner when the order is placed so history survives ownership changes.
    """

    model_config = ConfigDict(strict=True)

    order_id: str = Field(..., description="Unique order ID")
    car_id: str = Field(..., description="Rented car")
    customer_id: str = Field(..., description="Renter")
    seller_id: str = Field(..., description="Car owner at order time")
    start_date: datetime = Field(..., description="Rental start")
    end_date: datetime = Field(..., description="Rental end")
    total_price: int = Field(..., ge=0, description="Total price")
    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    status: OrderStatus = OrderStatus.PENDING
    payment_token: str | None = Field(
        default=None, description="Midtrans Snap token"
    )
    payment_url: str | None = Field(
        default=None, description="Midtrans Snap redirect URL"
    )
    created_at: datetime
    updated_at: datetime

    def is_party(self, user_id: str) -> bool:
        """Whether the user is the customer or the seller of this order."""
        return user_id in (self.customer_id, self.seller_id)


class OrderCreate(BaseModel):
    """Data required to place an order."""

    model_config = ConfigDict(strict=True)

    car_id: str
    start_date: datetime
    end_date: datetime
    payment_method: PaymentMethod
    customer_id: str


class OrderWithCar(Order):
    """Order together with its car relation."""

    car: Car | None = None


class CarBooking(BaseModel):
    """Date range an order holds on its car.

    Kept in a per-car ledger so overlap checks can read it consistently.
    """

    model_config = ConfigDict(strict=True)

    car_id: str
    order_id: str
    start_date: datetime
    end_date: datetime
    status: OrderStatus

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Inclusive overlap: touching boundaries count as overlapping."""
        return self.start_date <= end and self.end_date >= start
