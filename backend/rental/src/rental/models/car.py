"""Car model as seen by the order engine."""

from pydantic import BaseModel, ConfigDict, Field


class Car(BaseModel):
    """A rentable car.

    Catalog fields are owned by the car service; the order engine only
    reads price and owner and writes the availability flag.
    """

    model_config = ConfigDict(strict=True)

    car_id: str = Field(..., description="Unique car ID")
    owner_id: str = Field(..., description="User ID of the seller")
    brand: str = Field(default="", description="Manufacturer")
    model: str = Field(default="", description="Model name")
    license_plate: str = Field(default="", description="Registration plate")
    price: int = Field(..., ge=0, description="Rate per day in currency units")
    is_available: bool = Field(default=True, description="Open for new orders")
    booking_version: int = Field(
        default=0,
        ge=0,
        description="Bumped on every order insert to serialize bookings",
    )

    @property
    def description(self) -> str:
        """Line item text used for gateway transactions."""
        return f"Car rental: {self.brand} {self.model} ({self.license_plate})"


class Customer(BaseModel):
    """Contact details of a renter, read from the user directory."""

    model_config = ConfigDict(strict=True)

    user_id: str
    name: str = ""
    email: str = ""
    phone_number: str | None = None
