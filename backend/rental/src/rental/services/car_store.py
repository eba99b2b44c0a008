"""Car and user lookups backed by DynamoDB."""

from typing import TYPE_CHECKING, Any

from rental.models import Car, Customer

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService


class CarStore:
    """Reads cars. Availability is written by OrderStore transactions."""

    TABLE = "cars"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize car store.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def get_car(self, car_id: str) -> Car | None:
        """Get a car by ID, or None if it does not exist."""
        item = self.db.get_item(self.TABLE, {"car_id": car_id})
        return self._item_to_car(item) if item else None

    def _item_to_car(self, item: dict[str, Any]) -> Car:
        """Convert DynamoDB item to Car model."""
        return Car(
            car_id=item["car_id"],
            owner_id=item["owner_id"],
            brand=item.get("brand", ""),
            model=item.get("model", ""),
            license_plate=item.get("license_plate", ""),
            price=int(item["price"]),
            is_available=bool(item.get("is_available", True)),
            booking_version=int(item.get("booking_version", 0)),
        )


class UserDirectory:
    """Read-only view of user contact details."""

    TABLE = "users"

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def get_customer(self, user_id: str) -> Customer | None:
        item = self.db.get_item(self.TABLE, {"user_id": user_id})
        if not item:
            return None
        return Customer(
            user_id=item["user_id"],
            name=item.get("name", ""),
            email=item.get("email", ""),
            phone_number=item.get("phone_number") or None,
        )
