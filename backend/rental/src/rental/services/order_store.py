"""Order persistence with transactional booking guarantees.

Orders live in the `orders` table. Every order also has a row in the
`car-bookings` ledger (partition key car_id) so the overlap check can be a
strongly consistent query. Inserting an order bumps the car's
booking_version in the same transaction, which serializes concurrent
bookings of one car: the loser's transaction is cancelled. Transitions
that write the car's availability bump the same version, so an insert or
an availability decision based on an older read fails instead of landing.
"""

import datetime as dt
from typing import TYPE_CHECKING, Any, Iterable

from boto3.dynamodb.conditions import Key

from rental.models import CarBooking, Order, OrderStatus, PaymentMethod, PaymentStatus

from .car_store import CarStore
from .dynamodb import serialize_attribute, serialize_item

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService


def _car_version_condition(expected_version: int) -> str:
    # Cars written before versioning have no booking_version attribute
    if expected_version == 0:
        return "(booking_version = :version OR attribute_not_exists(booking_version))"
    return "booking_version = :version"


class OrderStore:
    """Service for reading and writing rental orders."""

    ORDERS_TABLE = "orders"
    BOOKINGS_TABLE = "car-bookings"
    CUSTOMER_INDEX = "customer_id-index"
    SELLER_INDEX = "seller_id-index"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize order store.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    # Reads

    def get_order(self, order_id: str) -> Order | None:
        """Get an order by ID, or None if it does not exist."""
        item = self.db.get_item(self.ORDERS_TABLE, {"order_id": order_id})
        return self._item_to_order(item) if item else None

    def find_overlapping_orders(
        self,
        car_id: str,
        start: dt.datetime,
        end: dt.datetime,
        statuses: Iterable[OrderStatus],
    ) -> list[CarBooking]:
        """Find bookings on a car whose range overlaps [start, end].

        Args:
            car_id: Car to check
            start: Requested start (inclusive)
            end: Requested end (inclusive)
            statuses: Only bookings in these order statuses count

        Returns:
            Overlapping bookings
        """
        wanted = set(statuses)
        return [
            booking
            for booking in self.get_bookings(car_id)
            if booking.status in wanted and booking.overlaps(start, end)
        ]

    def find_orders_in_status(
        self,
        car_id: str,
        statuses: Iterable[OrderStatus],
        exclude_order_id: str | None = None,
    ) -> list[CarBooking]:
        """Find bookings on a car in any of the given statuses."""
        wanted = set(statuses)
        return [
            booking
            for booking in self.get_bookings(car_id)
            if booking.status in wanted and booking.order_id != exclude_order_id
        ]

    def get_bookings(self, car_id: str) -> list[CarBooking]:
        """Get every booking ledger row for a car (consistent read)."""
        items = self.db.query(
            self.BOOKINGS_TABLE,
            Key("car_id").eq(car_id),
            consistent_read=True,
        )
        return [self._item_to_booking(item) for item in items]

    def list_orders_for_customer(self, customer_id: str) -> list[Order]:
        """Orders placed by a customer, newest first."""
        items = self.db.query_by_gsi(
            self.ORDERS_TABLE,
            self.CUSTOMER_INDEX,
            "customer_id",
            customer_id,
            scan_index_forward=False,
        )
        return [self._item_to_order(item) for item in items]

    def list_orders_for_seller(self, seller_id: str) -> list[Order]:
        """Orders on a seller's cars, newest first."""
        items = self.db.query_by_gsi(
            self.ORDERS_TABLE,
            self.SELLER_INDEX,
            "seller_id",
            seller_id,
            scan_index_forward=False,
        )
        return [self._item_to_order(item) for item in items]

    # Writes

    def insert_order(self, order: Order, expected_car_version: int) -> bool:
        """Atomically insert an order and its booking row.

        The car must still be available and at expected_car_version;
        the version is bumped so any concurrent insert for the same car
        that read the old version fails.

        Args:
            order: New order (PENDING)
            expected_car_version: booking_version read before the overlap check

        Returns:
            True if inserted, False if the car changed underneath
        """
        transact_items: list[dict[str, Any]] = [
            {
                "Update": {
                    "TableName": self.db.table_name(CarStore.TABLE),
                    "Key": {"car_id": {"S": order.car_id}},
                    "UpdateExpression": "SET booking_version = :next",
                    "ConditionExpression": (
                        "attribute_exists(car_id) AND "
                        "(attribute_not_exists(is_available) OR is_available = :true) AND "
                        f"{_car_version_condition(expected_car_version)}"
                    ),
                    "ExpressionAttributeValues": {
                        ":version": serialize_attribute(expected_car_version),
                        ":next": serialize_attribute(expected_car_version + 1),
                        ":true": {"BOOL": True},
                    },
                }
            },
            {
                "Put": {
                    "TableName": self.db.table_name(self.ORDERS_TABLE),
                    "Item": serialize_item(self._order_to_item(order)),
                    "ConditionExpression": "attribute_not_exists(order_id)",
                }
            },
            {
                "Put": {
                    "TableName": self.db.table_name(self.BOOKINGS_TABLE),
                    "Item": serialize_item(self._booking_item(order, order.status)),
                }
            },
        ]

        return self.db.transact_write(transact_items)

    def apply_transition(
        self,
        order: Order,
        new_status: OrderStatus,
        *,
        payment_status: PaymentStatus | None = None,
        car_available: bool | None = None,
        expected_car_version: int | None = None,
    ) -> bool:
        """Atomically move an order to a new status.

        The write only succeeds if the stored status still equals
        order.status. The booking ledger row follows the order. When
        car_available is given, the car's availability flag is written in
        the same transaction, guarded by expected_car_version and bumping
        it, so availability computed from a stale ledger read never lands.

        Args:
            order: Order as read before validating the transition
            new_status: Target status
            payment_status: Payment status to store alongside, if changing
            car_available: New car availability, or None to leave it alone
            expected_car_version: Car booking_version read before deciding
                car_available; required with car_available

        Returns:
            True if applied, False if the order or the car changed concurrently
        """
        if car_available is not None and expected_car_version is None:
            raise ValueError("expected_car_version is required with car_available")

        now = dt.datetime.now(dt.UTC).isoformat()

        update_expression = "SET #status = :status, updated_at = :now"
        values: dict[str, Any] = {
            ":status": {"S": new_status.value},
            ":current": {"S": order.status.value},
            ":now": {"S": now},
        }
        if payment_status is not None:
            update_expression += ", payment_status = :payment_status"
            values[":payment_status"] = {"S": payment_status.value}

        transact_items: list[dict[str, Any]] = [
            {
                "Update": {
                    "TableName": self.db.table_name(self.ORDERS_TABLE),
                    "Key": {"order_id": {"S": order.order_id}},
                    "UpdateExpression": update_expression,
                    "ConditionExpression": "#status = :current",
                    "ExpressionAttributeNames": {"#status": "status"},  # reserved word
                    "ExpressionAttributeValues": values,
                }
            },
            {
                "Put": {
                    "TableName": self.db.table_name(self.BOOKINGS_TABLE),
                    "Item": serialize_item(self._booking_item(order, new_status)),
                }
            },
        ]

        if car_available is not None and expected_car_version is not None:
            transact_items.append(
                {
                    "Update": {
                        "TableName": self.db.table_name(CarStore.TABLE),
                        "Key": {"car_id": {"S": order.car_id}},
                        "UpdateExpression": (
                            "SET is_available = :available, booking_version = :next"
                        ),
                        "ConditionExpression": (
                            "attribute_exists(car_id) AND "
                            f"{_car_version_condition(expected_car_version)}"
                        ),
                        "ExpressionAttributeValues": {
                            ":available": {"BOOL": car_available},
                            ":version": serialize_attribute(expected_car_version),
                            ":next": serialize_attribute(expected_car_version + 1),
                        },
                    }
                }
            )

        return self.db.transact_write(transact_items)

    def update_payment_status(
        self,
        order_id: str,
        payment_status: PaymentStatus,
    ) -> Order | None:
        """Set an order's payment status.

        Idempotent: writing the same status again changes nothing but
        updated_at.

        Returns:
            Updated order, or None if the order does not exist
        """
        attrs = self.db.update_item(
            self.ORDERS_TABLE,
            {"order_id": order_id},
            "SET payment_status = :payment_status, updated_at = :now",
            {
                ":payment_status": payment_status.value,
                ":now": dt.datetime.now(dt.UTC).isoformat(),
            },
            condition_expression="attribute_exists(order_id)",
        )
        return self._item_to_order(attrs) if attrs else None

    def set_payment_details(
        self,
        order_id: str,
        payment_token: str,
        payment_url: str,
    ) -> Order | None:
        """Store the gateway token and redirect URL on an order."""
        attrs = self.db.update_item(
            self.ORDERS_TABLE,
            {"order_id": order_id},
            "SET payment_token = :token, payment_url = :url, updated_at = :now",
            {
                ":token": payment_token,
                ":url": payment_url,
                ":now": dt.datetime.now(dt.UTC).isoformat(),
            },
            condition_expression="attribute_exists(order_id)",
        )
        return self._item_to_order(attrs) if attrs else None

    # Conversion helpers

    def _order_to_item(self, order: Order) -> dict[str, Any]:
        """Convert Order model to DynamoDB item."""
        item: dict[str, Any] = {
            "order_id": order.order_id,
            "car_id": order.car_id,
            "customer_id": order.customer_id,
            "seller_id": order.seller_id,
            "start_date": order.start_date.isoformat(),
            "end_date": order.end_date.isoformat(),
            "total_price": order.total_price,
            "payment_method": order.payment_method.value,
            "payment_status": order.payment_status.value,
            "status": order.status.value,
            "created_at": order.created_at.isoformat(),
            "updated_at": order.updated_at.isoformat(),
        }
        if order.payment_token:
            item["payment_token"] = order.payment_token
        if order.payment_url:
            item["payment_url"] = order.payment_url
        return item

    def _item_to_order(self, item: dict[str, Any]) -> Order:
        """Convert DynamoDB item to Order model."""
        return Order(
            order_id=item["order_id"],
            car_id=item["car_id"],
            customer_id=item["customer_id"],
            seller_id=item["seller_id"],
            start_date=dt.datetime.fromisoformat(item["start_date"]),
            end_date=dt.datetime.fromisoformat(item["end_date"]),
            total_price=int(item["total_price"]),
            payment_method=PaymentMethod(item["payment_method"]),
            payment_status=PaymentStatus(item.get("payment_status", "UNPAID")),
            status=OrderStatus(item["status"]),
            payment_token=item.get("payment_token"),
            payment_url=item.get("payment_url"),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
            updated_at=dt.datetime.fromisoformat(item["updated_at"]),
        )

    def _booking_item(self, order: Order, status: OrderStatus) -> dict[str, Any]:
        return {
            "car_id": order.car_id,
            "order_id": order.order_id,
            "start_date": order.start_date.isoformat(),
            "end_date": order.end_date.isoformat(),
            "status": status.value,
        }

    def _item_to_booking(self, item: dict[str, Any]) -> CarBooking:
        return CarBooking(
            car_id=item["car_id"],
            order_id=item["order_id"],
            start_date=dt.datetime.fromisoformat(item["start_date"]),
            end_date=dt.datetime.fromisoformat(item["end_date"]),
            status=OrderStatus(item["status"]),
        )
