"""Pytest configuration and fixtures for the car rental backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto
- Sample data fixtures (cars, customers, orders)
- A mocked Midtrans gateway and a wired OrderService
"""

import os
from datetime import UTC, datetime, timedelta
from typing import Any, Callable, Generator
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-rental")
os.environ.setdefault("MIDTRANS_SERVER_KEY", "SB-Mid-server-test")

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from api.dependencies import reset_services  # noqa: E402
from rental.config import RentalSettings  # noqa: E402
from rental.models import (  # noqa: E402
    GatewayStatus,
    GatewayTransaction,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from rental.services.car_store import CarStore, UserDirectory  # noqa: E402
from rental.services.dynamodb import DynamoDBService  # noqa: E402
from rental.services.midtrans_service import MidtransService  # noqa: E402
from rental.services.order_service import OrderService  # noqa: E402
from rental.services.order_store import OrderStore  # noqa: E402

TABLE_PREFIX = "test-rental"
CAR_ID = "car-001"
SELLER_ID = "seller-001"
CUSTOMER_ID = "customer-001"
OTHER_USER_ID = "stranger-001"


# === Singleton Reset ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset cached services before and after each test.

    Tests using mock_aws must get a fresh DynamoDB service created inside
    the mock context rather than one from a previous test.
    """
    reset_services()
    yield
    reset_services()


# === DynamoDB Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"


@pytest.fixture
def dynamodb_client(aws_credentials: None) -> Generator[Any, None, None]:
    """Create a mocked DynamoDB client."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="eu-west-1")
        yield client


def _gsi(name: str, hash_key: str) -> dict[str, Any]:
    return {
        "IndexName": name,
        "KeySchema": [
            {"AttributeName": hash_key, "KeyType": "HASH"},
            {"AttributeName": "created_at", "KeyType": "RANGE"},
        ],
        "Projection": {"ProjectionType": "ALL"},
    }


@pytest.fixture
def create_tables(dynamodb_client: Any) -> None:
    """Create all required DynamoDB tables for testing."""
    tables = [
        {
            "TableName": f"{TABLE_PREFIX}-cars",
            "KeySchema": [{"AttributeName": "car_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [{"AttributeName": "car_id", "AttributeType": "S"}],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{TABLE_PREFIX}-users",
            "KeySchema": [{"AttributeName": "user_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [{"AttributeName": "user_id", "AttributeType": "S"}],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{TABLE_PREFIX}-orders",
            "KeySchema": [{"AttributeName": "order_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "order_id", "AttributeType": "S"},
                {"AttributeName": "customer_id", "AttributeType": "S"},
                {"AttributeName": "seller_id", "AttributeType": "S"},
                {"AttributeName": "created_at", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                _gsi("customer_id-index", "customer_id"),
                _gsi("seller_id-index", "seller_id"),
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{TABLE_PREFIX}-car-bookings",
            "KeySchema": [
                {"AttributeName": "car_id", "KeyType": "HASH"},
                {"AttributeName": "order_id", "KeyType": "RANGE"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "car_id", "AttributeType": "S"},
                {"AttributeName": "order_id", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{TABLE_PREFIX}-payment-notifications",
            "KeySchema": [{"AttributeName": "notification_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "notification_id", "AttributeType": "S"}
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
    ]

    for table_config in tables:
        dynamodb_client.create_table(**table_config)


@pytest.fixture
def db(create_tables: None) -> DynamoDBService:
    """DynamoDB service bound to the mocked test tables."""
    return DynamoDBService(table_prefix=TABLE_PREFIX)


@pytest.fixture
def order_store(db: DynamoDBService) -> OrderStore:
    return OrderStore(db)


@pytest.fixture
def car_store(db: DynamoDBService) -> CarStore:
    return CarStore(db)


@pytest.fixture
def set_car_availability(db: DynamoDBService) -> Callable[[str, bool], None]:
    """Flip a car's availability flag directly, as the car catalog would."""

    def _set(car_id: str, is_available: bool) -> None:
        updated = db.update_item(
            "cars",
            {"car_id": car_id},
            "SET is_available = :available",
            {":available": is_available},
            condition_expression="attribute_exists(car_id)",
        )
        assert updated is not None

    return _set


@pytest.fixture
def user_directory(db: DynamoDBService) -> UserDirectory:
    return UserDirectory(db)


# === Sample Data Fixtures ===


@pytest.fixture
def sample_car() -> dict[str, Any]:
    """Sample car item, 100 per day."""
    return {
        "car_id": CAR_ID,
        "owner_id": SELLER_ID,
        "brand": "Toyota",
        "model": "Avanza",
        "license_plate": "B 1234 XYZ",
        "price": 100,
        "is_available": True,
    }


@pytest.fixture
def sample_customer() -> dict[str, Any]:
    """Sample customer without a phone number."""
    return {
        "user_id": CUSTOMER_ID,
        "name": "Budi Santoso",
        "email": "budi@example.com",
    }


@pytest.fixture
def seeded_db(
    db: DynamoDBService,
    sample_car: dict[str, Any],
    sample_customer: dict[str, Any],
) -> DynamoDBService:
    """Tables with the sample car and customer stored."""
    db.put_item("cars", sample_car)
    db.put_item("users", sample_customer)
    return db


@pytest.fixture
def settings() -> RentalSettings:
    """Strict settings pointing at the test tables."""
    return RentalSettings(
        environment="test",
        table_prefix=TABLE_PREFIX,
        midtrans_server_key="SB-Mid-server-test",
    )


@pytest.fixture
def mock_gateway() -> MagicMock:
    """Midtrans client double.

    Defaults: transaction creation succeeds, status is settlement/accept.
    """
    gateway = MagicMock(spec=MidtransService)
    gateway.create_transaction.return_value = GatewayTransaction(
        token="snap-token-123",
        redirect_url="https://app.sandbox.midtrans.com/snap/v2/vtweb/snap-token-123",
        order_id="ORDER-ORD-TEST",
    )
    gateway.get_transaction_status.return_value = GatewayStatus(
        transaction_status="settlement",
        fraud_status="accept",
        raw={"transaction_status": "settlement", "fraud_status": "accept"},
    )
    return gateway


@pytest.fixture
def order_service(
    seeded_db: DynamoDBService,
    order_store: OrderStore,
    car_store: CarStore,
    user_directory: UserDirectory,
    mock_gateway: MagicMock,
    settings: RentalSettings,
) -> OrderService:
    """OrderService over moto tables with a mocked gateway."""
    return OrderService(
        orders=order_store,
        cars=car_store,
        users=user_directory,
        gateway=mock_gateway,
        settings=settings,
    )


@pytest.fixture
def place_order(
    seeded_db: DynamoDBService,
    order_store: OrderStore,
    car_store: CarStore,
) -> Callable[..., Order]:
    """Store an order directly, bypassing the engine's checks.

    Returns a factory: place_order(status=..., payment_method=..., ...).
    """
    counter = {"n": 0}

    def _place(
        *,
        status: OrderStatus = OrderStatus.PENDING,
        payment_method: PaymentMethod = PaymentMethod.CREDIT_CARD,
        payment_status: PaymentStatus = PaymentStatus.UNPAID,
        start_in_days: int = 1,
        days: int = 3,
        payment_token: str | None = None,
        payment_url: str | None = None,
        car_id: str = CAR_ID,
    ) -> Order:
        counter["n"] += 1
        now = datetime.now(UTC)
        start = now + timedelta(days=start_in_days)
        order = Order(
            order_id=f"ORD-TEST{counter['n']:08d}",
            car_id=car_id,
            customer_id=CUSTOMER_ID,
            seller_id=SELLER_ID,
            start_date=start,
            end_date=start + timedelta(days=days),
            total_price=100 * days,
            payment_method=payment_method,
            payment_status=payment_status,
            status=status,
            payment_token=payment_token,
            payment_url=payment_url,
            created_at=now + timedelta(seconds=counter["n"]),
            updated_at=now,
        )
        car = car_store.get_car(car_id)
        assert car is not None
        assert order_store.insert_order(order, car.booking_version)
        return order

    return _place
