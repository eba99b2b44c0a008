"""FastAPI dependency injection providers for rental services.

Services are lazily instantiated and cached with @lru_cache so one instance
serves every request in a Lambda container.

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        ├── CarStore
        ├── UserDirectory
        └── OrderStore
                ├── OrderService (+ MidtransService)
                └── PaymentNotificationHandler

Testing:
    Use app.dependency_overrides, or reset_services() to clear cached
    instances between tests.
"""

from functools import lru_cache

from fastapi import Header, HTTPException
from starlette.status import HTTP_401_UNAUTHORIZED

from rental.config import get_settings
from rental.services.car_store import CarStore, UserDirectory
from rental.services.dynamodb import get_dynamodb_service
from rental.services.midtrans_service import get_midtrans_service
from rental.services.order_service import OrderService
from rental.services.order_store import OrderStore
from rental.services.webhook_handler import PaymentNotificationHandler


@lru_cache
def get_order_store() -> OrderStore:
    return OrderStore(db=get_dynamodb_service())


@lru_cache
def get_car_store() -> CarStore:
    return CarStore(db=get_dynamodb_service())


@lru_cache
def get_user_directory() -> UserDirectory:
    return UserDirectory(db=get_dynamodb_service())


@lru_cache
def get_order_service() -> OrderService:
    """Get cached OrderService instance.

    Returns:
        OrderService wired to the DynamoDB stores and the Midtrans client.
    """
    return OrderService(
        orders=get_order_store(),
        cars=get_car_store(),
        users=get_user_directory(),
        gateway=get_midtrans_service(),
        settings=get_settings(),
    )


@lru_cache
def get_notification_handler() -> PaymentNotificationHandler:
    """Get cached PaymentNotificationHandler instance."""
    return PaymentNotificationHandler(
        orders=get_order_store(),
        db=get_dynamodb_service(),
    )


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Acting user ID, set by the upstream authenticator.

    Raises:
        HTTPException: 401 when the header is missing
    """
    if not x_user_id:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return x_user_id


def reset_services() -> None:
    """Clear all cached service instances.

    Also resets the DynamoDB singleton, the Midtrans client and settings.
    """
    from rental.services.dynamodb import reset_dynamodb_service

    get_order_store.cache_clear()
    get_car_store.cache_clear()
    get_user_directory.cache_clear()
    get_order_service.cache_clear()
    get_notification_handler.cache_clear()
    get_midtrans_service.cache_clear()
    get_settings.cache_clear()

    reset_dynamodb_service()
