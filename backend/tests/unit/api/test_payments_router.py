"""Unit tests for the payments router."""

from datetime import UTC, datetime
from typing import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from rental.models import (
    ErrorCode,
    Order,
    PaymentDetails,
    PaymentMethod,
    PaymentStatus,
    RentalError,
)

CUSTOMER_HEADERS = {"x-user-id": "customer-001"}


@pytest.fixture
def mock_order_service() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(mock_order_service: MagicMock) -> Generator[TestClient, None, None]:
    from api.dependencies import get_order_service
    from api.main import app

    app.dependency_overrides[get_order_service] = lambda: mock_order_service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestPaymentDetails:
    """GET /api/payments/{order_id}/details"""

    def test_returns_details(
        self, client: TestClient, mock_order_service: MagicMock
    ) -> None:
        mock_order_service.get_payment_details.return_value = PaymentDetails(
            order_id="ORD-ABC123DEF456",
            payment_status=PaymentStatus.UNPAID,
            payment_url="https://pay.example/tok",
            gateway_status={"transaction_status": "pending"},
        )

        response = client.get(
            "/api/payments/ORD-ABC123DEF456/details", headers=CUSTOMER_HEADERS
        )

        assert response.status_code == 200
        body = response.json()
        assert body["payment_url"] == "https://pay.example/tok"
        assert body["gateway_status"]["transaction_status"] == "pending"

    def test_upstream_error_keeps_payment_url(
        self, client: TestClient, mock_order_service: MagicMock
    ) -> None:
        mock_order_service.get_payment_details.side_effect = RentalError(
            ErrorCode.UPSTREAM_ERROR,
            details={"payment_url": "https://pay.example/tok"},
        )

        response = client.get(
            "/api/payments/ORD-ABC123DEF456/details", headers=CUSTOMER_HEADERS
        )

        assert response.status_code == 502
        assert response.json()["details"]["payment_url"] == "https://pay.example/tok"

    def test_requires_user(self, client: TestClient) -> None:
        response = client.get("/api/payments/ORD-ABC123DEF456/details")

        assert response.status_code == 401


class TestRetryPayment:
    """POST /api/payments/{order_id}/retry"""

    def test_returns_fresh_link(
        self, client: TestClient, mock_order_service: MagicMock
    ) -> None:
        now = datetime(2026, 7, 1, tzinfo=UTC)
        mock_order_service.retry_payment.return_value = Order(
            order_id="ORD-ABC123DEF456",
            car_id="car-001",
            customer_id="customer-001",
            seller_id="seller-001",
            start_date=now,
            end_date=now,
            total_price=100,
            payment_method=PaymentMethod.E_WALLET,
            payment_token="fresh",
            payment_url="https://pay.example/fresh",
            created_at=now,
            updated_at=now,
        )

        response = client.post(
            "/api/payments/ORD-ABC123DEF456/retry", headers=CUSTOMER_HEADERS
        )

        assert response.status_code == 200
        assert response.json() == {
            "order_id": "ORD-ABC123DEF456",
            "payment_token": "fresh",
            "payment_url": "https://pay.example/fresh",
        }
        mock_order_service.retry_payment.assert_called_once_with(
            "ORD-ABC123DEF456", "customer-001"
        )

    def test_not_retryable_is_400(
        self, client: TestClient, mock_order_service: MagicMock
    ) -> None:
        mock_order_service.retry_payment.side_effect = RentalError(
            ErrorCode.VALIDATION_ERROR, message="Order is already paid"
        )

        response = client.post(
            "/api/payments/ORD-ABC123DEF456/retry", headers=CUSTOMER_HEADERS
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Order is already paid"
