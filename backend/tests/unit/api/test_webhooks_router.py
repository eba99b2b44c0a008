"""Unit tests for the Midtrans webhook endpoints."""

from typing import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from rental.models import ErrorCode, PaymentNotification, RentalError

WEBHOOK_PATHS = ["/api/orders/payment-webhook", "/api/payments/notification"]


@pytest.fixture
def mock_handler() -> MagicMock:
    handler = MagicMock()
    handler.handle.return_value = {"status": "OK"}
    return handler


@pytest.fixture
def client(mock_handler: MagicMock) -> Generator[TestClient, None, None]:
    from api.dependencies import get_notification_handler
    from api.main import app

    app.dependency_overrides[get_notification_handler] = lambda: mock_handler
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.mark.parametrize("path", WEBHOOK_PATHS)
class TestPaymentWebhook:
    """Both webhook paths share one handler."""

    def test_acknowledges_without_user_header(
        self, client: TestClient, mock_handler: MagicMock, path: str
    ) -> None:
        response = client.post(
            path,
            json={
                "order_id": "ORDER-ORD-ABC123DEF456",
                "transaction_status": "settlement",
                "fraud_status": "accept",
                "payment_type": "bank_transfer",
            },
        )

        assert response.status_code == 200
        assert response.json() == {"status": "OK"}
        notification = mock_handler.handle.call_args.args[0]
        assert isinstance(notification, PaymentNotification)
        assert notification.order_id == "ORDER-ORD-ABC123DEF456"

    def test_unknown_order_is_404(
        self, client: TestClient, mock_handler: MagicMock, path: str
    ) -> None:
        mock_handler.handle.side_effect = RentalError(ErrorCode.ORDER_NOT_FOUND)

        response = client.post(
            path,
            json={"order_id": "ORDER-ORD-NOPE", "transaction_status": "settlement"},
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "ERR_ORDER_NOT_FOUND"

    def test_missing_fields_are_rejected(
        self, client: TestClient, mock_handler: MagicMock, path: str
    ) -> None:
        response = client.post(path, json={"order_id": "ORDER-ORD-1"})

        assert response.status_code == 400
        mock_handler.handle.assert_not_called()
