"""Tests for the FastAPI application wiring (health, ping, routes, errors)."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    from api.main import app
    return TestClient(app)


class TestHealthCheck:
    """Tests for the /ping and /health endpoints."""

    def test_ping_returns_ok(self, client: TestClient):
        response = client.get("/api/ping")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "rental-api"
        assert "timestamp" in data

    def test_health_endpoint_returns_healthy(self, client: TestClient):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"


class TestCorrelationId:
    """Correlation ID is echoed back."""

    def test_incoming_id_is_echoed(self, client: TestClient):
        response = client.get("/api/ping", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_id_generated_when_missing(self, client: TestClient):
        response = client.get("/api/ping")

        assert response.headers.get("X-Correlation-ID")


class TestRoutesRegistered:
    """All expected routes are registered under /api."""

    def test_expected_paths(self):
        from api.main import app

        paths = {route.path for route in app.routes}

        for path in [
            "/api/orders",
            "/api/orders/customer",
            "/api/orders/seller",
            "/api/orders/{order_id}",
            "/api/orders/{order_id}/status",
            "/api/orders/{order_id}/payment-status",
            "/api/orders/payment-webhook",
            "/api/payments/{order_id}/details",
            "/api/payments/{order_id}/retry",
            "/api/payments/notification",
            "/api/health",
            "/api/ping",
        ]:
            assert path in paths, path


class TestErrorMapping:
    """Error code to HTTP status mapping."""

    @pytest.mark.parametrize(
        "code,status",
        [
            ("ERR_VALIDATION", 400),
            ("ERR_ORDER_NOT_FOUND", 404),
            ("ERR_CAR_NOT_FOUND", 404),
            ("ERR_FORBIDDEN", 403),
            ("ERR_CAR_UNAVAILABLE", 409),
            ("ERR_BOOKING_CONFLICT", 409),
            ("ERR_CONCURRENT_UPDATE", 409),
            ("ERR_INVALID_TRANSITION", 400),
            ("ERR_PAYMENT_REQUIRED", 402),
            ("ERR_PAYMENT_VERIFICATION_FAILED", 400),
            ("ERR_UPSTREAM", 502),
        ],
    )
    def test_status_for_code(self, code: str, status: int):
        from api.exceptions import get_http_status_for_error
        from rental.models import ErrorCode

        assert get_http_status_for_error(ErrorCode(code)) == status


class TestResetServices:
    """Cached providers are rebuilt after reset_services."""

    def test_cached_services_are_cleared(self):
        from api.dependencies import get_order_store, reset_services
        from rental.services.dynamodb import get_dynamodb_service

        first_db = get_dynamodb_service("test-rental")
        get_order_store()
        assert get_order_store.cache_info().currsize == 1

        reset_services()

        assert get_order_store.cache_info().currsize == 0
        assert get_dynamodb_service("test-rental") is not first_db
