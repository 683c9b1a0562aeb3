"""
Airtime Order API Component Tests

HTTP surface exercised through FastAPI's TestClient with mocked gateways.

Usage:
    pytest tests/component/airtime_order_service/test_api.py -v
"""
import asyncio
import pytest
from fastapi.testclient import TestClient

from core.config import AirtimeServiceConfig
from microservices.airtime_order_service.main import create_app
from microservices.airtime_order_service.models import OrderStatus, AirtimeStatus
from microservices.airtime_order_service.order_repository import OrderRepository
from microservices.airtime_order_service.order_service import AirtimeOrderService
from microservices.airtime_order_service.settings_repository import SettingsRepository

from .mocks import (
    MockPaymentGateway,
    MockFulfillmentGateway,
    MockNotifier,
    RecordingSleep,
)

pytestmark = [pytest.mark.component]

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def payment_gateway():
    return MockPaymentGateway()


@pytest.fixture
def notifier():
    return MockNotifier()


@pytest.fixture
def order_service(payment_gateway, notifier):
    return AirtimeOrderService(
        repository=OrderRepository(),
        settings_repository=SettingsRepository(),
        payment_gateway=payment_gateway,
        fulfillment_gateway=MockFulfillmentGateway(),
        notifier=notifier,
        poll_interval=5,
        default_poll_seconds=20,
        sleep=RecordingSleep(),
    )


@pytest.fixture
def app(tmp_path, order_service):
    config = AirtimeServiceConfig(admin_ui_token=ADMIN_TOKEN, data_dir=str(tmp_path))
    return create_app(config, order_service=order_service)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


class TestPublicEndpoints:
    """Purchase and lookup endpoints"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_startup_sends_online_alert(self, client, notifier):
        notifier.assert_alert_containing("online")

    def test_initiate_and_get_order(self, client, assertions):
        response = client.post("/api/initiate", json={
            "amount": 100,
            "mpesa_number": "0712345678",
            "recipient_number": "0798765432",
            "buy_for": "other",
        })

        assertions.assert_http_success(response)
        data = response.json()
        assertions.assert_has_fields(data, ["success", "message", "order_no", "checkout_request_id", "amount_payable"])
        assert data["success"] is True
        assert data["message"] == "STK push sent"
        assert data["checkout_request_id"] == "CS1"
        assert data["amount_payable"] == 100.0
        assert data["order_no"].startswith("FYS-")

        lookup = client.post("/api/get_order", json={"order_no": data["order_no"]}).json()
        assert lookup["success"] is True
        assert lookup["order"]["recipient_number"] == "254798765432"

    def test_initiate_out_of_range(self, client):
        data = client.post("/api/initiate", json={"amount": 5000, "payer_number": "0712345678"}).json()

        assert data["success"] is False
        assert "between KES 1 and KES 1500" in data["message"]

    def test_initiate_failure_includes_order_no(self, client, payment_gateway):
        payment_gateway.set_initiate_response({"success": False, "message": "Rejected"})

        data = client.post("/api/initiate", json={"amount": 10, "payer_number": "0712345678"}).json()

        assert data["success"] is False
        assert data["message"] == "Failed to send STK: Rejected"
        assert data["order_no"].startswith("FYS-")

    def test_watcher_completes_before_shutdown(self, app, order_service, payment_gateway):
        payment_gateway.set_status_responses({"status": "completed", "transaction_code": "QAX123"})

        with TestClient(app) as test_client:
            order_no = test_client.post(
                "/api/initiate", json={"amount": 20, "payer_number": "0712345678"}
            ).json()["order_no"]

        order = asyncio.run(order_service.find_order(order_no))
        assert order.status == OrderStatus.PAID
        assert order.airtime_status == AirtimeStatus.DELIVERED

    def test_check_status_accepts_checkout_alias(self, client, payment_gateway):
        payment_gateway.set_status_responses({"status": "pending"})

        data = client.post("/api/check_status", json={"checkout": "CS1"}).json()

        assert data["success"] is True
        assert data["status"] == "pending"
        assert payment_gateway.status_calls[-1]["checkout_request_id"] == "CS1"

    def test_check_status_missing_id(self, client):
        data = client.post("/api/check_status", json={}).json()

        assert data == {"success": False, "message": "Missing checkout_request_id"}

    def test_deliver_unknown_order(self, client):
        data = client.post("/api/deliver", json={"order_no": "FYS-00000000"}).json()

        assert data["success"] is False
        assert data["message"] == "Order not found"

    def test_get_order_not_found(self, client):
        data = client.post("/api/get_order", json={"order_no": "FYS-00000000"}).json()

        assert data == {"success": False, "message": "Order not found"}


class TestAdminEndpoints:
    """Token-protected admin endpoints"""

    def test_requires_token(self, client):
        assert client.get("/admin/orders").status_code == 401
        assert client.get("/admin/orders", headers={"X-Admin-Token": "wrong"}).status_code == 401

    def test_list_orders_with_filter(self, client):
        client.post("/api/initiate", json={"amount": 10, "payer_number": "0712345678"})

        data = client.get(
            "/admin/orders", params={"filter": "pending", "token": ADMIN_TOKEN}
        ).json()

        assert data["success"] is True
        assert isinstance(data["orders"], list)
        assert data["count"] == len(data["orders"])

    def test_admin_get_order_not_found(self, client):
        data = client.get(
            "/admin/order/FYS-00000000", headers={"X-Admin-Token": ADMIN_TOKEN}
        ).json()

        assert data == {"success": False, "message": "Not found"}

    def test_settings_roundtrip_strips_token(self, client):
        headers = {"X-Admin-Token": ADMIN_TOKEN}

        saved = client.post(
            "/admin/settings", json={"max_amount": 2000, "token": ADMIN_TOKEN}, headers=headers
        ).json()
        settings = client.get("/admin/settings", headers=headers).json()["settings"]

        assert saved == {"success": True, "message": "Saved"}
        assert settings["max_amount"] == "2000"
        assert "token" not in settings

    def test_test_alert(self, client, notifier):
        data = client.post(
            "/admin/alert", json={"text": "ping"}, headers={"X-Admin-Token": ADMIN_TOKEN}
        ).json()

        assert data == {"success": True, "sent": True}
        assert "ping" in notifier.messages
