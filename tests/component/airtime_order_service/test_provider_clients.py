"""
Provider Client Component Tests

Shadow Pay, Statum and notifier clients against a mocked httpx client.

Usage:
    pytest tests/component/airtime_order_service/test_provider_clients.py -v
"""
import base64
import json
import pytest
from decimal import Decimal

import httpx

from microservices.airtime_order_service.clients import (
    ShadowPayClient, StatumClient, WebhookNotifier
)
from microservices.airtime_order_service.models import NotificationResult

pytestmark = [pytest.mark.component, pytest.mark.asyncio]

STK_URL = "https://shadow.test/api/v1/stk"
STATUS_URL = "https://shadow.test/api/v1/status"
AIRTIME_URL = "https://statum.test/api/v2/airtime"
BRIDGE_URL = "https://bridge.test/send"


def authorization_header(auth: httpx.Auth) -> str:
    request = next(auth.auth_flow(httpx.Request("POST", AIRTIME_URL)))
    return request.headers["Authorization"]


# =============================================================================
# ShadowPayClient
# =============================================================================

class TestShadowPayClient:
    """STK push and status query requests"""

    async def test_initiate_sends_headers_and_payload(self, mock_http_client):
        mock_http_client.set_response(STK_URL, json_data={
            "success": True, "checkout_request_id": "CS1", "merchant_request_id": "MR1"
        })
        client = ShadowPayClient(STK_URL, STATUS_URL, http_client=mock_http_client)

        result = await client.initiate_charge(
            "key", "secret", "17", "254712345678", Decimal("90.00"), "FYS-12345678", "Airtime"
        )

        assert result["checkout_request_id"] == "CS1"
        request = mock_http_client.get_last_request()
        assert request["url"] == STK_URL
        assert request["headers"]["X-API-Key"] == "key"
        assert request["headers"]["X-API-Secret"] == "secret"
        assert request["timeout"] == 30.0
        assert request["json"] == {
            "payment_account_id": 17,
            "phone": "254712345678",
            "amount": 90.0,
            "reference": "FYS-12345678",
            "description": "Airtime",
        }

    async def test_status_query_payload(self, mock_http_client):
        mock_http_client.set_response(STATUS_URL, json_data={"status": "pending"})
        client = ShadowPayClient(STK_URL, STATUS_URL, http_client=mock_http_client)

        result = await client.query_status("key", "secret", "CS1")

        assert result == {"status": "pending"}
        request = mock_http_client.get_last_request()
        assert request["json"] == {"checkout_request_id": "CS1"}
        assert request["timeout"] == 20.0

    async def test_http_error_body_becomes_failure_message(self, mock_http_client):
        mock_http_client.set_response(STK_URL, status_code=401, json_data={"error": "bad key"})
        client = ShadowPayClient(STK_URL, STATUS_URL, http_client=mock_http_client)

        result = await client.initiate_charge("k", "s", "17", "254712345678", Decimal("10"), "FYS-1", "x")

        assert result["success"] is False
        assert json.loads(result["message"]) == {"error": "bad key"}

    async def test_transport_error_is_normalized(self, mock_http_client):
        mock_http_client.set_error(httpx.ConnectError("connection refused"))
        client = ShadowPayClient(STK_URL, STATUS_URL, http_client=mock_http_client)

        result = await client.query_status("k", "s", "CS1")

        assert result == {"success": False, "message": "connection refused"}

    async def test_non_object_body_is_failure(self, mock_http_client):
        mock_http_client.set_response(STATUS_URL, json_data=["unexpected"])
        client = ShadowPayClient(STK_URL, STATUS_URL, http_client=mock_http_client)

        result = await client.query_status("k", "s", "CS1")

        assert result["success"] is False

    async def test_injected_client_is_not_closed(self, mock_http_client):
        async with ShadowPayClient(STK_URL, STATUS_URL, http_client=mock_http_client):
            pass

        assert mock_http_client.closed is False


# =============================================================================
# StatumClient
# =============================================================================

class TestStatumClient:
    """Airtime top-up requests"""

    async def test_deliver_uses_basic_auth(self, mock_http_client):
        mock_http_client.set_response(AIRTIME_URL, json_data={"status_code": 200, "description": "Accepted"})
        client = StatumClient(AIRTIME_URL, http_client=mock_http_client)

        result = await client.deliver("ck", "cs", "254798765432", Decimal("100"))

        assert result["status_code"] == 200
        request = mock_http_client.get_last_request()
        assert request["json"] == {"phone_number": "254798765432", "amount": "100"}
        expected = "Basic " + base64.b64encode(b"ck:cs").decode()
        assert authorization_header(request["auth"]) == expected

    async def test_deliver_failure_is_normalized(self, mock_http_client):
        mock_http_client.set_response(AIRTIME_URL, status_code=500, text="upstream down")
        client = StatumClient(AIRTIME_URL, http_client=mock_http_client)

        result = await client.deliver("ck", "cs", "254798765432", Decimal("50"))

        assert result == {"success": False, "message": "upstream down"}


# =============================================================================
# WebhookNotifier
# =============================================================================

class TestWebhookNotifier:
    """Operator alert delivery"""

    async def test_unconfigured_notifier_skips(self, mock_http_client):
        notifier = WebhookNotifier("", "254700000000", http_client=mock_http_client)

        assert notifier.is_ready() is False
        assert await notifier.send("hello") == NotificationResult.SKIPPED
        assert await notifier.notify("hello") is False
        mock_http_client.assert_no_requests()

    async def test_send_posts_to_bridge(self, mock_http_client):
        notifier = WebhookNotifier(BRIDGE_URL, "254700000000", token="t0k", http_client=mock_http_client)

        result = await notifier.send("Order paid")

        assert result == NotificationResult.SENT
        request = mock_http_client.get_last_request()
        assert request["json"] == {"to": "254700000000", "text": "Order paid"}
        assert request["headers"]["Authorization"] == "Bearer t0k"

    async def test_bridge_rejection_is_failed(self, mock_http_client):
        mock_http_client.set_response(BRIDGE_URL, status_code=503, text="busy")
        notifier = WebhookNotifier(BRIDGE_URL, "254700000000", http_client=mock_http_client)

        assert await notifier.send("x") == NotificationResult.FAILED
        assert await notifier.notify("x") is False

    async def test_unreachable_bridge_never_raises(self, mock_http_client):
        mock_http_client.set_error(httpx.ConnectTimeout("timed out"))
        notifier = WebhookNotifier(BRIDGE_URL, "254700000000", http_client=mock_http_client)

        assert await notifier.notify("x") is False
