"""
HTTP Client Mock for Component Testing

Stands in for httpx.AsyncClient when testing the provider clients.
Responses can be fixed per URL or queued so consecutive calls see
different bodies (payment polling).
"""
import json
from collections import deque
from typing import Any, Deque, Dict, List, Optional

import httpx


class MockHttpResponse:
    """Mock HTTP response"""

    def __init__(
        self,
        status_code: int = 200,
        json_data: Optional[Any] = None,
        text: str = "",
        url: str = "http://mock"
    ):
        self.status_code = status_code
        self._json_data = json_data
        self.text = text or (json.dumps(json_data) if json_data is not None else "")
        self.url = url

    def json(self) -> Any:
        if self._json_data is None:
            return json.loads(self.text)
        return self._json_data

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request("POST", self.url)
            response = httpx.Response(self.status_code, text=self.text, request=request)
            raise httpx.HTTPStatusError(
                f"HTTP {self.status_code}", request=request, response=response
            )


class MockHttpClient:
    """Mock for httpx.AsyncClient"""

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self._responses: Dict[str, Deque[MockHttpResponse]] = {}
        self._default_response = MockHttpResponse(200, {"success": True})
        self._should_raise: Optional[Exception] = None
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    async def post(self, url: str, **kwargs) -> MockHttpResponse:
        """Mock POST request"""
        self.requests.append({"method": "POST", "url": url, **kwargs})

        if self._should_raise:
            raise self._should_raise

        queue = self._responses.get(url)
        if queue:
            # the last queued response repeats
            return queue.popleft() if len(queue) > 1 else queue[0]
        return self._default_response

    async def aclose(self):
        self.closed = True

    # Test helper methods

    def set_response(
        self,
        url: str,
        status_code: int = 200,
        json_data: Optional[Any] = None,
        text: str = ""
    ):
        """Set the response for a URL, replacing anything queued"""
        self._responses[url] = deque([MockHttpResponse(status_code, json_data, text, url)])

    def queue_responses(self, url: str, *bodies: Dict[str, Any]):
        """Queue JSON bodies returned by consecutive calls to url"""
        queue = self._responses.setdefault(url, deque())
        for body in bodies:
            queue.append(MockHttpResponse(200, body, url=url))

    def set_default_response(
        self,
        status_code: int = 200,
        json_data: Optional[Any] = None
    ):
        """Set default response for unmatched requests"""
        self._default_response = MockHttpResponse(status_code, json_data)

    def set_error(self, error: Exception):
        """Raise error on every request until cleared"""
        self._should_raise = error

    def clear_error(self):
        """Clear any pending error"""
        self._should_raise = None

    def get_requests(self, url: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get recorded requests, optionally filtered by URL"""
        if url:
            return [r for r in self.requests if r["url"] == url]
        return self.requests

    def get_last_request(self) -> Optional[Dict[str, Any]]:
        """Get the last recorded request"""
        return self.requests[-1] if self.requests else None

    def assert_no_requests(self):
        """Assert that no requests were made"""
        assert len(self.requests) == 0, f"Expected no requests, but got: {self.requests}"
