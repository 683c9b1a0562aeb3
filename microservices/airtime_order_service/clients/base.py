"""
Base Provider Client

Shared HTTP plumbing for the external provider clients: client lifecycle,
JSON POST and normalization of every transport or protocol failure into
{"success": False, "message": ...}.
"""

import json
import httpx
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def failure(message: str) -> Dict[str, Any]:
    return {"success": False, "message": message}


def describe_error(error: Exception) -> str:
    """Error response body as JSON text when there is one, else the exception text"""
    if isinstance(error, httpx.HTTPStatusError):
        try:
            return json.dumps(error.response.json())
        except ValueError:
            return error.response.text or str(error)
    return str(error) or error.__class__.__name__


class ProviderClient:
    """Base class for outbound provider clients"""

    provider_name: str = "provider"

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient()

    async def close(self):
        """Close HTTP client"""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        timeout: float,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[httpx.Auth] = None
    ) -> Dict[str, Any]:
        """POST payload and return the decoded body, or a normalized failure"""
        try:
            request_headers = {"Content-Type": "application/json"}
            request_headers.update(headers or {})
            kwargs: Dict[str, Any] = {"json": payload, "headers": request_headers, "timeout": timeout}
            if auth is not None:
                kwargs["auth"] = auth
            response = await self.client.post(url, **kwargs)
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, dict):
                return failure(f"Unexpected {self.provider_name} response: {data!r}")
            return data

        except httpx.HTTPStatusError as e:
            message = describe_error(e)
            logger.error(f"{self.provider_name} returned {e.response.status_code}: {message}")
            return failure(message)
        except Exception as e:
            message = describe_error(e)
            logger.error(f"{self.provider_name} request to {url} failed: {message}")
            return failure(message)
