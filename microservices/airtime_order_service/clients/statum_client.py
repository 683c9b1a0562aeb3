"""
Statum Client

Airtime top-up through Statum. Credentials are sent as HTTP Basic auth.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from .base import ProviderClient

logger = logging.getLogger(__name__)

DELIVER_TIMEOUT = 30.0


class StatumClient(ProviderClient):
    """Client for the Statum airtime API"""

    provider_name = "Statum"

    def __init__(self, airtime_url: str, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(http_client)
        self.airtime_url = airtime_url

    async def deliver(
        self,
        consumer_key: str,
        consumer_secret: str,
        phone: str,
        amount: Decimal
    ) -> Dict[str, Any]:
        """Top up phone with amount; returns the raw provider response"""
        payload = {"phone_number": phone, "amount": str(amount)}
        logger.debug(f"Requesting airtime {amount} for {phone}")
        return await self._post_json(
            self.airtime_url,
            payload,
            timeout=DELIVER_TIMEOUT,
            auth=httpx.BasicAuth(consumer_key or "", consumer_secret or ""),
        )
