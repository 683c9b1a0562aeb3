"""
Shadow Pay Client

STK push initiation and charge status queries against Shadow Pay.
Credentials travel in X-API-Key / X-API-Secret headers.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from .base import ProviderClient

logger = logging.getLogger(__name__)

INITIATE_TIMEOUT = 30.0
STATUS_TIMEOUT = 20.0


class ShadowPayClient(ProviderClient):
    """Client for the Shadow Pay mobile-money gateway"""

    provider_name = "Shadow Pay"

    def __init__(
        self,
        stk_url: str,
        status_url: str,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        super().__init__(http_client)
        self.stk_url = stk_url
        self.status_url = status_url

    @staticmethod
    def _headers(api_key: str, api_secret: str) -> Dict[str, str]:
        return {"X-API-Key": api_key or "", "X-API-Secret": api_secret or ""}

    async def initiate_charge(
        self,
        api_key: str,
        api_secret: str,
        account_id: str,
        phone: str,
        amount: Decimal,
        reference: str,
        description: str
    ) -> Dict[str, Any]:
        """
        Send an STK push to the payer

        Args:
            api_key: Shadow API key
            api_secret: Shadow API secret
            account_id: Shadow payment account id
            phone: Canonical payer phone
            amount: Amount to charge
            reference: Merchant reference (the order number)
            description: Text shown to the payer

        Returns:
            Provider response; {"success": False, "message": ...} on any
            transport or HTTP failure
        """
        try:
            account = int(str(account_id or "0"))
        except ValueError:
            account = 0
        payload = {
            "payment_account_id": account,
            "phone": phone,
            "amount": float(amount),
            "reference": reference,
            "description": description,
        }
        logger.debug(f"Initiating STK push for {reference}")
        return await self._post_json(
            self.stk_url,
            payload,
            timeout=INITIATE_TIMEOUT,
            headers=self._headers(api_key, api_secret),
        )

    async def query_status(
        self,
        api_key: str,
        api_secret: str,
        checkout_request_id: str
    ) -> Dict[str, Any]:
        """Query the status of an STK push by checkout request id"""
        return await self._post_json(
            self.status_url,
            {"checkout_request_id": checkout_request_id},
            timeout=STATUS_TIMEOUT,
            headers=self._headers(api_key, api_secret),
        )
