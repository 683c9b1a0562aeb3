"""
Operator Notifier

Best-effort alerts to the operator's messaging channel. Messages are posted
to an HTTP bridge (for example a WhatsApp gateway) as
{"to": <admin number>, "text": <message>}.
"""

import httpx
import logging
from typing import Optional

from ..models import NotificationResult

logger = logging.getLogger(__name__)

SEND_TIMEOUT = 10.0


class WebhookNotifier:
    """Notifier that delivers through an HTTP messaging bridge"""

    def __init__(
        self,
        url: str,
        recipient: str,
        token: str = "",
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.url = url
        self.recipient = recipient
        self.token = token
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(timeout=SEND_TIMEOUT)

    def is_ready(self) -> bool:
        return bool(self.url and self.recipient)

    async def send(self, text: str) -> NotificationResult:
        """
        Send text to the operator

        Returns:
            SKIPPED when the channel is not configured, FAILED when the
            bridge rejected or could not be reached, SENT otherwise
        """
        if not self.is_ready():
            logger.debug("Notifier not configured, alert skipped")
            return NotificationResult.SKIPPED

        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await self.client.post(
                self.url,
                json={"to": self.recipient, "text": text},
                headers=headers,
                timeout=SEND_TIMEOUT,
            )
            response.raise_for_status()
            return NotificationResult.SENT
        except httpx.HTTPStatusError as e:
            logger.error(f"Alert rejected by notifier bridge: {e.response.status_code}")
            return NotificationResult.FAILED
        except Exception as e:
            logger.error(f"Failed to send alert: {e}")
            return NotificationResult.FAILED

    async def notify(self, text: str) -> bool:
        """Best-effort send; False when skipped or failed, never raises"""
        try:
            return await self.send(text) == NotificationResult.SENT
        except Exception as e:
            logger.error(f"Notifier error: {e}")
            return False

    async def close(self):
        if self._owns_client:
            await self.client.aclose()
