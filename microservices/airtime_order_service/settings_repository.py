"""
Settings Repository

Flat key/value runtime settings (credentials, purchase bounds, discount,
poll timeout) persisted as one JSON snapshot. Last write wins.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .order_repository import read_json_file, write_json_file

logger = logging.getLogger(__name__)


def default_settings(poll_seconds: int = 20) -> Dict[str, str]:
    return {
        "statum_consumer_key": "",
        "statum_consumer_secret": "",
        "shadow_api_key": "",
        "shadow_api_secret": "",
        "shadow_account_id": "17",
        "min_amount": "1",
        "max_amount": "1500",
        "discount_percent": "0",
        "payment_poll_seconds": str(poll_seconds),
    }


class SettingsRepository:
    """Repository for runtime settings"""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        defaults: Optional[Mapping[str, str]] = None
    ):
        self.path = Path(path) if path else None
        self._lock = asyncio.Lock()
        seed = dict(defaults) if defaults is not None else default_settings()

        if self.path is not None:
            loaded = read_json_file(self.path, seed)
            self._settings = {str(k): "" if v is None else str(v) for k, v in dict(loaded).items()}
        else:
            self._settings = seed

    async def get_all(self) -> Dict[str, str]:
        async with self._lock:
            return dict(self._settings)

    async def get(self, key: str, default: str = "") -> str:
        async with self._lock:
            return self._settings.get(key, default)

    async def update(self, updates: Mapping[str, Any]) -> Dict[str, str]:
        """Merge updates, storing every value as a string"""
        async with self._lock:
            settings = dict(self._settings)
            for key, value in updates.items():
                settings[str(key)] = "" if value is None else str(value)
            if self.path is not None:
                write_json_file(self.path, settings)
            self._settings = settings
            logger.info(f"Settings updated: {sorted(updates.keys())}")
            return dict(self._settings)
