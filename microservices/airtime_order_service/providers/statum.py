"""Statum airtime response shapes."""

from typing import Any, Dict, Optional

from .base import ResponseInterpreter

STATUS_OK = 200


class StatumDeliveryInterpreter(ResponseInterpreter):
    """Delivered when success is true or status_code equals 200."""

    def is_success(self, response: Optional[Dict[str, Any]]) -> bool:
        if not response:
            return False
        if response.get("success") is True:
            return True
        try:
            return int(float(str(response.get("status_code")))) == STATUS_OK
        except (TypeError, ValueError, OverflowError):
            return False
