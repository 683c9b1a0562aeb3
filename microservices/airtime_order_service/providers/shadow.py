"""Shadow Pay STK push response shapes."""

from typing import Any, Dict, NamedTuple, Optional

from ..models import PaymentSignal
from .base import ResponseInterpreter

PAID_STATUSES = ("completed", "success")
FAILED_STATUS = "failed"


class StatusInterpretation(NamedTuple):
    signal: PaymentSignal
    transaction_code: Optional[str]


class ShadowPaymentInterpreter(ResponseInterpreter):
    """
    Initiation responses carry a boolean success flag. Status responses
    report the state under status or result, and a transaction code under
    one of several keys once the charge settles.
    """

    def is_success(self, response: Optional[Dict[str, Any]]) -> bool:
        return bool(response) and response.get("success") is True

    def session_ids(self, response: Dict[str, Any]) -> Dict[str, Optional[str]]:
        return {
            "checkout_request_id": response.get("checkout_request_id") or None,
            "merchant_request_id": response.get("merchant_request_id") or None,
        }

    def transaction_code(self, response: Dict[str, Any]) -> Optional[str]:
        for key in ("transaction_code", "transaction", "tx"):
            if response.get(key):
                return str(response[key])
        return None

    def interpret_status(self, response: Optional[Dict[str, Any]]) -> StatusInterpretation:
        response = response or {}
        status = str(response.get("status") or response.get("result") or "").lower()
        code = self.transaction_code(response)

        if status in PAID_STATUSES or code:
            return StatusInterpretation(PaymentSignal.PAID, code)

        message = str(response.get("message") or "").lower()
        if status == FAILED_STATUS or message == FAILED_STATUS:
            return StatusInterpretation(PaymentSignal.FAILED, None)

        return StatusInterpretation(PaymentSignal.PENDING, None)
