"""Provider response interpreters."""

from .base import ResponseInterpreter
from .shadow import ShadowPaymentInterpreter, StatusInterpretation
from .statum import StatumDeliveryInterpreter

__all__ = [
    "ResponseInterpreter",
    "ShadowPaymentInterpreter",
    "StatusInterpretation",
    "StatumDeliveryInterpreter",
]
