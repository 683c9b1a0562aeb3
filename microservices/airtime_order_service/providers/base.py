"""Provider response interpretation interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class ResponseInterpreter(ABC):
    """Reads a raw provider response into a business outcome."""

    @abstractmethod
    def is_success(self, response: Optional[Dict[str, Any]]) -> bool:
        """Whether the response reports success."""
        raise NotImplementedError

    def message(self, response: Optional[Dict[str, Any]], default: str = "Unknown") -> str:
        if response and response.get("message"):
            return str(response["message"])
        return default
