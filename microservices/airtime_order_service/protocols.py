"""
Airtime Order Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, runtime_checkable
from decimal import Decimal

# Import only models (no I/O dependencies)
from .models import Order, OrderStatus, NotificationResult


# ============================================================================
# Custom Exceptions - defined here to avoid importing repository
# ============================================================================

class AirtimeOrderServiceError(Exception):
    """Base exception for airtime order service errors"""
    pass


class OrderValidationError(AirtimeOrderServiceError):
    """Order validation error"""
    pass


class OrderNumberExhaustedError(AirtimeOrderServiceError):
    """No free order number found within the retry limit"""
    pass


class OrderConflictError(AirtimeOrderServiceError):
    """Write would break order identity (order number or payment session)"""
    pass


# ============================================================================
# Repository Protocols
# ============================================================================

OrderMatcher = Callable[[Order], bool]


@runtime_checkable
class OrderRepositoryProtocol(Protocol):
    """
    Interface for the Order Store.

    Orders are kept most-recent-first and the full collection is persisted
    on every mutation.
    """

    async def create(self, order: Order) -> Order:
        """Prepend a new order and persist"""
        ...

    async def find_by_order_number(self, order_no: str) -> Optional[Order]:
        """Get order by order number"""
        ...

    async def find_by_payment_session(self, checkout_request_id: str) -> Optional[Order]:
        """Get order by payment session (checkout request) id"""
        ...

    async def update(
        self,
        matcher: OrderMatcher,
        patch: Dict[str, Any],
        only_if_status: Optional[List[OrderStatus]] = None
    ) -> Optional[Order]:
        """Merge patch into the matching order and persist"""
        ...

    async def update_by_order_number(
        self,
        order_no: str,
        patch: Dict[str, Any],
        only_if_status: Optional[List[OrderStatus]] = None
    ) -> Optional[Order]:
        """Update the order with the given number"""
        ...

    async def update_by_payment_session(
        self,
        checkout_request_id: str,
        patch: Dict[str, Any],
        only_if_status: Optional[List[OrderStatus]] = None
    ) -> Optional[Order]:
        """Update the order with the given payment session id"""
        ...

    async def list_orders(self) -> List[Order]:
        """All orders, most recent first"""
        ...


@runtime_checkable
class SettingsRepositoryProtocol(Protocol):
    """Interface for the runtime Settings store"""

    async def get_all(self) -> Dict[str, str]:
        """Snapshot of all settings"""
        ...

    async def get(self, key: str, default: str = "") -> str:
        """Single setting value"""
        ...

    async def update(self, updates: Mapping[str, Any]) -> Dict[str, str]:
        """Merge updates (coerced to str) and persist"""
        ...


# ============================================================================
# Client Protocols
# ============================================================================

@runtime_checkable
class PaymentGatewayProtocol(Protocol):
    """Interface for the mobile-money payment gateway"""

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
        """Send an STK push; never raises for transport errors"""
        ...

    async def query_status(
        self,
        api_key: str,
        api_secret: str,
        checkout_request_id: str
    ) -> Dict[str, Any]:
        """Query a charge status; never raises for transport errors"""
        ...


@runtime_checkable
class FulfillmentGatewayProtocol(Protocol):
    """Interface for the airtime top-up provider"""

    async def deliver(
        self,
        consumer_key: str,
        consumer_secret: str,
        phone: str,
        amount: Decimal
    ) -> Dict[str, Any]:
        """Send airtime; never raises for transport errors"""
        ...


@runtime_checkable
class NotifierProtocol(Protocol):
    """Interface for the operator alert channel"""

    def is_ready(self) -> bool:
        """Whether the channel can currently deliver"""
        ...

    async def send(self, text: str) -> NotificationResult:
        """Send text, distinguishing skipped from failed"""
        ...

    async def notify(self, text: str) -> bool:
        """Best-effort send; never raises"""
        ...
