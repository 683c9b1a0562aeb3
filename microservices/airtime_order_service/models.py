"""
Airtime Order Service Data Models

Pydantic models for airtime orders, their payment/fulfillment lifecycle and
the response envelopes returned by the service entry points.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum


class OrderStatus(str, Enum):
    """Order status enumeration"""
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    PAYMENT_FAILED = "payment_failed"
    FAILED_PAYMENT_INIT = "failed_payment_init"
    PAYMENT_TIMEOUT = "payment_timeout"


class AirtimeStatus(str, Enum):
    """Fulfillment outcome, recorded alongside a paid order"""
    DELIVERED = "delivered"
    DELIVERY_FAILED = "delivery_failed"


class PaymentSignal(str, Enum):
    """Interpretation of a single payment status response"""
    PAID = "paid"
    FAILED = "payment_failed"
    PENDING = "pending"


class OrderFilterType(str, Enum):
    """Status classes exposed to presentation layers"""
    ALL = "all"
    PAID = "paid"
    PENDING = "pending"
    CANCELLED = "cancelled"


# Statuses grouped under the "cancelled" filter class. Orders whose airtime
# delivery failed are matched on airtime_status.
CANCELLED_STATUSES = frozenset({
    OrderStatus.PAYMENT_FAILED,
    OrderStatus.FAILED_PAYMENT_INIT,
    OrderStatus.PAYMENT_TIMEOUT,
})

# Allowed automatic transitions. force_deliver bypasses this table.
ORDER_TRANSITIONS: Dict[OrderStatus, frozenset] = {
    OrderStatus.PENDING_PAYMENT: frozenset({
        OrderStatus.PAID,
        OrderStatus.PAYMENT_FAILED,
        OrderStatus.FAILED_PAYMENT_INIT,
        OrderStatus.PAYMENT_TIMEOUT,
    }),
    # a late confirmation may still settle a timed out order
    OrderStatus.PAYMENT_TIMEOUT: frozenset({OrderStatus.PAID, OrderStatus.PAYMENT_FAILED}),
    OrderStatus.PAID: frozenset(),
    OrderStatus.PAYMENT_FAILED: frozenset(),
    OrderStatus.FAILED_PAYMENT_INIT: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Whether the lifecycle allows moving from current to target"""
    return target in ORDER_TRANSITIONS.get(current, frozenset())


# Core Order Model

class Order(BaseModel):
    """Core airtime order model"""
    id: str
    order_no: str
    payer_number: str
    recipient_number: str
    amount: Decimal
    amount_payable: Decimal
    discount_percent: Decimal = Decimal("0")
    status: OrderStatus = OrderStatus.PENDING_PAYMENT
    checkout_request_id: Optional[str] = None
    merchant_request_id: Optional[str] = None
    transaction_code: Optional[str] = None
    airtime_status: Optional[AirtimeStatus] = None
    airtime_response: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# Settings

class PurchaseSettings(BaseModel):
    """Typed view over the numeric runtime settings"""
    min_amount: Decimal = Decimal("1")
    max_amount: Decimal = Decimal("1500")
    discount_percent: Decimal = Decimal("0")
    payment_poll_seconds: int = 20

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], default_poll_seconds: int = 20) -> "PurchaseSettings":
        """Parse the string settings mapping, falling back on blank or bad values"""
        def _decimal(key: str, default: str) -> Decimal:
            raw = str(values.get(key) or "").strip()
            try:
                return Decimal(raw) if raw else Decimal(default)
            except InvalidOperation:
                return Decimal(default)

        try:
            poll_seconds = int(str(values.get("payment_poll_seconds") or "").strip())
        except ValueError:
            poll_seconds = default_poll_seconds

        return cls(
            min_amount=_decimal("min_amount", "1"),
            max_amount=_decimal("max_amount", "1500"),
            discount_percent=_decimal("discount_percent", "0"),
            payment_poll_seconds=poll_seconds,
        )


# Request Models

class PurchaseRequest(BaseModel):
    """Initiate an airtime purchase"""
    amount: Any = Field(..., description="Requested airtime amount")
    payer_number: Optional[str] = Field(None, description="Number receiving the STK prompt")
    mpesa_number: Optional[str] = Field(None, description="Alias for payer_number")
    recipient_number: Optional[str] = Field(None, description="Airtime recipient, defaults to payer")
    buy_for: str = Field(default="self", description="self or other")


class CheckStatusRequest(BaseModel):
    """Manual payment status check"""
    checkout_request_id: Optional[str] = None
    checkout: Optional[str] = None


class OrderNumberRequest(BaseModel):
    """Request addressing an order by its number"""
    order_no: Optional[str] = None


class AlertRequest(BaseModel):
    """Operator test alert"""
    text: str = "Test alert"


# Response Models

class OrderResponse(BaseModel):
    """Order response model"""
    success: bool
    order: Optional[Order] = None
    message: str
    error_code: Optional[str] = None


class DeliveryResponse(BaseModel):
    """Airtime delivery response"""
    success: bool
    message: str
    provider_response: Optional[Dict[str, Any]] = None
    error_code: Optional[str] = None


class PaymentStatusResponse(BaseModel):
    """Manual payment status check response"""
    success: bool
    status: Optional[str] = None
    transaction_code: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


class OrderListResponse(BaseModel):
    """Filtered order listing"""
    success: bool = True
    orders: List[Order]
    count: int


class PollResult(BaseModel):
    """Outcome of one bounded polling run"""
    paid: bool = False
    failed: bool = False
    transaction_code: Optional[str] = None
    attempts: int = 0


class NotificationResult(str, Enum):
    """Outcome of a notification send"""
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"
