"""
Order Query Service

Read-side filtering and search over the order store for presentation
layers (admin listing, chat commands, order lookups).
"""

import logging
from decimal import Decimal
from typing import List, Optional, Union

from .models import (
    Order, OrderStatus, AirtimeStatus, OrderFilterType, OrderListResponse,
    CANCELLED_STATUSES
)
from .protocols import OrderRepositoryProtocol

logger = logging.getLogger(__name__)

MAX_RESULTS = 1000


def matches_filter(order: Order, filter_type: OrderFilterType) -> bool:
    if filter_type == OrderFilterType.PAID:
        return order.status == OrderStatus.PAID
    if filter_type == OrderFilterType.PENDING:
        return "pending" in order.status.value
    if filter_type == OrderFilterType.CANCELLED:
        return (
            order.status in CANCELLED_STATUSES
            or order.airtime_status == AirtimeStatus.DELIVERY_FAILED
        )
    return True


def matches_search(order: Order, query: str) -> bool:
    """Case-insensitive substring match on order number, transaction code or payer"""
    needle = query.lower()
    return any(
        needle in (field or "").lower()
        for field in (order.order_no, order.transaction_code, order.payer_number)
    )


def parse_filter(value: Optional[Union[str, OrderFilterType]]) -> OrderFilterType:
    """Unknown filter names fall back to all"""
    if isinstance(value, OrderFilterType):
        return value
    try:
        return OrderFilterType((value or "all").lower())
    except ValueError:
        return OrderFilterType.ALL


def render_order_summary(order: Order) -> str:
    """Multi-line order summary for chat and alert channels"""
    lines = [
        f"📦 *Order:* {order.order_no}",
        f"👤 *Payer:* {order.payer_number}",
        f"📲 *Recipient:* {order.recipient_number}",
        f"💸 *Amount:* KES {Decimal(order.amount):.2f}",
        f"💰 *Payable:* KES {Decimal(order.amount_payable):.2f}",
        f"🔖 *Discount:* {order.discount_percent}%",
        f"🔁 *Status:* {order.status.value}",
        f"🏷️ *MPesa Code:* {order.transaction_code or 'N/A'}",
        f"📶 *Airtime status:* {order.airtime_status.value if order.airtime_status else 'N/A'}",
        f"⏱️ *Created:* {order.created_at:%Y-%m-%d %H:%M:%S}",
        f"⏲️ *Updated:* {order.updated_at:%Y-%m-%d %H:%M:%S}",
    ]
    return "\n".join(lines)


class OrderQueryService:
    """Read-only order queries"""

    def __init__(self, repository: OrderRepositoryProtocol):
        self.repository = repository

    async def find_order(self, order_no: str) -> Optional[Order]:
        return await self.repository.find_by_order_number(order_no)

    async def query_by_filter(
        self,
        filter_type: Optional[Union[str, OrderFilterType]] = OrderFilterType.ALL,
        search: Optional[str] = None,
        limit: int = MAX_RESULTS
    ) -> List[Order]:
        """
        Orders in a status class, optionally narrowed by search text

        Args:
            filter_type: all, paid, pending or cancelled
            search: Text matched against order number, transaction code
                and payer number
            limit: Maximum number of orders returned, most recent first

        Returns:
            Matching orders, most recent first
        """
        status_class = parse_filter(filter_type)
        orders = await self.repository.list_orders()
        result = [o for o in orders if matches_filter(o, status_class)]
        if search:
            result = [o for o in result if matches_search(o, search)]
        return result[:max(0, min(limit, MAX_RESULTS))]

    async def list_orders(
        self,
        filter_type: Optional[Union[str, OrderFilterType]] = OrderFilterType.ALL,
        search: Optional[str] = None
    ) -> OrderListResponse:
        try:
            orders = await self.query_by_filter(filter_type, search)
            return OrderListResponse(success=True, orders=orders, count=len(orders))
        except Exception as e:
            logger.error(f"Failed to list orders: {e}")
            return OrderListResponse(success=False, orders=[], count=0)
