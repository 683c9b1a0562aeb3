"""
Airtime Order Service

Order orchestration for airtime purchases paid by mobile-money STK push.
"""

from .models import Order, OrderStatus, AirtimeStatus, OrderFilterType
from .order_service import AirtimeOrderService
from .order_query_service import OrderQueryService

__all__ = [
    "AirtimeOrderService",
    "OrderQueryService",
    "Order",
    "OrderStatus",
    "AirtimeStatus",
    "OrderFilterType",
]
