"""
Order Repository

Durable order store backed by a single JSON snapshot file. The whole
collection is kept in memory, most recent first, and rewritten to disk on
every mutation.
"""

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .models import Order, OrderStatus
from .protocols import OrderMatcher, OrderConflictError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def read_json_file(path: Path, fallback: Any) -> Any:
    """Load a JSON document, seeding the file with fallback when missing"""
    try:
        if not path.exists():
            write_json_file(path, fallback)
            return fallback
        raw = path.read_text(encoding="utf-8")
        data = json.loads(raw or "null")
        return fallback if data is None else data
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read {path}: {e}")
        return fallback


def write_json_file(path: Path, data: Any) -> None:
    """Replace path with the serialized document"""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    os.replace(tmp_path, path)


class OrderRepository:
    """
    Repository for order data operations

    Reads and writes go through one asyncio.Lock so that a read-then-write
    on the same order cannot interleave with another task's update.
    Passing path=None keeps the collection in memory only.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._lock = asyncio.Lock()
        self._orders: List[Order] = []

        if self.path is not None:
            for raw in read_json_file(self.path, []):
                try:
                    self._orders.append(Order.model_validate(raw))
                except ValueError as e:
                    logger.warning(f"Skipping unreadable order record: {e}")

        logger.info(f"OrderRepository initialized with {len(self._orders)} orders ({self.path or 'memory'})")

    def _commit(self, orders: List[Order]) -> None:
        """Write orders to disk, then make them the current collection"""
        if self.path is not None:
            write_json_file(self.path, [o.model_dump(mode="json") for o in orders])
        self._orders = orders

    def _check_session_free(self, checkout_request_id: Optional[str], owner: Optional[str] = None) -> None:
        if not checkout_request_id:
            return
        for other in self._orders:
            if other.checkout_request_id == checkout_request_id and other.order_no != owner:
                raise OrderConflictError(
                    f"Payment session {checkout_request_id} already belongs to {other.order_no}"
                )

    async def create(self, order: Order) -> Order:
        """Prepend a new order and persist the collection"""
        async with self._lock:
            if any(o.order_no == order.order_no for o in self._orders):
                raise OrderConflictError(f"Order number {order.order_no} already exists")
            self._check_session_free(order.checkout_request_id)
            self._commit([order] + self._orders)
        logger.debug(f"Order stored: {order.order_no}")
        return order

    async def find_by_order_number(self, order_no: str) -> Optional[Order]:
        async with self._lock:
            return next((o for o in self._orders if o.order_no == order_no), None)

    async def find_by_payment_session(self, checkout_request_id: str) -> Optional[Order]:
        if not checkout_request_id:
            return None
        async with self._lock:
            return next(
                (o for o in self._orders if o.checkout_request_id == checkout_request_id),
                None
            )

    async def update(
        self,
        matcher: OrderMatcher,
        patch: Dict[str, Any],
        only_if_status: Optional[List[OrderStatus]] = None
    ) -> Optional[Order]:
        """
        Merge patch into the first order matching matcher

        Args:
            matcher: Predicate selecting the order
            patch: Field values to merge
            only_if_status: When given, the update applies only if the
                order's current status is one of these

        Returns:
            Updated order, or None when nothing matched or the status
            condition did not hold

        Raises:
            OrderConflictError: patch changes the order number, replaces a
                recorded payment session, or claims a session held by
                another order
        """
        async with self._lock:
            for index, order in enumerate(self._orders):
                if not matcher(order):
                    continue
                if only_if_status is not None and order.status not in only_if_status:
                    logger.debug(
                        f"Skipping update of {order.order_no}: status {order.status.value} "
                        f"not in {[s.value for s in only_if_status]}"
                    )
                    return None

                if patch.get("order_no", order.order_no) != order.order_no:
                    raise OrderConflictError(f"Order number of {order.order_no} cannot change")
                session = patch.get("checkout_request_id", order.checkout_request_id)
                if order.checkout_request_id and session != order.checkout_request_id:
                    raise OrderConflictError(
                        f"Payment session of {order.order_no} is already {order.checkout_request_id}"
                    )
                self._check_session_free(session, owner=order.order_no)

                values = order.model_dump()
                values.update(patch)
                values["updated_at"] = max(utcnow(), order.updated_at)
                updated = Order.model_validate(values)
                orders = list(self._orders)
                orders[index] = updated
                self._commit(orders)
                return updated
        return None

    async def update_by_order_number(
        self,
        order_no: str,
        patch: Dict[str, Any],
        only_if_status: Optional[List[OrderStatus]] = None
    ) -> Optional[Order]:
        return await self.update(lambda o: o.order_no == order_no, patch, only_if_status)

    async def update_by_payment_session(
        self,
        checkout_request_id: str,
        patch: Dict[str, Any],
        only_if_status: Optional[List[OrderStatus]] = None
    ) -> Optional[Order]:
        if not checkout_request_id:
            return None
        return await self.update(
            lambda o: o.checkout_request_id == checkout_request_id, patch, only_if_status
        )

    async def list_orders(self) -> List[Order]:
        async with self._lock:
            return list(self._orders)
