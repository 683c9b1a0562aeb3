"""
Airtime Order Service Business Logic

Order lifecycle engine: validates purchase requests, sends the STK push,
watches the payment in a background task, reconciles timeouts and triggers
airtime delivery once the payment is confirmed.

Uses dependency injection for testability:
- Order and settings stores are injected
- Gateway clients and the notifier are injected
- The sleep function used between polls is injectable
"""

import asyncio
import json
import logging
import math
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional

from .models import (
    Order, OrderStatus, AirtimeStatus, PaymentSignal, PurchaseSettings,
    OrderResponse, DeliveryResponse, PaymentStatusResponse, PollResult, can_transition
)
from .protocols import (
    OrderRepositoryProtocol, SettingsRepositoryProtocol,
    PaymentGatewayProtocol, FulfillmentGatewayProtocol, NotifierProtocol,
    OrderValidationError, OrderNumberExhaustedError, OrderConflictError
)
from .order_query_service import render_order_summary
from .providers import ShadowPaymentInterpreter, StatumDeliveryInterpreter
from .task_runner import BackgroundTaskSet
from .validators import (
    normalize_phone, is_canonical_phone, validate_amount, parse_amount,
    compute_payable, clamp_discount, generate_order_no
)

logger = logging.getLogger(__name__)

MAX_ORDER_NO_ATTEMPTS = 10
INVALID_PHONE_MESSAGE = "Invalid Kenyan phone numbers. Use 07.. or 254.. formats."


def poll_attempts(timeout_seconds: float, interval_seconds: float) -> int:
    """Number of status queries that fit in the polling window"""
    if interval_seconds <= 0:
        raise ValueError("Poll interval must be positive")
    return max(0, math.ceil(timeout_seconds / interval_seconds))


def format_amount(value: Decimal) -> str:
    return f"{Decimal(value):.2f}"


class AirtimeOrderService:
    """
    Airtime order lifecycle service

    pending_payment moves to paid, payment_failed, failed_payment_init or
    payment_timeout. A paid order then records the airtime delivery outcome
    as delivered or delivery_failed.
    """

    def __init__(
        self,
        repository: OrderRepositoryProtocol,
        settings_repository: SettingsRepositoryProtocol,
        payment_gateway: PaymentGatewayProtocol,
        fulfillment_gateway: FulfillmentGatewayProtocol,
        notifier: Optional[NotifierProtocol] = None,
        task_set: Optional[BackgroundTaskSet] = None,
        poll_interval: float = 5,
        default_poll_seconds: int = 20,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize Airtime Order Service

        Args:
            repository: Order store
            settings_repository: Runtime settings store
            payment_gateway: STK push gateway client
            fulfillment_gateway: Airtime provider client
            notifier: Operator alert channel (optional)
            task_set: Tracker for payment watcher tasks
            poll_interval: Seconds between payment status queries
            default_poll_seconds: Poll window when settings hold no usable value
            sleep: Coroutine function awaited between polls
        """
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")

        self.repository = repository
        self.settings_repository = settings_repository
        self.payment_gateway = payment_gateway
        self.fulfillment_gateway = fulfillment_gateway
        self.notifier = notifier
        self.task_set = task_set or BackgroundTaskSet()
        self.poll_interval = poll_interval
        self.default_poll_seconds = default_poll_seconds
        self._sleep = sleep

        self.payment_interpreter = ShadowPaymentInterpreter()
        self.delivery_interpreter = StatumDeliveryInterpreter()

        logger.info("✅ AirtimeOrderService initialized")

    # Settings

    async def get_purchase_settings(self) -> PurchaseSettings:
        values = await self.settings_repository.get_all()
        return PurchaseSettings.from_mapping(values, self.default_poll_seconds)

    # Order Creation

    async def create_order(
        self,
        payer_number: Any,
        recipient_number: Any,
        amount: Any,
        discount_percent: Any = None
    ) -> Order:
        """
        Validate a purchase and persist it as pending_payment

        Args:
            payer_number: Number that pays (any accepted shape)
            recipient_number: Number receiving airtime, defaults to payer
            amount: Requested airtime amount
            discount_percent: Overrides the configured discount when given

        Returns:
            The stored order

        Raises:
            OrderValidationError: amount outside configured bounds or a
                phone number that does not canonicalize
        """
        settings = await self.get_purchase_settings()

        if not validate_amount(amount, settings.min_amount, settings.max_amount):
            raise OrderValidationError(
                f"Amount must be between KES {settings.min_amount} and KES {settings.max_amount}"
            )

        payer = normalize_phone(payer_number)
        recipient = normalize_phone(recipient_number or payer_number)
        if not is_canonical_phone(payer) or not is_canonical_phone(recipient):
            raise OrderValidationError(INVALID_PHONE_MESSAGE)

        requested = parse_amount(amount)
        discount = clamp_discount(
            settings.discount_percent if discount_percent is None else discount_percent
        )
        now = datetime.now(timezone.utc)

        order = Order(
            id=str(uuid.uuid4()),
            order_no=await self._allocate_order_no(),
            payer_number=payer,
            recipient_number=recipient,
            amount=requested,
            amount_payable=compute_payable(requested, discount),
            discount_percent=discount,
            status=OrderStatus.PENDING_PAYMENT,
            created_at=now,
            updated_at=now,
        )
        await self.repository.create(order)

        logger.info(f"Order created: {order.order_no} payer={payer} recipient={recipient} payable={order.amount_payable}")
        return order

    async def _allocate_order_no(self) -> str:
        for _ in range(MAX_ORDER_NO_ATTEMPTS):
            order_no = generate_order_no()
            if await self.repository.find_by_order_number(order_no) is None:
                return order_no
            logger.warning(f"Order number collision on {order_no}, retrying")
        raise OrderNumberExhaustedError("Could not allocate a unique order number")

    # Payment Initiation

    async def initiate_payment(self, order: Order) -> OrderResponse:
        """
        Send the STK push for an order

        On failure the order moves to failed_payment_init. On success the
        returned session ids are recorded; polling is not started here.
        """
        credentials = await self.settings_repository.get_all()
        response = await self.payment_gateway.initiate_charge(
            credentials.get("shadow_api_key", ""),
            credentials.get("shadow_api_secret", ""),
            credentials.get("shadow_account_id", ""),
            order.payer_number,
            order.amount_payable,
            order.order_no,
            f"Airtime payment {order.order_no}",
        )

        if not self.payment_interpreter.is_success(response):
            return await self._fail_initiation(order, self.payment_interpreter.message(response))

        try:
            updated = await self.repository.update_by_order_number(
                order.order_no, self.payment_interpreter.session_ids(response)
            )
        except OrderConflictError as e:
            return await self._fail_initiation(order, str(e))

        logger.info(f"STK push sent for {order.order_no} (checkout {updated.checkout_request_id if updated else None})")
        return OrderResponse(success=True, order=updated or order, message="STK push sent")

    async def _fail_initiation(self, order: Order, message: str) -> OrderResponse:
        failed = await self.repository.update_by_order_number(
            order.order_no,
            {"status": OrderStatus.FAILED_PAYMENT_INIT},
            only_if_status=[OrderStatus.PENDING_PAYMENT],
        )
        logger.error(f"STK push failed for {order.order_no}: {message}")
        return OrderResponse(
            success=False,
            order=failed or order,
            message=f"Failed to send STK: {message}",
            error_code="PAYMENT_INIT_FAILED",
        )

    async def place_order(
        self,
        payer_number: Any,
        recipient_number: Any,
        amount: Any,
        poll_seconds: Optional[int] = None
    ) -> OrderResponse:
        """
        Create an order, send the STK push and start watching the payment

        Returns immediately after the push; the new-order alert, payment
        confirmation, timeout handling and airtime delivery continue in
        background tasks.
        """
        try:
            try:
                order = await self.create_order(payer_number, recipient_number, amount)
            except OrderValidationError as e:
                return OrderResponse(success=False, message=str(e), error_code="VALIDATION_ERROR")

            result = await self.initiate_payment(order)
            if not result.success:
                return result

            self.start_payment_watch(result.order, poll_seconds)
            new_order_alert = (
                f"🔔 New Order\n"
                f"• Order: {order.order_no}\n"
                f"• Payer: +{order.payer_number}\n"
                f"• Recipient: +{order.recipient_number}\n"
                f"• Amount: KES {format_amount(order.amount)}"
            )
            self.task_set.spawn(lambda: self.send_alert(new_order_alert), name=f"alert-{order.order_no}")
            return result

        except Exception as e:
            logger.exception(f"Failed to place order: {e}")
            return OrderResponse(
                success=False,
                message=f"Failed to place order: {str(e)}",
                error_code="INTERNAL_ERROR",
            )

    # Payment Watching

    def start_payment_watch(self, order: Order, poll_seconds: Optional[int] = None) -> asyncio.Task:
        """Spawn the background watcher for an initiated order"""
        return self.task_set.spawn(
            lambda: self.watch_payment(order.order_no, order.checkout_request_id, poll_seconds),
            name=f"watch-{order.order_no}",
        )

    async def watch_payment(
        self,
        order_no: str,
        checkout_request_id: Optional[str],
        poll_seconds: Optional[int] = None
    ) -> Optional[Order]:
        """
        Background workflow for one order: poll, then deliver or reconcile

        Returns:
            The order as stored when the workflow finished
        """
        try:
            result = await self.poll_payment(order_no, checkout_request_id, poll_seconds)

            if result.paid:
                await self.send_alert(f"🔔 Payment confirmed for {order_no}. Delivering airtime...")
                delivery = await self.deliver_airtime(order_no)
                if delivery.success:
                    delivered = await self.repository.find_by_order_number(order_no)
                    await self.send_alert(
                        f"✅ Airtime delivered for {order_no}\n\n{render_order_summary(delivered)}"
                    )
                else:
                    await self.send_alert(f"⚠️ Airtime delivery failed for {order_no}")

            elif result.failed:
                await self.send_alert(f"❌ Payment failed for {order_no}")

            else:
                timed_out = await self.repository.update_by_order_number(
                    order_no,
                    {"status": OrderStatus.PAYMENT_TIMEOUT},
                    only_if_status=[OrderStatus.PENDING_PAYMENT],
                )
                if timed_out:
                    logger.info(f"Payment timeout for {order_no} after {result.attempts} attempts")
                    await self.send_alert(f"⏰ Payment timeout for {order_no}")
                else:
                    logger.info(f"Poll window closed for {order_no} but order already settled")

            return await self.repository.find_by_order_number(order_no)

        except Exception as e:
            logger.exception(f"Payment watcher for {order_no} failed: {e}")
            return None

    async def poll_payment(
        self,
        order_no: str,
        checkout_request_id: Optional[str],
        poll_seconds: Optional[int] = None
    ) -> PollResult:
        """
        Query the gateway every poll_interval seconds until the charge
        settles or the window closes

        Query errors are logged and the next attempt proceeds as scheduled.
        """
        if poll_seconds is None:
            poll_seconds = (await self.get_purchase_settings()).payment_poll_seconds
        attempts = poll_attempts(poll_seconds, self.poll_interval)

        for attempt in range(1, attempts + 1):
            await self._sleep(self.poll_interval)
            try:
                credentials = await self.settings_repository.get_all()
                response = await self.payment_gateway.query_status(
                    credentials.get("shadow_api_key", ""),
                    credentials.get("shadow_api_secret", ""),
                    checkout_request_id,
                )
                signal, transaction_code = self.payment_interpreter.interpret_status(response)

                if signal == PaymentSignal.PAID:
                    updated = await self.repository.update_by_order_number(
                        order_no,
                        {"status": OrderStatus.PAID, "transaction_code": transaction_code},
                        only_if_status=[OrderStatus.PENDING_PAYMENT],
                    )
                    if updated is None:
                        # settled by another path (manual check or force deliver)
                        logger.info(f"Payment for {order_no} confirmed but order already settled")
                        return PollResult(transaction_code=transaction_code, attempts=attempt)
                    logger.info(f"Payment confirmed for {order_no} (tx {transaction_code})")
                    return PollResult(paid=True, transaction_code=transaction_code, attempts=attempt)

                if signal == PaymentSignal.FAILED:
                    await self.repository.update_by_order_number(
                        order_no,
                        {"status": OrderStatus.PAYMENT_FAILED},
                        only_if_status=[OrderStatus.PENDING_PAYMENT],
                    )
                    logger.info(f"Payment failed for {order_no}")
                    return PollResult(failed=True, attempts=attempt)

            except Exception as e:
                logger.warning(f"Status query for {order_no} failed (attempt {attempt}/{attempts}): {e}")

        return PollResult(attempts=attempts)

    # Fulfillment

    async def deliver_airtime(self, order_no: str) -> DeliveryResponse:
        """
        Send airtime for an order and record the outcome

        The raw provider response is stored on the order either way.
        """
        order = await self.repository.find_by_order_number(order_no)
        if not order:
            return DeliveryResponse(success=False, message="Order not found", error_code="ORDER_NOT_FOUND")

        credentials = await self.settings_repository.get_all()
        try:
            response = await self.fulfillment_gateway.deliver(
                credentials.get("statum_consumer_key", ""),
                credentials.get("statum_consumer_secret", ""),
                order.recipient_number,
                order.amount,
            )
        except Exception as e:
            logger.error(f"Airtime delivery for {order_no} raised: {e}")
            await self.repository.update_by_order_number(
                order_no,
                {"airtime_status": AirtimeStatus.DELIVERY_FAILED, "airtime_response": str(e)},
            )
            return DeliveryResponse(success=False, message=str(e), error_code="DELIVERY_ERROR")

        delivered = self.delivery_interpreter.is_success(response)
        await self.repository.update_by_order_number(
            order_no,
            {
                "airtime_status": AirtimeStatus.DELIVERED if delivered else AirtimeStatus.DELIVERY_FAILED,
                "airtime_response": json.dumps(response, default=str),
            },
        )

        if delivered:
            logger.info(f"Airtime delivered for {order_no}")
            return DeliveryResponse(success=True, message="Airtime delivered", provider_response=response)

        logger.warning(f"Airtime delivery failed for {order_no}: {response}")
        return DeliveryResponse(
            success=False,
            message="Delivery failed",
            provider_response=response,
            error_code="DELIVERY_FAILED",
        )

    async def force_deliver(self, order_no: str) -> DeliveryResponse:
        """
        Operator re-trigger of airtime delivery

        Works on any order: the status is coerced to paid first. Repeated
        calls deliver again and overwrite the stored outcome.
        """
        try:
            if not order_no:
                return DeliveryResponse(success=False, message="Missing order_no", error_code="VALIDATION_ERROR")

            order = await self.repository.find_by_order_number(order_no)
            if not order:
                return DeliveryResponse(success=False, message="Order not found", error_code="ORDER_NOT_FOUND")

            if order.status != OrderStatus.PAID:
                logger.info(f"Force deliver: {order_no} moved from {order.status.value} to paid")
                await self.repository.update_by_order_number(order_no, {"status": OrderStatus.PAID})

            return await self.deliver_airtime(order_no)

        except Exception as e:
            logger.exception(f"Force deliver for {order_no} failed: {e}")
            return DeliveryResponse(success=False, message=str(e), error_code="INTERNAL_ERROR")

    # Manual Reconciliation

    async def check_payment_status(self, checkout_request_id: Optional[str]) -> PaymentStatusResponse:
        """
        Query the gateway once and apply the result to the matching order

        Used to reconcile orders whose watcher never finished, and orders
        that timed out before a late confirmation.
        """
        try:
            if not checkout_request_id:
                return PaymentStatusResponse(success=False, message="Missing checkout_request_id")

            credentials = await self.settings_repository.get_all()
            response = await self.payment_gateway.query_status(
                credentials.get("shadow_api_key", ""),
                credentials.get("shadow_api_secret", ""),
                checkout_request_id,
            )
            signal, transaction_code = self.payment_interpreter.interpret_status(response)
            open_statuses = [s for s in OrderStatus if can_transition(s, OrderStatus.PAID)]

            if signal == PaymentSignal.PAID:
                await self.repository.update_by_payment_session(
                    checkout_request_id,
                    {"status": OrderStatus.PAID, "transaction_code": transaction_code},
                    only_if_status=open_statuses,
                )
                return PaymentStatusResponse(
                    success=True, status="paid", transaction_code=transaction_code, raw=response
                )

            if signal == PaymentSignal.FAILED:
                await self.repository.update_by_payment_session(
                    checkout_request_id,
                    {"status": OrderStatus.PAYMENT_FAILED},
                    only_if_status=open_statuses,
                )
                return PaymentStatusResponse(success=True, status="payment_failed", raw=response)

            return PaymentStatusResponse(success=True, status="pending", raw=response)

        except Exception as e:
            logger.exception(f"Status check for {checkout_request_id} failed: {e}")
            return PaymentStatusResponse(success=False, message=str(e))

    # Queries

    async def find_order(self, order_no: str) -> Optional[Order]:
        return await self.repository.find_by_order_number(order_no)

    async def get_order(self, order_no: Optional[str]) -> OrderResponse:
        """Envelope lookup of one order"""
        try:
            if not order_no:
                return OrderResponse(success=False, message="Missing order_no", error_code="VALIDATION_ERROR")
            order = await self.repository.find_by_order_number(order_no)
            if not order:
                return OrderResponse(success=False, message="Order not found", error_code="ORDER_NOT_FOUND")
            return OrderResponse(success=True, order=order, message="Order found")
        except Exception as e:
            logger.error(f"Failed to get order {order_no}: {e}")
            return OrderResponse(success=False, message=str(e), error_code="INTERNAL_ERROR")

    # Settings Administration

    async def get_settings(self) -> Dict[str, str]:
        return await self.settings_repository.get_all()

    async def update_settings(self, updates: Dict[str, Any]) -> Dict[str, str]:
        return await self.settings_repository.update(updates)

    # Alerts & Lifecycle

    async def send_alert(self, text: str) -> bool:
        """Best-effort operator alert"""
        if self.notifier is None:
            return False
        try:
            return await self.notifier.notify(text)
        except Exception as e:
            logger.error(f"Alert failed: {e}")
            return False

    async def start(self) -> None:
        await self.send_alert("✅ *FY Bot* is online.")

    async def shutdown(self, drain_timeout: Optional[float] = None) -> None:
        """Wait for watchers up to drain_timeout, then abandon the rest"""
        if drain_timeout:
            await self.task_set.drain(timeout=drain_timeout)
        await self.task_set.cancel_all()
