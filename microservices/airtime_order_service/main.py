"""
Airtime Order Microservice

Responsibilities:
- Purchase initiation (STK push) and background payment watching
- Manual payment status reconciliation
- Forced airtime delivery
- Order lookup, filtering and search for admins
- Runtime settings administration and operator alerts
"""

from fastapi import FastAPI, HTTPException, Depends, Header, Query, Request, status
import uvicorn
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx

from core.config import AirtimeServiceConfig, get_settings
from core.logger import setup_service_logger

from .factory import create_airtime_order_service, create_order_query_service
from .models import (
    PurchaseRequest, CheckStatusRequest, OrderNumberRequest, AlertRequest
)
from .order_query_service import OrderQueryService
from .order_service import AirtimeOrderService

logger = logging.getLogger(__name__)

SHUTDOWN_DRAIN_SECONDS = 5.0


class AirtimeOrderMicroservice:
    """Owns the service objects for the lifetime of the app"""

    def __init__(self):
        self.order_service: Optional[AirtimeOrderService] = None
        self.query_service: Optional[OrderQueryService] = None
        self.http_client: Optional[httpx.AsyncClient] = None

    async def initialize(
        self,
        config: AirtimeServiceConfig,
        order_service: Optional[AirtimeOrderService] = None
    ):
        if order_service is None:
            self.http_client = httpx.AsyncClient()
            order_service = create_airtime_order_service(config, http_client=self.http_client)
        self.order_service = order_service
        self.query_service = create_order_query_service(order_service)
        await self.order_service.start()
        logger.info("Airtime order microservice initialized")

    async def shutdown(self):
        if self.order_service:
            await self.order_service.shutdown(drain_timeout=SHUTDOWN_DRAIN_SECONDS)
        if self.http_client:
            await self.http_client.aclose()
        logger.info("Airtime order microservice shut down")


def create_app(
    config: Optional[AirtimeServiceConfig] = None,
    order_service: Optional[AirtimeOrderService] = None
) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        config: Service configuration, defaults to the environment
        order_service: Pre-built service (tests); built from config otherwise
    """
    config = config or get_settings()
    microservice = AirtimeOrderMicroservice()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await microservice.initialize(config, order_service)
        yield
        await microservice.shutdown()

    app = FastAPI(
        title="Airtime Order Service",
        description="Airtime purchase orchestration: STK push, payment polling, airtime delivery",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.microservice = microservice

    # Dependency injection
    def get_order_service() -> AirtimeOrderService:
        if not microservice.order_service:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Order service not initialized"
            )
        return microservice.order_service

    def get_query_service() -> OrderQueryService:
        if not microservice.query_service:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Order service not initialized"
            )
        return microservice.query_service

    def require_admin(
        x_admin_token: Optional[str] = Header(None),
        token: Optional[str] = Query(None)
    ) -> None:
        if (x_admin_token or token) != config.admin_ui_token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"success": False, "message": "Unauthorized"}
            )

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Service health check"""
        return {"ok": True}

    # Purchase endpoints

    @app.post("/api/initiate")
    async def initiate(
        request: PurchaseRequest,
        order_service: AirtimeOrderService = Depends(get_order_service)
    ):
        """Create an order and send the STK push"""
        payer = request.mpesa_number or request.payer_number or ""
        recipient = request.recipient_number or payer
        result = await order_service.place_order(payer, recipient, request.amount)
        if not result.success:
            body: Dict[str, Any] = {"success": False, "message": result.message}
            if result.order:
                body["order_no"] = result.order.order_no
            return body
        return {
            "success": True,
            "message": result.message,
            "order_no": result.order.order_no,
            "checkout_request_id": result.order.checkout_request_id,
            "amount_payable": float(result.order.amount_payable),
        }

    @app.post("/api/check_status")
    async def check_status(
        request: CheckStatusRequest,
        order_service: AirtimeOrderService = Depends(get_order_service)
    ):
        """Reconcile an order against the gateway by checkout request id"""
        result = await order_service.check_payment_status(
            request.checkout_request_id or request.checkout
        )
        return result.model_dump(mode="json", exclude_none=True)

    @app.post("/api/deliver")
    async def deliver(
        request: OrderNumberRequest,
        order_service: AirtimeOrderService = Depends(get_order_service)
    ):
        """Force airtime delivery for an order"""
        result = await order_service.force_deliver(request.order_no or "")
        return {
            "success": result.success,
            "message": result.message,
            "statum": result.provider_response,
        }

    @app.post("/api/get_order")
    async def get_order(
        request: OrderNumberRequest,
        order_service: AirtimeOrderService = Depends(get_order_service)
    ):
        """Get a single order by number"""
        result = await order_service.get_order(request.order_no)
        if not result.success:
            return {"success": False, "message": result.message}
        return {"success": True, "order": result.order.model_dump(mode="json")}

    # Admin endpoints

    @app.get("/admin/orders", dependencies=[Depends(require_admin)])
    async def list_orders(
        filter: str = Query("all"),
        q: str = Query(""),
        query_service: OrderQueryService = Depends(get_query_service)
    ):
        """List orders by status class and search text"""
        result = await query_service.list_orders(filter, q)
        return result.model_dump(mode="json")

    @app.get("/admin/order/{order_no}", dependencies=[Depends(require_admin)])
    async def admin_get_order(
        order_no: str,
        query_service: OrderQueryService = Depends(get_query_service)
    ):
        order = await query_service.find_order(order_no)
        if not order:
            return {"success": False, "message": "Not found"}
        return {"success": True, "order": order.model_dump(mode="json")}

    @app.get("/admin/settings", dependencies=[Depends(require_admin)])
    async def get_settings_route(order_service: AirtimeOrderService = Depends(get_order_service)):
        return {"success": True, "settings": await order_service.get_settings()}

    @app.post("/admin/settings", dependencies=[Depends(require_admin)])
    async def update_settings_route(
        request: Request,
        order_service: AirtimeOrderService = Depends(get_order_service)
    ):
        try:
            updates = await request.json()
            if not isinstance(updates, dict):
                return {"success": False, "message": "Settings payload must be an object"}
            updates.pop("token", None)
            await order_service.update_settings(updates)
            return {"success": True, "message": "Saved"}
        except Exception as e:
            logger.error(f"Failed to save settings: {e}")
            return {"success": False, "message": str(e)}

    @app.post("/admin/alert", dependencies=[Depends(require_admin)])
    async def send_alert(
        request: AlertRequest,
        order_service: AirtimeOrderService = Depends(get_order_service)
    ):
        sent = await order_service.send_alert(request.text)
        return {"success": True, "sent": sent}

    return app


if __name__ == "__main__":
    config = get_settings()
    setup_service_logger("airtime_order_service")
    uvicorn.run(create_app(config), host="0.0.0.0", port=config.port, log_level="info")
