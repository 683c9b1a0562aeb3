"""
Airtime Order Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that wires file storage and HTTP clients together.

Usage:
    from .factory import create_airtime_order_service
    service = create_airtime_order_service(config)
"""
from pathlib import Path
from typing import Optional

import httpx

from core.config import AirtimeServiceConfig, get_settings

from .clients import ShadowPayClient, StatumClient, WebhookNotifier
from .order_query_service import OrderQueryService
from .order_repository import OrderRepository
from .order_service import AirtimeOrderService
from .settings_repository import SettingsRepository, default_settings
from .task_runner import BackgroundTaskSet

ORDERS_FILE = "orders.json"
SETTINGS_FILE = "settings.json"


def create_order_repository(config: AirtimeServiceConfig) -> OrderRepository:
    return OrderRepository(Path(config.data_dir) / ORDERS_FILE)


def create_settings_repository(config: AirtimeServiceConfig) -> SettingsRepository:
    return SettingsRepository(
        Path(config.data_dir) / SETTINGS_FILE,
        defaults=default_settings(config.poll_seconds),
    )


def create_airtime_order_service(
    config: Optional[AirtimeServiceConfig] = None,
    repository=None,
    settings_repository=None,
    http_client: Optional[httpx.AsyncClient] = None,
    payment_gateway=None,
    fulfillment_gateway=None,
    notifier=None,
) -> AirtimeOrderService:
    """
    Create AirtimeOrderService with real dependencies.

    Args:
        config: Service configuration, defaults to the environment
        repository: Order store override
        settings_repository: Settings store override
        http_client: Shared httpx client for the provider clients
        payment_gateway: Payment gateway override
        fulfillment_gateway: Airtime provider override
        notifier: Alert channel override

    Returns:
        Configured AirtimeOrderService instance
    """
    config = config or get_settings()

    return AirtimeOrderService(
        repository=repository or create_order_repository(config),
        settings_repository=settings_repository or create_settings_repository(config),
        payment_gateway=payment_gateway or ShadowPayClient(
            config.shadow_stk_url, config.shadow_status_url, http_client=http_client
        ),
        fulfillment_gateway=fulfillment_gateway or StatumClient(
            config.statum_airtime_url, http_client=http_client
        ),
        notifier=notifier or WebhookNotifier(
            config.notifier_url, config.admin_whatsapp, config.notifier_token, http_client=http_client
        ),
        task_set=BackgroundTaskSet(config.max_payment_watchers),
        poll_interval=config.poll_interval,
        default_poll_seconds=config.poll_seconds,
    )


def create_order_query_service(service: AirtimeOrderService) -> OrderQueryService:
    """Query facade sharing the service's order store"""
    return OrderQueryService(service.repository)


__all__ = [
    "create_airtime_order_service",
    "create_order_query_service",
    "create_order_repository",
    "create_settings_repository",
]
