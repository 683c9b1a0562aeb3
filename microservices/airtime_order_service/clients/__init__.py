"""
Airtime Order Service Clients Module

HTTP clients for the external payment, airtime and alert providers
"""

from .shadow_pay_client import ShadowPayClient
from .statum_client import StatumClient
from .notifier import WebhookNotifier

__all__ = [
    "ShadowPayClient",
    "StatumClient",
    "WebhookNotifier",
]
