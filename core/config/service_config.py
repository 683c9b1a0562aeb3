#!/usr/bin/env python3
"""Service configuration for the airtime order service

Process-level settings read once from the environment: HTTP port, admin
credentials, data directory, polling cadence and the external provider
endpoints (Shadow Pay STK push, Statum airtime, operator alert bridge).
"""
import os
import re
from dataclasses import dataclass

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class AirtimeServiceConfig:
    """Airtime order service settings"""

    # ===========================================
    # HTTP surface
    # ===========================================
    port: int = 3000
    base_url: str = "http://localhost:3000"
    admin_ui_token: str = "changeme-strong-token"

    # ===========================================
    # Persistence
    # ===========================================
    data_dir: str = "./data"

    # ===========================================
    # Payment polling
    # ===========================================
    poll_seconds: int = 20
    poll_interval: int = 5
    max_payment_watchers: int = 100

    # ===========================================
    # Provider endpoints
    # ===========================================
    shadow_stk_url: str = "https://shadow-pay.top/api/v2/stkpush.php"
    shadow_status_url: str = "https://shadow-pay.top/api/v2/status.php"
    statum_airtime_url: str = "https://api.statum.co.ke/api/v2/airtime"

    # ===========================================
    # Operator alerts
    # ===========================================
    admin_whatsapp: str = ""
    notifier_url: str = ""
    notifier_token: str = ""

    @classmethod
    def from_env(cls) -> 'AirtimeServiceConfig':
        """Load service configuration from environment variables"""
        port = _int(os.getenv("PORT", "3000"), 3000)
        return cls(
            port=port,
            base_url=os.getenv("BASE_URL", f"http://localhost:{port}"),
            admin_ui_token=os.getenv("ADMIN_UI_TOKEN", "changeme-strong-token"),
            data_dir=os.getenv("DATA_DIR", "./data"),
            poll_seconds=_int(os.getenv("POLL_SECONDS", "20"), 20),
            poll_interval=max(1, _int(os.getenv("POLL_INTERVAL", "5"), 5)),
            max_payment_watchers=max(1, _int(os.getenv("MAX_PAYMENT_WATCHERS", "100"), 100)),
            shadow_stk_url=os.getenv("SHADOW_STK_URL", "https://shadow-pay.top/api/v2/stkpush.php"),
            shadow_status_url=os.getenv("SHADOW_STATUS_URL", "https://shadow-pay.top/api/v2/status.php"),
            statum_airtime_url=os.getenv("STATUM_AIRTIME_URL", "https://api.statum.co.ke/api/v2/airtime"),
            admin_whatsapp=re.sub(r"\D", "", os.getenv("ADMIN_WHATSAPP", "")),
            notifier_url=os.getenv("NOTIFIER_URL", ""),
            notifier_token=os.getenv("NOTIFIER_TOKEN", ""),
        )
