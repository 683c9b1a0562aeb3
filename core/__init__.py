#!/usr/bin/env python3
"""
Core Module

Shared building blocks for the airtime order service.

COMPONENTS:
    - config/: environment-driven configuration dataclasses
    - logger.py: process-wide logging setup

USAGE:
    from core.config import get_settings
    from core.logger import setup_service_logger

    config = get_settings()
    logger = setup_service_logger("airtime_order_service")
"""

__all__ = ["config", "logger"]
