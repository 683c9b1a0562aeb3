#!/usr/bin/env python3
"""
Service logger setup

Configures the root logger once per process from LoggingConfig and returns
the named service logger. Modules keep using logging.getLogger(__name__).
"""
import logging
from typing import Optional

from core.config.logging_config import LoggingConfig

_configured = False


def setup_service_logger(service_name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Configure logging for a service process

    Args:
        service_name: Logger name for the service
        level: Override for LOG_LEVEL

    Returns:
        The service logger
    """
    global _configured
    config = LoggingConfig.from_env()
    log_level = getattr(logging, (level or config.log_level).upper(), logging.INFO)

    if not _configured:
        root = logging.getLogger()
        root.setLevel(log_level)
        formatter = logging.Formatter(config.log_format)

        if config.enable_console:
            console = logging.StreamHandler()
            console.setFormatter(formatter)
            root.addHandler(console)

        if config.log_file:
            file_handler = logging.FileHandler(config.log_file)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
        _configured = True

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)
    return logger
