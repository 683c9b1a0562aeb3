#!/usr/bin/env python3
"""Modular configuration system for the airtime order service

Configuration hierarchy:
- service_config: service endpoints, provider URLs, polling and admin settings
- logging_config: logging configuration

Runtime settings edited by the operator (credentials, purchase bounds,
discount) are not part of this package; they live in the settings store.
"""
import os
from dotenv import load_dotenv
from .logging_config import LoggingConfig
from .service_config import AirtimeServiceConfig

# Load environment file based on ENV
env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
env_files = {
    "development": ".env",
    "dev": ".env",
    "testing": "tests/config/.env.test",
    "test": "tests/config/.env.test",
    "production": ".env.production",
}
env_file = env_files.get(env, ".env")
load_dotenv(env_file, override=False)

# Create global settings instance
settings = AirtimeServiceConfig.from_env()


def get_settings() -> AirtimeServiceConfig:
    """Get global settings instance"""
    return settings


def reload_settings() -> AirtimeServiceConfig:
    """Reload settings from environment"""
    global settings
    settings = AirtimeServiceConfig.from_env()
    return settings


__all__ = [
    'AirtimeServiceConfig',
    'LoggingConfig',
    'get_settings',
    'reload_settings',
    'settings',
]
