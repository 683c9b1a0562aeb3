"""
Unit Test Layer Configuration

Structure:
    tests/unit/
    └── airtime_order_service/   Pure helpers, models, response interpreters

Usage:
    pytest tests/unit -v
"""
import os
import sys

import pytest

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))


def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
