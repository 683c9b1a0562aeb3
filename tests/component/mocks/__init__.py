"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real HTTP I/O.
"""

from .http_mock import MockHttpClient, MockHttpResponse

# Service-specific mocks live in tests/component/{service}/mocks.py

__all__ = [
    'MockHttpClient',
    'MockHttpResponse',
]
