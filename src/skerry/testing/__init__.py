"""Test utilities for skerry.

An ASGI test client for the SSR service, and an in-process transport so
host-side code can talk to a real render service without a network::

    from skerry.testing import ServiceTransport, TestClient
"""

from skerry.testing.client import TestClient
from skerry.testing.stubs import RecordedCall, ServiceTransport

__all__ = [
    "RecordedCall",
    "ServiceTransport",
    "TestClient",
]
