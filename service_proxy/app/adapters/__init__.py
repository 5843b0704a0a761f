"""
Adapters package for the proxy service.

Contains the HTTP client for the brokerage (KIS Open API). The adapter
encapsulates base URLs and request shapes and maps transport problems to
shared errors. It does not retry.
"""

from .kis_client import KisClient

__all__ = [
    "KisClient",
]
