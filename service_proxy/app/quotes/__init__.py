"""
Quotation forwarding for the proxy service.
"""

from .endpoints import (
    CHANGE_RANK,
    DAILY_CHART,
    PRICE,
    VOLUME_RANK,
    EndpointDescriptor,
)
from .forwarder import QueryForwarder

__all__ = [
    "CHANGE_RANK",
    "DAILY_CHART",
    "PRICE",
    "VOLUME_RANK",
    "EndpointDescriptor",
    "QueryForwarder",
]
