"""
Brokerage token handling for the proxy service.
"""

from .token_cache import Credentials, TokenCache, TokenRecord

__all__ = [
    "Credentials",
    "TokenCache",
    "TokenRecord",
]
