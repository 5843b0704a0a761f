"""
Shared error handling for the KIS quote proxy.

Every failure a route can produce is a ``ProxyError`` subclass carrying the
HTTP status it maps to. The service base registers a handler that renders
them as ``{"error": message}``.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: str


class ProxyError(Exception):
    """Base exception for proxy services."""

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error envelope."""
        return ErrorResponse(error=self.message)


class ValidationError(ProxyError):
    """A required input field is missing or empty."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class AuthFailure(ProxyError):
    """The brokerage refused to issue an access token."""

    status_code = 401

    def __init__(self, message: str = "Token issuance failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTH_FAILURE", message, details)


class UpstreamRejection(ProxyError):
    """The brokerage answered with a non-success result code."""

    status_code = 400

    def __init__(self, message: str = "Query failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_REJECTION", message, details)


class TransportFailure(ProxyError):
    """Network or decoding failure talking to the brokerage."""

    status_code = 500

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_FAILURE", message, {"service": service, **(details or {})})
