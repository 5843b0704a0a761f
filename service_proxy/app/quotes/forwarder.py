"""
Generic forwarding routine for brokerage quotation endpoints.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from shared.errors import TransportFailure, UpstreamRejection, ValidationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from service_proxy.app.adapters.kis_client import KisClient
from service_proxy.app.auth.token_cache import Credentials, TokenCache
from service_proxy.app.quotes.endpoints import REJECT_EMPTY, EndpointDescriptor


SUCCESS_CODE = "0"
DEFAULT_REJECT_MESSAGE = "Query failed"


def require(value: Any, message: str) -> None:
    """Presence check shared by every route."""
    if value is None or value == "":
        raise ValidationError(message)


class QueryForwarder:
    """Turns a local query into an upstream call and unwraps the result."""

    def __init__(
        self,
        kis_client: KisClient,
        token_cache: TokenCache,
        clock: Callable[[], datetime],
        *,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.kis_client = kis_client
        self.token_cache = token_cache
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("proxy.forwarder")

    async def forward(
        self,
        endpoint: EndpointDescriptor,
        credentials: Credentials,
        fields: Mapping[str, Any],
    ) -> Any:
        """Run one quotation and return the selected payload.

        Raises ValidationError for missing required fields, AuthFailure when
        no token can be issued, UpstreamRejection for a non-success result
        code (unless the endpoint tolerates it as empty data) and
        TransportFailure for network or decoding problems.
        """
        for name, message in endpoint.required_fields:
            require(fields.get(name), message)

        token = await self.token_cache.get_access_token(credentials.app_key, credentials.app_secret)

        today = self.clock().astimezone(timezone.utc).date()
        params = endpoint.build_params(fields, today)
        headers = self._headers(endpoint, credentials, token)

        try:
            if self.metrics is not None:
                with self.metrics.time_operation("upstream_request_duration_seconds", endpoint=endpoint.name):
                    payload = await self.kis_client.get(endpoint.path, params, headers)
            else:
                payload = await self.kis_client.get(endpoint.path, params, headers)
        except TransportFailure:
            self._count(endpoint, "transport_error")
            raise

        if payload.get("rt_cd") == SUCCESS_CODE:
            self._count(endpoint, "ok")
            data = payload.get(endpoint.output_field)
            return data if data is not None else endpoint.empty()

        message = payload.get("msg1") or DEFAULT_REJECT_MESSAGE
        self.logger.info(
            "Upstream rejected query",
            endpoint=endpoint.name,
            rt_cd=payload.get("rt_cd"),
            msg_cd=payload.get("msg_cd"),
            message=message,
        )

        if endpoint.on_reject == REJECT_EMPTY:
            self._count(endpoint, "empty")
            return endpoint.empty()

        self._count(endpoint, "rejected")
        raise UpstreamRejection(message, details={"endpoint": endpoint.name, "rt_cd": payload.get("rt_cd")})

    @staticmethod
    def _headers(endpoint: EndpointDescriptor, credentials: Credentials, token: str) -> Dict[str, str]:
        headers = {
            "content-type": "application/json; charset=utf-8",
            "authorization": f"Bearer {token}",
            "appkey": credentials.app_key,
            "appsecret": credentials.app_secret,
            "tr_id": endpoint.tr_id,
        }
        if endpoint.customer_type:
            headers["custtype"] = endpoint.customer_type
        return headers

    def _count(self, endpoint: EndpointDescriptor, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter("upstream_requests_total", endpoint=endpoint.name, outcome=outcome)
