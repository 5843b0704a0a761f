"""
KIS Open API client for the quote proxy.
"""

from typing import Any, Dict, Optional

import httpx

from shared.errors import TransportFailure
from shared.logging import get_logger


TOKEN_PATH = "/oauth2/tokenP"


class KisClient:
    """Thin HTTP client for the brokerage token and quotation endpoints.

    The client does not interpret HTTP status codes: the brokerage reports
    failures inside the JSON body (``rt_cd``/``msg1``), so every response body
    is decoded and handed back to the caller. Network failures and bodies that
    are not JSON objects raise :class:`TransportFailure`.
    """

    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self.transport = transport
        self.logger = get_logger("proxy.kis_client")

    async def issue_token(self, app_key: str, app_secret: str) -> Dict[str, Any]:
        """Request a client-credentials access token."""
        body = {
            "grant_type": "client_credentials",
            "appkey": app_key,
            "appsecret": app_secret,
        }

        async def _request(client: httpx.AsyncClient) -> httpx.Response:
            return await client.post(
                f"{self.base_url}{TOKEN_PATH}",
                json=body,
                headers={"content-type": "application/json"},
            )

        return await self._send(TOKEN_PATH, _request)

    async def get(self, path: str, params: Dict[str, str], headers: Dict[str, str]) -> Dict[str, Any]:
        """Issue a quotation GET and return the decoded body."""

        async def _request(client: httpx.AsyncClient) -> httpx.Response:
            return await client.get(f"{self.base_url}{path}", params=params, headers=headers)

        return await self._send(path, _request)

    async def _send(self, path: str, request) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await request(client)
        except httpx.HTTPError as exc:
            self.logger.error("KIS request failed", path=path, error=str(exc))
            raise TransportFailure("kis", str(exc) or type(exc).__name__, details={"path": path}) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            self.logger.error("KIS response is not JSON", path=path, status_code=response.status_code)
            raise TransportFailure("kis", f"Invalid JSON from upstream: {exc}", details={"path": path}) from exc

        if not isinstance(payload, dict):
            raise TransportFailure(
                "kis",
                "Unexpected response shape from upstream",
                details={"path": path, "status_code": response.status_code},
            )

        self.logger.debug("KIS response received", path=path, status_code=response.status_code)
        return payload
