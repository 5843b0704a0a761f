"""
KIS quote proxy service.

Forwards stock-market queries from the browser client to the KIS Open API,
injecting the caller's credentials and a cached access token, and reshapes
the answers into ``{"success": true, ...}`` / ``{"error": ...}`` envelopes.
"""

from typing import Any, Dict, Optional

from shared.base_service import BaseService, Clock
from shared.config import ServiceConfig

from service_proxy.app.adapters import KisClient
from service_proxy.app.auth import TokenCache
from service_proxy.app.quotes import CHANGE_RANK, DAILY_CHART, PRICE, VOLUME_RANK, EndpointDescriptor, QueryForwarder
from service_proxy.app.quotes.forwarder import require
from service_proxy.app.schemas import (
    ChangeRankRequest,
    CredentialsRequest,
    LoginRequest,
    StockRequest,
    VolumeRankRequest,
)


CREDENTIALS_REQUIRED = "appKey and appSecret are required."
LOGIN_SUCCESS = "Login successful"


class ProxyService(BaseService):
    """Quote proxy service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        kis_client: Optional[KisClient] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__("proxy", config=config, clock=clock)
        self.kis_client = kis_client or KisClient(self.config.kis_base_url)
        self.token_cache = TokenCache(self.kis_client.issue_token, self.clock, metrics=self.metrics)
        self.forwarder = QueryForwarder(self.kis_client, self.token_cache, self.clock, metrics=self.metrics)

        self._setup_proxy_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.proxy_service = self

    async def _forward(self, endpoint: EndpointDescriptor, body: CredentialsRequest) -> Dict[str, Any]:
        require(body.app_key, CREDENTIALS_REQUIRED)
        require(body.app_secret, CREDENTIALS_REQUIRED)

        data = await self.forwarder.forward(endpoint, body.credentials(), body.model_dump())
        return {"success": True, "data": data}

    def _setup_proxy_routes(self):
        """Set up the /api routes."""

        @self.app.post("/api/login")
        async def login(body: LoginRequest):
            """Validate credentials by obtaining (or reusing) an access token."""
            require(body.app_key, CREDENTIALS_REQUIRED)
            require(body.app_secret, CREDENTIALS_REQUIRED)

            credentials = body.credentials()
            await self.token_cache.get_access_token(credentials.app_key, credentials.app_secret)
            return {"success": True, "message": LOGIN_SUCCESS}

        @self.app.post("/api/volume-rank")
        async def volume_rank(body: VolumeRankRequest):
            """Top stocks by traded volume within a price band."""
            return await self._forward(VOLUME_RANK, body)

        @self.app.post("/api/change-rank")
        async def change_rank(body: ChangeRankRequest):
            """Top gainers (isUp) or losers within a price band."""
            return await self._forward(CHANGE_RANK, body)

        @self.app.post("/api/daily-chart")
        async def daily_chart(body: StockRequest):
            """Daily candles for the trailing three months."""
            return await self._forward(DAILY_CHART, body)

        @self.app.post("/api/price")
        async def price(body: StockRequest):
            """Current price snapshot for one stock."""
            return await self._forward(PRICE, body)


def create_app(**kwargs):
    """Create FastAPI application."""
    service = ProxyService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = ProxyService()
    service.run()
