"""
Request bodies accepted by the proxy routes.

Fields use the camelCase names of the browser client. Everything is optional
and loosely typed at the schema level: presence is checked by the routes so
that a missing field yields the error envelope rather than a schema error,
and numeric identifiers are forwarded as their string form.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from service_proxy.app.auth.token_cache import Credentials


Price = Union[int, float, str]
Identifier = Union[str, int]


def _as_text(value: Optional[Identifier]) -> str:
    return "" if value is None else str(value)


class CredentialsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    app_key: Optional[Identifier] = Field(default=None, alias="appKey")
    app_secret: Optional[Identifier] = Field(default=None, alias="appSecret")

    def credentials(self) -> Credentials:
        return Credentials(_as_text(self.app_key), _as_text(self.app_secret))


class LoginRequest(CredentialsRequest):
    pass


class VolumeRankRequest(CredentialsRequest):
    price_min: Optional[Price] = Field(default=None, alias="priceMin")
    price_max: Optional[Price] = Field(default=None, alias="priceMax")


class ChangeRankRequest(VolumeRankRequest):
    # Any truthy value selects gainers
    is_up: Any = Field(default=None, alias="isUp")


class StockRequest(CredentialsRequest):
    stock_code: Optional[Identifier] = Field(default=None, alias="stockCode")
