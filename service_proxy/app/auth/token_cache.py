"""
Single-slot access token cache for the brokerage API.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional

from shared.errors import AuthFailure
from shared.logging import get_logger, mask_key
from shared.metrics import MetricsCollector


TokenIssuer = Callable[[str, str], Awaitable[Dict[str, Any]]]

EXPIRY_SAFETY_MARGIN = timedelta(minutes=1)


@dataclass(frozen=True)
class Credentials:
    """App key / app secret pair identifying one brokerage account."""

    app_key: str
    app_secret: str


@dataclass(frozen=True)
class TokenRecord:
    """An issued access token and the credentials it belongs to."""

    access_token: str
    expires_at: datetime
    owner: Credentials

    def is_valid_for(self, credentials: Credentials, now: datetime) -> bool:
        return now < self.expires_at and self.owner == credentials


class TokenCache:
    """Holds at most one access token and decides reuse vs reissue.

    A new binding replaces the previous one outright, so alternating between
    two accounts reissues a token on every switch. The read-check-write is not
    locked: concurrent requests with different credentials may overwrite each
    other's record.
    """

    def __init__(
        self,
        issue_token: TokenIssuer,
        clock: Callable[[], datetime],
        *,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._issue_token = issue_token
        self._clock = clock
        self._metrics = metrics
        self._record: Optional[TokenRecord] = None
        self.logger = get_logger("proxy.token_cache")

    @property
    def record(self) -> Optional[TokenRecord]:
        return self._record

    async def get_access_token(self, app_key: str, app_secret: str) -> str:
        """Return a valid token for the pair, issuing a new one if needed.

        Raises:
            AuthFailure: the issuer answered without an ``access_token``.
            TransportFailure: the issuer could not be reached.
        """
        credentials = Credentials(app_key, app_secret)
        record = self._record
        if record is not None and record.is_valid_for(credentials, self._clock()):
            self._count("hit")
            return record.access_token

        issued_at = self._clock()
        response = await self._issue_token(app_key, app_secret)

        access_token = response.get("access_token")
        if not access_token:
            message = response.get("msg1") or response.get("error_description") or "Token issuance failed"
            self._count("failed")
            self.logger.warning("Token issuance rejected", app_key=mask_key(app_key), message=message)
            raise AuthFailure(message, details={"error_code": response.get("error_code")})

        lifetime = timedelta(seconds=_lifetime_seconds(response.get("expires_in")))
        self._record = TokenRecord(
            access_token=access_token,
            expires_at=issued_at + lifetime - EXPIRY_SAFETY_MARGIN,
            owner=credentials,
        )
        self._count("issued")
        self.logger.info(
            "Access token issued",
            app_key=mask_key(app_key),
            expires_at=self._record.expires_at.isoformat(),
        )
        return access_token

    def _count(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.increment_counter("token_requests_total", outcome=outcome)


def _lifetime_seconds(value: Any) -> float:
    # A missing or garbled lifetime yields a token that is never reused.
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(seconds) or seconds < 0:
        return 0.0
    return seconds
