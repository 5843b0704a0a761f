"""
Mock KIS Open API server providing the token and quotation endpoints.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List, Optional
from fastapi import FastAPI, Header, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from shared.logging import get_logger


class TokenRequest(BaseModel):
    grant_type: str
    appkey: str
    appsecret: str


class MockKisServer:
    """Mock KIS Open API implementation."""

    def __init__(self, port: int = 9443, token_lifetime: int = 86400):
        self.port = port
        self.token_lifetime = token_lifetime
        self.logger = get_logger("mock.kis")
        self.app = FastAPI(title="Mock KIS Open API", version="1.0.0")

        # Registered accounts: appkey -> appsecret
        self.accounts = {
            "PSmockAppKey0001": "mock-secret-0001",
            "PSmockAppKey0002": "mock-secret-0002",
        }

        # Issued tokens: token -> appkey
        self.tokens: Dict[str, str] = {}
        self.token_requests = 0

        self.stocks = {
            "005930": {"hts_kor_isnm": "삼성전자", "stck_prpr": "71500", "prdy_ctrt": "1.28", "acml_vol": "15234567"},
            "000660": {"hts_kor_isnm": "SK하이닉스", "stck_prpr": "182300", "prdy_ctrt": "-0.87", "acml_vol": "3120456"},
            "035420": {"hts_kor_isnm": "NAVER", "stck_prpr": "188900", "prdy_ctrt": "2.55", "acml_vol": "812345"},
            "053950": {"hts_kor_isnm": "경남제약", "stck_prpr": "845", "prdy_ctrt": "29.80", "acml_vol": "9876543"},
            "900110": {"hts_kor_isnm": "이스트아시아홀딩스", "stck_prpr": "152", "prdy_ctrt": "-14.12", "acml_vol": "24567890"},
        }

        self._setup_routes()

    def _setup_routes(self):
        """Set up mock KIS routes."""

        @self.app.post("/oauth2/tokenP")
        async def issue_token(body: TokenRequest):
            """Client-credentials token endpoint."""
            self.token_requests += 1
            if body.grant_type != "client_credentials":
                return JSONResponse(
                    status_code=400,
                    content={"error_description": "grant_type이 올바르지 않습니다.", "error_code": "EGW00002"},
                )
            if self.accounts.get(body.appkey) != body.appsecret:
                self.logger.warning("Mock token rejected", appkey=body.appkey[-4:])
                return JSONResponse(
                    status_code=403,
                    content={"error_description": "유효하지 않은 AppKey입니다.", "error_code": "EGW00103"},
                )

            token = uuid.uuid4().hex
            self.tokens[token] = body.appkey
            self.logger.info("Mock token issued", appkey=body.appkey[-4:], issued=len(self.tokens))
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.token_lifetime)
            return {
                "access_token": token,
                "access_token_token_expired": expires_at.strftime("%Y-%m-%d %H:%M:%S"),
                "token_type": "Bearer",
                "expires_in": self.token_lifetime,
            }

        @self.app.get("/uapi/domestic-stock/v1/quotations/volume-rank")
        async def volume_rank(
            authorization: Optional[str] = Header(None),
            appkey: Optional[str] = Header(None),
            tr_id: Optional[str] = Header(None, convert_underscores=False),
            price_min: str = Query("0", alias="FID_INPUT_PRICE_1"),
            price_max: str = Query("0", alias="FID_INPUT_PRICE_2"),
        ):
            """Volume ranking."""
            rejection = self._check_request(authorization, appkey, tr_id, "FHPST01710000")
            if rejection:
                return rejection
            rows = self._within_price(price_min, price_max)
            rows.sort(key=lambda row: int(row["acml_vol"]), reverse=True)
            return self._ok(output=rows)

        @self.app.get("/uapi/domestic-stock/v1/quotations/chgrate-rank")
        async def change_rank(
            authorization: Optional[str] = Header(None),
            appkey: Optional[str] = Header(None),
            tr_id: Optional[str] = Header(None, convert_underscores=False),
            division: str = Query("0", alias="FID_DIV_CLS_CODE"),
            price_min: str = Query("0", alias="FID_INPUT_PRICE_1"),
            price_max: str = Query("0", alias="FID_INPUT_PRICE_2"),
        ):
            """Change-rate ranking; division 0 = gainers, 1 = losers."""
            rejection = self._check_request(authorization, appkey, tr_id, "FHPST01700000")
            if rejection:
                return rejection
            rows = self._within_price(price_min, price_max)
            if division == "0":
                rows = [row for row in rows if float(row["prdy_ctrt"]) > 0]
            else:
                rows = [row for row in rows if float(row["prdy_ctrt"]) < 0]
            rows.sort(key=lambda row: float(row["prdy_ctrt"]), reverse=division == "0")
            return self._ok(output=rows)

        @self.app.get("/uapi/domestic-stock/v1/quotations/inquire-daily-itemchartprice")
        async def daily_chart(
            authorization: Optional[str] = Header(None),
            appkey: Optional[str] = Header(None),
            tr_id: Optional[str] = Header(None, convert_underscores=False),
            code: str = Query("", alias="FID_INPUT_ISCD"),
            start: str = Query("", alias="FID_INPUT_DATE_1"),
            end: str = Query("", alias="FID_INPUT_DATE_2"),
        ):
            """Daily candles between two YYYYMMDD dates."""
            rejection = self._check_request(authorization, appkey, tr_id, "FHKST03010100")
            if rejection:
                return rejection
            if code not in self.stocks:
                return self._reject("OPSQ2001", "ERROR INPUT FIELD NOT FOUND [FID_INPUT_ISCD]")
            return self._ok(
                output1={"hts_kor_isnm": self.stocks[code]["hts_kor_isnm"]},
                output2=self._candles(code, start, end),
            )

        @self.app.get("/uapi/domestic-stock/v1/quotations/inquire-price")
        async def inquire_price(
            authorization: Optional[str] = Header(None),
            appkey: Optional[str] = Header(None),
            tr_id: Optional[str] = Header(None, convert_underscores=False),
            code: str = Query("", alias="FID_INPUT_ISCD"),
        ):
            """Current price snapshot."""
            rejection = self._check_request(authorization, appkey, tr_id, "FHKST01010100")
            if rejection:
                return rejection
            if code not in self.stocks:
                return self._reject("OPSQ2001", "ERROR INPUT FIELD NOT FOUND [FID_INPUT_ISCD]")
            stock = self.stocks[code]
            return self._ok(output={
                "stck_shrn_iscd": code,
                "stck_prpr": stock["stck_prpr"],
                "prdy_ctrt": stock["prdy_ctrt"],
                "acml_vol": stock["acml_vol"],
            })

    def _check_request(
        self,
        authorization: Optional[str],
        appkey: Optional[str],
        tr_id: Optional[str],
        expected_tr_id: str,
    ) -> Optional[JSONResponse]:
        """Reject calls with a bad bearer token, app key or transaction id."""
        if not authorization or not authorization.startswith("Bearer "):
            return self._reject("EGW00205", "credentials_type이 유효하지 않습니다.(Bearer)")
        token = authorization[7:]
        if self.tokens.get(token) != appkey:
            return self._reject("EGW00123", "기간이 만료된 token 입니다.")
        if tr_id != expected_tr_id:
            return self._reject("EGW00201", "tr_id가 올바르지 않습니다.")
        return None

    def _within_price(self, price_min: str, price_max: str) -> List[Dict[str, Any]]:
        low = int(price_min or 0)
        high = int(price_max or 0)
        rows = []
        for code, stock in self.stocks.items():
            price = int(stock["stck_prpr"])
            if price >= low and (high == 0 or price <= high):
                rows.append({"mksc_shrn_iscd": code, **stock})
        return rows

    def _candles(self, code: str, start: str, end: str) -> List[Dict[str, Any]]:
        """Deterministic weekday candles, newest first."""
        base = int(self.stocks[code]["stck_prpr"])
        first = datetime.strptime(start, "%Y%m%d").date()
        last = datetime.strptime(end, "%Y%m%d").date()
        candles = []
        day = last
        while day >= first and len(candles) < 100:
            if day.weekday() < 5:
                drift = (day.toordinal() % 7) - 3
                close = max(base + drift * max(base // 100, 1), 1)
                candles.append({
                    "stck_bsop_date": day.strftime("%Y%m%d"),
                    "stck_oprc": str(close - drift),
                    "stck_hgpr": str(close + abs(drift)),
                    "stck_lwpr": str(close - abs(drift)),
                    "stck_clpr": str(close),
                    "acml_vol": str(100000 + drift * 1000),
                })
            day -= timedelta(days=1)
        return candles

    @staticmethod
    def _ok(**outputs: Any) -> Dict[str, Any]:
        return {"rt_cd": "0", "msg_cd": "MCA00000", "msg1": "정상처리 되었습니다.", **outputs}

    @staticmethod
    def _reject(msg_cd: str, msg1: str) -> JSONResponse:
        return JSONResponse(status_code=500, content={"rt_cd": "1", "msg_cd": msg_cd, "msg1": msg1})


def create_app():
    """Create mock KIS application."""
    server = MockKisServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=9443)
