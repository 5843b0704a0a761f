"""
Tests for the endpoint descriptors and the generic forwarder.
"""

from datetime import date, datetime, timezone

import pytest

from service_proxy.app.auth.token_cache import Credentials, TokenCache
from service_proxy.app.quotes import CHANGE_RANK, DAILY_CHART, PRICE, VOLUME_RANK, QueryForwarder
from service_proxy.app.quotes.endpoints import months_before
from shared.errors import AuthFailure, TransportFailure, UpstreamRejection, ValidationError
from shared.metrics import MetricsCollector
from shared.test_helpers import (
    FakeClock,
    create_mock_kis_client,
    create_quote_rejection,
    create_quote_success,
    create_ranking_rows,
)


CREDENTIALS = Credentials("key-a", "secret-a")


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 31, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def kis_client():
    return create_mock_kis_client()


@pytest.fixture
def metrics():
    return MetricsCollector("proxy")


@pytest.fixture
def forwarder(kis_client, clock, metrics):
    cache = TokenCache(kis_client.issue_token, clock, metrics=metrics)
    return QueryForwarder(kis_client, cache, clock, metrics=metrics)


def _sent(kis_client):
    path, params, headers = kis_client.get.await_args.args
    return path, params, headers


class TestEndpointParams:
    """Query string construction per endpoint."""

    def test_volume_rank_defaults(self):
        params = VOLUME_RANK.build_params({}, date(2024, 5, 31))

        assert params == {
            "FID_COND_MRKT_DIV_CODE": "J",
            "FID_COND_SCR_DIV_CODE": "20171",
            "FID_INPUT_ISCD": "0000",
            "FID_DIV_CLS_CODE": "0",
            "FID_BLNG_CLS_CODE": "0",
            "FID_TRGT_CLS_CODE": "111111111",
            "FID_TRGT_EXLS_CLS_CODE": "000000",
            "FID_INPUT_PRICE_1": "10",
            "FID_INPUT_PRICE_2": "999",
            "FID_VOL_CNT": "100000",
            "FID_INPUT_DATE_1": "",
        }

    @pytest.mark.parametrize("price_min, price_max", [(None, None), ("", ""), (0, 0)])
    def test_blank_prices_fall_back(self, price_min, price_max):
        params = VOLUME_RANK.build_params({"price_min": price_min, "price_max": price_max}, date(2024, 5, 31))

        assert params["FID_INPUT_PRICE_1"] == "10"
        assert params["FID_INPUT_PRICE_2"] == "999"

    def test_supplied_prices_are_stringified(self):
        params = VOLUME_RANK.build_params({"price_min": 1000, "price_max": "5000.0"}, date(2024, 5, 31))

        assert params["FID_INPUT_PRICE_1"] == "1000"
        assert params["FID_INPUT_PRICE_2"] == "5000.0"

    def test_integral_float_price(self):
        params = VOLUME_RANK.build_params({"price_min": 1500.0}, date(2024, 5, 31))

        assert params["FID_INPUT_PRICE_1"] == "1500"

    def test_change_rank_gainers_and_losers(self):
        gainers = CHANGE_RANK.build_params({"is_up": True}, date(2024, 5, 31))
        losers = CHANGE_RANK.build_params({"is_up": False}, date(2024, 5, 31))
        unspecified = CHANGE_RANK.build_params({}, date(2024, 5, 31))

        assert gainers["FID_DIV_CLS_CODE"] == "0"
        assert losers["FID_DIV_CLS_CODE"] == "1"
        assert unspecified["FID_DIV_CLS_CODE"] == "1"
        assert gainers["FID_COND_SCR_DIV_CODE"] == "20170"
        assert gainers["FID_VOL_CNT"] == "10000"

    def test_daily_chart_window(self):
        params = DAILY_CHART.build_params({"stock_code": "005930"}, date(2024, 5, 15))

        assert params == {
            "FID_COND_MRKT_DIV_CODE": "J",
            "FID_INPUT_ISCD": "005930",
            "FID_INPUT_DATE_1": "20240215",
            "FID_INPUT_DATE_2": "20240515",
            "FID_PERIOD_DIV_CODE": "D",
            "FID_ORG_ADJ_PRC": "0",
        }

    def test_price_params(self):
        assert PRICE.build_params({"stock_code": "000660"}, date(2024, 5, 31)) == {
            "FID_COND_MRKT_DIV_CODE": "J",
            "FID_INPUT_ISCD": "000660",
        }

    @pytest.mark.parametrize("day, expected", [
        (date(2024, 5, 31), date(2024, 2, 29)),
        (date(2023, 5, 31), date(2023, 2, 28)),
        (date(2024, 2, 10), date(2023, 11, 10)),
        (date(2024, 1, 31), date(2023, 10, 31)),
    ])
    def test_months_before_clamps(self, day, expected):
        assert months_before(day, 3) == expected


class TestQueryForwarder:
    """Test cases for QueryForwarder."""

    @pytest.mark.asyncio
    async def test_success_returns_output(self, forwarder, kis_client):
        data = await forwarder.forward(VOLUME_RANK, CREDENTIALS, {})

        assert data == create_ranking_rows()

    @pytest.mark.asyncio
    async def test_ranking_headers(self, forwarder, kis_client):
        await forwarder.forward(VOLUME_RANK, CREDENTIALS, {})

        path, _params, headers = _sent(kis_client)
        assert path == "/uapi/domestic-stock/v1/quotations/volume-rank"
        assert headers == {
            "content-type": "application/json; charset=utf-8",
            "authorization": "Bearer mock-access-token",
            "appkey": "key-a",
            "appsecret": "secret-a",
            "tr_id": "FHPST01710000",
            "custtype": "P",
        }

    @pytest.mark.asyncio
    async def test_price_headers_have_no_customer_type(self, forwarder, kis_client):
        kis_client.get.return_value = create_quote_success("output", {"stck_prpr": "71500"})

        data = await forwarder.forward(PRICE, CREDENTIALS, {"stock_code": "005930"})

        _path, _params, headers = _sent(kis_client)
        assert data == {"stck_prpr": "71500"}
        assert headers["tr_id"] == "FHKST01010100"
        assert "custtype" not in headers

    @pytest.mark.asyncio
    async def test_chart_reads_output2_and_uses_clock(self, forwarder, kis_client):
        candles = [{"stck_bsop_date": "20240531", "stck_clpr": "71500"}]
        kis_client.get.return_value = create_quote_success("output2", candles)

        data = await forwarder.forward(DAILY_CHART, CREDENTIALS, {"stock_code": "005930"})

        _path, params, headers = _sent(kis_client)
        assert data == candles
        assert params["FID_INPUT_DATE_1"] == "20240229"
        assert params["FID_INPUT_DATE_2"] == "20240531"
        assert headers["tr_id"] == "FHKST03010100"

    @pytest.mark.asyncio
    async def test_missing_output_yields_empty(self, forwarder, kis_client):
        kis_client.get.return_value = {"rt_cd": "0"}

        assert await forwarder.forward(CHANGE_RANK, CREDENTIALS, {}) == []
        assert await forwarder.forward(PRICE, CREDENTIALS, {"stock_code": "005930"}) == {}

    @pytest.mark.asyncio
    async def test_rejection_raises_with_upstream_message(self, forwarder, kis_client, metrics):
        kis_client.get.return_value = create_quote_rejection("err")

        with pytest.raises(UpstreamRejection) as excinfo:
            await forwarder.forward(VOLUME_RANK, CREDENTIALS, {})

        assert excinfo.value.message == "err"
        assert excinfo.value.status_code == 400
        assert metrics.registry.get_sample_value(
            "upstream_requests_total", {"endpoint": "volume-rank", "outcome": "rejected"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_rejection_without_message(self, forwarder, kis_client):
        kis_client.get.return_value = {"rt_cd": "7"}

        with pytest.raises(UpstreamRejection) as excinfo:
            await forwarder.forward(PRICE, CREDENTIALS, {"stock_code": "005930"})

        assert excinfo.value.message == "Query failed"

    @pytest.mark.asyncio
    async def test_chart_rejection_is_empty_success(self, forwarder, kis_client, metrics):
        kis_client.get.return_value = create_quote_rejection("no data")

        data = await forwarder.forward(DAILY_CHART, CREDENTIALS, {"stock_code": "005930"})

        assert data == []
        assert metrics.registry.get_sample_value(
            "upstream_requests_total", {"endpoint": "daily-chart", "outcome": "empty"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_missing_stock_code(self, forwarder, kis_client):
        with pytest.raises(ValidationError):
            await forwarder.forward(PRICE, CREDENTIALS, {"stock_code": ""})

        kis_client.issue_token.assert_not_awaited()
        kis_client.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_auth_failure_skips_quotation(self, forwarder, kis_client):
        kis_client.issue_token.return_value = {"msg1": "bad key"}

        with pytest.raises(AuthFailure):
            await forwarder.forward(VOLUME_RANK, CREDENTIALS, {})

        kis_client.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(self, forwarder, kis_client, metrics):
        kis_client.get.side_effect = TransportFailure("kis", "connection reset")

        with pytest.raises(TransportFailure):
            await forwarder.forward(CHANGE_RANK, CREDENTIALS, {})

        assert metrics.registry.get_sample_value(
            "upstream_requests_total", {"endpoint": "change-rank", "outcome": "transport_error"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_token_reused_across_endpoints(self, forwarder, kis_client):
        await forwarder.forward(VOLUME_RANK, CREDENTIALS, {})
        await forwarder.forward(CHANGE_RANK, CREDENTIALS, {"is_up": True})

        assert kis_client.issue_token.await_count == 1
        assert kis_client.get.await_count == 2
