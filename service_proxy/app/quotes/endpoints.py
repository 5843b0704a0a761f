"""
Declarative descriptors for the brokerage quotation endpoints.

Each descriptor carries everything that differs between endpoints: the
upstream path, the transaction-type identifier, how query parameters are
built from caller fields, which payload field holds the data, and what to do
when the upstream reports a non-success result code.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
import calendar


DEFAULT_PRICE_MIN = "10"
DEFAULT_PRICE_MAX = "999"
CHART_WINDOW_MONTHS = 3

REJECT_ERROR = "error"
REJECT_EMPTY = "empty"

ParamBuilder = Callable[[Mapping[str, Any], date], Dict[str, str]]


@dataclass(frozen=True)
class EndpointDescriptor:
    """One upstream quotation variant."""

    name: str
    path: str
    tr_id: str
    build_params: ParamBuilder
    output_field: str = "output"
    on_reject: str = REJECT_ERROR
    empty: Callable[[], Any] = list
    customer_type: Optional[str] = None
    required_fields: Tuple[Tuple[str, str], ...] = ()


def _or_default(value: Any, default: str) -> str:
    """Blank, zero or missing values fall back to the default; numbers become strings."""
    if value is None or value == "":
        return default
    if isinstance(value, (int, float)) and value == 0:
        return default
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def months_before(day: date, months: int) -> date:
    """Shift a date back by whole months, clamping to the month's last day."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    # May 31 -> Feb 29, never rolled over into March
    return date(year, month, min(day.day, last_day))


def _ranking_params(fields: Mapping[str, Any], screen_code: str, division: str, min_volume: str) -> Dict[str, str]:
    return {
        "FID_COND_MRKT_DIV_CODE": "J",
        "FID_COND_SCR_DIV_CODE": screen_code,
        "FID_INPUT_ISCD": "0000",
        "FID_DIV_CLS_CODE": division,
        "FID_BLNG_CLS_CODE": "0",
        "FID_TRGT_CLS_CODE": "111111111",
        "FID_TRGT_EXLS_CLS_CODE": "000000",
        "FID_INPUT_PRICE_1": _or_default(fields.get("price_min"), DEFAULT_PRICE_MIN),
        "FID_INPUT_PRICE_2": _or_default(fields.get("price_max"), DEFAULT_PRICE_MAX),
        "FID_VOL_CNT": min_volume,
        "FID_INPUT_DATE_1": "",
    }


def volume_rank_params(fields: Mapping[str, Any], today: date) -> Dict[str, str]:
    return _ranking_params(fields, screen_code="20171", division="0", min_volume="100000")


def change_rank_params(fields: Mapping[str, Any], today: date) -> Dict[str, str]:
    # 0 = top gainers, 1 = top losers
    division = "0" if fields.get("is_up") else "1"
    return _ranking_params(fields, screen_code="20170", division=division, min_volume="10000")


def daily_chart_params(fields: Mapping[str, Any], today: date) -> Dict[str, str]:
    start = months_before(today, CHART_WINDOW_MONTHS)
    return {
        "FID_COND_MRKT_DIV_CODE": "J",
        "FID_INPUT_ISCD": str(fields["stock_code"]),
        "FID_INPUT_DATE_1": start.strftime("%Y%m%d"),
        "FID_INPUT_DATE_2": today.strftime("%Y%m%d"),
        "FID_PERIOD_DIV_CODE": "D",
        "FID_ORG_ADJ_PRC": "0",
    }


def price_params(fields: Mapping[str, Any], today: date) -> Dict[str, str]:
    return {
        "FID_COND_MRKT_DIV_CODE": "J",
        "FID_INPUT_ISCD": str(fields["stock_code"]),
    }


VOLUME_RANK = EndpointDescriptor(
    name="volume-rank",
    path="/uapi/domestic-stock/v1/quotations/volume-rank",
    tr_id="FHPST01710000",
    build_params=volume_rank_params,
    customer_type="P",
)

CHANGE_RANK = EndpointDescriptor(
    name="change-rank",
    path="/uapi/domestic-stock/v1/quotations/chgrate-rank",
    tr_id="FHPST01700000",
    build_params=change_rank_params,
    customer_type="P",
)

DAILY_CHART = EndpointDescriptor(
    name="daily-chart",
    path="/uapi/domestic-stock/v1/quotations/inquire-daily-itemchartprice",
    tr_id="FHKST03010100",
    build_params=daily_chart_params,
    output_field="output2",
    on_reject=REJECT_EMPTY,
    required_fields=(("stock_code", "stockCode is required."),),
)

PRICE = EndpointDescriptor(
    name="price",
    path="/uapi/domestic-stock/v1/quotations/inquire-price",
    tr_id="FHKST01010100",
    build_params=price_params,
    empty=dict,
    required_fields=(("stock_code", "stockCode is required."),),
)

