from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from config import config

from .market_data_types import (
    HistoricalPrice,
    MarketDataError,
    MarketDataGateway,
    ReferencePrice,
    ReferencePrices,
)

logger = logging.getLogger(__name__)

GASOLINE_SYMBOL = "RB=F"
HEATING_OIL_SYMBOL = "HO=F"
USD_MXN_SYMBOL = "USDMXN=X"

# The chart endpoint rejects requests without a browser-like agent.
_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class YahooFinanceAPIError(MarketDataError):
    pass


class _YahooFinanceClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 1,
    ) -> None:
        self.base_url = (base_url or config().yahoo_finance_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config().http_timeout_seconds
        self._session = session or requests.Session()

        retry = Retry(
            total=retry_attempts,
            backoff_factor=retry_backoff_seconds,
            status_forcelist={429},
            allowed_methods={"GET"},
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def get_chart(self, *, symbol: str, interval: str = "1d", range_: str = "30d") -> ReferencePrice:
        if not symbol:
            raise ValueError("symbol must be provided")

        payload = self._request("GET", f"/v8/finance/chart/{symbol}", params={"interval": interval, "range": range_})
        chart = payload.get("chart")
        results = chart.get("result") if isinstance(chart, dict) else None
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            raise YahooFinanceAPIError(f"Invalid response for {symbol}", payload=payload)
        return self._parse_result(symbol, results[0])

    def _request(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                timeout=self.timeout,
                headers={"User-Agent": _USER_AGENT},
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            resp = exc.response
            message, payload_err = self._extract_error(resp)
            status_code = getattr(resp, "status_code", None)
            raise YahooFinanceAPIError(message, status_code=status_code, payload=payload_err) from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise YahooFinanceAPIError("Yahoo Finance request failed", status_code=status_code) from exc

        try:
            payload: dict[str, Any] = response.json()
        except ValueError as exc:
            raise YahooFinanceAPIError("Yahoo Finance returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload, dict):
            raise YahooFinanceAPIError("Yahoo Finance returned unexpected payload type", payload=payload)

        chart = payload.get("chart")
        err = chart.get("error") if isinstance(chart, dict) else None
        if isinstance(err, dict) and err.get("description"):
            raise YahooFinanceAPIError(err["description"], status_code=response.status_code, payload=payload)

        return payload

    def _parse_result(self, symbol: str, result: dict[str, Any]) -> ReferencePrice:
        meta = result.get("meta") or {}
        timestamps = result.get("timestamp") or []
        quotes = (result.get("indicators") or {}).get("quote") or [{}]
        closes = quotes[0].get("close") or []

        historical = tuple(
            HistoricalPrice(date=datetime.fromtimestamp(int(ts), tz=timezone.utc), price=self._to_decimal(close))
            for ts, close in zip(timestamps, closes)
            if close is not None
        )

        market_time = meta.get("regularMarketTime")
        timestamp = (
            datetime.fromtimestamp(int(market_time), tz=timezone.utc)
            if market_time is not None
            else datetime.now(timezone.utc)
        )
        return ReferencePrice(
            symbol=symbol,
            price=self._to_decimal(meta.get("regularMarketPrice") or 0),
            change=self._to_decimal(meta.get("regularMarketChange") or 0),
            change_percent=self._to_decimal(meta.get("regularMarketChangePercent") or 0),
            timestamp=timestamp,
            currency=str(meta.get("currency") or "USD"),
            historical=historical,
        )

    @staticmethod
    def _to_decimal(value: Any) -> Decimal:
        return Decimal(str(value))

    @staticmethod
    def _extract_error(response: Response | None) -> tuple[str, Any | None]:
        message = "Yahoo Finance request failed"
        payload: Any | None = None
        if response is None:
            return message, payload

        try:
            payload = response.json()
            chart = payload.get("chart") if isinstance(payload, dict) else None
            err = chart.get("error") if isinstance(chart, dict) else None
            if isinstance(err, dict) and err.get("description"):
                message = err["description"]
        except ValueError:
            payload = response.text
        return message, payload


class YahooFinanceMarketData(MarketDataGateway):
    """Reference prices for gasoline, heating oil and the USD/MXN rate."""

    def __init__(self, *, client: _YahooFinanceClient | None = None) -> None:
        self.client = client or _YahooFinanceClient()

    def fetch_reference_prices(self) -> ReferencePrices:
        prices = ReferencePrices(
            gasoline=self.client.get_chart(symbol=GASOLINE_SYMBOL),
            heating_oil=self.client.get_chart(symbol=HEATING_OIL_SYMBOL),
            usd_mxn=self.client.get_chart(symbol=USD_MXN_SYMBOL),
        )
        logger.debug("Fetched reference prices, USD/MXN=%s", prices.usd_mxn.price)
        return prices


__all__ = ["YahooFinanceAPIError", "YahooFinanceMarketData"]
