from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from config import config


class ExchangeRateAPIError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


@dataclass(frozen=True)
class LatestRate:
    base: str
    quote: str
    rate: Decimal
    updated_at: datetime


class _ExchangeRateClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 1,
    ) -> None:
        self.base_url = (base_url or config().exchange_rate_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config().http_timeout_seconds
        self._session = session or requests.Session()

        retries = Retry(
            total=retry_attempts,
            backoff_factor=retry_backoff_seconds,
            status_forcelist=[429],
            allowed_methods=frozenset({"GET"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retries)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def get_latest(self, *, base: str) -> dict[str, Any]:
        url = f"{self.base_url}/v4/latest/{base.upper()}"
        try:
            response = self._session.request("GET", url, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status_code = getattr(exc.response, "status_code", None)
            raise ExchangeRateAPIError("Exchange rate request failed", status_code=status_code) from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise ExchangeRateAPIError("Exchange rate request failed", status_code=status_code) from exc

        try:
            payload_raw = response.json()
        except ValueError as exc:
            raise ExchangeRateAPIError("Exchange rate API returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload_raw, dict):
            raise ExchangeRateAPIError("Exchange rate API returned unexpected payload type", payload=payload_raw)
        return payload_raw


class ExchangeRateSource:
    """Live MXN per USD rate used to fill the calculator's exchange rate field."""

    def __init__(self, *, client: _ExchangeRateClient | None = None) -> None:
        self.client = client or _ExchangeRateClient()

    def fetch_rate(self, base: str = "USD", quote: str = "MXN") -> LatestRate:
        payload = self.client.get_latest(base=base)
        rates = payload.get("rates")
        if not isinstance(rates, dict):
            raise ExchangeRateAPIError("Exchange rate payload missing rates", payload=payload)

        quote_code = quote.upper()
        raw_rate = rates.get(quote_code)
        if raw_rate is None:
            raise ExchangeRateAPIError(f"Currency {quote_code} not available", payload=payload)

        updated_raw = payload.get("time_last_updated")
        updated_at = (
            datetime.fromtimestamp(int(updated_raw), tz=timezone.utc)
            if updated_raw is not None
            else datetime.now(timezone.utc)
        )
        return LatestRate(
            base=str(payload.get("base") or base).upper(),
            quote=quote_code,
            rate=Decimal(str(raw_rate)),
            updated_at=updated_at,
        )


__all__ = ["ExchangeRateAPIError", "ExchangeRateSource", "LatestRate"]
