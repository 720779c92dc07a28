from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol


@dataclass(frozen=True)
class HistoricalPrice:
    date: datetime
    price: Decimal


@dataclass(frozen=True)
class PriceStats:
    high: Decimal
    low: Decimal
    average: Decimal


@dataclass(frozen=True)
class ReferencePrice:
    """Latest quote of one instrument plus its recent daily closes."""

    symbol: str
    price: Decimal
    change: Decimal
    change_percent: Decimal
    timestamp: datetime
    currency: str
    historical: tuple[HistoricalPrice, ...]

    def stats(self) -> PriceStats | None:
        if not self.historical:
            return None
        prices = [point.price for point in self.historical]
        return PriceStats(
            high=max(prices),
            low=min(prices),
            average=sum(prices, start=Decimal(0)) / len(prices),
        )


@dataclass(frozen=True)
class ReferencePrices:
    gasoline: ReferencePrice
    heating_oil: ReferencePrice
    usd_mxn: ReferencePrice


class MarketDataError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class MarketDataGateway(Protocol):
    def fetch_reference_prices(self) -> ReferencePrices: ...


__all__ = [
    "HistoricalPrice",
    "MarketDataError",
    "MarketDataGateway",
    "PriceStats",
    "ReferencePrice",
    "ReferencePrices",
]
