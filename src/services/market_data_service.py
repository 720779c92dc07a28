from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from config import config

from .market_data_types import MarketDataError, MarketDataGateway, ReferencePrices

logger = logging.getLogger(__name__)

FETCH_ERROR_MESSAGE = "Failed to fetch market data"


@dataclass(frozen=True)
class MarketDataSnapshot:
    prices: ReferencePrices | None
    error: str | None
    refreshed_at: datetime | None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MarketDataMonitor:
    """Polls reference prices for display.

    Holds its own state only: a failed refresh keeps the last good prices and
    records an error message, and nothing here reads or writes calculator state.
    """

    def __init__(
        self,
        gateway: MarketDataGateway,
        *,
        refresh_interval: timedelta | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.gateway = gateway
        self.refresh_interval = refresh_interval or timedelta(seconds=config().market_data_refresh_seconds)
        self._clock = clock
        self._prices: ReferencePrices | None = None
        self._error: str | None = None
        self._refreshed_at: datetime | None = None
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> MarketDataSnapshot:
        return MarketDataSnapshot(prices=self._prices, error=self._error, refreshed_at=self._refreshed_at)

    def is_due(self) -> bool:
        if self._refreshed_at is None:
            return True
        return self._clock() - self._refreshed_at >= self.refresh_interval

    def refresh(self) -> MarketDataSnapshot:
        with self._lock:
            return self._refresh()

    def _refresh(self) -> MarketDataSnapshot:
        now = self._clock()
        try:
            self._prices = self.gateway.fetch_reference_prices()
            self._error = None
        except MarketDataError as exc:
            logger.warning("Market data refresh failed: %s", exc)
            self._error = f"{FETCH_ERROR_MESSAGE}: {exc}"
        self._refreshed_at = now
        return self.snapshot

    def refresh_if_due(self) -> MarketDataSnapshot:
        with self._lock:
            if self.is_due():
                return self._refresh()
            return self.snapshot


__all__ = ["MarketDataMonitor", "MarketDataSnapshot"]
