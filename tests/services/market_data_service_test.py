import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from services.market_data_service import FETCH_ERROR_MESSAGE, MarketDataMonitor
from services.market_data_types import MarketDataError


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


def _monitor(gateway: Mock, clock: _Clock) -> MarketDataMonitor:
    return MarketDataMonitor(gateway, refresh_interval=timedelta(minutes=5), clock=clock)


def test_first_call_fetches_prices() -> None:
    gateway = Mock()
    prices = Mock()
    gateway.fetch_reference_prices.return_value = prices
    clock = _Clock()

    snapshot = _monitor(gateway, clock).refresh_if_due()

    assert snapshot.prices is prices
    assert snapshot.error is None
    assert snapshot.refreshed_at == clock.now


def test_refresh_respects_interval() -> None:
    gateway = Mock()
    clock = _Clock()
    monitor = _monitor(gateway, clock)

    monitor.refresh_if_due()
    clock.advance(299)
    monitor.refresh_if_due()
    assert gateway.fetch_reference_prices.call_count == 1

    clock.advance(1)
    monitor.refresh_if_due()
    assert gateway.fetch_reference_prices.call_count == 2


def test_failed_refresh_keeps_last_prices() -> None:
    gateway = Mock()
    prices = Mock()
    gateway.fetch_reference_prices.return_value = prices
    clock = _Clock()
    monitor = _monitor(gateway, clock)
    monitor.refresh()

    gateway.fetch_reference_prices.side_effect = MarketDataError("rate limited", status_code=429)
    snapshot = monitor.refresh()

    assert snapshot.prices is prices
    assert snapshot.error == f"{FETCH_ERROR_MESSAGE}: rate limited"

    gateway.fetch_reference_prices.side_effect = None
    assert monitor.refresh().error is None


def test_failure_before_any_success() -> None:
    gateway = Mock()
    gateway.fetch_reference_prices.side_effect = MarketDataError("offline")

    snapshot = _monitor(gateway, _Clock()).refresh_if_due()

    assert snapshot.prices is None
    assert snapshot.error is not None


def test_concurrent_callers_share_one_fetch() -> None:
    gateway = Mock()
    gateway.fetch_reference_prices.side_effect = lambda: time.sleep(0.05) or Mock()
    monitor = _monitor(gateway, _Clock())

    with ThreadPoolExecutor(max_workers=8) as pool:
        snapshots = list(pool.map(lambda _: monitor.refresh_if_due(), range(8)))

    assert gateway.fetch_reference_prices.call_count == 1
    assert len({id(snapshot.prices) for snapshot in snapshots}) == 1
