from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from config import config
from domain.blend import BlendState, summarize
from domain.ledger import LedgerState
from domain.reconciliation import EditExchangeRate, LedgerController, LoadLedger
from services.exchange_rate_source import ExchangeRateSource
from services.market_data_service import MarketDataMonitor
from services.yahoo_finance_source import YahooFinanceMarketData
from utils.breakdown_summary import render_blend_summary, render_ledger_breakdown, render_market_data, share_text

logger = logging.getLogger(__name__)


def run(
    ledger_path: Path | None,
    *,
    blend_path: Path | None,
    live_rate: bool,
    market_data: bool,
) -> None:
    controller = LedgerController()
    if ledger_path is not None:
        controller.dispatch(LoadLedger(LedgerState.model_validate_json(ledger_path.read_text())))
        logger.info("Loaded ledger from %s", ledger_path)

    if live_rate:
        latest = ExchangeRateSource().fetch_rate()
        controller.dispatch(EditExchangeRate(str(latest.rate)))
        print(f"Live exchange rate {latest.base}/{latest.quote}: {latest.rate} (updated {latest.updated_at:%Y-%m-%d})")

    breakdown = controller.breakdown()
    print(render_ledger_breakdown(breakdown))
    print()
    print(share_text(breakdown))

    if blend_path is not None:
        blend = BlendState.model_validate_json(blend_path.read_text())
        print()
        print(render_blend_summary(blend, summarize(blend)))

    if market_data:
        monitor = MarketDataMonitor(YahooFinanceMarketData())
        print()
        print(render_market_data(monitor.refresh()))


def serve(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("api.api:app", host=host, port=port)


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Fuel price ledger and blend calculator.")
    parser.add_argument("--ledger", type=Path, help="Ledger state as JSON")
    parser.add_argument("--blend", type=Path, help="Blend state as JSON")
    parser.add_argument("--live-rate", action="store_true", help="Fetch the current USD/MXN rate")
    parser.add_argument("--market-data", action="store_true", help="Show gasoline and heating oil reference prices")
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API instead")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args(argv)

    if args.serve:
        serve(args.host, args.port)
        return
    run(args.ledger, blend_path=args.blend, live_rate=args.live_rate, market_data=args.market_data)


if __name__ == "__main__":
    logging.basicConfig(level=config().log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    main()
