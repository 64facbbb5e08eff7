"""Runner entry point for the 200-day SMA signal notifier.

Usage:
    python -m trendwatch.sma.runner                 # configured ticker list
    python -m trendwatch.sma.runner AAPL MSFT SPY   # explicit tickers
    python -m trendwatch.sma.runner --notify        # send report to Telegram
    python -m trendwatch.sma.runner --trade --dry-run
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from dotenv import load_dotenv

from .broker import RobinhoodClient
from .charts import summary_chart_url
from .config import Settings
from .data_collectors import price_collector
from .errors import NoTickersAnalyzedError, TickerNotFoundError, TrendwatchError
from .indicators import SMA_WINDOW, simple_moving_average
from .notifiers import TelegramNotifier
from .report_generator import ReportGenerator
from .signals import Signal, classify
from .tickers import build_ticker_source
from .trading import execute_signals

logger = logging.getLogger(__name__)

AnalyzeFn = Callable[[str], Signal]


@dataclass
class BatchResult:
    """One signal per requested ticker, in request order."""

    tickers: list[str]
    signals: list[Signal] = field(default_factory=list)

    @property
    def analyzed(self) -> list[Signal]:
        return [s for s in self.signals if not s.is_error]

    @property
    def failed(self) -> list[Signal]:
        return [s for s in self.signals if s.is_error]

    def to_dict(self) -> dict:
        return {
            "tickers": list(self.tickers),
            "analyses": [s.to_dict() for s in self.signals],
        }


def analyze(symbol: str, collect: Callable[..., price_collector.PriceSeries] = price_collector.collect) -> Signal:
    """Full pipeline for one ticker: history -> SMA -> signal.

    Errors propagate; isolating failures is the batch's job.
    """
    series = collect(symbol, lookback_days=price_collector.DEFAULT_LOOKBACK_DAYS)
    sma = simple_moving_average(series.closes, SMA_WINDOW)
    return classify(series.symbol, series.latest_close, sma)


def analyze_batch(tickers: Sequence[str], analyze_fn: AnalyzeFn = analyze) -> BatchResult:
    """Analyze tickers one at a time, recording failures as error signals.

    Raises NoTickersAnalyzedError when no ticker could be analyzed.
    """
    result = BatchResult(tickers=list(tickers))
    logger.info("Analyzing %d tickers: %s", len(result.tickers), ", ".join(result.tickers))

    for ticker in result.tickers:
        try:
            signal = analyze_fn(ticker)
        except TickerNotFoundError as exc:
            logger.error("%s: ticker not found - %s", ticker, exc)
            result.signals.append(Signal.error(ticker, str(exc), error_kind="not_found"))
            continue
        except Exception as exc:
            logger.error("%s: failed to analyze - %s", ticker, exc)
            result.signals.append(Signal.error(ticker, str(exc) or type(exc).__name__))
            continue

        logger.info("%s: %s (%+.2f%%)", ticker, signal.action.upper(), signal.deviation_pct or 0.0)
        result.signals.append(signal)

    if not result.analyzed:
        raise NoTickersAnalyzedError()
    return result


def _load_tickers(settings: Settings, explicit: Sequence[str]) -> list[str]:
    if explicit:
        return [t.strip().upper() for t in explicit if t.strip()]
    ticker_list = build_ticker_source(settings).fetch()
    logger.info("Loaded %d tickers from %s", len(ticker_list.tickers), ticker_list.source)
    return ticker_list.tickers


def _run(args: argparse.Namespace) -> int:
    settings = Settings.from_env()
    tickers = _load_tickers(settings, args.tickers)
    batch = analyze_batch(tickers)

    report = ReportGenerator().generate(batch.signals)
    sys.stdout.write(report)
    sys.stdout.write("\n")

    if args.notify:
        notifier = TelegramNotifier.from_settings(settings)
        notifier.send_message(report)
        notifier.send_photo(summary_chart_url(batch.analyzed), caption="Weekly Market Analysis Summary")

    if args.trade:
        dry_run = args.dry_run or settings.dry_run
        broker = None
        if not dry_run:
            settings.require("robinhood_username", "robinhood_password")
            broker = RobinhoodClient(client_id=settings.robinhood_client_id)
            broker.login(
                settings.robinhood_username,
                settings.robinhood_password,
                mfa_code=settings.robinhood_mfa_code,
            )
        orders = execute_signals(batch.analyzed, broker, settings.trade_amount, dry_run=dry_run)
        for order in orders:
            sys.stdout.write(f"{order.symbol:<8s} {order.side:<5s} {order.quantity:>6d}  {order.status}  {order.detail}\n")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="200-day SMA momentum signals - analyze, notify, trade"
    )
    parser.add_argument(
        "tickers",
        nargs="*",
        help="Ticker symbols (default: configured ticker list)",
    )
    parser.add_argument(
        "--notify",
        action="store_true",
        help="Send the report and summary chart to Telegram",
    )
    parser.add_argument(
        "--trade",
        action="store_true",
        help="Place orders for buy/sell signals through the broker",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="With --trade, report the orders without placing them",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    load_dotenv()

    try:
        return _run(args)
    except TrendwatchError as exc:
        logger.error("Run failed: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
