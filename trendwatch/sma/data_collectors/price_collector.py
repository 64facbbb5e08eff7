"""Daily close history collector using yfinance.

Fetches enough daily bars for a 200-day moving average. Trading days are
fewer than calendar days, so the request window is twice the lookback in
calendar days.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pandas as pd
import yfinance as yf
from yfinance.exceptions import YFRateLimitError

from ..errors import MarketDataError, RateLimitedError, TickerNotFoundError
from ..retry import with_retry

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 250

# Fragments yfinance/Yahoo use when a symbol does not exist
_NOT_FOUND_MARKERS = ("not found", "no data found", "invalid ticker", "delisted", "no timezone found")


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass
class PriceSeries:
    """Ordered daily closes for one symbol, oldest first."""

    symbol: str
    dates: list[date] = field(default_factory=list)
    closes: list[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.closes)

    @property
    def latest_close(self) -> float:
        if not self.closes:
            raise MarketDataError(f"No closes available for {self.symbol}")
        return self.closes[-1]

    def tail(self, n: int) -> PriceSeries:
        return PriceSeries(symbol=self.symbol, dates=self.dates[-n:], closes=self.closes[-n:])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _history_to_series(symbol: str, hist: pd.DataFrame) -> PriceSeries:
    """Convert a yfinance history frame to a PriceSeries, dropping missing closes."""
    close = hist["Close"].dropna().sort_index()
    dates = [ts.date() if hasattr(ts, "date") else ts for ts in close.index]
    return PriceSeries(symbol=symbol, dates=dates, closes=[float(v) for v in close.to_numpy()])


def _fetch_history(symbol: str, start: datetime, end: datetime) -> pd.DataFrame:
    try:
        return yf.Ticker(symbol).history(
            start=start.strftime("%Y-%m-%d"),
            end=end.strftime("%Y-%m-%d"),
            interval="1d",
            auto_adjust=False,
        )
    except YFRateLimitError as exc:
        raise RateLimitedError(f"Yahoo Finance rate limited request for {symbol}") from exc
    except Exception as exc:
        message = str(exc).lower()
        if any(marker in message for marker in _NOT_FOUND_MARKERS):
            raise TickerNotFoundError(symbol) from exc
        raise


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def collect(
    symbol: str,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    now: Optional[datetime] = None,
    max_retries: int = 3,
    base_delay: float = 2.0,
) -> PriceSeries:
    """Fetch daily closes for ``symbol`` over roughly ``lookback_days`` trading days.

    Raises TickerNotFoundError when Yahoo returns no rows for the symbol and
    MarketDataError for other provider failures once retries are exhausted.
    """
    symbol = symbol.strip().upper()
    end = (now or datetime.now(tz=timezone.utc)) + timedelta(days=1)
    start = end - timedelta(days=lookback_days * 2 + 1)

    try:
        hist = with_retry(
            lambda: _fetch_history(symbol, start, end),
            max_retries=max_retries,
            base_delay=base_delay,
            context=f"Price history {symbol}",
        )
    except (TickerNotFoundError, RateLimitedError):
        raise
    except Exception as exc:
        logger.error("Failed to fetch historical data for %s: %s", symbol, exc)
        raise MarketDataError(f"Failed to fetch historical data for {symbol}: {exc}") from exc

    if hist is None or hist.empty or "Close" not in hist.columns:
        raise TickerNotFoundError(symbol)

    series = _history_to_series(symbol, hist)
    if not series.closes:
        raise TickerNotFoundError(symbol)

    logger.debug("Fetched %d closes for %s (%s .. %s)", len(series), symbol, series.dates[0], series.dates[-1])
    return series
