"""Ticker list sources."""

from .sources import (
    EdgeConfigTickerSource,
    FallbackTickerSource,
    FileTickerSource,
    TickerList,
    TickerSource,
    build_ticker_source,
    validate_tickers,
)

__all__ = [
    "EdgeConfigTickerSource",
    "FallbackTickerSource",
    "FileTickerSource",
    "TickerList",
    "TickerSource",
    "build_ticker_source",
    "validate_tickers",
]
