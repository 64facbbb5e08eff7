"""Exception hierarchy for the SMA signal notifier.

Per-ticker errors (``MarketDataError`` and subclasses) are caught by the batch
orchestrator and turned into error signals. Everything else propagates to the
HTTP or CLI boundary.
"""

from __future__ import annotations

from typing import Optional


class TrendwatchError(Exception):
    """Base class for all errors raised by this package."""


class MarketDataError(TrendwatchError):
    """Price history could not be fetched or used for one ticker."""


class InsufficientDataError(MarketDataError):
    """Fewer price points than the moving-average window requires."""

    def __init__(self, required: int, actual: int, symbol: str = "") -> None:
        self.required = required
        self.actual = actual
        self.symbol = symbol
        prefix = f"Insufficient data for {symbol}. " if symbol else "Not enough data points. "
        super().__init__(f"{prefix}Need {required}, got {actual}")


class TickerNotFoundError(MarketDataError):
    """The market-data provider does not know the symbol."""

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"No historical data found for {symbol}")


class InvalidPriceDataError(MarketDataError):
    """Prices that cannot be classified (e.g. a non-positive moving average)."""


class RateLimitedError(TrendwatchError):
    """An upstream service answered with HTTP 429."""

    status_code = 429

    def __init__(self, message: str = "Too many requests (429)", retry_after: Optional[str] = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class ConfigurationMissingError(TrendwatchError):
    """Required credentials or endpoints are not configured."""

    def __init__(self, *names: str) -> None:
        self.names = names
        joined = ", ".join(names)
        verb = "is" if len(names) == 1 else "are"
        super().__init__(f"{joined} {verb} required but not configured")


class InvalidConfigurationError(TrendwatchError):
    """A configured value is present but does not parse."""


class DeliveryError(TrendwatchError):
    """Signals were computed but could not be delivered."""

    def __init__(self, message: str, status_code: Optional[int] = None, retry_after: Optional[str] = None) -> None:
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)


class NoTickersAnalyzedError(TrendwatchError):
    """Every ticker of a batch failed."""

    def __init__(self, message: str = "No tickers were successfully analyzed") -> None:
        super().__init__(message)


class InvalidTickerListError(TrendwatchError):
    """A ticker list update was rejected by validation."""


class TickerSourceError(TrendwatchError):
    """The ticker store could not be read or written."""


class BrokerError(TrendwatchError):
    """The brokerage rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)
