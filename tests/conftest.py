"""Shared fixtures and fakes for the trendwatch test suite."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from trendwatch.sma.data_collectors.price_collector import PriceSeries
from trendwatch.sma.signals.signal_types import Signal


def make_series(closes: list[float], symbol: str = "AAPL") -> PriceSeries:
    start = date(2025, 1, 2)
    dates = [start + timedelta(days=i) for i in range(len(closes))]
    return PriceSeries(symbol=symbol, dates=dates, closes=list(closes))


def make_signal(symbol: str = "AAPL", action: str = "buy", price: float = 105.0, sma: float = 100.0) -> Signal:
    return Signal(
        symbol=symbol,
        action=action,
        current_price=price,
        moving_average=sma,
        deviation=(price - sma) / sma,
        reason=f"{symbol} {action}",
    )


class FakeNotifier:
    """Records what would have been sent to Telegram."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.messages: list[str] = []
        self.photos: list[tuple[str, str | None]] = []
        self.fail_with = fail_with

    def send_message(self, text: str) -> dict:
        if self.fail_with:
            raise self.fail_with
        self.messages.append(text)
        return {}

    def send_photo(self, url: str, caption: str | None = None) -> dict:
        if self.fail_with:
            raise self.fail_with
        self.photos.append((url, caption))
        return {}


class FakeBroker:
    def __init__(self, positions: dict[str, float] | None = None, fail_on: set[str] | None = None) -> None:
        self.positions = positions or {}
        self.fail_on = fail_on or set()
        self.orders: list[tuple[str, str, float]] = []

    def get_position_quantity(self, symbol: str) -> float:
        return self.positions.get(symbol, 0.0)

    def buy_order(self, symbol: str, quantity: float) -> dict:
        if symbol in self.fail_on:
            raise RuntimeError(f"rejected {symbol}")
        self.orders.append(("buy", symbol, quantity))
        return {"id": f"buy-{symbol}"}

    def sell_order(self, symbol: str, quantity: float) -> dict:
        if symbol in self.fail_on:
            raise RuntimeError(f"rejected {symbol}")
        self.orders.append(("sell", symbol, quantity))
        return {"id": f"sell-{symbol}"}


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def record_sleep(sleeps):
    return sleeps.append
