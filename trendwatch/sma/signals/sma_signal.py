"""Buy/sell/hold classification from deviation against the 200-day SMA.

Momentum rule: a close more than ``THRESHOLD`` above the average is a buy, more
than ``THRESHOLD`` below is a sell, anything in between (boundaries included)
is a hold.
"""

from __future__ import annotations

from .signal_types import Action, Signal
from ..errors import InvalidPriceDataError

THRESHOLD = 0.01  # 1%


def compute_deviation(current_price: float, moving_average: float) -> float:
    """Signed fractional distance of the price from the moving average."""
    if moving_average <= 0:
        raise InvalidPriceDataError(
            f"Moving average must be positive to compute deviation, got {moving_average}"
        )
    return (current_price - moving_average) / moving_average


def classify_deviation(deviation: float, threshold: float = THRESHOLD) -> Action:
    """Map a deviation to an action; equality with the threshold is a hold."""
    if deviation > threshold:
        return "buy"
    if deviation < -threshold:
        return "sell"
    return "hold"


def classify(
    symbol: str,
    current_price: float,
    moving_average: float,
    threshold: float = THRESHOLD,
) -> Signal:
    """Classify one ticker and explain the decision."""
    deviation = compute_deviation(current_price, moving_average)
    action = classify_deviation(deviation, threshold)
    return Signal(
        symbol=symbol,
        action=action,
        current_price=current_price,
        moving_average=moving_average,
        deviation=deviation,
        reason=_build_reason(action, current_price, moving_average, deviation, threshold),
    )


def _build_reason(
    action: Action,
    price: float,
    sma: float,
    deviation: float,
    threshold: float,
) -> str:
    if action == "buy":
        return (
            f"Price (${price:.2f}) is {deviation * 100:.2f}% above 200-day SMA "
            f"(${sma:.2f}) - buying on momentum"
        )
    if action == "sell":
        return (
            f"Price (${price:.2f}) is {abs(deviation) * 100:.2f}% below 200-day SMA "
            f"(${sma:.2f}) - selling on weakness"
        )
    return (
        f"Price (${price:.2f}) is within {threshold * 100:.1f}% of 200-day SMA "
        f"(${sma:.2f}) ({deviation * 100:+.2f}%)"
    )
