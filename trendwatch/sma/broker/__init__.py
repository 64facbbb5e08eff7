"""Brokerage clients used by the trading variant."""

from .robinhood import Position, RobinhoodClient

__all__ = ["Position", "RobinhoodClient"]
