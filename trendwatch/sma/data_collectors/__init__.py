"""Market data collectors for the SMA signal notifier."""

from .price_collector import PriceSeries, collect as collect_prices

__all__ = [
    "PriceSeries",
    "collect_prices",
]
