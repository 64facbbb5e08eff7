"""Turn SMA signals into brokerage orders.

Buy signals buy ``floor(trade_amount / price)`` shares; sell signals
liquidate the whole position. Holds and failed analyses are skipped.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal, Optional, Protocol

from .signals.signal_types import Signal

logger = logging.getLogger(__name__)

OrderStatus = Literal["placed", "skipped", "failed", "dry_run"]


class Broker(Protocol):
    def get_position_quantity(self, symbol: str) -> float: ...

    def buy_order(self, symbol: str, quantity: float) -> dict: ...

    def sell_order(self, symbol: str, quantity: float) -> dict: ...


@dataclass(frozen=True)
class OrderRecord:
    """Outcome of acting on one signal."""

    symbol: str
    side: str
    quantity: int
    status: OrderStatus
    detail: str = ""

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "side": self.side,
            "quantity": self.quantity,
            "status": self.status,
            "detail": self.detail,
        }


def buy_quantity(trade_amount: float, price: float) -> int:
    """Whole shares affordable with ``trade_amount``."""
    if price <= 0:
        return 0
    return int(math.floor(trade_amount / price))


def execute_signals(
    signals: list[Signal],
    broker: Optional[Broker],
    trade_amount: float,
    dry_run: bool = False,
) -> list[OrderRecord]:
    """Act on each buy/sell signal; one failed order does not stop the rest.

    In dry-run mode the broker is never called (it may be None) and sell
    quantities are reported as 0 since positions are not looked up.
    """
    if not dry_run and broker is None:
        raise ValueError("A broker is required unless dry_run is set")

    if dry_run:
        logger.info("DRY RUN - no orders will be placed")

    records: list[OrderRecord] = []
    for signal in signals:
        if signal.action not in ("buy", "sell"):
            records.append(OrderRecord(signal.symbol, signal.action, 0, "skipped", signal.action))
            continue
        try:
            records.append(_execute_one(signal, broker, trade_amount, dry_run))
        except Exception as exc:
            logger.error("Failed to execute %s order for %s: %s", signal.action, signal.symbol, exc)
            records.append(OrderRecord(signal.symbol, signal.action, 0, "failed", str(exc)))

    placed = sum(1 for r in records if r.status == "placed")
    logger.info("Trading run complete: %d orders placed out of %d signals", placed, len(signals))
    return records


def _execute_one(
    signal: Signal,
    broker: Optional[Broker],
    trade_amount: float,
    dry_run: bool,
) -> OrderRecord:
    if signal.action == "buy":
        quantity = buy_quantity(trade_amount, signal.current_price or 0.0)
        if quantity <= 0:
            return OrderRecord(
                signal.symbol, "buy", 0, "skipped",
                f"${trade_amount:.2f} buys no whole share at ${signal.current_price:.2f}",
            )
        if dry_run:
            return OrderRecord(signal.symbol, "buy", quantity, "dry_run", "would buy")
        broker.buy_order(signal.symbol, quantity)
        return OrderRecord(signal.symbol, "buy", quantity, "placed")

    if dry_run:
        return OrderRecord(signal.symbol, "sell", 0, "dry_run", "would sell entire position")
    held = int(broker.get_position_quantity(signal.symbol))
    if held <= 0:
        logger.warning("No position to sell for %s", signal.symbol)
        return OrderRecord(signal.symbol, "sell", 0, "skipped", "no position")
    broker.sell_order(signal.symbol, held)
    return OrderRecord(signal.symbol, "sell", held, "placed")
