"""Core signal dataclass produced by the SMA classifier."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

Action = Literal["buy", "sell", "hold", "error"]
ErrorKind = Literal["not_found", "error"]


@dataclass(frozen=True)
class Signal:
    """Classification of one ticker at one point in time."""

    symbol: str
    action: Action
    current_price: Optional[float] = None
    moving_average: Optional[float] = None
    deviation: Optional[float] = None  # fractional, signed
    reason: str = ""
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def error(cls, symbol: str, reason: str, error_kind: ErrorKind = "error") -> Signal:
        """Placeholder entry for a ticker whose analysis failed."""
        return cls(symbol=symbol, action="error", reason=reason, error_kind=error_kind)

    @property
    def is_error(self) -> bool:
        return self.action == "error"

    @property
    def deviation_pct(self) -> Optional[float]:
        if self.deviation is None:
            return None
        return self.deviation * 100

    def to_dict(self) -> dict:
        """Summary shape consumed by the delivery collaborators and the HTTP API."""
        data = {
            "symbol": self.symbol,
            "action": self.action,
            "current_price": self.current_price,
            "moving_average": self.moving_average,
            "deviation": self.deviation,
        }
        if self.is_error:
            data["reason"] = self.reason
            data["error_kind"] = self.error_kind
        return data
