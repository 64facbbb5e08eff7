"""Signal types and the 200-day SMA classifier."""

from .signal_types import Action, Signal
from .sma_signal import THRESHOLD, classify, classify_deviation, compute_deviation

__all__ = [
    "Action",
    "Signal",
    "THRESHOLD",
    "classify",
    "classify_deviation",
    "compute_deviation",
]
