"""Price indicators used by the signal classifier."""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np
import pandas as pd

from .errors import InsufficientDataError

SMA_WINDOW = 200

Prices = Union[Sequence[float], np.ndarray, pd.Series]


def simple_moving_average(closes: Prices, window: int = SMA_WINDOW) -> float:
    """Return the mean of the last ``window`` closes (oldest first).

    Raises InsufficientDataError when fewer than ``window`` closes are given;
    the average is never taken over a shorter tail.
    """
    if window <= 0:
        raise ValueError(f"window must be positive, got {window}")
    values = np.asarray(closes, dtype=float)
    if values.ndim != 1:
        raise ValueError("closes must be one-dimensional")
    if len(values) < window:
        raise InsufficientDataError(required=window, actual=len(values))
    return float(values[-window:].mean())
