"""Tests for the simple moving average."""

import numpy as np
import pandas as pd
import pytest

from trendwatch.sma.errors import InsufficientDataError, MarketDataError
from trendwatch.sma.indicators import SMA_WINDOW, simple_moving_average


class TestSimpleMovingAverage:
    def test_default_window_is_200(self):
        assert SMA_WINDOW == 200

    def test_exact_length_is_mean_of_everything(self):
        closes = [100.0] * 199 + [101.0]
        assert simple_moving_average(closes) == pytest.approx(100.005)

    def test_uses_only_trailing_window(self):
        closes = [1.0] * 50 + [10.0] * 200
        assert simple_moving_average(closes) == pytest.approx(10.0)

    def test_small_window(self):
        assert simple_moving_average([1, 2, 3, 4, 5], window=3) == pytest.approx(4.0)

    @pytest.mark.parametrize("length", [0, 1, 150, 199])
    def test_short_series_raises(self, length):
        with pytest.raises(InsufficientDataError) as excinfo:
            simple_moving_average([100.0] * length)
        assert excinfo.value.required == 200
        assert excinfo.value.actual == length
        assert "Need 200, got" in str(excinfo.value)

    def test_insufficient_data_is_market_data_error(self):
        with pytest.raises(MarketDataError):
            simple_moving_average([1.0, 2.0], window=3)

    def test_accepts_pandas_and_numpy(self):
        series = pd.Series(np.arange(1, 201, dtype=float))
        assert simple_moving_average(series) == pytest.approx(100.5)
        assert simple_moving_average(series.to_numpy()) == pytest.approx(100.5)

    def test_rejects_non_positive_window(self):
        with pytest.raises(ValueError):
            simple_moving_average([1.0], window=0)
