"""QuickChart URLs for the summary and per-ticker charts.

Only the Chart.js config is built here; QuickChart renders the image when
Telegram fetches the URL.
"""

from __future__ import annotations

import json
from typing import Optional
from urllib.parse import urlencode

from .data_collectors.price_collector import PriceSeries
from .signals.signal_types import Signal
from .signals.sma_signal import THRESHOLD

QUICKCHART_URL = "https://quickchart.io/chart"

_COLORS = {
    "buy": "#22c55e",
    "sell": "#ef4444",
    "hold": "#6b7280",
}
_SMA_COLOR = "#3b82f6"
_TITLE_COLOR = "#1f2937"


def _signal_color(action: str) -> str:
    return _COLORS.get(action, _COLORS["hold"])


def chart_url(config: dict, width: int = 800, height: int = 400, background: str = "#ffffff") -> str:
    """Encode a Chart.js config as a QuickChart GET URL."""
    query = urlencode({
        "c": json.dumps(config, separators=(",", ":")),
        "w": width,
        "h": height,
        "bkg": background,
    })
    return f"{QUICKCHART_URL}?{query}"


def _threshold_line(value: float, color: str, label: str) -> dict:
    return {
        "type": "line",
        "mode": "horizontal",
        "scaleID": "y-axis-0",
        "value": value,
        "borderColor": color,
        "borderWidth": 2,
        "borderDash": [5, 5],
        "label": {"enabled": True, "content": label, "position": "right"},
    }


def summary_chart_url(signals: list[Signal], title: str = "Weekly Market Analysis - All Tickers") -> str:
    """Bar chart of deviation from the SMA (%) per ticker; error entries are skipped."""
    usable = [s for s in signals if not s.is_error]
    pct = THRESHOLD * 100
    colors = [_signal_color(s.action) for s in usable]
    config = {
        "type": "bar",
        "data": {
            "labels": [s.symbol for s in usable],
            "datasets": [{
                "label": "Deviation from 200-day SMA (%)",
                "data": [round(s.deviation_pct, 2) for s in usable],
                "backgroundColor": colors,
                "borderColor": colors,
                "borderWidth": 1,
            }],
        },
        "options": {
            "title": {"display": True, "text": title, "fontSize": 20, "fontColor": _TITLE_COLOR},
            "legend": {"display": False},
            "scales": {
                "yAxes": [{"scaleLabel": {"display": True, "labelString": "Deviation from SMA (%)"}}],
                "xAxes": [{"scaleLabel": {"display": True, "labelString": "Ticker"}}],
            },
            "annotation": {
                "annotations": [
                    _threshold_line(pct, _COLORS["buy"], f"Buy Threshold (+{pct:g}%)"),
                    _threshold_line(-pct, _COLORS["sell"], f"Sell Threshold (-{pct:g}%)"),
                ],
            },
        },
    }
    return chart_url(config, width=1000, height=500)


def price_chart_url(series: PriceSeries, signal: Signal, last_n: Optional[int] = 200) -> str:
    """Line chart of recent closes against the SMA level for one ticker."""
    window = series.tail(last_n) if last_n else series
    color = _signal_color(signal.action)
    config = {
        "type": "line",
        "data": {
            "labels": [d.isoformat() for d in window.dates],
            "datasets": [
                {
                    "label": "Price",
                    "data": [round(c, 2) for c in window.closes],
                    "borderColor": color,
                    "fill": False,
                    "borderWidth": 2,
                    "pointRadius": 0,
                },
                {
                    "label": "200-day SMA",
                    "data": [round(signal.moving_average, 2)] * len(window.closes),
                    "borderColor": _SMA_COLOR,
                    "borderDash": [5, 5],
                    "fill": False,
                    "borderWidth": 2,
                    "pointRadius": 0,
                },
            ],
        },
        "options": {
            "title": {
                "display": True,
                "text": f"{signal.symbol} - {signal.action} Signal",
                "fontSize": 20,
                "fontColor": _TITLE_COLOR,
            },
            "legend": {"display": True, "position": "bottom"},
            "scales": {
                "yAxes": [{"scaleLabel": {"display": True, "labelString": "Price (USD)"}}],
                "xAxes": [{"ticks": {"maxTicksLimit": 10}}],
            },
        },
    }
    return chart_url(config)
