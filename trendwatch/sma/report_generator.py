"""Telegram Markdown report for a batch of SMA signals.

Deterministic template rendering; the caller decides where the text goes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from .signals.signal_types import Signal
from .signals.sma_signal import THRESHOLD

_NEW_YORK = ZoneInfo("America/New_York")

_SECTIONS = (
    ("buy", "\U0001f7e2", "BUY SIGNALS"),
    ("sell", "\U0001f534", "SELL SIGNALS"),
    ("hold", "⚪️", "HOLD SIGNALS"),
)


class ReportGenerator:
    """Render the weekly analysis message."""

    def generate(self, signals: list[Signal], now: Optional[datetime] = None) -> str:
        sections = [
            self._header(now),
            self._summary(signals),
        ]
        for action, marker, title in _SECTIONS:
            picked = [s for s in signals if s.action == action]
            if picked:
                sections.append(self._signal_section(picked, marker, title))
        failed = [s for s in signals if s.is_error]
        if failed:
            sections.append(self._failed_section(failed))
        sections.append(self._footer())
        return "\n\n".join(sections)

    def _header(self, now: Optional[datetime]) -> str:
        current = now or datetime.now(tz=timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        stamp = current.astimezone(_NEW_YORK).strftime("%A, %B %d, %Y %I:%M %p")
        return f"\U0001f4ca *Weekly Market Analysis*\n\U0001f550 {stamp} ET"

    def _summary(self, signals: list[Signal]) -> str:
        counts = {action: sum(1 for s in signals if s.action == action) for action, _, _ in _SECTIONS}
        lines = [
            "*Summary:*",
            f"\U0001f7e2 Buy Signals: {counts['buy']}",
            f"\U0001f534 Sell Signals: {counts['sell']}",
            f"⚪️ Hold Signals: {counts['hold']}",
        ]
        failed = sum(1 for s in signals if s.is_error)
        if failed:
            lines.append(f"⚠️ Failed: {failed}")
        return "\n".join(lines)

    def _signal_section(self, signals: list[Signal], marker: str, title: str) -> str:
        lines = [f"*{marker} {title}*"]
        for s in signals:
            lines.append(
                f"• *{_escape(s.symbol)}*: ${s.current_price:.2f} ({s.deviation_pct:+.2f}% vs SMA)"
            )
        return "\n".join(lines)

    def _failed_section(self, signals: list[Signal]) -> str:
        lines = ["*⚠️ FAILED*"]
        for s in signals:
            detail = "ticker not found" if s.error_kind == "not_found" else _escape(s.reason)
            lines.append(f"• *{_escape(s.symbol)}*: {detail}")
        return "\n".join(lines)

    def _footer(self) -> str:
        pct = THRESHOLD * 100
        return (
            "_Strategy: 200-day SMA momentum trading_\n"
            f"_Buy threshold: +{pct:g}% above SMA_\n"
            f"_Sell threshold: -{pct:g}% below SMA_"
        )


def _escape(text: str) -> str:
    """Strip characters that break Telegram's legacy Markdown parser."""
    for ch in ("*", "_", "`", "["):
        text = text.replace(ch, "")
    return text
