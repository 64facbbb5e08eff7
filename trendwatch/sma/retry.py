"""Retry helper with exponential backoff and HTTP 429 handling.

Failures are classified into four kinds before deciding how long to wait:

- ``RATE_LIMITED_WITH_HINT``: 429 with a Retry-After style hint
- ``RATE_LIMITED``: 429 without a usable hint
- ``TRANSIENT``: any other error, retried with plain backoff
- ``FATAL``: errors that cannot succeed on retry, re-raised at once

Rate-limit waits are clamped to [MIN_RATE_LIMIT_DELAY, MAX_RATE_LIMIT_DELAY]
seconds; transient waits are not clamped.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Optional, TypeVar

from .errors import (
    ConfigurationMissingError,
    InsufficientDataError,
    InvalidPriceDataError,
    TickerNotFoundError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_RATE_LIMIT_DELAY = 1.0
MAX_RATE_LIMIT_DELAY = 60.0

_FATAL_ERRORS: tuple[type[BaseException], ...] = (
    TickerNotFoundError,
    InsufficientDataError,
    InvalidPriceDataError,
    ConfigurationMissingError,
)


class FailureKind(enum.Enum):
    RATE_LIMITED_WITH_HINT = "rate_limited_with_hint"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class FailureInfo:
    """Classification of one failed attempt."""

    kind: FailureKind
    retry_after: Optional[float] = None  # seconds, from the server hint

    @property
    def rate_limited(self) -> bool:
        return self.kind in (FailureKind.RATE_LIMITED, FailureKind.RATE_LIMITED_WITH_HINT)


def with_retry(
    fn: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 2.0,
    context: str = "Request",
    sleep: Optional[Callable[[float], Any]] = None,
) -> T:
    """Call ``fn`` up to ``max_retries + 1`` times and return its first result.

    The last error is re-raised unchanged once attempts are exhausted.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")
    sleep = sleep or time.sleep

    for attempt in range(max_retries + 1):
        try:
            return fn()
        except Exception as exc:
            info = classify_failure(exc)
            if info.kind is FailureKind.FATAL or attempt == max_retries:
                raise

            delay = compute_delay(info, attempt, base_delay)
            if info.rate_limited:
                logger.warning(
                    "%s rate limited (429). Retrying in %.1fs... (Attempt %d/%d)",
                    context, delay, attempt + 1, max_retries,
                )
            else:
                logger.warning(
                    "%s failed: %s. Retrying in %.1fs... (Attempt %d/%d)",
                    context, str(exc) or type(exc).__name__, delay, attempt + 1, max_retries,
                )
            sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover


def compute_delay(info: FailureInfo, attempt: int, base_delay: float) -> float:
    """Seconds to wait before the attempt following ``attempt`` (0-based)."""
    backoff = base_delay * 2 ** attempt
    if not info.rate_limited:
        return backoff
    delay = info.retry_after if info.retry_after is not None else backoff
    return max(MIN_RATE_LIMIT_DELAY, min(delay, MAX_RATE_LIMIT_DELAY))


def classify_failure(exc: BaseException, now: Optional[datetime] = None) -> FailureInfo:
    """Tag an exception for the retry loop."""
    if isinstance(exc, _FATAL_ERRORS):
        return FailureInfo(FailureKind.FATAL)
    if _status_code(exc) != 429:
        return FailureInfo(FailureKind.TRANSIENT)

    hint = _retry_after_hint(exc)
    retry_after = parse_retry_after(hint, now=now) if hint is not None else None
    if retry_after is None:
        return FailureInfo(FailureKind.RATE_LIMITED)
    return FailureInfo(FailureKind.RATE_LIMITED_WITH_HINT, retry_after=retry_after)


def parse_retry_after(value: Any, now: Optional[datetime] = None) -> Optional[float]:
    """Convert a Retry-After value to seconds.

    Accepts a number of seconds or a timestamp (HTTP-date or ISO 8601), in
    which case the result is the difference from ``now`` and may be negative.
    Returns None for anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        pass

    when = _parse_timestamp(text)
    if when is None:
        return None
    current = now or datetime.now(tz=timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return (when - current).total_seconds()


def _parse_timestamp(text: str) -> Optional[datetime]:
    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        when = None
    if when is None:
        try:
            when = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None) or getattr(response, "status", None)
        if isinstance(value, int):
            return value
    if "429" in str(exc):
        return 429
    return None


def _retry_after_hint(exc: BaseException) -> Any:
    hint = getattr(exc, "retry_after", None)
    if hint is not None:
        return hint

    for holder in (getattr(exc, "response", None), exc):
        headers = getattr(holder, "headers", None)
        if headers:
            hint = _header(headers, "retry-after")
            if hint is not None:
                return hint

    # Telegram reports the wait in the JSON body: {"parameters": {"retry_after": 5}}
    response = getattr(exc, "response", None)
    if response is not None and hasattr(response, "json"):
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            params = body.get("parameters") or {}
            if isinstance(params, dict):
                return params.get("retry_after")
    return None


def _header(headers: Any, name: str) -> Any:
    getter = getattr(headers, "get", None)
    if getter is None:
        return None
    value = getter(name)
    if value is None:
        value = getter(name.title())
    if value is None and isinstance(headers, dict):
        for key, candidate in headers.items():
            if str(key).lower() == name:
                return candidate
    return value
