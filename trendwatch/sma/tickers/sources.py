"""Ticker list storage: a local JSON file or a Vercel Edge Config item.

``build_ticker_source`` picks the variant from configuration. When Edge
Config is configured, reads fall back to the local file if the remote read
fails or returns nothing usable.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

import requests

from ..config import Settings
from ..errors import ConfigurationMissingError, InvalidTickerListError, TickerSourceError
from ..retry import with_retry

logger = logging.getLogger(__name__)

EDGE_CONFIG_KEY = "tickers"
VERCEL_API = "https://api.vercel.com"
_TIMEOUT = 10


@dataclass
class TickerList:
    """Ticker symbols plus where they came from."""

    tickers: list[str]
    source: str  # "edge-config" | "file"
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"tickers": list(self.tickers), "source": self.source}
        if self.error:
            data["error"] = self.error
        return data


def validate_tickers(value: Any) -> list[str]:
    """Check an update payload and return the normalised symbols.

    Every entry must be a non-empty string; symbols are stripped and
    upper-cased, order is preserved.
    """
    if not isinstance(value, list):
        raise InvalidTickerListError("Tickers must be an array")
    if any(not isinstance(t, str) or not t.strip() for t in value):
        raise InvalidTickerListError("All tickers must be non-empty strings")
    return [t.strip().upper() for t in value]


class TickerSource:
    """Read/update interface for the configured ticker universe."""

    name = ""

    def fetch(self) -> TickerList:
        raise NotImplementedError

    def update(self, tickers: list[str]) -> TickerList:
        raise NotImplementedError


class FileTickerSource(TickerSource):
    """``{"tickers": [...]}`` stored in a JSON file."""

    name = "file"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def fetch(self) -> TickerList:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise TickerSourceError(f"Failed to load tickers from {self.path}: {exc}") from exc

        tickers = data.get("tickers") if isinstance(data, dict) else data
        if not isinstance(tickers, list):
            raise TickerSourceError(f"{self.path} has no 'tickers' list")
        return TickerList(tickers=[str(t) for t in tickers], source=self.name)

    def update(self, tickers: list[str]) -> TickerList:
        tickers = validate_tickers(tickers)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file and rename so readers never see a partial file
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".tickers-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"tickers": tickers}, f, indent=2)
                f.write("\n")
            os.replace(tmp, self.path)
        except OSError as exc:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise TickerSourceError(f"Failed to write tickers to {self.path}: {exc}") from exc
        logger.info("Wrote %d tickers to %s", len(tickers), self.path)
        return TickerList(tickers=tickers, source=self.name)


class EdgeConfigTickerSource(TickerSource):
    """The ``tickers`` item of a Vercel Edge Config store.

    Reads use the connection string (``https://edge-config.vercel.com/<id>?token=<t>``);
    writes go through the Vercel REST API and need an API token and the config id.
    """

    name = "edge-config"

    def __init__(
        self,
        connection_string: str,
        api_token: Optional[str] = None,
        config_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not connection_string:
            raise ConfigurationMissingError("EDGE_CONFIG")
        self._read_url, self._read_token, parsed_id = _parse_connection_string(connection_string)
        self.config_id = config_id or parsed_id
        self.api_token = api_token
        self._session = session or requests.Session()

    def fetch(self) -> TickerList:
        def call() -> Any:
            resp = self._session.get(
                f"{self._read_url}/item/{EDGE_CONFIG_KEY}",
                headers={"Authorization": f"Bearer {self._read_token}"},
                timeout=_TIMEOUT,
            )
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            return resp.json()

        value = with_retry(call, max_retries=2, base_delay=1.0, context="Edge Config read")
        if not isinstance(value, list) or not value:
            raise TickerSourceError("Edge Config has no usable 'tickers' item")
        return TickerList(tickers=[str(t) for t in value], source=self.name)

    def update(self, tickers: list[str]) -> TickerList:
        tickers = validate_tickers(tickers)
        missing = [name for name, value in (
            ("VERCEL_API_TOKEN", self.api_token),
            ("EDGE_CONFIG_ID", self.config_id),
        ) if not value]
        if missing:
            raise ConfigurationMissingError(*missing)

        resp = self._session.patch(
            f"{VERCEL_API}/v1/edge-config/{self.config_id}/items",
            headers={"Authorization": f"Bearer {self.api_token}"},
            json={"items": [{"operation": "upsert", "key": EDGE_CONFIG_KEY, "value": tickers}]},
            timeout=_TIMEOUT,
        )
        if not resp.ok:
            try:
                message = (resp.json().get("error") or {}).get("message")
            except (ValueError, AttributeError):
                message = None
            raise TickerSourceError(message or f"Failed to update Edge Config ({resp.status_code})")
        logger.info("Updated %d tickers in Edge Config", len(tickers))
        return TickerList(tickers=tickers, source=self.name)


class FallbackTickerSource(TickerSource):
    """Read from ``primary``, falling back to ``fallback``; write to ``primary`` only."""

    def __init__(self, primary: TickerSource, fallback: TickerSource) -> None:
        self.primary = primary
        self.fallback = fallback

    @property
    def name(self) -> str:  # type: ignore[override]
        return self.primary.name

    def fetch(self) -> TickerList:
        try:
            return self.primary.fetch()
        except Exception as exc:
            logger.warning("%s unavailable (%s), falling back to %s", self.primary.name, exc, self.fallback.name)
            try:
                result = self.fallback.fetch()
            except Exception as fallback_exc:
                logger.error("%s also unavailable: %s", self.fallback.name, fallback_exc)
                raise exc from fallback_exc
            result.error = str(exc)
            return result

    def update(self, tickers: list[str]) -> TickerList:
        return self.primary.update(tickers)


def build_ticker_source(settings: Settings, session: Optional[requests.Session] = None) -> TickerSource:
    """Edge Config with file fallback when configured, otherwise the file alone."""
    file_source = FileTickerSource(settings.tickers_file)
    if not settings.edge_config_configured:
        return file_source
    edge = EdgeConfigTickerSource(
        settings.edge_config,
        api_token=settings.vercel_api_token,
        config_id=settings.edge_config_id,
        session=session,
    )
    return FallbackTickerSource(edge, file_source)


def _parse_connection_string(connection_string: str) -> tuple[str, str, str]:
    """Split an Edge Config connection string into (base url, token, config id)."""
    parsed = urlparse(connection_string)
    token = (parse_qs(parsed.query).get("token") or [""])[0]
    config_id = parsed.path.strip("/").split("/")[-1]
    if not parsed.scheme or not parsed.netloc or not token or not config_id:
        raise ConfigurationMissingError("EDGE_CONFIG (connection string with token)")
    return f"{parsed.scheme}://{parsed.netloc}/{config_id}", token, config_id
