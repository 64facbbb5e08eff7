"""Minimal client for Robinhood's unofficial REST API.

Covers what the trading bot needs: password login, positions and market
orders. No guarantees about the authentication flow beyond passing
credentials through.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Literal, Optional

import requests

from ..errors import BrokerError
from ..retry import with_retry

logger = logging.getLogger(__name__)

BASE_URL = "https://api.robinhood.com"
# Public client id used by Robinhood's web app (not a secret credential)
DEFAULT_CLIENT_ID = "c82SH0WZOsabOXGP2sxqcj34FxkvfnWRZBKlBjFS"
_TIMEOUT = 15

Side = Literal["buy", "sell"]


@dataclass(frozen=True)
class Position:
    symbol: str
    quantity: float


class RobinhoodClient:
    """Session-based Robinhood client."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
        base_url: str = BASE_URL,
    ) -> None:
        self.client_id = client_id or DEFAULT_CLIENT_ID
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._device_token = str(uuid.uuid4())
        self._instrument_cache: dict[str, dict] = {}

    @property
    def authenticated(self) -> bool:
        return self._access_token is not None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, username: str, password: str, mfa_code: Optional[str] = None) -> None:
        data = {
            "grant_type": "password",
            "client_id": self.client_id,
            "device_token": self._device_token,
            "username": username,
            "password": password,
            "scope": "internal",
        }
        if mfa_code:
            data["mfa_code"] = mfa_code

        resp = self._session.post(f"{self.base_url}/oauth2/token/", data=data, timeout=_TIMEOUT)
        if resp.status_code == 400:
            raise BrokerError("Invalid credentials or missing MFA code", status_code=400)
        if resp.status_code == 401:
            raise BrokerError("Authentication failed - check your credentials", status_code=401)
        body = self._json(resp, "login")
        self._set_tokens(body)
        logger.info("Authenticated with Robinhood")

    def refresh_access_token(self) -> None:
        if not self._refresh_token:
            raise BrokerError("No refresh token available")
        resp = self._session.post(
            f"{self.base_url}/oauth2/token/",
            data={
                "grant_type": "refresh_token",
                "refresh_token": self._refresh_token,
                "client_id": self.client_id,
            },
            timeout=_TIMEOUT,
        )
        self._set_tokens(self._json(resp, "token refresh"))

    def _set_tokens(self, body: dict) -> None:
        token = body.get("access_token")
        if not token:
            raise BrokerError("No access token received from Robinhood")
        self._access_token = token
        self._refresh_token = body.get("refresh_token") or self._refresh_token
        self._session.headers["Authorization"] = f"Bearer {token}"

    # ------------------------------------------------------------------
    # Market data / account
    # ------------------------------------------------------------------

    def get_quote(self, symbol: str) -> float:
        body = self._get(f"/quotes/{symbol.upper()}/")
        return float(body["last_trade_price"])

    def get_positions(self) -> list[Position]:
        body = self._get("/positions/", params={"nonzero": "true"})
        positions = []
        for raw in body.get("results", []):
            quantity = float(raw.get("quantity") or 0)
            instrument = self._get_url(raw["instrument"])
            positions.append(Position(symbol=instrument.get("symbol", ""), quantity=quantity))
        return positions

    def get_position_quantity(self, symbol: str) -> float:
        symbol = symbol.upper()
        return sum(p.quantity for p in self.get_positions() if p.symbol == symbol)

    def _instrument(self, symbol: str) -> dict:
        symbol = symbol.upper()
        if symbol not in self._instrument_cache:
            results = self._get("/instruments/", params={"symbol": symbol}).get("results") or []
            if not results:
                raise BrokerError(f"Instrument not found for symbol: {symbol}")
            self._instrument_cache[symbol] = results[0]
        return self._instrument_cache[symbol]

    def _account_url(self) -> str:
        results = self._get("/accounts/").get("results") or []
        if not results:
            raise BrokerError("Account not found")
        return results[0]["url"]

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def place_order(
        self,
        symbol: str,
        quantity: float,
        side: Side,
        order_type: Literal["market", "limit"] = "market",
        limit_price: Optional[float] = None,
    ) -> dict:
        if quantity <= 0:
            raise BrokerError(f"Order quantity must be positive, got {quantity}")
        instrument = self._instrument(symbol)
        order = {
            "account": self._account_url(),
            "instrument": instrument["url"],
            "symbol": symbol.upper(),
            "type": order_type,
            "time_in_force": "gfd",
            "trigger": "immediate",
            "quantity": quantity,
            "side": side,
        }
        if order_type == "limit":
            if limit_price is None:
                raise BrokerError("Limit orders need a limit price")
            order["price"] = limit_price
        elif side == "buy":
            # Market buys are sent as collared orders against the current quote
            order["price"] = round(self.get_quote(symbol) * 1.05, 2)

        resp = self._session.post(f"{self.base_url}/orders/", json=order, timeout=_TIMEOUT)
        body = self._json(resp, f"{side} order for {symbol}")
        logger.info("%s order placed: %s shares of %s", side.capitalize(), quantity, symbol)
        return body

    def buy_order(self, symbol: str, quantity: float, **kwargs: Any) -> dict:
        return self.place_order(symbol, quantity, "buy", **kwargs)

    def sell_order(self, symbol: str, quantity: float, **kwargs: Any) -> dict:
        return self.place_order(symbol, quantity, "sell", **kwargs)

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _get(self, path: str, params: Optional[dict] = None) -> dict:
        return self._get_url(f"{self.base_url}{path}", params=params)

    def _get_url(self, url: str, params: Optional[dict] = None) -> dict:
        def call() -> dict:
            resp = self._session.get(url, params=params, timeout=_TIMEOUT)
            return self._json(resp, f"GET {url}")

        return with_retry(call, max_retries=2, base_delay=1.0, context="Robinhood")

    @staticmethod
    def _json(resp: requests.Response, what: str) -> dict:
        if not resp.ok:
            raise BrokerError(f"Robinhood {what} failed ({resp.status_code}): {resp.text[:200]}", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise BrokerError(f"Robinhood {what} returned invalid JSON") from exc
