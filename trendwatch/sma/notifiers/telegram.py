"""Telegram Bot API delivery for analysis reports."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from ..config import Settings
from ..errors import ConfigurationMissingError, DeliveryError
from ..retry import with_retry

logger = logging.getLogger(__name__)

API_BASE = "https://api.telegram.org"
_RETRIES = 2
_BASE_DELAY = 3.0
_TIMEOUT = 10


class TelegramNotifier:
    """Send Markdown messages and chart images to one chat."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        session: Optional[requests.Session] = None,
        parse_mode: str = "Markdown",
        max_retries: int = _RETRIES,
        base_delay: float = _BASE_DELAY,
    ) -> None:
        if not bot_token:
            raise ConfigurationMissingError("TELEGRAM_BOT_TOKEN")
        if not chat_id:
            raise ConfigurationMissingError("TELEGRAM_CHAT_ID")
        self.chat_id = chat_id
        self.parse_mode = parse_mode
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._base_url = f"{API_BASE}/bot{bot_token}"
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> TelegramNotifier:
        settings.require("telegram_bot_token", "telegram_chat_id")
        return cls(settings.telegram_bot_token, settings.telegram_chat_id, **kwargs)

    def send_message(self, text: str) -> dict:
        result = self._call(
            "sendMessage",
            {"chat_id": self.chat_id, "text": text, "parse_mode": self.parse_mode},
        )
        logger.info("Message sent to Telegram chat %s", self.chat_id)
        return result

    def send_photo(self, photo_url: str, caption: Optional[str] = None) -> dict:
        payload = {"chat_id": self.chat_id, "photo": photo_url, "parse_mode": self.parse_mode}
        if caption:
            payload["caption"] = caption
        result = self._call("sendPhoto", payload)
        logger.info("Photo sent to Telegram chat %s", self.chat_id)
        return result

    def send_photo_group(self, photo_urls: list[str], caption: Optional[str] = None) -> list:
        """Send up to ten photos as one album; the caption goes on the first."""
        if not photo_urls:
            return []
        media = []
        for i, url in enumerate(photo_urls[:10]):
            item = {"type": "photo", "media": url, "parse_mode": self.parse_mode}
            if i == 0 and caption:
                item["caption"] = caption
            media.append(item)
        result = self._call("sendMediaGroup", {"chat_id": self.chat_id, "media": media})
        logger.info("Photo group of %d sent to Telegram chat %s", len(media), self.chat_id)
        return result

    def _call(self, method: str, payload: dict) -> Any:
        return with_retry(
            lambda: self._post(method, payload),
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            context=f"Telegram {method}",
        )

    def _post(self, method: str, payload: dict) -> Any:
        try:
            resp = self._session.post(f"{self._base_url}/{method}", json=payload, timeout=_TIMEOUT)
        except requests.RequestException as exc:
            raise DeliveryError(f"Telegram {method} request error: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.ok and body.get("ok", True):
            return body.get("result", body)

        description = body.get("description") or resp.text or resp.reason
        retry_after = (body.get("parameters") or {}).get("retry_after") or resp.headers.get("Retry-After")
        logger.warning("Telegram %s failed (%s): %s", method, resp.status_code, description)
        raise DeliveryError(
            f"Telegram {method} failed ({resp.status_code}): {description}",
            status_code=resp.status_code,
            retry_after=str(retry_after) if retry_after is not None else None,
        )
