"""Runtime settings for the SMA signal notifier.

Settings are read from the environment once, at process start, and passed
explicitly to the components that need them. Entry points load ``.env``
before building them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationMissingError, InvalidConfigurationError

DEFAULT_TICKERS_FILE = Path("config") / "tickers.json"
DEFAULT_TRADE_AMOUNT = 1000.0


class Settings(BaseSettings):
    """Credentials, endpoints and run options.

    Attributes:
        telegram_bot_token: Bot API token used for report delivery.
        telegram_chat_id: Chat that receives the report.
        cron_secret: Shared secret expected from the scheduler.
        edge_config: Edge Config connection string (read access).
        edge_config_id: Edge Config id used for updates.
        vercel_api_token: Vercel REST token used for updates.
        tickers_file: Local JSON ticker list, used when Edge Config is absent.
        trade_amount: Dollar amount spent per buy order.
        dry_run: Analyse and report without placing orders.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        populate_by_name=True,
        env_ignore_empty=True,
        extra="ignore",
    )

    telegram_bot_token: Optional[str] = Field(default=None, validation_alias="TELEGRAM_BOT_TOKEN")
    telegram_chat_id: Optional[str] = Field(default=None, validation_alias="TELEGRAM_CHAT_ID")
    cron_secret: Optional[str] = Field(default=None, validation_alias="CRON_SECRET")
    edge_config: Optional[str] = Field(default=None, validation_alias="EDGE_CONFIG")
    edge_config_id: Optional[str] = Field(default=None, validation_alias="EDGE_CONFIG_ID")
    vercel_api_token: Optional[str] = Field(default=None, validation_alias="VERCEL_API_TOKEN")
    robinhood_username: Optional[str] = Field(default=None, validation_alias="ROBINHOOD_USERNAME")
    robinhood_password: Optional[str] = Field(default=None, validation_alias="ROBINHOOD_PASSWORD")
    robinhood_mfa_code: Optional[str] = Field(default=None, validation_alias="ROBINHOOD_MFA_CODE")
    robinhood_client_id: Optional[str] = Field(default=None, validation_alias="ROBINHOOD_CLIENT_ID")
    tickers_file: Path = Field(default=DEFAULT_TICKERS_FILE, validation_alias="TICKERS_FILE")
    trade_amount: float = Field(default=DEFAULT_TRADE_AMOUNT, gt=0, validation_alias="TRADE_AMOUNT")
    dry_run: bool = Field(default=False, validation_alias="DRY_RUN")

    @field_validator(
        "telegram_bot_token", "telegram_chat_id", "cron_secret", "edge_config",
        "edge_config_id", "vercel_api_token", "robinhood_username", "robinhood_password",
        "robinhood_mfa_code", "robinhood_client_id",
        mode="before",
    )
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """Build settings from environment variables; blank values count as unset.

        Raises InvalidConfigurationError when a value does not parse, e.g. a
        non-numeric ``TRADE_AMOUNT``.
        """
        try:
            if environ is None:
                return cls()
            return cls.model_validate({k: v for k, v in environ.items() if v.strip()})
        except ValidationError as exc:
            raise InvalidConfigurationError(_describe(exc)) from exc

    def require(self, *field_names: str) -> None:
        """Raise ConfigurationMissingError naming every unset field."""
        known = type(self).model_fields
        missing = []
        for name in field_names:
            if name not in known:
                raise AttributeError(f"Unknown setting: {name}")
            if not getattr(self, name):
                missing.append(known[name].validation_alias or name.upper())
        if missing:
            raise ConfigurationMissingError(*missing)

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    @property
    def edge_config_configured(self) -> bool:
        return bool(self.edge_config)


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        name = ".".join(str(part) for part in error["loc"])
        problems.append(f"{name}: {error['msg']}")
    return "Invalid configuration - " + "; ".join(problems)
