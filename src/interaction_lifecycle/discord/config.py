from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .constants import DISCORD_API_BASE_URL

DEFAULT_BOT_TOKEN_ENV = "INTERACTIONS_DISCORD_BOT_TOKEN"
DEFAULT_APP_ID_ENV = "INTERACTIONS_DISCORD_APP_ID"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 1.0
DEFAULT_RETRY_MAX_DELAY = 30.0
CONFIG_SECTION = "discord_webhook"


class DiscordWebhookConfigError(Exception):
    """Raised when webhook client config is invalid."""


@dataclass(frozen=True)
class DiscordWebhookConfig:
    bot_token_env: str
    app_id_env: str
    bot_token: Optional[str]
    application_id: Optional[int]
    base_url: str = DISCORD_API_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY
    retry_max_delay: float = DEFAULT_RETRY_MAX_DELAY

    @classmethod
    def from_raw(
        cls, *, raw: Optional[dict[str, Any]], require_token: bool = False
    ) -> "DiscordWebhookConfig":
        cfg: dict[str, Any] = raw if isinstance(raw, dict) else {}
        bot_token_env = str(cfg.get("bot_token_env", DEFAULT_BOT_TOKEN_ENV)).strip()
        app_id_env = str(cfg.get("app_id_env", DEFAULT_APP_ID_ENV)).strip()
        if not bot_token_env:
            raise DiscordWebhookConfigError(
                f"{CONFIG_SECTION}.bot_token_env must be non-empty"
            )
        if not app_id_env:
            raise DiscordWebhookConfigError(
                f"{CONFIG_SECTION}.app_id_env must be non-empty"
            )

        bot_token = os.environ.get(bot_token_env) or None
        if require_token and not bot_token:
            raise DiscordWebhookConfigError(
                f"Discord bot token is required but env var {bot_token_env} is unset"
            )
        application_id = _parse_application_id(
            os.environ.get(app_id_env), env_name=app_id_env
        )

        base_url = str(cfg.get("base_url", DISCORD_API_BASE_URL)).strip().rstrip("/")
        if not base_url:
            raise DiscordWebhookConfigError(f"{CONFIG_SECTION}.base_url must be non-empty")

        return cls(
            bot_token_env=bot_token_env,
            app_id_env=app_id_env,
            bot_token=bot_token,
            application_id=application_id,
            base_url=base_url,
            timeout_seconds=_parse_positive_float(
                cfg.get("timeout_seconds"),
                default=DEFAULT_TIMEOUT_SECONDS,
                key=f"{CONFIG_SECTION}.timeout_seconds",
            ),
            max_retries=_parse_non_negative_int(
                cfg.get("max_retries"),
                default=DEFAULT_MAX_RETRIES,
                key=f"{CONFIG_SECTION}.max_retries",
            ),
            retry_base_delay=_parse_positive_float(
                cfg.get("retry_base_delay"),
                default=DEFAULT_RETRY_BASE_DELAY,
                key=f"{CONFIG_SECTION}.retry_base_delay",
            ),
            retry_max_delay=_parse_positive_float(
                cfg.get("retry_max_delay"),
                default=DEFAULT_RETRY_MAX_DELAY,
                key=f"{CONFIG_SECTION}.retry_max_delay",
            ),
        )


def load_webhook_config(
    path: Union[str, Path], *, require_token: bool = False
) -> DiscordWebhookConfig:
    """Load the ``discord_webhook`` section of a YAML config file.

    A missing file yields the defaults.
    """
    config_path = Path(path)
    raw: Any = {}
    if config_path.exists():
        try:
            raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise DiscordWebhookConfigError(
                f"Invalid YAML in {config_path}: {exc}"
            ) from exc
    if not isinstance(raw, dict):
        raise DiscordWebhookConfigError(f"{config_path} must contain a mapping")
    section = raw.get(CONFIG_SECTION)
    if section is not None and not isinstance(section, dict):
        raise DiscordWebhookConfigError(f"{CONFIG_SECTION} must be a mapping")
    return DiscordWebhookConfig.from_raw(raw=section, require_token=require_token)


def _parse_application_id(value: Optional[str], *, env_name: str) -> Optional[int]:
    if value is None or not value.strip():
        return None
    token = value.strip()
    if not (token.isascii() and token.isdigit()):
        raise DiscordWebhookConfigError(
            f"env var {env_name} must be a decimal application id"
        )
    return int(token)


def _parse_positive_float(value: Any, *, default: float, key: str) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        raise DiscordWebhookConfigError(f"{key} must be a positive number")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise DiscordWebhookConfigError(f"{key} must be a positive number") from exc
    if parsed <= 0:
        raise DiscordWebhookConfigError(f"{key} must be a positive number")
    return parsed


def _parse_non_negative_int(value: Any, *, default: int, key: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise DiscordWebhookConfigError(f"{key} must be an integer")
    if value < 0:
        raise DiscordWebhookConfigError(f"{key} must be >= 0")
    return value
