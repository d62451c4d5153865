from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

DEFAULT_FEED_URL = "wss://api.jdjygold.com/ws/price"
DEFAULT_FEED_KEYS = ("XAU", "MS", "GH", "ZS")


def app_home() -> Path:
    env_home = os.environ.get("JDFUND_HOME", "").strip()
    return Path(env_home) if env_home else Path.home() / ".jdfund"


@dataclass
class AppConfig:
    home: Path = field(default_factory=app_home)
    feed_url: str = DEFAULT_FEED_URL
    feed_keys: tuple[str, ...] = DEFAULT_FEED_KEYS
    feed_subscribe_message: Optional[str] = None
    reconnect_delay_s: float = 3.0
    http_timeout_s: float = 10.0
    poll_interval_ms: int = 5000
    secondary_sources: dict[str, str] = field(default_factory=dict)
    log_level: str = "INFO"

    @property
    def settings_path(self) -> Path:
        return self.home / "settings.json"

    @property
    def config_path(self) -> Path:
        return self.home / "config.json"

    def subscribe_message(self) -> str:
        if self.feed_subscribe_message:
            return self.feed_subscribe_message
        return json.dumps({"action": "subscribe", "keys": list(self.feed_keys)})


def load_app_config(home: Optional[Path] = None) -> AppConfig:
    home = home or app_home()
    config = AppConfig(home=home)
    payload = _read_payload(config.config_path)
    feed_url = payload.get("feed_url")
    if isinstance(feed_url, str) and feed_url.startswith(("ws://", "wss://")):
        config.feed_url = feed_url
    feed_keys = payload.get("feed_keys")
    if isinstance(feed_keys, list) and feed_keys:
        config.feed_keys = tuple(str(key) for key in feed_keys if key)
    message = payload.get("feed_subscribe_message")
    if isinstance(message, str) and message.strip():
        config.feed_subscribe_message = message
    config.reconnect_delay_s = _bounded_float(payload.get("reconnect_delay_s"), 0.1, 300.0, 3.0)
    config.http_timeout_s = _bounded_float(payload.get("http_timeout_s"), 1.0, 120.0, 10.0)
    config.poll_interval_ms = _bounded_int(payload.get("poll_interval_ms"), 500, 600000, 5000)
    sources = payload.get("secondary_sources")
    if isinstance(sources, dict):
        config.secondary_sources = {
            str(key): str(value)
            for key, value in sources.items()
            if isinstance(value, str) and value.startswith(("http://", "https://"))
        }
    log_level = payload.get("log_level")
    if isinstance(log_level, str) and log_level.strip():
        config.log_level = log_level.strip().upper()
    return config


def _read_payload(path: Path) -> dict:
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as exc:
        logging.getLogger("jdfund").warning("config: ignored %s: %s", path, exc)
        return {}
    return payload if isinstance(payload, dict) else {}


def _bounded_float(value: Any, low: float, high: float, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return max(low, min(high, number))


def _bounded_int(value: Any, low: int, high: int, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))
