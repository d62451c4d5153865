from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any

FEED_TOPIC = "feed-event"
SETTINGS_TOPIC = "settings-updated"


class ConnectionState(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    SUBSCRIBED = "SUBSCRIBED"
    RECEIVING = "RECEIVING"
    CLOSING = "CLOSING"


PLATFORMS = ("xau", "ms", "gh", "zs")

COLOR_PRESETS = {
    "dark": "#2c3e50",
    "blue": "#1e3a5f",
    "black": "#000000",
}


@dataclass(frozen=True)
class Settings:
    show_xau: bool = True
    show_ms: bool = True
    show_gh: bool = True
    show_zs: bool = True
    bg_color: str = COLOR_PRESETS["dark"]

    def is_visible(self, platform: str) -> bool:
        return bool(getattr(self, f"show_{platform}"))

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Any) -> "Settings":
        """Strict decode: every field present and of the declared type."""
        if not isinstance(payload, dict):
            raise ValueError(f"settings payload must be an object, got {type(payload).__name__}")
        values: dict[str, Any] = {}
        for item in fields(cls):
            if item.name not in payload:
                raise ValueError(f"missing field: {item.name}")
            value = payload[item.name]
            expected = str if item.name == "bg_color" else bool
            if not isinstance(value, expected):
                raise ValueError(f"invalid type for {item.name}: {type(value).__name__}")
            values[item.name] = value
        return cls(**values)


DEFAULT_SETTINGS = Settings()


@dataclass(frozen=True)
class FetchResponse:
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

