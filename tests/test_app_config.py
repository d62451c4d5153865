from __future__ import annotations

import json

from jdfund.app.config import DEFAULT_FEED_URL, app_home, load_app_config


def test_defaults_when_config_missing(tmp_path) -> None:
    config = load_app_config(tmp_path)

    assert config.feed_url == DEFAULT_FEED_URL
    assert config.reconnect_delay_s == 3.0
    assert config.http_timeout_s == 10.0
    assert config.secondary_sources == {}
    assert config.settings_path == tmp_path / "settings.json"
    assert json.loads(config.subscribe_message()) == {
        "action": "subscribe",
        "keys": ["XAU", "MS", "GH", "ZS"],
    }


def test_values_are_bounded_and_filtered(tmp_path) -> None:
    (tmp_path / "config.json").write_text(
        json.dumps(
            {
                "feed_url": "https://not-a-socket",
                "reconnect_delay_s": 0,
                "http_timeout_s": "bad",
                "poll_interval_ms": 10_000_000,
                "secondary_sources": {"gh": "https://bank.test/gh", "zs": "ftp://x"},
                "log_level": "debug",
            }
        ),
        encoding="utf-8",
    )

    config = load_app_config(tmp_path)

    assert config.feed_url == DEFAULT_FEED_URL
    assert config.reconnect_delay_s == 0.1
    assert config.http_timeout_s == 10.0
    assert config.poll_interval_ms == 600000
    assert config.secondary_sources == {"gh": "https://bank.test/gh"}
    assert config.log_level == "DEBUG"


def test_custom_subscription_message(tmp_path) -> None:
    (tmp_path / "config.json").write_text(
        json.dumps({"feed_url": "wss://feed.test/ws", "feed_subscribe_message": "SUB XAU"}),
        encoding="utf-8",
    )

    config = load_app_config(tmp_path)

    assert config.feed_url == "wss://feed.test/ws"
    assert config.subscribe_message() == "SUB XAU"


def test_corrupt_config_is_ignored(tmp_path) -> None:
    (tmp_path / "config.json").write_text("{oops", encoding="utf-8")

    assert load_app_config(tmp_path).feed_url == DEFAULT_FEED_URL


def test_home_from_environment(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("JDFUND_HOME", str(tmp_path))

    assert app_home() == tmp_path
