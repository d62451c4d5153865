from __future__ import annotations

import dataclasses

import pytest

from jdfund.core.models import DEFAULT_SETTINGS, FetchResponse, Settings


def test_payload_round_trip() -> None:
    settings = Settings(show_xau=False, show_ms=True, show_gh=False, show_zs=True, bg_color="#1e3a5f")

    assert Settings.from_payload(settings.to_payload()) == settings


@pytest.mark.parametrize(
    "payload",
    [
        None,
        "settings",
        {"show_xau": True, "show_ms": True, "show_gh": True, "show_zs": True},
        {"show_xau": 1, "show_ms": True, "show_gh": True, "show_zs": True, "bg_color": "#000"},
        {"show_xau": True, "show_ms": True, "show_gh": True, "show_zs": True, "bg_color": None},
    ],
)
def test_from_payload_rejects_malformed(payload) -> None:
    with pytest.raises(ValueError):
        Settings.from_payload(payload)


def test_settings_are_immutable() -> None:
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_SETTINGS.show_xau = False  # type: ignore[misc]


def test_is_visible_reads_flag() -> None:
    settings = Settings(show_gh=False)

    assert settings.is_visible("xau")
    assert not settings.is_visible("gh")


def test_fetch_response_ok() -> None:
    assert FetchResponse(204, "").ok
    assert not FetchResponse(503, "down").ok
