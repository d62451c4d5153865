from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from jdfund.core.errors import TickerError
from jdfund.core.logger import INFO_EVENT_LEVEL
from jdfund.core.models import COLOR_PRESETS, PLATFORMS, FetchResponse, Settings
from jdfund.core.settings_store import SettingsStore
from jdfund.services.insecure_fetcher import InsecureHttpFetcher


class CommandGateway:
    """Operations the window and the tray menu are allowed to invoke."""

    def __init__(
        self,
        store: SettingsStore,
        fetcher: InsecureHttpFetcher,
        on_quit: Callable[[int], Any],
        max_workers: int = 2,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._on_quit = on_quit
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="jdfund-fetch")
        self._logger = logging.getLogger("jdfund")
        self._menu_actions: dict[str, Callable[[], Any]] = {"quit": self.quit_app}
        for platform in PLATFORMS:
            self._menu_actions[f"toggle_{platform}"] = (
                lambda platform=platform: self.toggle_platform(platform)
            )
        for name, color in COLOR_PRESETS.items():
            self._menu_actions[f"color_{name}"] = lambda color=color: self.set_bg_color(color)

    def get_settings(self) -> Settings:
        return self._store.get()

    def save_settings(self, settings: Settings | dict) -> Settings:
        if isinstance(settings, dict):
            try:
                settings = Settings.from_payload(settings)
            except ValueError as exc:
                self._logger.warning("save_settings: rejected payload: %s", exc)
                raise
        return self._call("save_settings", self._store.replace, settings)

    def toggle_platform(self, platform: str) -> Settings:
        return self._call("toggle_platform", self._store.toggle, platform)

    def set_bg_color(self, color: str) -> Settings:
        return self._call("set_bg_color", self._store.set_background, color)

    def fetch(self, url: str, method: str = "GET", body: Any = None) -> "Future[FetchResponse]":
        return self._executor.submit(self._fetcher.fetch, url, method, body)

    def quit_app(self) -> None:
        self._logger.log(INFO_EVENT_LEVEL, "quit requested")
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._on_quit(0)

    def handle_menu_action(self, action_id: str) -> Optional[Settings]:
        action = self._menu_actions.get(action_id)
        if action is None:
            self._logger.debug("menu: ignored action=%s", action_id)
            return None
        try:
            return action()
        except TickerError as exc:
            self._logger.warning("menu: action=%s failed: %s", action_id, exc)
            return None

    def _call(self, operation: str, func: Callable[[Any], Settings], arg: Any) -> Settings:
        try:
            return func(arg)
        except TickerError as exc:
            self._logger.warning("%s: %s", operation, exc)
            raise
