from __future__ import annotations

import logging

from PySide6.QtCore import Slot
from PySide6.QtGui import QAction, QIcon
from PySide6.QtWidgets import QMenu, QSystemTrayIcon, QWidget

from jdfund.core.models import PLATFORMS, SETTINGS_TOPIC, Settings
from jdfund.gui.ticker_window import PLATFORM_LABELS, TickerWindow
from jdfund.services.broadcaster import EventBroadcaster
from jdfund.services.gateway import CommandGateway

COLOR_LABELS = (
    ("color_dark", "深色"),
    ("color_blue", "蓝色"),
    ("color_black", "黑色"),
)


class TrayManager(QSystemTrayIcon):
    def __init__(
        self,
        icon: QIcon,
        window: TickerWindow,
        gateway: CommandGateway,
        broadcaster: EventBroadcaster,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(icon, parent)
        self._window = window
        self._gateway = gateway
        self._logger = logging.getLogger("jdfund")
        self.setToolTip("黄金价格监控")

        self._menu = QMenu()
        show_action = self._menu.addAction("显示/隐藏")
        show_action.triggered.connect(self._window.toggle_visibility)
        self._menu.addSeparator()
        self._platform_actions: dict[str, QAction] = {}
        for platform in PLATFORMS:
            action = self._menu.addAction(f"显示 {PLATFORM_LABELS[platform]}")
            action.setCheckable(True)
            action.triggered.connect(
                lambda _checked=False, action_id=f"toggle_{platform}": self._run(action_id)
            )
            self._platform_actions[platform] = action
        self._menu.addSeparator()
        for action_id, label in COLOR_LABELS:
            action = self._menu.addAction(label)
            action.triggered.connect(
                lambda _checked=False, action_id=action_id: self._run(action_id)
            )
        self._menu.addSeparator()
        quit_action = self._menu.addAction("退出")
        quit_action.triggered.connect(lambda _checked=False: self._run("quit"))
        self.setContextMenu(self._menu)

        self.activated.connect(self._on_activated)
        broadcaster.subscribe(SETTINGS_TOPIC, self._sync_checks)
        self._sync_checks(gateway.get_settings())

    def _run(self, action_id: str) -> None:
        self._gateway.handle_menu_action(action_id)
        if action_id != "quit":
            self._sync_checks(self._gateway.get_settings())

    @Slot(object)
    def _sync_checks(self, settings: Settings) -> None:
        for platform, action in self._platform_actions.items():
            action.setChecked(settings.is_visible(platform))

    def _on_activated(self, reason: QSystemTrayIcon.ActivationReason) -> None:
        if reason == QSystemTrayIcon.ActivationReason.Trigger:
            self._window.toggle_visibility()
