from __future__ import annotations

import json
import logging
from concurrent.futures import Future
from typing import Optional

from PySide6.QtCore import QPoint, Qt, QTimer, Signal, Slot
from PySide6.QtGui import QFontMetrics, QGuiApplication
from PySide6.QtWidgets import QHBoxLayout, QLabel, QWidget

from jdfund.core.models import FEED_TOPIC, PLATFORMS, SETTINGS_TOPIC, Settings
from jdfund.services.broadcaster import EventBroadcaster
from jdfund.services.gateway import CommandGateway

PLATFORM_LABELS = {
    "xau": "XAU",
    "ms": "民生",
    "gh": "工行",
    "zs": "浙商",
}

WINDOW_WIDTH = 280
WINDOW_HEIGHT = 40
SCREEN_MARGIN = 10


def flatten_frame(text: str) -> str:
    """Collapse a feed frame onto one line for the ticker strip."""
    return " ".join(text.split())


class FrameLabel(QLabel):
    """Shows the last unparsed feed frame on one line.

    Elided in the middle so both ends of the payload stay visible; the
    tooltip carries the whole frame.
    """

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__("", parent)
        self._frame = ""

    def show_frame(self, text: str) -> None:
        self._frame = text
        self.setToolTip(text)
        self._render()

    def resizeEvent(self, event) -> None:  # noqa: N802 - Qt override
        super().resizeEvent(event)
        self._render()

    def _render(self) -> None:
        metrics = QFontMetrics(self.font())
        self.setText(
            metrics.elidedText(flatten_frame(self._frame), Qt.TextElideMode.ElideMiddle, self.width())
        )


class TickerWindow(QWidget):
    source_fetched = Signal(str, str)

    def __init__(
        self,
        gateway: CommandGateway,
        broadcaster: EventBroadcaster,
        secondary_sources: Optional[dict[str, str]] = None,
        poll_interval_ms: int = 5000,
    ) -> None:
        super().__init__()
        self.setWindowTitle("黄金价格")
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
            | Qt.WindowType.Tool
        )
        self.setFixedSize(WINDOW_WIDTH, WINDOW_HEIGHT)
        self._gateway = gateway
        self._broadcaster = broadcaster
        self._secondary_sources = dict(secondary_sources or {})
        self._logger = logging.getLogger("jdfund")
        self._drag_offset: Optional[QPoint] = None

        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 2, 8, 2)
        layout.setSpacing(8)
        self._labels: dict[str, QLabel] = {}
        for platform in PLATFORMS:
            label = QLabel(f"{PLATFORM_LABELS[platform]} --")
            layout.addWidget(label)
            self._labels[platform] = label
        self._raw_label = FrameLabel()
        self._raw_label.hide()
        layout.addWidget(self._raw_label, 1)

        self._poll_timer = QTimer(self)
        self._poll_timer.timeout.connect(self._poll_sources)
        self.source_fetched.connect(self._on_source_fetched)

        broadcaster.subscribe(FEED_TOPIC, self._on_feed_event)
        broadcaster.subscribe(SETTINGS_TOPIC, self._on_settings_changed)
        self.apply_settings(gateway.get_settings())
        if self._secondary_sources:
            self._poll_timer.start(poll_interval_ms)
            QTimer.singleShot(0, self._poll_sources)

    def apply_settings(self, settings: Settings) -> None:
        for platform, label in self._labels.items():
            label.setVisible(settings.is_visible(platform))
        self.setStyleSheet(
            f"TickerWindow {{ background-color: {settings.bg_color}; }}"
            " QLabel { color: #f5d76e; font-weight: 600; }"
        )

    def position_bottom_right(self) -> None:
        screen = QGuiApplication.primaryScreen()
        if screen is None:
            return
        area = screen.availableGeometry()
        x = area.x() + area.width() - WINDOW_WIDTH - SCREEN_MARGIN
        y = area.y() + area.height() - WINDOW_HEIGHT - SCREEN_MARGIN
        self.move(x, y)

    def toggle_visibility(self) -> None:
        if self.isVisible():
            self.hide()
            return
        self.show()
        self.raise_()
        self.activateWindow()

    @Slot(str)
    def _on_feed_event(self, payload: str) -> None:
        try:
            data = json.loads(payload)
        except ValueError:
            data = None
        if not isinstance(data, dict):
            self._show_raw(payload)
            return
        values = {str(key).lower(): value for key, value in data.items()}
        matched = False
        for platform, label in self._labels.items():
            if platform in values:
                label.setText(f"{PLATFORM_LABELS[platform]} {values[platform]}")
                matched = True
        if not matched:
            self._show_raw(payload)
        else:
            self._raw_label.hide()

    @Slot(object)
    def _on_settings_changed(self, settings: Settings) -> None:
        self.apply_settings(settings)

    def _show_raw(self, text: str) -> None:
        self._raw_label.show_frame(text.strip())
        self._raw_label.show()

    def _poll_sources(self) -> None:
        for source_id, url in self._secondary_sources.items():
            future = self._gateway.fetch(url)
            future.add_done_callback(
                lambda done, source_id=source_id: self._deliver_fetch(source_id, done)
            )

    def _deliver_fetch(self, source_id: str, future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self._logger.debug("[HTTP] source=%s failed: %s", source_id, exc)
            return
        response = future.result()
        if not response.ok:
            self._logger.debug("[HTTP] source=%s status=%s", source_id, response.status_code)
            return
        self.source_fetched.emit(source_id, response.text)

    @Slot(str, str)
    def _on_source_fetched(self, source_id: str, text: str) -> None:
        label = self._labels.get(source_id)
        if label is None:
            self._show_raw(text)
            return
        label.setText(f"{PLATFORM_LABELS[source_id]} {text.strip()}")

    def mousePressEvent(self, event) -> None:  # noqa: N802 - Qt override
        if event.button() == Qt.MouseButton.LeftButton:
            self._drag_offset = event.globalPosition().toPoint() - self.frameGeometry().topLeft()
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:  # noqa: N802 - Qt override
        if self._drag_offset is not None and event.buttons() & Qt.MouseButton.LeftButton:
            self.move(event.globalPosition().toPoint() - self._drag_offset)
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:  # noqa: N802 - Qt override
        self._drag_offset = None
        super().mouseReleaseEvent(event)

    def closeEvent(self, event) -> None:  # noqa: N802 - Qt override
        self._poll_timer.stop()
        self._broadcaster.unsubscribe(FEED_TOPIC, self._on_feed_event)
        self._broadcaster.unsubscribe(SETTINGS_TOPIC, self._on_settings_changed)
        super().closeEvent(event)
