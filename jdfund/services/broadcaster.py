from __future__ import annotations

import threading
from typing import Any, Callable

from PySide6.QtCore import QObject, Signal

from jdfund.core.models import FEED_TOPIC, SETTINGS_TOPIC


class EventBroadcaster(QObject):
    """Named topics backed by Qt signals.

    Publishing from a worker thread reaches listeners through queued
    connections, so the publisher never waits on UI code. Events published
    while nobody listens are dropped.
    """

    feed_event = Signal(str)
    settings_changed = Signal(object)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._signals = {
            FEED_TOPIC: self.feed_event,
            SETTINGS_TOPIC: self.settings_changed,
        }
        self._listeners: dict[str, list[Callable[[Any], None]]] = {
            topic: [] for topic in self._signals
        }
        self._listeners_lock = threading.Lock()
        self._dropped: dict[str, int] = {topic: 0 for topic in self._signals}

    def dropped_count(self, topic: str) -> int:
        self._check_topic(topic)
        return self._dropped[topic]

    def listener_count(self, topic: str) -> int:
        self._check_topic(topic)
        with self._listeners_lock:
            return len(self._listeners[topic])

    def subscribe(self, topic: str, callback: Callable[[Any], None]) -> None:
        self._check_topic(topic)
        with self._listeners_lock:
            self._listeners[topic].append(callback)
        self._signals[topic].connect(callback)

    def unsubscribe(self, topic: str, callback: Callable[[Any], None]) -> None:
        self._check_topic(topic)
        with self._listeners_lock:
            if callback not in self._listeners[topic]:
                return
            self._listeners[topic].remove(callback)
        self._signals[topic].disconnect(callback)

    def publish(self, topic: str, payload: Any) -> None:
        self._check_topic(topic)
        with self._listeners_lock:
            if not self._listeners[topic]:
                self._dropped[topic] += 1
                return
        self._signals[topic].emit(payload)

    def _check_topic(self, topic: str) -> None:
        if topic not in self._signals:
            raise ValueError(f"unknown topic: {topic}")
