from __future__ import annotations

import threading

import pytest
from PySide6.QtCore import QCoreApplication, QObject, Slot

from jdfund.core.models import FEED_TOPIC, SETTINGS_TOPIC, Settings
from jdfund.services.broadcaster import EventBroadcaster


class Collector:
    def __init__(self) -> None:
        self.items: list = []

    def add(self, payload) -> None:
        self.items.append(payload)


def test_publish_without_listener_is_dropped() -> None:
    broadcaster = EventBroadcaster()

    broadcaster.publish(FEED_TOPIC, "tick")
    broadcaster.publish(SETTINGS_TOPIC, Settings())

    assert broadcaster.dropped_count(FEED_TOPIC) == 1
    assert broadcaster.dropped_count(SETTINGS_TOPIC) == 1


def test_listener_receives_events_in_publish_order() -> None:
    broadcaster = EventBroadcaster()
    collector = Collector()
    received = collector.items
    broadcaster.subscribe(FEED_TOPIC, collector.add)

    for idx in range(5):
        broadcaster.publish(FEED_TOPIC, f"frame-{idx}")

    assert received == [f"frame-{idx}" for idx in range(5)]
    assert broadcaster.dropped_count(FEED_TOPIC) == 0


def test_topics_are_independent() -> None:
    broadcaster = EventBroadcaster()
    feed_collector = Collector()
    settings_collector = Collector()
    feed = feed_collector.items
    settings = settings_collector.items
    broadcaster.subscribe(FEED_TOPIC, feed_collector.add)
    broadcaster.subscribe(SETTINGS_TOPIC, settings_collector.add)

    broadcaster.publish(SETTINGS_TOPIC, Settings(show_ms=False))
    broadcaster.publish(FEED_TOPIC, "{}")

    assert feed == ["{}"]
    assert settings == [Settings(show_ms=False)]


def test_unsubscribe_stops_delivery() -> None:
    broadcaster = EventBroadcaster()
    collector = Collector()
    received = collector.items
    broadcaster.subscribe(FEED_TOPIC, collector.add)
    broadcaster.publish(FEED_TOPIC, "a")

    broadcaster.unsubscribe(FEED_TOPIC, collector.add)
    broadcaster.unsubscribe(FEED_TOPIC, collector.add)
    broadcaster.publish(FEED_TOPIC, "b")

    assert received == ["a"]
    assert broadcaster.listener_count(FEED_TOPIC) == 0
    assert broadcaster.dropped_count(FEED_TOPIC) == 1


def test_unknown_topic_rejected() -> None:
    broadcaster = EventBroadcaster()

    with pytest.raises(ValueError):
        broadcaster.publish("prices", "x")
    with pytest.raises(ValueError):
        broadcaster.subscribe("prices", print)


class FeedListener(QObject):
    def __init__(self) -> None:
        super().__init__()
        self.received: list[str] = []

    @Slot(str)
    def on_feed(self, payload: str) -> None:
        self.received.append(payload)


def test_publish_from_worker_thread_does_not_wait_for_listener() -> None:
    broadcaster = EventBroadcaster()
    listener = FeedListener()
    received = listener.received
    broadcaster.subscribe(FEED_TOPIC, listener.on_feed)

    worker = threading.Thread(
        target=lambda: [broadcaster.publish(FEED_TOPIC, f"f{idx}") for idx in range(3)]
    )
    worker.start()
    worker.join(timeout=5)

    # delivery is queued to the listener's thread
    assert received == []
    QCoreApplication.processEvents()
    assert received == ["f0", "f1", "f2"]
