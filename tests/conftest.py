from __future__ import annotations

import pytest
from PySide6.QtCore import QCoreApplication

from jdfund.core.logger import configure_log_dir


@pytest.fixture(scope="session", autouse=True)
def qt_core_app():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture(scope="session", autouse=True)
def log_dir(tmp_path_factory):
    # the real sink would otherwise write to <tempdir>/JDfund
    return configure_log_dir(tmp_path_factory.mktemp("logs"))


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def publish(self, topic: str, payload: object) -> None:
        self.events.append((topic, payload))


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()
