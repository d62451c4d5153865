from __future__ import annotations

import gzip
import logging

import pytest

from jdfund.core import logger as logger_module
from jdfund.core.logger import (
    INFO_EVENT_LEVEL,
    BufferedRotatingFileHandler,
    _gzip_namer,
    _gzip_rotator,
    record,
    resolve_level,
)


def test_resolve_level() -> None:
    assert resolve_level("info_event") == INFO_EVENT_LEVEL
    assert resolve_level("warning") == logging.WARNING
    assert resolve_level("nonsense") == logging.INFO


def test_warnings_are_flushed_immediately(tmp_path) -> None:
    path = tmp_path / "app.log"
    handler = BufferedRotatingFileHandler(path, encoding="utf-8", delay=True, flush_interval=100)
    handler.setFormatter(logging.Formatter("%(levelname)s | %(message)s"))
    logger = logging.getLogger("jdfund.test.flush")
    logger.propagate = False
    logger.addHandler(handler)
    try:
        logger.warning("[FEED] reconnect in 3.0s reason=refused")
        assert path.read_text(encoding="utf-8") == "WARNING | [FEED] reconnect in 3.0s reason=refused\n"
    finally:
        logger.removeHandler(handler)
        handler.close()


def test_rotation_gzips_old_file(tmp_path) -> None:
    path = tmp_path / "app.log"
    handler = BufferedRotatingFileHandler(
        path, maxBytes=64, backupCount=2, encoding="utf-8", flush_interval=1
    )
    handler.namer = _gzip_namer
    handler.rotator = _gzip_rotator
    logger = logging.getLogger("jdfund.test.rotate")
    logger.propagate = False
    logger.addHandler(handler)
    try:
        for idx in range(10):
            logger.warning("line %02d %s", idx, "x" * 20)
    finally:
        logger.removeHandler(handler)
        handler.close()

    rotated = tmp_path / "app.log.1.gz"
    assert rotated.exists()
    with gzip.open(rotated, "rt", encoding="utf-8") as handle:
        assert "line" in handle.read()


@pytest.fixture
def sink_log(tmp_path, monkeypatch):
    path = tmp_path / "app.log"
    handler = BufferedRotatingFileHandler(path, encoding="utf-8", flush_interval=1)
    handler.setFormatter(logging.Formatter("%(levelname)s | %(message)s"))
    sink = logging.getLogger("jdfund.test.record")
    sink.setLevel(logging.DEBUG)
    sink.propagate = False
    sink.addHandler(handler)
    monkeypatch.setattr(logger_module, "get_logger", lambda: sink)
    yield path
    sink.removeHandler(handler)
    handler.close()


def test_record_appends_line(sink_log) -> None:
    record("[FEED] supervisor start url=wss://feed.test/ws", INFO_EVENT_LEVEL)
    record("settings loaded path=settings.json")

    assert sink_log.read_text(encoding="utf-8").splitlines() == [
        "INFO_EVENT | [FEED] supervisor start url=wss://feed.test/ws",
        "INFO | settings loaded path=settings.json",
    ]


class ExplodingHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        raise RuntimeError("disk full")


def test_record_swallows_handler_failure(monkeypatch) -> None:
    sink = logging.getLogger("jdfund.test.exploding")
    sink.setLevel(logging.DEBUG)
    sink.propagate = False
    handler = ExplodingHandler()
    sink.addHandler(handler)
    monkeypatch.setattr(logger_module, "get_logger", lambda: sink)
    try:
        record("panic: RuntimeError: boom", logging.CRITICAL)
    finally:
        sink.removeHandler(handler)


def test_record_swallows_unconfigurable_logger(monkeypatch) -> None:
    def read_only_dir() -> logging.Logger:
        raise PermissionError("log dir is read-only")

    monkeypatch.setattr(logger_module, "get_logger", read_only_dir)

    record("app start version=0.1.0")
