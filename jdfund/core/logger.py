from __future__ import annotations

import gzip
import logging
import logging.handlers
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Optional

INFO_EVENT_LEVEL = logging.INFO + 5
logging.addLevelName(INFO_EVENT_LEVEL, "INFO_EVENT")

LOGGER_NAME = "jdfund"

_LOG_DIR: Optional[Path] = None


def configure_log_dir(path: Optional[Path] = None) -> Path:
    global _LOG_DIR
    if path is None:
        env_dir = os.environ.get("JDFUND_LOG_DIR", "").strip()
        path = Path(env_dir) if env_dir else Path(tempfile.gettempdir()) / "JDfund"
    path.mkdir(parents=True, exist_ok=True)
    _LOG_DIR = path
    return path


def _log_dir() -> Path:
    if _LOG_DIR is not None:
        return _LOG_DIR
    return configure_log_dir()


def _gzip_namer(name: str) -> str:
    return f"{name}.gz"


def _gzip_rotator(source: str, dest: str) -> None:
    with open(source, "rb") as source_handle, gzip.open(dest, "wb") as dest_handle:
        shutil.copyfileobj(source_handle, dest_handle)
    os.remove(source)


class BufferedRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Rotating file handler that flushes in batches.

    The stream is flushed every ``flush_interval`` records, and at once for
    records at ``flush_level`` or above so a crash keeps its last warnings.
    """

    def __init__(
        self, *args, flush_interval: int = 50, flush_level: int = logging.WARNING, **kwargs
    ) -> None:
        super().__init__(*args, **kwargs)
        self._flush_interval = max(1, flush_interval)
        self._flush_level = flush_level
        self._pending = 0

    def flush(self) -> None:
        self._pending = 0
        super().flush()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if self.shouldRollover(record):
                self.doRollover()
            if self.stream is None:
                self.stream = self._open()
            self.stream.write(self.format(record) + self.terminator)
            self._pending += 1
            if self._pending >= self._flush_interval or record.levelno >= self._flush_level:
                self.flush()
        except Exception:
            self.handleError(record)


def get_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if getattr(logger, "_jdfund_configured", False):
        return logger
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    log_dir = _log_dir()
    app_handler = BufferedRotatingFileHandler(
        log_dir / "app.log",
        maxBytes=2 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
        delay=True,
        flush_interval=20,
    )
    app_handler.setLevel(logging.INFO)
    app_handler.namer = _gzip_namer
    app_handler.rotator = _gzip_rotator
    debug_handler = BufferedRotatingFileHandler(
        log_dir / "debug.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
        delay=True,
        flush_interval=100,
    )
    debug_handler.setLevel(logging.DEBUG)
    debug_handler.namer = _gzip_namer
    debug_handler.rotator = _gzip_rotator
    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    app_handler.setFormatter(formatter)
    debug_handler.setFormatter(formatter)
    logger.addHandler(app_handler)
    logger.addHandler(debug_handler)
    logger._jdfund_configured = True
    return logger


def set_level(level: str) -> None:
    logger = get_logger()
    for handler in logger.handlers:
        if not isinstance(handler, BufferedRotatingFileHandler):
            continue
        if Path(handler.baseFilename).name == "app.log":
            handler.setLevel(resolve_level(level))


def record(line: str, level: int = logging.INFO) -> None:
    """Append one line to the log; never raises."""
    try:
        get_logger().log(level, line)
    except Exception:
        pass


def install_excepthook() -> None:
    def _hook(exc_type, exc, tb) -> None:
        record(f"panic: {exc_type.__name__}: {exc}", logging.CRITICAL)
        logging.getLogger(LOGGER_NAME).debug("traceback", exc_info=(exc_type, exc, tb))
        sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = _hook


def resolve_level(level: str) -> int:
    # getLevelName maps a registered name back to its number
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO
