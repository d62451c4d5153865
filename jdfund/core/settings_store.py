from __future__ import annotations

import dataclasses
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from jdfund.core.config_store import KeyValueStore
from jdfund.core.errors import (
    LockContentionError,
    PersistenceError,
    PoisonedStateError,
    TickerError,
    UnknownFieldError,
)
from jdfund.core.logger import INFO_EVENT_LEVEL, record
from jdfund.core.models import DEFAULT_SETTINGS, PLATFORMS, SETTINGS_TOPIC, Settings

SETTINGS_KEY = "settings"


class SettingsStore:
    """Single owner of the process-wide ``Settings`` value.

    Mutators are serialized by ``_mutation_lock`` for the whole
    read-modify-persist-swap-notify sequence. ``_value_lock`` only guards the
    reference itself, so ``get`` keeps returning the previous value while a
    write is on disk.
    """

    def __init__(
        self,
        path: Path,
        publisher: Any = None,
        opener: Callable[[Path], KeyValueStore] = KeyValueStore.open,
        lock_timeout_s: float = 5.0,
    ) -> None:
        self._path = path
        self._publisher = publisher
        self._opener = opener
        self._lock_timeout_s = lock_timeout_s
        self._mutation_lock = threading.Lock()
        self._value_lock = threading.Lock()
        self._value: Settings = DEFAULT_SETTINGS
        self._kv: Optional[KeyValueStore] = None
        self._logger = logging.getLogger("jdfund")

    def get(self) -> Settings:
        with self._value_lock:
            return self._value

    def load(self) -> Settings:
        try:
            with self._mutation("load"):
                settings = self._read_persisted()
                self._swap(settings)
            record(f"settings loaded path={self._path}", INFO_EVENT_LEVEL)
        except TickerError as exc:
            self._logger.warning("load: %s", exc)
        return self.get()

    def replace(self, new: Settings) -> Settings:
        if not isinstance(new, Settings):
            raise TypeError(f"expected Settings, got {type(new).__name__}")
        with self._mutation("save_settings"):
            return self._commit(new)

    def toggle(self, field_id: str) -> Settings:
        if field_id not in PLATFORMS:
            raise UnknownFieldError(field_id)
        with self._mutation("toggle_platform"):
            current = self.get()
            name = f"show_{field_id}"
            updated = dataclasses.replace(current, **{name: not getattr(current, name)})
            return self._commit(updated)

    def set_background(self, color: str) -> Settings:
        with self._mutation("set_bg_color"):
            updated = dataclasses.replace(self.get(), bg_color=str(color))
            return self._commit(updated)

    @contextmanager
    def _mutation(self, operation: str) -> Iterator[None]:
        if not self._mutation_lock.acquire(timeout=self._lock_timeout_s):
            self._logger.warning("%s: settings lock busy", operation)
            raise LockContentionError(f"{operation}: settings lock busy")
        try:
            yield
        except TickerError:
            raise
        except Exception as exc:
            self._logger.exception("%s: settings lock poisoned", operation)
            raise PoisonedStateError(f"{operation}: settings lock poisoned") from exc
        finally:
            self._mutation_lock.release()

    def _read_persisted(self) -> Settings:
        try:
            self._kv = self._opener(self._path)
        except PersistenceError as exc:
            self._logger.warning("load: open store failed: %s", exc)
            self._kv = KeyValueStore(self._path)
            return DEFAULT_SETTINGS
        payload = self._kv.get(SETTINGS_KEY)
        if payload is None:
            return DEFAULT_SETTINGS
        try:
            return Settings.from_payload(payload)
        except ValueError as exc:
            self._logger.warning("load: decode failed: %s", exc)
            return DEFAULT_SETTINGS

    def _store(self) -> KeyValueStore:
        if self._kv is None:
            self._kv = self._opener(self._path)
        return self._kv

    def _commit(self, new: Settings) -> Settings:
        kv = self._store()
        previous = kv.get(SETTINGS_KEY)
        kv.set(SETTINGS_KEY, new.to_payload())
        try:
            kv.save()
        except PersistenceError:
            if previous is None:
                kv.delete(SETTINGS_KEY)
            else:
                kv.set(SETTINGS_KEY, previous)
            raise
        self._swap(new)
        self._notify(new)
        return new

    def _swap(self, new: Settings) -> None:
        with self._value_lock:
            self._value = new

    def _notify(self, settings: Settings) -> None:
        if self._publisher is None:
            return
        try:
            self._publisher.publish(SETTINGS_TOPIC, settings)
        except Exception:
            self._logger.exception("settings notify failed")
