from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from jdfund.core.errors import PersistenceError


class KeyValueStore:
    """JSON-object file holding a handful of top-level keys.

    Values are kept in memory after ``open``; ``set`` only touches memory and
    ``save`` writes the whole object back through a temp file.
    """

    def __init__(self, path: Path, payload: Optional[dict] = None) -> None:
        self._path = path
        self._payload: dict[str, Any] = dict(payload or {})
        self._logger = logging.getLogger("jdfund")

    @classmethod
    def open(cls, path: Path) -> "KeyValueStore":
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError:
            return cls(path)
        except json.JSONDecodeError as exc:
            _backup_corrupt_file(path)
            raise PersistenceError(f"open store failed: {exc}") from exc
        except OSError as exc:
            raise PersistenceError(f"open store failed: {exc}") from exc
        if not isinstance(payload, dict):
            _backup_corrupt_file(path)
            raise PersistenceError(
                f"open store failed: expected object, got {type(payload).__name__}"
            )
        return cls(path, payload)

    def get(self, key: str) -> Any:
        return self._payload.get(key)

    def set(self, key: str, value: Any) -> None:
        self._payload[key] = value

    def delete(self, key: str) -> None:
        self._payload.pop(key, None)

    def save(self) -> None:
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(self._payload, handle, indent=2, ensure_ascii=False)
                handle.write("\n")
            os.replace(tmp_path, self._path)
        except (OSError, TypeError, ValueError) as exc:
            self._logger.warning("store save failed path=%s error=%s", self._path, exc)
            raise PersistenceError(f"save store failed: {exc}") from exc


def _backup_corrupt_file(path: Path) -> None:
    if not path.exists():
        return
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    backup_path = path.with_name(f"{path.stem}.invalid-{timestamp}{path.suffix}")
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
        backup_path.write_text(content, encoding="utf-8")
    except OSError:
        return
