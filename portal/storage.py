"""Durable client storage backed by a JSON file."""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from .logging_config import get_logger

logger = get_logger(__name__)


class ClientStorage:
    """Key/value store persisted as one JSON document.

    Every write rewrites the whole file through a temporary file, so a
    crash leaves either the old or the new document on disk. Last writer
    wins; there is no cross-process locking.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.is_file():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable storage file {self.path}: {e}")
            return {}
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring storage file {self.path}: not a JSON object")
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".storage-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._data, handle)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        """Return the stored string for key, if any."""
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        """Store value under key and persist."""
        with self._lock:
            self._data[key] = value
            self._flush()

    def set_many(self, values: Dict[str, str]) -> None:
        """Store several keys with a single write."""
        with self._lock:
            self._data.update(values)
            self._flush()

    def remove(self, *keys: str) -> None:
        """Delete keys with a single write; missing keys are ignored."""
        with self._lock:
            changed = False
            for key in keys:
                if key in self._data:
                    del self._data[key]
                    changed = True
            if changed:
                self._flush()

    def get_json(self, key: str) -> Any:
        """Decode the JSON value stored under key; raises ValueError if corrupt."""
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value))
