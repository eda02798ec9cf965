"""Best-effort durable key-value storage backed by a JSON file."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

from vectorcraft.errors import PersistenceFailure

logger = logging.getLogger(__name__)

HISTORY_KEY = "vectorcraft.history"
VISITED_KEY = "vectorcraft.visited"


class StorageService:
    """String key-value entries persisted as one JSON object on disk.

    Reads never fail: a missing or malformed file is an empty store. Writes
    that fail are logged and dropped; the in-memory copy stays authoritative.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._entries: Dict[str, str] = self._read()

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._entries.get(key, default)

    def set(self, key: str, value: str) -> bool:
        """Store ``value`` under ``key``; return False when the write failed."""
        self._entries[key] = value
        return self._flush()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s: expected an object", self.path)
            return {}
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _flush(self) -> bool:
        try:
            self._write()
        except PersistenceFailure as exc:
            logger.warning("%s", exc)
            return False
        return True

    def _write(self) -> None:
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                json.dump(self._entries, fp, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise PersistenceFailure(f"Could not write storage file {self.path}: {exc}") from exc
