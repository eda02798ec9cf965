"""Current artifact, bounded generation history and its persistence."""

from __future__ import annotations

import json
import logging
import math
import time
import uuid
from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Iterable, List, Optional

from vectorcraft.errors import NoCurrentArtifact, NotFound
from vectorcraft.services.storage_service import HISTORY_KEY, StorageService

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50
# 3000-01-01T00:00:00Z; stored stamps past this are treated as corrupt.
MAX_VERSION_MS = 32_503_680_000_000


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class Artifact:
    """One generated or refined SVG."""

    id: str
    markup: str
    prompt_label: str
    version: int  # epoch milliseconds of the last content replacement

    def copy(self) -> "Artifact":
        return replace(self)

    def to_record(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, record: Any) -> Optional["Artifact"]:
        """Build an Artifact from a stored record; None when malformed."""
        if not isinstance(record, dict):
            return None
        artifact_id = record.get("id")
        markup = record.get("markup")
        label = record.get("prompt_label", "")
        version = record.get("version")
        if not isinstance(artifact_id, str) or not artifact_id or not isinstance(markup, str):
            return None
        if not isinstance(label, str) or isinstance(version, bool) or not isinstance(version, (int, float)):
            return None
        if not math.isfinite(version) or not 0 <= version <= MAX_VERSION_MS:
            return None
        try:
            return cls(id=artifact_id, markup=markup, prompt_label=label, version=int(version))
        except (ValueError, OverflowError):
            return None


@dataclass(slots=True, frozen=True)
class StoreEvent:
    """Change notification emitted after every store mutation."""

    kind: str  # set_current, update_current, restore, remove, clear, load
    artifact_id: Optional[str] = None


Subscriber = Callable[[StoreEvent], None]


class ArtifactStore:
    """Hold the single current artifact and a newest-first history of snapshots."""

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.limit = limit
        self._current: Optional[Artifact] = None
        self._history: List[Artifact] = []
        self._subscribers: List[Subscriber] = []

    @property
    def current(self) -> Optional[Artifact]:
        return self._current.copy() if self._current else None

    @property
    def history(self) -> List[Artifact]:
        return [item.copy() for item in self._history]

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for change events; return an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    # Mutations ----------------------------------------------------------------
    def set_current(self, markup: str, prompt_label: str) -> Artifact:
        artifact = Artifact(
            id=uuid.uuid4().hex,
            markup=markup,
            prompt_label=prompt_label,
            version=_now_ms(),
        )
        self._current = artifact
        self._record(artifact)
        self._emit(StoreEvent("set_current", artifact.id))
        return artifact.copy()

    def update_current(self, markup: str) -> Artifact:
        if self._current is None:
            raise NoCurrentArtifact()
        version = max(_now_ms(), self._current.version + 1)
        self._current = replace(self._current, markup=markup, version=version)
        self._record(self._current)
        self._emit(StoreEvent("update_current", self._current.id))
        return self._current.copy()

    def restore(self, artifact_id: str) -> Artifact:
        entry = self._find(artifact_id)
        if entry is None:
            raise NotFound(artifact_id)
        self._current = entry.copy()
        self._emit(StoreEvent("restore", artifact_id))
        return entry.copy()

    def remove(self, artifact_id: str) -> None:
        entry = self._find(artifact_id)
        if entry is None:
            raise NotFound(artifact_id)
        self._history.remove(entry)
        self._emit(StoreEvent("remove", artifact_id))

    def clear(self) -> None:
        self._history.clear()
        self._emit(StoreEvent("clear"))

    def load(self, artifacts: Iterable[Artifact]) -> None:
        """Replace history with previously persisted snapshots."""
        self._history = [item.copy() for item in artifacts][: self.limit]
        self._emit(StoreEvent("load"))

    # Internal helpers ---------------------------------------------------------
    def _find(self, artifact_id: str) -> Optional[Artifact]:
        for item in self._history:
            if item.id == artifact_id:
                return item
        return None

    def _record(self, artifact: Artifact) -> None:
        self._history.insert(0, artifact.copy())
        del self._history[self.limit :]

    def _emit(self, event: StoreEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:  # noqa: BLE001
                logger.exception("Store subscriber failed on %s", event.kind)


class HistoryPersistence:
    """Store subscriber that saves the whole history after every mutation."""

    def __init__(self, store: ArtifactStore, storage: StorageService) -> None:
        self.store = store
        self.storage = storage

    def attach(self) -> Callable[[], None]:
        return self.store.subscribe(self)

    def __call__(self, event: StoreEvent) -> None:
        if event.kind == "load":
            return
        self.save()

    def save(self) -> bool:
        payload = json.dumps([item.to_record() for item in self.store.history], ensure_ascii=False)
        saved = self.storage.set(HISTORY_KEY, payload)
        if not saved:
            logger.warning("History not persisted; keeping %d entries in memory", len(self.store.history))
        return saved

    def load_history(self) -> List[Artifact]:
        """Restore history from storage; malformed payloads give an empty log."""
        raw = self.storage.get(HISTORY_KEY)
        if not raw:
            return []
        try:
            records = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Discarding malformed history payload: %s", exc)
            return []
        if not isinstance(records, list):
            logger.warning("Discarding history payload: expected a list")
            return []

        artifacts: List[Artifact] = []
        for record in records:
            artifact = Artifact.from_record(record)
            if artifact is None:
                logger.warning("Skipping malformed history record")
                continue
            artifacts.append(artifact)
        self.store.load(artifacts)
        return artifacts
