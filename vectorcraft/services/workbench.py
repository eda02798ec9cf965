"""Session state shared by the UI: current artifact, history, exports."""

from __future__ import annotations

import logging
from typing import List, Optional

from config.settings import AppConfig
from vectorcraft.errors import NoCurrentArtifact
from vectorcraft.generation.composer import GenerationComposer
from vectorcraft.generation.models import GenerationRequest
from vectorcraft.services.artifact_store import Artifact, ArtifactStore, HistoryPersistence
from vectorcraft.services.export_service import ExportPayload, ExportService
from vectorcraft.services.storage_service import VISITED_KEY, StorageService

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("svg", "png", "zip")


class Workbench:
    """Own the session and route generation results into the artifact store.

    Late results are dropped: a refinement lands only if its target is still
    current, and a generation lands only if nothing was restored or generated
    after it was dispatched.
    """

    def __init__(
        self,
        config: AppConfig,
        composer: GenerationComposer,
        store: Optional[ArtifactStore] = None,
        exporter: Optional[ExportService] = None,
        storage: Optional[StorageService] = None,
    ) -> None:
        self.config = config
        self.composer = composer
        self.store = store or ArtifactStore(limit=config.history_limit)
        self.exporter = exporter or ExportService()
        self.storage = storage or StorageService(config.storage_path)
        self.language = "en"
        self._epoch = 0

        self.persistence = HistoryPersistence(self.store, self.storage)
        restored = self.persistence.load_history()
        self.persistence.attach()
        logger.info("Restored %d history entries from %s", len(restored), self.storage.path)

    @property
    def current(self) -> Optional[Artifact]:
        return self.store.current

    @property
    def history(self) -> List[Artifact]:
        return self.store.history

    async def generate(
        self, request: GenerationRequest, backend: Optional[str] = None
    ) -> Optional[Artifact]:
        """Run a create/transform request; None when the result arrived stale."""
        self._epoch += 1
        ticket = self._epoch
        markup = await self.composer.compose(request, backend)
        if ticket != self._epoch:
            logger.info("Discarding stale generation result (ticket %d, now %d)", ticket, self._epoch)
            return None
        return self.store.set_current(markup, request.text.strip())

    async def refine(self, instruction: str, backend: Optional[str] = None) -> Optional[Artifact]:
        """Revise the current artifact; None when it changed while waiting."""
        target = self.store.current
        if target is None:
            raise NoCurrentArtifact()
        markup = await self.composer.refine(target.markup, instruction, backend)
        latest = self.store.current
        if latest is None or latest.id != target.id:
            logger.info("Discarding refinement of %s; current artifact changed", target.id)
            return None
        return self.store.update_current(markup)

    def restore(self, artifact_id: str) -> Artifact:
        artifact = self.store.restore(artifact_id)
        self._epoch += 1
        return artifact

    def remove(self, artifact_id: str) -> None:
        self.store.remove(artifact_id)

    def clear_history(self) -> None:
        self.store.clear()

    async def export(self, fmt: str, artifact: Optional[Artifact] = None) -> Optional[ExportPayload]:
        """Export ``artifact`` (default: current) as svg, png or zip."""
        target = artifact or self.store.current
        if target is None:
            raise NoCurrentArtifact()
        fmt = fmt.lower()
        if fmt == "svg":
            return self.exporter.export_svg(target)
        if fmt == "png":
            return await self.exporter.export_raster(target)
        if fmt == "zip":
            return await self.exporter.export_bundle(target)
        raise ValueError(f"Unsupported export format '{fmt}', expected one of {EXPORT_FORMATS}")

    def has_visited(self) -> bool:
        return self.storage.get(VISITED_KEY) == "1"

    def mark_visited(self) -> None:
        self.storage.set(VISITED_KEY, "1")


def build_workbench(config: AppConfig) -> Workbench:
    return Workbench(config, GenerationComposer(config))
