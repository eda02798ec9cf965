"""Error taxonomy shared by the composer, the artifact store and the UI."""

from __future__ import annotations

from dataclasses import dataclass


class VectorCraftError(Exception):
    """Base class for every error raised by this package."""


@dataclass
class GenerationError(VectorCraftError):
    """The remote model failed, timed out or produced no usable markup.

    Safe to retry by repeating the same request.
    """

    message: str
    detail: str | None = None

    def __str__(self) -> str:
        return self.message


class NoCurrentArtifact(VectorCraftError):
    """A mutation targeted the current artifact while none was set."""

    def __init__(self) -> None:
        super().__init__("No current artifact to update.")


class NotFound(VectorCraftError):
    """A history entry referenced by id does not exist."""

    def __init__(self, artifact_id: str) -> None:
        super().__init__(f"History entry '{artifact_id}' not found.")
        self.artifact_id = artifact_id


class PersistenceFailure(VectorCraftError):
    """Durable storage could not be read or written."""
