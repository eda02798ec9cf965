"""Request and result types for the generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

SVG_MEDIA_TYPE = "image/svg+xml"


class GenerationMode(str, Enum):
    """Whether a request creates new artwork or transforms a source SVG."""

    CREATE = "create"
    TRANSFORM = "transform"


@dataclass(slots=True)
class Resolution:
    """Target canvas size in pixels."""

    width: int = 512
    height: int = 512


@dataclass(slots=True)
class ReferenceMedia:
    """A binary reference attachment and its media type."""

    data: bytes
    media_type: str

    @property
    def is_svg(self) -> bool:
        return self.media_type.split(";", 1)[0].strip().lower() == SVG_MEDIA_TYPE


@dataclass(slots=True)
class GenerationRequest:
    """User inputs for a create or transform request."""

    mode: GenerationMode
    text: str
    style_prompt: Optional[str] = None
    technical_spec: Optional[str] = None
    source_markup: Optional[str] = None
    reference_media: List[ReferenceMedia] = field(default_factory=list)
    reference_urls: List[str] = field(default_factory=list)
    use_search: bool = False
    resolution: Resolution = field(default_factory=Resolution)

    @property
    def is_transform(self) -> bool:
        return self.mode == GenerationMode.TRANSFORM

    def cleaned_urls(self) -> List[str]:
        """Return trimmed, non-blank reference URLs in their original order."""
        return [url.strip() for url in self.reference_urls if url and url.strip()]

    def validate(self) -> None:
        """Raise ValueError when the request cannot be sent."""
        if not (self.text or "").strip():
            raise ValueError("Describe the object or the change to apply.")
        if self.resolution.width <= 0 or self.resolution.height <= 0:
            raise ValueError(
                f"Resolution must be positive, got {self.resolution.width}x{self.resolution.height}."
            )


@dataclass(slots=True)
class ModelRequest:
    """Backend-neutral payload sent to a remote model."""

    instruction: str
    segments: List[str]
    media: List[ReferenceMedia] = field(default_factory=list)
    use_search: bool = False
    temperature: float = 0.4
    top_p: Optional[float] = None
    top_k: Optional[int] = None

    @property
    def prompt_text(self) -> str:
        return "".join(self.segments)


@dataclass(slots=True)
class ModelResult:
    """Tagged result of a remote call: ``text`` on success, ``reason`` on failure."""

    ok: bool
    text: str = ""
    reason: Optional[str] = None

    @classmethod
    def success(cls, text: str) -> "ModelResult":
        return cls(ok=True, text=text or "")

    @classmethod
    def failure(cls, reason: str) -> "ModelResult":
        return cls(ok=False, reason=reason)
