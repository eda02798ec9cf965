"""Export artifacts as SVG, supersampled PNG or a ZIP bundle of both."""

from __future__ import annotations

import asyncio
import importlib
import io
import logging
import math
import re
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from vectorcraft.services.artifact_store import Artifact

logger = logging.getLogger(__name__)

SVG_MEDIA_TYPE = "image/svg+xml"
PNG_MEDIA_TYPE = "image/png"
ZIP_MEDIA_TYPE = "application/zip"

DEFAULT_SIZE = (512, 512)
SUPERSAMPLE = 2
SLUG_LENGTH = 30
FALLBACK_SLUG = "vector"

_VIEWBOX_PATTERN = re.compile(r"""viewBox\s*=\s*["']([^"']*)["']""", re.IGNORECASE)
_NUMBER_SPLIT = re.compile(r"[\s,]+")


@dataclass(slots=True)
class ExportPayload:
    """Bytes ready for download plus their file name and media type."""

    filename: str
    media_type: str
    data: bytes


def slugify(label: str) -> str:
    slug = (label or "")[:SLUG_LENGTH].lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug).strip()
    slug = re.sub(r"\s+", "-", slug)
    return slug or FALLBACK_SLUG


def version_tag(version_ms: int) -> str:
    """Time-of-day digits (HHMMSS, UTC) of an artifact version."""
    stamp = datetime.fromtimestamp(version_ms / 1000, tz=timezone.utc)
    return stamp.strftime("%H%M%S")


def base_filename(artifact: Artifact) -> str:
    return f"{slugify(artifact.prompt_label)}-v{version_tag(artifact.version)}"


def viewbox_size(markup: str) -> Optional[Tuple[float, float]]:
    """Return (width, height) from the first viewBox attribute, if well formed."""
    match = _VIEWBOX_PATTERN.search(markup or "")
    if not match:
        return None
    fields = [item for item in _NUMBER_SPLIT.split(match.group(1).strip()) if item]
    if len(fields) != 4:
        return None
    try:
        numbers = [float(item) for item in fields]
    except ValueError:
        return None
    if not all(math.isfinite(value) for value in numbers):
        return None
    width, height = numbers[2], numbers[3]
    if width <= 0 or height <= 0:
        return None
    return width, height


def raster_size(markup: str, scale: int = SUPERSAMPLE) -> Tuple[int, int]:
    """Pixel size of the supersampled raster for ``markup``."""
    width, height = viewbox_size(markup) or DEFAULT_SIZE
    return max(1, round(width * scale)), max(1, round(height * scale))


class ExportService:
    """Convert artifacts into downloadable payloads."""

    def __init__(self, scale: int = SUPERSAMPLE) -> None:
        self.scale = scale

    def export_svg(self, artifact: Artifact) -> ExportPayload:
        return ExportPayload(
            filename=f"{base_filename(artifact)}.svg",
            media_type=SVG_MEDIA_TYPE,
            data=artifact.markup.encode("utf-8"),
        )

    async def export_raster(self, artifact: Artifact) -> Optional[ExportPayload]:
        """Rasterize to PNG; None when the markup cannot be rendered."""
        data = await asyncio.to_thread(self.rasterize, artifact.markup)
        if data is None:
            return None
        return ExportPayload(
            filename=f"{base_filename(artifact)}.png",
            media_type=PNG_MEDIA_TYPE,
            data=data,
        )

    async def export_bundle(self, artifact: Artifact) -> ExportPayload:
        """ZIP holding the SVG and, when rasterization worked, the PNG."""
        svg = self.export_svg(artifact)
        png = await self.export_raster(artifact)

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(svg.filename, svg.data)
            if png is not None:
                archive.writestr(png.filename, png.data)
            else:
                logger.info("Bundle for %s contains the SVG only", artifact.id)
        return ExportPayload(
            filename=f"{base_filename(artifact)}.zip",
            media_type=ZIP_MEDIA_TYPE,
            data=buffer.getvalue(),
        )

    def rasterize(self, markup: str) -> Optional[bytes]:
        width, height = raster_size(markup, self.scale)
        try:
            cairosvg = importlib.import_module("cairosvg")
        except (ImportError, OSError) as exc:
            logger.warning("cairosvg unavailable, skipping PNG export: %s", exc)
            return None
        try:
            return cairosvg.svg2png(
                bytestring=markup.encode("utf-8"),
                output_width=width,
                output_height=height,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("SVG rasterization failed: %s", exc)
            return None
