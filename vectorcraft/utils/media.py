"""Reference-media and source-SVG ingestion."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Iterable, List, Optional, Union

from vectorcraft.generation.models import SVG_MEDIA_TYPE, ReferenceMedia

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def guess_media_type(path: PathLike) -> Optional[str]:
    media_type, _ = mimetypes.guess_type(str(path))
    if media_type is None and str(path).lower().endswith(".svg"):
        return SVG_MEDIA_TYPE
    return media_type


def accepts_reference(media_type: Optional[str]) -> bool:
    """Raster images only; the model rejects SVG attachments."""
    if not media_type:
        return False
    media_type = media_type.lower()
    return media_type.startswith("image/") and media_type != SVG_MEDIA_TYPE


def load_reference_media(paths: Iterable[Optional[PathLike]]) -> List[ReferenceMedia]:
    """Read image files in order; non-images and unreadable files are skipped."""
    items: List[ReferenceMedia] = []
    for path in paths:
        if not path:
            continue
        media_type = guess_media_type(path)
        if not accepts_reference(media_type):
            logger.debug("Ignoring reference file %s (%s)", path, media_type)
            continue
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            logger.warning("Cannot read reference file %s: %s", path, exc)
            continue
        items.append(ReferenceMedia(data=data, media_type=media_type))
    return items


def load_source_markup(path: Optional[PathLike]) -> Optional[str]:
    """Return the text of an SVG file, or None for anything else."""
    if not path or guess_media_type(path) != SVG_MEDIA_TYPE:
        return None
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read source SVG %s: %s", path, exc)
        return None
