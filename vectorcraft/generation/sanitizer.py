"""Extract SVG markup from free-form model output."""

from __future__ import annotations

import re

SVG_PATTERN = re.compile(r"<svg[\s\S]*?</svg>", re.IGNORECASE)
FENCE_PATTERN = re.compile(r"```(?:xml|svg)?")


def sanitize(raw: str) -> str:
    """Return the first ``<svg>...</svg>`` region of ``raw`` verbatim.

    When no such region exists the code fences are stripped and the trimmed
    remainder is returned unchanged. That fallback may not be markup at all;
    callers must treat the result as unverified.
    """
    text = raw or ""
    match = SVG_PATTERN.search(text)
    if match:
        return match.group(0)
    return FENCE_PATTERN.sub("", text).strip()


def looks_like_svg(markup: str) -> bool:
    """Return True when ``markup`` contains a complete svg element."""
    return bool(SVG_PATTERN.search(markup or ""))
