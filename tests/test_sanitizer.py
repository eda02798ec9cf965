"""Sanitizer unit tests."""

from __future__ import annotations

from vectorcraft.generation.sanitizer import looks_like_svg, sanitize


def test_returns_svg_region_verbatim():
    svg = '<svg width="64" height="64"><circle cx="32" cy="32" r="30" fill="red"/></svg>'
    raw = f"Sure! Here is your drawing:\n{svg}\nEnjoy."

    assert sanitize(raw) == svg


def test_strips_fenced_prose_around_svg():
    raw = 'Sure! ```xml\n<svg width="64" height="64">...</svg>\n```'

    assert sanitize(raw) == '<svg width="64" height="64">...</svg>'


def test_match_is_case_insensitive_and_shortest():
    raw = "<SVG viewBox='0 0 1 1'></SVG> trailing <svg>second</svg>"

    assert sanitize(raw) == "<SVG viewBox='0 0 1 1'></SVG>"


def test_multiline_svg_kept_intact():
    svg = "<svg>\n  <g>\n    <rect/>\n  </g>\n</svg>"

    assert sanitize(f"```svg\n{svg}\n```") == svg


def test_fallback_strips_fences_without_svg():
    assert sanitize("```xml\n<g><rect/></g>\n```") == "<g><rect/></g>"
    assert sanitize("```svg\nnot markup\n```") == "not markup"


def test_fallback_returns_plain_text_unverified():
    text = sanitize("  I cannot draw that.  ")

    assert text == "I cannot draw that."
    assert not looks_like_svg(text)


def test_total_on_empty_input():
    assert sanitize("") == ""
    assert sanitize(None) == ""  # type: ignore[arg-type]
