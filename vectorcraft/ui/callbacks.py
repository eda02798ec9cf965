"""Callback implementations for the Gradio interface."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

from vectorcraft.errors import GenerationError, NoCurrentArtifact, NotFound
from vectorcraft.generation.models import GenerationMode, GenerationRequest, Resolution
from vectorcraft.services.artifact_store import Artifact
from vectorcraft.services.workbench import Workbench
from vectorcraft.utils.media import load_reference_media, load_source_markup

logger = logging.getLogger(__name__)

RESOLUTION_PRESETS = ["256x256", "512x512", "1024x1024", "1920x1080", "1080x1920", "custom"]


def _file_path(item: Any) -> Optional[str]:
    """Gradio hands files over as paths, tempfile wrappers or dicts."""
    if item is None:
        return None
    if isinstance(item, (str, Path)):
        return str(item)
    if isinstance(item, dict):
        return item.get("path") or item.get("name")
    return getattr(item, "name", None)


def _normalize_dim(value: Any, default: int = 512) -> int:
    try:
        numeric = int(float(value))
    except (TypeError, ValueError):
        return default
    return max(16, min(numeric, 4096))


def parse_resolution(preset: str, width: Any = None, height: Any = None) -> Resolution:
    if preset and preset != "custom" and "x" in preset:
        raw_width, raw_height = preset.split("x", 1)
        return Resolution(width=_normalize_dim(raw_width), height=_normalize_dim(raw_height))
    return Resolution(width=_normalize_dim(width), height=_normalize_dim(height))


def parse_urls(text: str) -> list[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def history_rows(items: Sequence[Artifact]) -> list[list[str]]:
    rows: list[list[str]] = []
    for item in items:
        stamp = datetime.fromtimestamp(item.version / 1000).strftime("%H:%M:%S")
        rows.append([item.id, item.prompt_label, stamp])
    return rows


def _error_message(exc: GenerationError) -> str:
    if exc.detail:
        return f"{exc.message} ({exc.detail})"
    return exc.message


def build_callbacks(workbench: Workbench) -> dict[str, Any]:
    """Return a dictionary of Gradio callback functions bound to ``workbench``."""

    def _view(artifact: Optional[Artifact]) -> tuple[str, str]:
        markup = artifact.markup if artifact else ""
        return markup, markup

    async def on_generate(
        mode: str,
        text: str,
        style_prompt: str,
        technical_spec: str,
        source_file: Any,
        source_text: str,
        reference_files: Optional[Sequence[Any]],
        urls_text: str,
        use_search: bool,
        resolution_preset: str,
        width: Any,
        height: Any,
        backend: str,
    ) -> tuple[str, str, str, list[list[str]]]:
        try:
            generation_mode = GenerationMode(mode or GenerationMode.CREATE.value)
        except ValueError:
            generation_mode = GenerationMode.CREATE

        source_markup = None
        if generation_mode == GenerationMode.TRANSFORM:
            # Edited text wins; the file is only read when the editor is empty.
            source_markup = (source_text or "").strip() or load_source_markup(_file_path(source_file))

        request = GenerationRequest(
            mode=generation_mode,
            text=text or "",
            style_prompt=style_prompt or None,
            technical_spec=technical_spec or None,
            source_markup=source_markup,
            reference_media=load_reference_media(_file_path(item) for item in reference_files or []),
            reference_urls=parse_urls(urls_text),
            use_search=bool(use_search),
            resolution=parse_resolution(resolution_preset, width, height),
        )
        try:
            artifact = await workbench.generate(request, backend=backend or None)
        except ValueError as exc:
            return (*_view(workbench.current), f"Generation failed: {exc}", history_rows(workbench.history))
        except GenerationError as exc:
            return (
                *_view(workbench.current),
                f"Generation failed: {_error_message(exc)}",
                history_rows(workbench.history),
            )

        if artifact is None:
            return (*_view(workbench.current), "Result discarded: a newer selection is active.", history_rows(workbench.history))
        return (*_view(artifact), "Generated successfully.", history_rows(workbench.history))

    def on_source_upload(source_file: Any) -> str:
        """Copy an uploaded source SVG into the editable markup box."""
        return load_source_markup(_file_path(source_file)) or ""

    async def on_refine(instruction: str, backend: str) -> tuple[str, str, str, list[list[str]]]:
        try:
            artifact = await workbench.refine(instruction or "", backend=backend or None)
        except NoCurrentArtifact:
            return (*_view(None), "Nothing to refine yet; generate an SVG first.", history_rows(workbench.history))
        except ValueError as exc:
            return (*_view(workbench.current), f"Refinement failed: {exc}", history_rows(workbench.history))
        except GenerationError as exc:
            return (
                *_view(workbench.current),
                f"Refinement failed: {_error_message(exc)}",
                history_rows(workbench.history),
            )

        if artifact is None:
            return (*_view(workbench.current), "Refinement discarded: the current SVG changed.", history_rows(workbench.history))
        return (*_view(artifact), "Refined successfully.", history_rows(workbench.history))

    def on_restore(artifact_id: str) -> tuple[str, str, str, list[list[str]]]:
        try:
            artifact = workbench.restore((artifact_id or "").strip())
        except NotFound as exc:
            return (*_view(workbench.current), f"{exc} Refresh the history.", history_rows(workbench.history))
        return (*_view(artifact), f"Restored '{artifact.prompt_label}'.", history_rows(workbench.history))

    def on_delete(artifact_id: str) -> tuple[list[list[str]], str]:
        try:
            workbench.remove((artifact_id or "").strip())
        except NotFound as exc:
            return history_rows(workbench.history), f"{exc} Refresh the history."
        return history_rows(workbench.history), "Entry deleted."

    def on_clear() -> tuple[list[list[str]], str]:
        workbench.clear_history()
        return [], "History cleared."

    def on_history() -> list[list[str]]:
        return history_rows(workbench.history)

    async def on_export(fmt: str) -> tuple[Optional[str], str]:
        try:
            payload = await workbench.export(fmt or "svg")
        except NoCurrentArtifact:
            return None, "Nothing to export yet."
        except ValueError as exc:
            return None, str(exc)
        if payload is None:
            return None, "PNG export unavailable for this SVG."

        export_dir = Path(workbench.config.export_dir)
        try:
            export_dir.mkdir(parents=True, exist_ok=True)
            target = export_dir / payload.filename
            target.write_bytes(payload.data)
        except OSError as exc:
            logger.error("Cannot write export %s: %s", payload.filename, exc)
            return None, f"Export failed: {exc}"
        return str(target), f"Exported {payload.filename}."

    def on_language(code: str) -> str:
        workbench.language = code or "en"
        workbench.mark_visited()
        return workbench.language

    return {
        "on_generate": on_generate,
        "on_source_upload": on_source_upload,
        "on_refine": on_refine,
        "on_restore": on_restore,
        "on_delete": on_delete,
        "on_clear": on_clear,
        "on_history": on_history,
        "on_export": on_export,
        "on_language": on_language,
    }
