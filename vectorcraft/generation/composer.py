"""Compose generation and refinement requests and run them against a model."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from config.settings import AppConfig
from vectorcraft.errors import GenerationError
from vectorcraft.generation import backends
from vectorcraft.generation.models import (
    GenerationRequest,
    ModelRequest,
    ModelResult,
    ReferenceMedia,
)
from vectorcraft.generation.sanitizer import sanitize
from vectorcraft.generation.templates import (
    REFINE_INSTRUCTION,
    build_refine_segments,
    build_system_instruction,
    build_task_segments,
)

logger = logging.getLogger(__name__)

BackendCallable = Callable[[ModelRequest], ModelResult | str]


class GenerationComposer:
    """Build model requests, call a backend and sanitize the reply."""

    def __init__(self, config: AppConfig, auto_register: bool = True) -> None:
        self.config = config
        self._backends: Dict[str, BackendCallable] = {}
        self.warnings: list[str] = []
        if auto_register:
            self._auto_register_backends()

    def register_backend(self, name: str, backend: BackendCallable) -> None:
        """Register a model backend under ``name``."""
        self._backends[name.lower()] = backend

    def clear_backends(self) -> None:
        """Remove all backends (mainly for tests)."""
        self._backends.clear()

    def has_backend(self, name: str) -> bool:
        return name.lower() in self._backends

    def available_backends(self) -> list[str]:
        """Return registered backends, configured default first."""
        preferred = self.config.default_backend.lower()
        priority = {preferred: 0, "gemini": 1, "gpt": 2, "claude": 3}
        return sorted(self._backends, key=lambda item: (priority.get(item, 99), item))

    def default_backend(self) -> str:
        choices = self.available_backends()
        if choices:
            return choices[0]
        return self.config.default_backend

    # Public API ---------------------------------------------------------------
    def build_request(self, request: GenerationRequest) -> ModelRequest:
        """Translate user inputs into a backend-neutral model request."""
        request.validate()
        temperature = (
            self.config.transform_temperature
            if request.is_transform
            else self.config.create_temperature
        )
        return ModelRequest(
            instruction=build_system_instruction(request),
            segments=build_task_segments(request),
            media=transmittable_media(request.reference_media),
            use_search=bool(request.use_search),
            temperature=temperature,
            top_p=self.config.top_p,
            top_k=self.config.top_k,
        )

    def build_refine_request(self, current_markup: str, instruction: str) -> ModelRequest:
        if not (instruction or "").strip():
            raise ValueError("Describe how the current SVG should change.")
        return ModelRequest(
            instruction=REFINE_INSTRUCTION,
            segments=build_refine_segments(current_markup, instruction),
            temperature=self.config.refine_temperature,
        )

    async def compose(self, request: GenerationRequest, backend: Optional[str] = None) -> str:
        """Generate or transform an SVG; raise GenerationError on failure."""
        model_request = self.build_request(request)
        return await self._run(model_request, backend, "generate")

    async def refine(
        self, current_markup: str, instruction: str, backend: Optional[str] = None
    ) -> str:
        """Revise ``current_markup`` in place according to ``instruction``."""
        model_request = self.build_refine_request(current_markup, instruction)
        return await self._run(model_request, backend, "refine")

    # Internal helpers ---------------------------------------------------------
    async def _run(self, model_request: ModelRequest, backend: Optional[str], action: str) -> str:
        name = (backend or self.default_backend()).lower()
        call = self._resolve_backend(name)

        logger.info(
            "Sending %s request to %s (media=%d, search=%s, temperature=%.2f)",
            action,
            name,
            len(model_request.media),
            model_request.use_search,
            model_request.temperature,
        )
        try:
            payload = await asyncio.wait_for(
                asyncio.to_thread(call, model_request),
                timeout=self.config.request_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise GenerationError(
                f"Failed to {action} SVG: the model did not answer in time.",
                detail=f"Timed out after {self.config.request_timeout:.0f}s",
            ) from exc
        except Exception as exc:  # noqa: BLE001
            logger.error("%s backend raised during %s: %s", name, action, exc)
            raise GenerationError(f"Failed to {action} SVG.", detail=str(exc)) from exc

        result = self._normalize_backend_response(payload)
        if not result.ok:
            raise GenerationError(f"Failed to {action} SVG.", detail=result.reason)

        markup = sanitize(result.text)
        if not markup:
            raise GenerationError(
                f"Failed to {action} SVG: the model returned no markup.",
                detail=result.text or "empty response",
            )
        return markup

    def _resolve_backend(self, name: str) -> BackendCallable:
        call = self._backends.get(name)
        if call is not None:
            return call
        detail = "; ".join(self.warnings) if self.warnings else "no API key configured"
        raise GenerationError(f"Model backend '{name}' is not available.", detail=detail)

    def _normalize_backend_response(self, payload: ModelResult | Dict[str, Any] | str) -> ModelResult:
        """Coerce backend outputs into ModelResult."""
        if isinstance(payload, ModelResult):
            return payload
        if isinstance(payload, dict):
            if payload.get("ok", True):
                return ModelResult.success(str(payload.get("text") or ""))
            return ModelResult.failure(str(payload.get("reason") or "unknown error"))
        if isinstance(payload, str):
            return ModelResult.success(payload)
        return ModelResult.failure(f"Unexpected backend payload: {type(payload).__name__}")

    def _auto_register_backends(self) -> None:
        """Register backends whose key is configured and whose SDK imports."""
        for name, key, factory in (
            ("gemini", self.config.gemini_key, backends.build_gemini_backend),
            ("gpt", self.config.openai_key, backends.build_openai_backend),
            ("claude", self.config.anthropic_key, backends.build_claude_backend),
        ):
            if not key:
                continue
            try:
                self.register_backend(name, factory(self.config))
            except ImportError as exc:  # pragma: no cover - optional dependency
                self.warnings.append(f"Cannot import SDK for {name}: {exc}")
                logger.warning("Backend %s unavailable: %s", name, exc)


def transmittable_media(items: list[ReferenceMedia]) -> list[ReferenceMedia]:
    """Drop attachments the remote model would reject (SVG, empty payloads)."""
    kept: list[ReferenceMedia] = []
    for item in items:
        if item.is_svg:
            logger.info("Skipping SVG reference attachment; the model rejects that media type.")
            continue
        if not item.data:
            continue
        kept.append(item)
    return kept
