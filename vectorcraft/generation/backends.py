"""Remote model backends (Gemini, OpenAI, Anthropic).

Each factory returns a plain callable ``(ModelRequest) -> ModelResult``. SDKs
are imported lazily so the application starts without them; a factory raises
``ImportError`` when its SDK is missing.
"""

from __future__ import annotations

import base64
import importlib
import logging
from typing import Any, Callable, List

from config.settings import AppConfig
from vectorcraft.generation.models import ModelRequest, ModelResult

logger = logging.getLogger(__name__)

Backend = Callable[[ModelRequest], ModelResult]

DEFAULT_GEMINI_MODEL = "gemini-3-pro-preview"
DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5"
MAX_OUTPUT_TOKENS = 16384


def guarded(name: str, call: Backend) -> Backend:
    """Wrap ``call`` so SDK exceptions become failure results."""

    def _backend(request: ModelRequest) -> ModelResult:
        try:
            return call(request)
        except Exception as exc:  # noqa: BLE001
            logger.error("%s backend call failed: %s", name, exc)
            return ModelResult.failure(f"{type(exc).__name__}: {exc}")

    return _backend


def _data_url(media_type: str, data: bytes) -> str:
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"


# Gemini ----------------------------------------------------------------------
def build_gemini_backend(config: AppConfig) -> Backend:
    genai = importlib.import_module("google.genai")
    types = importlib.import_module("google.genai.types")
    client = genai.Client(api_key=config.gemini_key)
    model_name = config.metadata.get("gemini_model", DEFAULT_GEMINI_MODEL)

    def _gemini_backend(request: ModelRequest) -> ModelResult:
        parts = [types.Part.from_text(text=request.prompt_text)]
        for media in request.media:
            parts.append(types.Part.from_bytes(data=media.data, mime_type=media.media_type))

        config_kwargs: dict[str, Any] = {
            "system_instruction": request.instruction,
            "temperature": request.temperature,
        }
        if request.top_p is not None:
            config_kwargs["top_p"] = request.top_p
        if request.top_k is not None:
            config_kwargs["top_k"] = request.top_k
        if request.use_search:
            config_kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]

        response = client.models.generate_content(
            model=model_name,
            contents=[types.Content(role="user", parts=parts)],
            config=types.GenerateContentConfig(**config_kwargs),
        )
        return ModelResult.success(getattr(response, "text", None) or "")

    return guarded("gemini", _gemini_backend)


# OpenAI ----------------------------------------------------------------------
def extract_openai_text(completion: Any) -> str:
    """Pull the text out of a Responses or Chat Completions payload."""
    if getattr(completion, "output_text", None):
        return str(completion.output_text)

    output = getattr(completion, "output", None)
    if output:
        parts: List[str] = []
        for item in output:
            if getattr(item, "type", "") == "message":
                for content in getattr(item, "content", []):
                    if getattr(content, "type", "") in ("output_text", "text"):
                        parts.append(getattr(content, "text", ""))
        joined = "\n".join(parts).strip()
        if joined:
            return joined

    choices = getattr(completion, "choices", None)
    if choices:
        text = getattr(choices[0].message, "content", None)
        if isinstance(text, str):
            return text

    return ""


def build_openai_backend(config: AppConfig) -> Backend:
    openai_module = importlib.import_module("openai")
    base_url = config.metadata.get("openai_base_url")
    client_kwargs: dict[str, Any] = {"api_key": config.openai_key}
    if base_url:
        client_kwargs["base_url"] = base_url
    client = openai_module.OpenAI(**client_kwargs)
    model_name = config.metadata.get("openai_model", DEFAULT_OPENAI_MODEL)

    def _gpt_backend(request: ModelRequest) -> ModelResult:
        if base_url:
            # OpenAI-compatible providers generally only speak Chat Completions.
            if request.use_search:
                logger.warning("Web search is not available through %s; ignoring.", base_url)
            content: List[dict[str, Any]] = [{"type": "text", "text": request.prompt_text}]
            for media in request.media:
                content.append(
                    {"type": "image_url", "image_url": {"url": _data_url(media.media_type, media.data)}}
                )
            completion = client.chat.completions.create(
                model=model_name,
                messages=[
                    {"role": "system", "content": request.instruction},
                    {"role": "user", "content": content},
                ],
                temperature=request.temperature,
                max_tokens=MAX_OUTPUT_TOKENS,
            )
            return ModelResult.success(extract_openai_text(completion))

        user_content: List[dict[str, Any]] = [{"type": "input_text", "text": request.prompt_text}]
        for media in request.media:
            user_content.append(
                {"type": "input_image", "image_url": _data_url(media.media_type, media.data)}
            )
        kwargs: dict[str, Any] = {
            "model": model_name,
            "instructions": request.instruction,
            "input": [{"role": "user", "content": user_content}],
            "temperature": request.temperature,
            "max_output_tokens": MAX_OUTPUT_TOKENS,
        }
        if request.use_search:
            kwargs["tools"] = [{"type": "web_search_preview"}]
        completion = client.responses.create(**kwargs)
        return ModelResult.success(extract_openai_text(completion))

    return guarded("gpt", _gpt_backend)


# Anthropic -------------------------------------------------------------------
def build_claude_backend(config: AppConfig) -> Backend:
    anthropic_module = importlib.import_module("anthropic")
    client = anthropic_module.Anthropic(api_key=config.anthropic_key)
    model_name = config.metadata.get("claude_model", DEFAULT_CLAUDE_MODEL)

    def _claude_backend(request: ModelRequest) -> ModelResult:
        content: List[dict[str, Any]] = []
        for media in request.media:
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": media.media_type,
                        "data": base64.b64encode(media.data).decode("ascii"),
                    },
                }
            )
        content.append({"type": "text", "text": request.prompt_text})

        kwargs: dict[str, Any] = {
            "model": model_name,
            "max_tokens": MAX_OUTPUT_TOKENS,
            "system": request.instruction,
            "temperature": request.temperature,
            "messages": [{"role": "user", "content": content}],
        }
        if request.use_search:
            kwargs["tools"] = [{"type": "web_search_20250305", "name": "web_search", "max_uses": 5}]

        message = client.messages.create(**kwargs)
        texts = [
            getattr(block, "text", "")
            for block in getattr(message, "content", None) or []
            if getattr(block, "type", "") == "text"
        ]
        return ModelResult.success("".join(texts))

    return guarded("claude", _claude_backend)
