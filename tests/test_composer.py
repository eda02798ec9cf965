"""GenerationComposer unit tests."""

from __future__ import annotations

import asyncio
import os
import time
import types

import pytest

from config.settings import AppConfig, load_config
from vectorcraft.errors import GenerationError
from vectorcraft.generation import backends
from vectorcraft.generation.composer import GenerationComposer
from vectorcraft.generation.models import (
    GenerationMode,
    GenerationRequest,
    ModelResult,
    ReferenceMedia,
    Resolution,
)
from vectorcraft.generation.templates import DEFAULT_STYLE

SVG = '<svg width="64" height="64" viewBox="0 0 64 64"><circle cx="32" cy="32" r="30"/></svg>'


def build_composer(**overrides) -> GenerationComposer:
    config = AppConfig(**overrides)
    composer = GenerationComposer(config, auto_register=False)
    return composer


class RecordingBackend:
    """Capture model requests and answer with a fixed payload."""

    def __init__(self, reply=SVG) -> None:
        self.reply = reply
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return self.reply


def create_request(**overrides) -> GenerationRequest:
    values = dict(mode=GenerationMode.CREATE, text="a red circle", resolution=Resolution(64, 64))
    values.update(overrides)
    return GenerationRequest(**values)


def test_scenario_create_returns_inner_svg():
    composer = build_composer()
    backend = RecordingBackend('Sure! ```xml\n<svg width="64" height="64">...</svg>\n```')
    composer.register_backend("gemini", backend)

    markup = asyncio.run(composer.compose(create_request()))

    assert markup == '<svg width="64" height="64">...</svg>'


def test_create_request_layout():
    composer = build_composer()
    backend = RecordingBackend()
    composer.register_backend("gemini", backend)

    asyncio.run(
        composer.compose(
            create_request(
                technical_spec="pulse on hover",
                reference_urls=["  https://example.com/a ", "", "   "],
            )
        )
    )

    request = backend.requests[0]
    body = request.prompt_text
    assert body.index("OBJECT DESCRIPTION") < body.index("VISUAL STYLE") < body.index("FUNCTIONAL")
    assert DEFAULT_STYLE in body
    assert "REQUIRED RESOLUTION: 64x64" in body
    assert "https://example.com/a\n" in body
    assert body.rstrip().endswith("Generate the new SVG code now.")
    assert 'width="64"' in request.instruction
    assert "pulse on hover" in request.instruction
    assert "custom functions" in request.instruction
    assert request.temperature == pytest.approx(0.4)


def test_transform_request_uses_thesis_antithesis_and_lower_temperature():
    composer = build_composer()
    backend = RecordingBackend()
    composer.register_backend("gemini", backend)

    asyncio.run(
        composer.compose(
            GenerationRequest(
                mode=GenerationMode.TRANSFORM,
                text="make it blue",
                source_markup="<svg><rect/></svg>",
            )
        )
    )

    request = backend.requests[0]
    body = request.prompt_text
    assert body.index("SOURCE SVG (THESIS)") < body.index("<svg><rect/></svg>") < body.index("ANTITHESIS")
    assert DEFAULT_STYLE not in body
    assert "transformed SVG" in body
    assert request.temperature < composer.config.create_temperature


def test_transform_without_source_falls_back_to_scratch():
    composer = build_composer()
    backend = RecordingBackend()
    composer.register_backend("gemini", backend)

    asyncio.run(composer.compose(GenerationRequest(mode=GenerationMode.TRANSFORM, text="a tree")))

    assert "No source provided" in backend.requests[0].prompt_text


def test_svg_reference_media_is_never_transmitted():
    composer = build_composer()
    backend = RecordingBackend()
    composer.register_backend("gemini", backend)
    media = [
        ReferenceMedia(data=b"png-bytes", media_type="image/png"),
        ReferenceMedia(data=b"<svg/>", media_type="image/svg+xml"),
        ReferenceMedia(data=b"jpg-bytes", media_type="image/jpeg"),
    ]

    asyncio.run(composer.compose(create_request(reference_media=media)))

    sent = backend.requests[0].media
    assert [item.media_type for item in sent] == ["image/png", "image/jpeg"]


def test_search_flag_passed_through():
    composer = build_composer()
    backend = RecordingBackend()
    composer.register_backend("gemini", backend)

    asyncio.run(composer.compose(create_request()))
    asyncio.run(composer.compose(create_request(use_search=True)))

    assert [item.use_search for item in backend.requests] == [False, True]


def test_refine_request_shape():
    composer = build_composer()
    backend = RecordingBackend()
    composer.register_backend("gemini", backend)

    markup = asyncio.run(composer.refine("<svg>old</svg>", "thicker outline"))

    request = backend.requests[0]
    assert markup == SVG
    assert len(request.segments) == 3
    assert "<svg>old</svg>" in request.segments[0]
    assert "thicker outline" in request.segments[1]
    assert "SYNTHESIS" in request.segments[2]
    assert request.media == []
    assert request.use_search is False
    assert request.resolution is None
    assert request.temperature == pytest.approx(0.3)


def test_failure_result_raises_generation_error():
    composer = build_composer()
    composer.register_backend("gemini", lambda request: ModelResult.failure("quota exceeded"))

    with pytest.raises(GenerationError) as excinfo:
        asyncio.run(composer.compose(create_request()))

    assert excinfo.value.detail == "quota exceeded"


def test_backend_exception_raises_generation_error():
    composer = build_composer()

    def broken(request):
        raise RuntimeError("connection reset")

    composer.register_backend("gemini", broken)

    with pytest.raises(GenerationError) as excinfo:
        asyncio.run(composer.refine("<svg/>", "x"))

    assert "connection reset" in (excinfo.value.detail or "")


def test_empty_response_raises_generation_error():
    composer = build_composer()
    composer.register_backend("gemini", RecordingBackend("```\n```"))

    with pytest.raises(GenerationError):
        asyncio.run(composer.compose(create_request()))


def test_timeout_raises_generation_error():
    composer = build_composer(request_timeout=0.05)

    def slow(request):
        time.sleep(0.3)
        return SVG

    composer.register_backend("gemini", slow)

    with pytest.raises(GenerationError) as excinfo:
        asyncio.run(composer.compose(create_request()))

    assert "Timed out" in (excinfo.value.detail or "")


def test_missing_backend_raises_generation_error():
    composer = build_composer()

    with pytest.raises(GenerationError):
        asyncio.run(composer.compose(create_request()))


def test_invalid_request_rejected_before_call():
    composer = build_composer()
    backend = RecordingBackend()
    composer.register_backend("gemini", backend)

    with pytest.raises(ValueError):
        asyncio.run(composer.compose(create_request(text="   ")))
    with pytest.raises(ValueError):
        asyncio.run(composer.compose(create_request(resolution=Resolution(0, 10))))
    assert backend.requests == []


def test_available_backends_prefers_configured_default():
    composer = build_composer(default_backend="claude")
    for name in ("gpt", "gemini", "claude"):
        composer.register_backend(name, RecordingBackend())

    assert composer.available_backends() == ["claude", "gemini", "gpt"]
    assert composer.default_backend() == "claude"


def test_clear_backends_leaves_nothing_to_call():
    composer = build_composer()
    composer.register_backend("Gemini", RecordingBackend())
    assert composer.has_backend("gemini")

    composer.clear_backends()

    assert composer.available_backends() == []
    assert composer.default_backend() == "gemini"
    with pytest.raises(GenerationError):
        asyncio.run(composer.compose(create_request()))


# SDK wiring ------------------------------------------------------------------
class FakeGeminiModels:
    def __init__(self) -> None:
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        return types.SimpleNamespace(text=f"```svg\n{SVG}\n```")


class FakeGeminiClient:
    latest: "FakeGeminiClient | None" = None

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key
        self.models = FakeGeminiModels()
        FakeGeminiClient.latest = self


def fake_genai_types():
    return types.SimpleNamespace(
        Part=types.SimpleNamespace(
            from_text=lambda text: {"text": text},
            from_bytes=lambda data, mime_type: {"data": data, "mime_type": mime_type},
        ),
        Content=lambda role, parts: {"role": role, "parts": parts},
        GenerateContentConfig=lambda **kwargs: kwargs,
        Tool=lambda google_search: {"google_search": google_search},
        GoogleSearch=lambda: "search",
    )


@pytest.fixture()
def fake_gemini_sdk(monkeypatch):
    original_import = backends.importlib.import_module
    genai_types = fake_genai_types()

    def fake_import_module(name: str):
        if name == "google.genai":
            return types.SimpleNamespace(Client=FakeGeminiClient)
        if name == "google.genai.types":
            return genai_types
        return original_import(name)

    monkeypatch.setattr(backends.importlib, "import_module", fake_import_module)
    yield


def test_gemini_backend_registered(fake_gemini_sdk):
    composer = GenerationComposer(AppConfig(gemini_key="test-key"))
    assert composer.has_backend("gemini")
    assert composer.warnings == []

    media = [
        ReferenceMedia(data=b"png", media_type="image/png"),
        ReferenceMedia(data=b"<svg/>", media_type="image/svg+xml"),
    ]
    markup = asyncio.run(composer.compose(create_request(reference_media=media)))

    client = FakeGeminiClient.latest
    assert client is not None and client.api_key == "test-key"
    call = client.models.calls[0]
    parts = call["contents"][0]["parts"]
    assert markup == SVG
    assert "OBJECT DESCRIPTION" in parts[0]["text"]
    assert [part.get("mime_type") for part in parts[1:]] == ["image/png"]
    assert "tools" not in call["config"]
    assert call["config"]["temperature"] == pytest.approx(0.4)
    assert "SVG" in call["config"]["system_instruction"]


def test_gemini_backend_attaches_search_tool(fake_gemini_sdk):
    composer = GenerationComposer(AppConfig(gemini_key="test-key"))

    asyncio.run(composer.compose(create_request(use_search=True)))

    call = FakeGeminiClient.latest.models.calls[0]
    assert call["config"]["tools"] == [{"google_search": "search"}]


def test_openai_backend_registered(monkeypatch):
    class DummyResponses:
        def __init__(self) -> None:
            self.calls = []

        def create(self, **kwargs):
            self.calls.append(kwargs)
            return types.SimpleNamespace(output_text=f"Here you go {SVG}")

    class DummyOpenAI:
        latest = None

        def __init__(self, api_key: str) -> None:
            self.api_key = api_key
            self.responses = DummyResponses()
            DummyOpenAI.latest = self

    original_import = backends.importlib.import_module

    def fake_import_module(name: str):
        if name == "openai":
            return types.SimpleNamespace(OpenAI=DummyOpenAI)
        return original_import(name)

    monkeypatch.setattr(backends.importlib, "import_module", fake_import_module)

    composer = GenerationComposer(AppConfig(openai_key="test-key"))
    markup = asyncio.run(composer.compose(create_request(use_search=True), backend="gpt"))

    call = DummyOpenAI.latest.responses.calls[0]
    assert markup == SVG
    assert call["tools"] == [{"type": "web_search_preview"}]
    assert call["instructions"].startswith("You are a world-class expert")


def test_claude_backend_registered(monkeypatch):
    class DummyMessages:
        def __init__(self) -> None:
            self.calls = []

        def create(self, **kwargs):
            self.calls.append(kwargs)
            block = types.SimpleNamespace(type="text", text=SVG)
            return types.SimpleNamespace(content=[block])

    class DummyAnthropic:
        latest = None

        def __init__(self, api_key: str) -> None:
            self.messages = DummyMessages()
            DummyAnthropic.latest = self

    original_import = backends.importlib.import_module

    def fake_import_module(name: str):
        if name == "anthropic":
            return types.SimpleNamespace(Anthropic=DummyAnthropic)
        return original_import(name)

    monkeypatch.setattr(backends.importlib, "import_module", fake_import_module)

    composer = GenerationComposer(AppConfig(anthropic_key="test-key"))
    media = [ReferenceMedia(data=b"png", media_type="image/png")]
    asyncio.run(composer.compose(create_request(reference_media=media), backend="claude"))

    call = DummyAnthropic.latest.messages.calls[0]
    content = call["messages"][0]["content"]
    assert content[0]["type"] == "image"
    assert content[-1]["type"] == "text"
    assert "tools" not in call


def test_sdk_error_becomes_failure_result():
    def broken(request):
        raise ConnectionError("network down")

    result = backends.guarded("gemini", broken)(None)  # type: ignore[arg-type]

    assert result.ok is False
    assert "network down" in (result.reason or "")


@pytest.mark.integration
def test_gemini_backend_real_call():
    """Call the real Gemini API and expect SVG markup back."""
    config = load_config()
    if not (config.gemini_key or os.getenv("GEMINI_API_KEY")):
        pytest.skip("GEMINI_API_KEY not set; skipping real call.")

    composer = GenerationComposer(config)
    if not composer.has_backend("gemini"):
        pytest.skip(f"Gemini backend unavailable: {composer.warnings}")

    markup = asyncio.run(composer.compose(create_request()))
    assert "<svg" in markup.lower()
