"""Configuration helpers for the VectorCraft project."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    gemini_key: Optional[str] = None
    openai_key: Optional[str] = None
    anthropic_key: Optional[str] = None
    default_backend: str = "gemini"
    request_timeout: float = 120.0
    storage_path: Path = Path("data/storage.json")
    log_dir: Path = Path("logs")
    export_dir: Path = Path("exports")
    history_limit: int = 50
    create_temperature: float = 0.4
    transform_temperature: float = 0.3
    refine_temperature: float = 0.3
    top_p: float = 0.95
    top_k: int = 40
    metadata: dict[str, Any] = field(default_factory=dict)


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip()


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    metadata: dict[str, Any] = {}
    for env_name, key in (
        ("GEMINI_MODEL", "gemini_model"),
        ("OPENAI_MODEL", "openai_model"),
        ("OPENAI_BASE_URL", "openai_base_url"),
        ("CLAUDE_MODEL", "claude_model"),
    ):
        value = os.getenv(env_name)
        if value:
            metadata[key] = value

    storage_path = Path(os.getenv("VECTORCRAFT_STORAGE", "data/storage.json")).expanduser()
    log_dir = Path(os.getenv("VECTORCRAFT_LOG_DIR", "logs")).expanduser()
    export_dir = Path(os.getenv("VECTORCRAFT_EXPORT_DIR", "exports")).expanduser()

    return AppConfig(
        gemini_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        openai_key=os.getenv("OPENAI_API_KEY"),
        anthropic_key=os.getenv("ANTHROPIC_API_KEY"),
        default_backend=(os.getenv("VECTORCRAFT_BACKEND") or "gemini").lower(),
        request_timeout=_float_env("VECTORCRAFT_TIMEOUT", 120.0),
        storage_path=storage_path,
        log_dir=log_dir,
        export_dir=export_dir,
        metadata=metadata,
    )
