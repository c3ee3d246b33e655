from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any
import os

from dotenv import load_dotenv

load_dotenv()


def _getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _getenv_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _normalize_provider(raw: str | None) -> str:
    value = (raw or "gemini-pro").strip().lower()
    return value if value in {"gemini-pro", "openai-gpt-4", "anthropic-claude-3"} else "gemini-pro"


@dataclass(frozen=True)
class Settings:
    sheet_url: str | None
    gemini_api_key: str | None
    openai_api_key: str | None
    anthropic_api_key: str | None
    gemini_model: str
    openai_model: str
    anthropic_model: str
    default_provider: str
    default_currency: str
    row_limit_per_source: int
    preview_row_count: int
    max_insight_rows: int
    sample_row_count: int
    max_output_tokens: int
    temperature: float
    request_timeout_s: int


settings = Settings(
    sheet_url=os.getenv("SHEET_URL"),
    gemini_api_key=os.getenv("GEMINI_API_KEY"),
    openai_api_key=os.getenv("OPENAI_API_KEY"),
    anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
    gemini_model=os.getenv("GEMINI_MODEL", "gemini-pro"),
    openai_model=os.getenv("OPENAI_MODEL", "gpt-4"),
    anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-3-sonnet-20240229"),
    default_provider=_normalize_provider(os.getenv("DEFAULT_PROVIDER")),
    default_currency=os.getenv("DEFAULT_CURRENCY", "USD"),
    row_limit_per_source=_getenv_int("ROW_LIMIT_PER_SOURCE", 500),
    preview_row_count=_getenv_int("PREVIEW_ROW_COUNT", 10),
    max_insight_rows=_getenv_int("MAX_INSIGHT_ROWS", 1000),
    sample_row_count=_getenv_int("SAMPLE_ROW_COUNT", 10),
    max_output_tokens=_getenv_int("MAX_OUTPUT_TOKENS", 1000),
    temperature=_getenv_float("TEMPERATURE", 0.7),
    request_timeout_s=_getenv_int("REQUEST_TIMEOUT_S", 30),
)

_RUNTIME_OVERRIDES: dict[str, Any] = {}

_INT_FIELDS = {
    "row_limit_per_source",
    "preview_row_count",
    "max_insight_rows",
    "sample_row_count",
    "max_output_tokens",
    "request_timeout_s",
}


def get_settings() -> Settings:
    if not _RUNTIME_OVERRIDES:
        return settings
    return replace(settings, **_RUNTIME_OVERRIDES)


def update_settings(overrides: dict[str, Any]) -> Settings:
    normalized: dict[str, Any] = {}
    for key, value in overrides.items():
        if value is None or key not in Settings.__dataclass_fields__:
            continue
        if key == "default_provider":
            normalized[key] = _normalize_provider(str(value))
        elif key in _INT_FIELDS:
            normalized[key] = int(value)
        elif key == "temperature":
            normalized[key] = float(value)
        else:
            normalized[key] = value
    _RUNTIME_OVERRIDES.update(normalized)
    return get_settings()


def reset_settings() -> Settings:
    """Drop all runtime overrides and return the environment-derived settings."""
    _RUNTIME_OVERRIDES.clear()
    return settings
