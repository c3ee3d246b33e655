"""
Provider clients for AI text generation (Gemini, OpenAI, Anthropic).

Every provider exposes the same ``send(system_prompt, user_prompt)`` call and
normalizes the vendor payload into a ProviderResult with token usage.
"""
from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import requests

from ..config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenCounts:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class ProviderResult:
    """Generated text plus normalized token usage."""
    text: str
    token_usage: TokenCounts
    model: str


class LLMClientError(Exception):
    pass


class ProviderConfigurationError(LLMClientError):
    """API key for the provider is not configured."""


class ProviderUpstreamError(LLMClientError):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderMalformedResponseError(LLMClientError):
    """Provider answered 2xx but the payload lacks the expected shape."""


class ProviderTransportError(LLMClientError):
    pass


class UnsupportedProviderError(LLMClientError):
    pass


def _count(usage: dict[str, Any] | None, key: str) -> int:
    if not usage:
        return 0
    try:
        return int(usage.get(key) or 0)
    except (TypeError, ValueError):
        return 0


class LLMProvider(ABC):
    """Async client for one vendor's text-generation endpoint."""

    name: str = ""
    label: str = ""
    api_key_env: str = ""
    settings_prefix: str = ""

    def __init__(
        self,
        api_key: str | None,
        model: str,
        timeout_seconds: int = 30,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout_seconds
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    @abstractmethod
    def _url(self) -> str: ...

    @abstractmethod
    def _headers(self) -> dict[str, str]: ...

    @abstractmethod
    def _payload(self, system_prompt: str, user_prompt: str) -> dict[str, Any]: ...

    @abstractmethod
    def _parse(self, data: dict[str, Any]) -> ProviderResult: ...

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = requests.post(self._url(), headers=self._headers(), json=payload, timeout=self._timeout)
        except requests.exceptions.RequestException as exc:
            raise ProviderTransportError(f"{self.label} request failed: {type(exc).__name__}") from exc
        if not resp.ok:
            raise ProviderUpstreamError(
                f"{self.label} API error: {resp.status_code} {resp.reason or ''}".rstrip(),
                resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderMalformedResponseError(f"Invalid response format from {self.label} API") from exc
        if not isinstance(data, dict):
            raise ProviderMalformedResponseError(f"Invalid response format from {self.label} API")
        return data

    async def send(self, system_prompt: str, user_prompt: str) -> ProviderResult:
        """Issue one generation request; raises LLMClientError subclasses on failure."""
        if not self.is_configured:
            raise ProviderConfigurationError(
                f"{self.label} API key not configured. Please add {self.api_key_env} to your .env file."
            )
        start = time.perf_counter()
        data = await asyncio.to_thread(self._post, self._payload(system_prompt, user_prompt))
        result = self._parse(data)
        logger.info(
            "%s responded in %dms (tokens in=%d out=%d)",
            self.name,
            int((time.perf_counter() - start) * 1000),
            result.token_usage.input_tokens,
            result.token_usage.output_tokens,
        )
        return result

    async def check_health(self) -> tuple[bool, str]:
        if not self.is_configured:
            return False, f"{self.api_key_env} not configured"
        return True, f"{self.label} API key configured"


class GeminiProvider(LLMProvider):
    name = "gemini-pro"
    label = "Google AI"
    api_key_env = "GEMINI_API_KEY"
    settings_prefix = "gemini"

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def _url(self) -> str:
        return f"{self.BASE_URL}/{self._model}:generateContent"

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-goog-api-key": self._api_key or ""}

    def _payload(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        return {"contents": [{"parts": [{"text": system_prompt}, {"text": user_prompt}]}]}

    def _parse(self, data: dict[str, Any]) -> ProviderResult:
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderMalformedResponseError("Invalid response format from Google AI API") from exc
        usage = data.get("usageMetadata")
        return ProviderResult(
            text=text,
            token_usage=TokenCounts(
                input_tokens=_count(usage, "promptTokenCount"),
                output_tokens=_count(usage, "candidatesTokenCount"),
                total_tokens=_count(usage, "totalTokenCount"),
            ),
            model=self._model,
        )


class OpenAIProvider(LLMProvider):
    name = "openai-gpt-4"
    label = "OpenAI"
    api_key_env = "OPENAI_API_KEY"
    settings_prefix = "openai"

    URL = "https://api.openai.com/v1/chat/completions"

    def _url(self) -> str:
        return self.URL

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self._api_key}"}

    def _payload(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [{"role": "system", "content": system_prompt}, {"role": "user", "content": user_prompt}],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }

    def _parse(self, data: dict[str, Any]) -> ProviderResult:
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderMalformedResponseError("Invalid response format from OpenAI API") from exc
        if not isinstance(text, str) or not text:
            raise ProviderMalformedResponseError("Invalid response format from OpenAI API")
        usage = data.get("usage")
        return ProviderResult(
            text=text,
            token_usage=TokenCounts(
                input_tokens=_count(usage, "prompt_tokens"),
                output_tokens=_count(usage, "completion_tokens"),
                total_tokens=_count(usage, "total_tokens"),
            ),
            model=self._model,
        )


class AnthropicProvider(LLMProvider):
    name = "anthropic-claude-3"
    label = "Anthropic"
    api_key_env = "ANTHROPIC_API_KEY"
    settings_prefix = "anthropic"

    URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"

    def _url(self) -> str:
        return self.URL

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._api_key or "",
            "anthropic-version": self.API_VERSION,
        }

    def _payload(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": f"{system_prompt}\n\n{user_prompt}"}],
        }

    def _parse(self, data: dict[str, Any]) -> ProviderResult:
        try:
            text = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderMalformedResponseError("Invalid response format from Anthropic API") from exc
        if not text:
            raise ProviderMalformedResponseError("Invalid response format from Anthropic API")
        usage = data.get("usage")
        input_tokens = _count(usage, "input_tokens")
        output_tokens = _count(usage, "output_tokens")
        return ProviderResult(
            text=text,
            token_usage=TokenCounts(
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
            model=self._model,
        )


PROVIDERS: dict[str, type[LLMProvider]] = {
    GeminiProvider.name: GeminiProvider,
    OpenAIProvider.name: OpenAIProvider,
    AnthropicProvider.name: AnthropicProvider,
}


def create_provider(name: str, settings: Settings) -> LLMProvider:
    """Build the provider registered under ``name`` with keys and limits from settings."""
    cls = PROVIDERS.get(name)
    if cls is None:
        raise UnsupportedProviderError(f"Unsupported provider: {name}")
    return cls(
        getattr(settings, f"{cls.settings_prefix}_api_key"),
        getattr(settings, f"{cls.settings_prefix}_model"),
        timeout_seconds=settings.request_timeout_s,
        max_tokens=settings.max_output_tokens,
        temperature=settings.temperature,
    )
