from __future__ import annotations

from dataclasses import replace
from typing import Any

import pytest

from adinsights.config import Settings, settings as env_settings


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, payload: Any = None, reason: str = "OK") -> None:
        self.status_code = status_code
        self.reason = reason
        self._payload = payload

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class RecordingPost:
    """Callable replacing requests.post that records every call."""

    def __init__(self, response: FakeResponse | Exception) -> None:
        self.response = response
        self.calls: list[dict[str, Any]] = []

    def __call__(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


@pytest.fixture
def test_settings() -> Settings:
    return replace(
        env_settings,
        sheet_url=None,
        gemini_api_key="gemini-key",
        openai_api_key="openai-key",
        anthropic_api_key="anthropic-key",
        gemini_model="gemini-pro",
        openai_model="gpt-4",
        anthropic_model="claude-3-sonnet-20240229",
        max_insight_rows=1000,
        sample_row_count=10,
        max_output_tokens=1000,
        temperature=0.7,
        request_timeout_s=30,
    )


@pytest.fixture
def two_sources() -> dict[str, list[dict[str, Any]]]:
    return {
        "A": [{"account": "x", "score": 3}, {"account": "y", "score": 7}],
        "B": [{"account": "z", "score": 9}],
    }
