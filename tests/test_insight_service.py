"""Contract tests for insight orchestration.

Verifies that:
- Invalid requests never reach a provider
- The analysis context and prompts reflect the request
- Oversized data is truncated before dispatch
- Provider failures come back as error responses, not exceptions
- A newer request for the same session supersedes the in-flight one
"""
from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest
import requests

from adinsights.analytics import AnalysisSession, FilterCondition, SourceRegistry, run_pipeline
from adinsights.domain import SOURCE_FIELD
from adinsights.integrations import ProviderResult, ProviderUpstreamError, TokenCounts, create_provider, llm_client
from adinsights.services import (
    InsightRequest,
    InsightService,
    LLMResponse,
    build_analysis_context,
    compose_system_prompt,
    compose_user_prompt,
    request_from_pipeline,
)


class StubProvider:
    """Records prompts and answers with a fixed result, optionally after a gate opens."""

    name = "stub"

    def __init__(self, text: str = "insight", gate: asyncio.Event | None = None, error: Exception | None = None) -> None:
        self.text = text
        self.gate = gate
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def send(self, system_prompt: str, user_prompt: str) -> ProviderResult:
        self.calls.append((system_prompt, user_prompt))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return ProviderResult(self.text, TokenCounts(10, 5, 15), "stub-model")


def _request(**overrides) -> InsightRequest:
    body = {
        "prompt": "Which account performs best?",
        "data": [{"account": "x", "score": 3}, {"account": "y", "score": 7}],
        "dataSource": "Dashboard",
        "totalRows": 2,
        "filteredRows": 2,
        "provider": "gemini-pro",
    }
    body.update(overrides)
    return InsightRequest.model_validate(body)


@pytest.fixture
def stub() -> StubProvider:
    return StubProvider()


@pytest.fixture
def service(test_settings, stub) -> InsightService:
    return InsightService(test_settings, provider_factory=lambda name, s: stub)


# ============================================================================
# Validation
# ============================================================================

class TestValidation:

    @pytest.mark.parametrize("overrides", [
        {"prompt": ""},
        {"prompt": "   "},
        {"data": []},
    ])
    def test_invalid_request_makes_no_provider_call(self, service, stub, overrides):
        response = asyncio.run(service.generate_insight(_request(**overrides)))
        assert response.text == ""
        assert response.error == "Missing required fields: prompt and data"
        assert stub.calls == []

    def test_request_accepts_camel_and_snake_case(self):
        camel = InsightRequest.model_validate({"prompt": "p", "data": [{}], "totalRows": 4, "sessionId": "s"})
        snake = InsightRequest(prompt="p", data=[{}], total_rows=4, session_id="s")
        assert camel.total_rows == snake.total_rows == 4
        assert camel.session_id == snake.session_id == "s"


# ============================================================================
# Context + Prompts
# ============================================================================

class TestPromptComposition:

    def test_single_source_context(self):
        request = _request(filters=[{"column": "score", "operator": "greater than", "value": 4}])
        context = build_analysis_context(request, sample_row_count=1)

        assert context.data_source == "Dashboard"
        assert context.is_multi_source is False
        assert context.filters == "score greater than 4"
        assert context.data_sample == [{"account": "x", "score": 3}]
        assert context.column_names == ["account", "score"]
        assert context.data_types == {"account": "dimension", "score": "metric"}

    def test_single_source_prompt(self):
        prompt = compose_system_prompt(build_analysis_context(_request()))
        assert "- Data Source: Dashboard" in prompt
        assert "- Applied Filters: None" in prompt
        assert "- Column Types: account (dimension), score (metric)" in prompt
        assert "multi-source analysis" not in prompt
        assert "Data Sample (first 2 rows):" in prompt

    def test_multi_source_prompt(self):
        request = _request(dataSources=["Dashboard", "Soft Error Dashboard"], rowLimitPerSource=500)
        context = build_analysis_context(request)
        prompt = compose_system_prompt(context)

        assert context.is_multi_source is True
        assert "- Multi-Source Analysis: Dashboard, Soft Error Dashboard" in prompt
        assert "- Row Limit Per Source: 500" in prompt
        assert SOURCE_FIELD in prompt
        assert "cross-source relationships" in prompt

    def test_user_prompt(self):
        assert compose_user_prompt("Why?") == "Why?\n\nPlease analyze the data and provide insights."

    def test_request_from_pipeline(self, two_sources):
        session = AnalysisSession()
        session.select_sources(["A", "B"])
        session.add_filter("score", "greater than", 4)
        result = run_pipeline(SourceRegistry(two_sources), session)

        request = request_from_pipeline(result, session, "Summarize", "openai-gpt-4", "EUR", session_id="s1")

        assert request.data_sources == ["A", "B"]
        assert request.data_source == "A, B"
        assert request.total_rows == 3
        assert request.filtered_rows == 2
        assert request.currency == "EUR"
        assert request.row_limit_per_source == 500
        assert [f.column for f in request.filters] == ["score"]


# ============================================================================
# Dispatch
# ============================================================================

class TestGenerateInsight:

    def test_success(self, service, stub):
        response = asyncio.run(service.generate_insight(_request()))
        assert response.ok
        assert response.text == "insight"
        assert response.token_usage.total_tokens == 15
        system_prompt, user_prompt = stub.calls[0]
        assert "Dashboard" in system_prompt
        assert user_prompt.startswith("Which account performs best?")

    def test_wire_shape(self, service):
        response = asyncio.run(service.generate_insight(_request()))
        dumped = response.model_dump(by_alias=True, exclude_none=True)
        assert dumped == {
            "text": "insight",
            "tokenUsage": {"inputTokens": 10, "outputTokens": 5, "totalTokens": 15},
        }

    def test_truncates_oversized_data(self, test_settings, stub):
        service = InsightService(replace(test_settings, max_insight_rows=3), provider_factory=lambda n, s: stub)
        data = [{"n": i} for i in range(10)]
        asyncio.run(service.generate_insight(_request(data=data)))
        system_prompt, _ = stub.calls[0]
        assert "Data Sample (first 3 rows):" in system_prompt

    def test_provider_error_becomes_error_response(self, test_settings):
        failing = StubProvider(error=ProviderUpstreamError("Google AI API error: 500", 500))
        service = InsightService(test_settings, provider_factory=lambda n, s: failing)
        response = asyncio.run(service.generate_insight(_request()))
        assert response.text == ""
        assert response.error == "Failed to generate insights using gemini-pro: Google AI API error: 500"

    def test_transport_failure_hides_api_key(self, test_settings, monkeypatch, caplog):
        def refuse(url, **kwargs):
            raise requests.exceptions.ConnectionError(f"Max retries exceeded with url: {url}?key=gemini-key")

        monkeypatch.setattr(llm_client.requests, "post", refuse)
        service = InsightService(test_settings, provider_factory=create_provider)
        with caplog.at_level("WARNING"):
            response = asyncio.run(service.generate_insight(_request()))

        assert response.error == "Failed to generate insights using gemini-pro: Google AI request failed: ConnectionError"
        assert "gemini-key" not in response.error
        assert "gemini-key" not in caplog.text

    def test_unsupported_provider(self, test_settings):
        service = InsightService(test_settings, provider_factory=create_provider)
        response = asyncio.run(service.generate_insight(_request(provider="llama-2")))
        assert "Unsupported provider: llama-2" in response.error

    def test_missing_key_is_reported(self, test_settings):
        service = InsightService(replace(test_settings, gemini_api_key=None), provider_factory=create_provider)
        response = asyncio.run(service.generate_insight(_request()))
        assert "GEMINI_API_KEY" in response.error

    def test_timeout(self, test_settings):
        never = StubProvider(gate=asyncio.Event())
        service = InsightService(replace(test_settings, request_timeout_s=0), provider_factory=lambda n, s: never)
        response = asyncio.run(service.generate_insight(_request()))
        assert "TIMEOUT" in response.error

    def test_failure_helper(self):
        response = LLMResponse.failure("boom")
        assert not response.ok
        assert response.text == ""


# ============================================================================
# Cancellation
# ============================================================================

class TestCancellation:

    def test_newer_request_supersedes_older(self, test_settings):
        async def scenario():
            slow = StubProvider(text="old", gate=asyncio.Event())
            fast = StubProvider(text="new")
            providers = iter([slow, fast])
            service = InsightService(test_settings, provider_factory=lambda n, s: next(providers))

            first = asyncio.create_task(service.generate_insight(_request(sessionId="s1")))
            for _ in range(3):
                await asyncio.sleep(0)
            assert service.is_generating("s1")

            second = await service.generate_insight(_request(sessionId="s1"))
            return await first, second, service

        first, second, service = asyncio.run(scenario())
        assert "CANCELLED" in first.error
        assert second.text == "new"
        assert not service.is_generating("s1")

    def test_other_sessions_are_independent(self, test_settings):
        async def scenario():
            gate = asyncio.Event()
            service = InsightService(test_settings, provider_factory=lambda n, s: StubProvider(gate=gate))
            first = asyncio.create_task(service.generate_insight(_request(sessionId="a")))
            second = asyncio.create_task(service.generate_insight(_request(sessionId="b")))
            for _ in range(3):
                await asyncio.sleep(0)
            both_running = service.is_generating("a") and service.is_generating("b")
            gate.set()
            return both_running, await first, await second

        both_running, first, second = asyncio.run(scenario())
        assert both_running
        assert first.ok and second.ok

    def test_cancel_without_inflight_request(self, service):
        assert service.cancel("nobody") is False
