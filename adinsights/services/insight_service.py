"""
Insight orchestration: validate, build an analysis context, dispatch to one
provider, and normalize the outcome into an LLMResponse.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from ..analytics.filters import render_condition
from ..analytics.inference import infer_data_types
from ..analytics.models import FilterCondition, PipelineResult
from ..analytics.pipeline import AnalysisSession
from ..config import Settings
from ..domain.types import ErrorCode, SOURCE_FIELD
from ..integrations.llm_client import LLMProvider, create_provider

logger = logging.getLogger(__name__)


class InsightError(Exception):
    """Base error class for insight orchestration."""


class InsightValidationError(InsightError):
    """Raised when a request lacks a prompt or data rows."""


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TokenUsage(_WireModel):
    input_tokens: int = Field(0, alias="inputTokens")
    output_tokens: int = Field(0, alias="outputTokens")
    total_tokens: int = Field(0, alias="totalTokens")


class LLMResponse(_WireModel):
    """Either generated text (with optional usage) or an error, never both."""
    text: str = ""
    token_usage: TokenUsage | None = Field(None, alias="tokenUsage")
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, message: str) -> "LLMResponse":
        return cls(text="", error=message)


class InsightRequest(_WireModel):
    """Body of ``POST /api/insights``; prompt and data are checked by validate_request."""
    prompt: str = ""
    data: list[dict[str, Any]] = Field(default_factory=list)
    data_source: str | None = Field(None, alias="dataSource")
    data_sources: list[str] | None = Field(None, alias="dataSources")
    filters: list[FilterCondition] = Field(default_factory=list)
    total_rows: int = Field(0, alias="totalRows")
    filtered_rows: int = Field(0, alias="filteredRows")
    currency: str = "USD"
    provider: str = "gemini-pro"
    row_limit_per_source: int | None = Field(None, alias="rowLimitPerSource")
    session_id: str | None = Field(None, alias="sessionId")


@dataclass(frozen=True)
class AnalysisContext:
    """Everything the system prompt says about the data being analysed."""
    data_source: str
    data_sources: list[str]
    is_multi_source: bool
    total_rows: int
    filtered_rows: int
    currency: str
    row_limit_per_source: int | None
    filters: str
    data_sample: list[dict[str, Any]]
    column_names: list[str]
    data_types: dict[str, str] = field(default_factory=dict)


def validate_request(request: InsightRequest) -> None:
    if not request.prompt or not request.prompt.strip() or not request.data:
        raise InsightValidationError("Missing required fields: prompt and data")


def build_analysis_context(request: InsightRequest, sample_row_count: int = 10) -> AnalysisContext:
    sources = request.data_sources or ([request.data_source] if request.data_source else [])
    is_multi = bool(request.data_sources) and len(request.data_sources) > 1
    first_row = request.data[0] if request.data else {}
    return AnalysisContext(
        data_source=", ".join(sources) if is_multi else (request.data_source or ", ".join(sources)),
        data_sources=list(sources),
        is_multi_source=is_multi,
        total_rows=request.total_rows,
        filtered_rows=request.filtered_rows,
        currency=request.currency,
        row_limit_per_source=request.row_limit_per_source,
        filters=", ".join(render_condition(f) for f in request.filters),
        data_sample=request.data[:sample_row_count],
        column_names=list(first_row.keys()),
        data_types=infer_data_types(first_row),
    )


_MULTI_SOURCE_GUIDANCE = f"""
IMPORTANT: This is a multi-source analysis combining data from multiple dashboard views. Look for:
- Cross-source patterns and relationships
- Comparative insights between different data sources
- Overall performance trends across the combined dataset
- Correlations between metrics from different sources

The data includes a {SOURCE_FIELD} field indicating which source each row came from.
"""


def compose_system_prompt(context: AnalysisContext) -> str:
    lines = [
        "You are a data analyst assistant specializing in advertising campaign performance analysis. "
        "Analyze the provided data and respond to the user's query with comprehensive insights.",
        "",
        "Analysis Context:",
        f"- Multi-Source Analysis: {', '.join(context.data_sources)}"
        if context.is_multi_source
        else f"- Data Source: {context.data_source}",
        f"- Total Rows Across All Sources: {context.total_rows}",
        f"- Filtered/Analyzed Rows: {context.filtered_rows}",
    ]
    if context.row_limit_per_source:
        lines.append(f"- Row Limit Per Source: {context.row_limit_per_source}")
    lines += [
        f"- Currency: {context.currency}",
        f"- Applied Filters: {context.filters or 'None'}",
        f"- Available Columns: {', '.join(context.column_names)}",
        f"- Column Types: {', '.join(f'{k} ({v})' for k, v in context.data_types.items())}",
    ]
    if context.is_multi_source:
        lines.append(_MULTI_SOURCE_GUIDANCE)
    lines += [
        "",
        f"Data Sample (first {len(context.data_sample)} rows):",
        json.dumps(context.data_sample, indent=2, default=str),
        "",
        "Please provide clear, actionable insights based on the data and the user's specific question. "
        "Focus on patterns, trends, and recommendations that would be valuable for advertising campaign optimization."
        + (
            " Pay special attention to cross-source relationships and comprehensive analysis across all selected data sources."
            if context.is_multi_source
            else ""
        ),
    ]
    return "\n".join(lines)


def compose_user_prompt(prompt: str) -> str:
    return f"{prompt}\n\nPlease analyze the data and provide insights."


def request_from_pipeline(
    result: PipelineResult,
    session: AnalysisSession,
    prompt: str,
    provider: str,
    currency: str = "USD",
    session_id: str | None = None,
) -> InsightRequest:
    """Package one pipeline run as an insight request."""
    sources = result.selected_sources
    return InsightRequest(
        prompt=prompt,
        data=result.rows,
        data_source=sources[0] if len(sources) == 1 else ", ".join(sources),
        data_sources=sources,
        filters=session.filters,
        total_rows=result.total_rows,
        filtered_rows=result.filtered_rows,
        currency=currency,
        provider=provider,
        row_limit_per_source=session.row_limit_per_source,
        session_id=session_id,
    )


ProviderFactory = Callable[[str, Settings], LLMProvider]


class InsightService:
    """Generates insights; one in-flight request per session id, newer requests supersede older ones."""

    def __init__(
        self,
        settings: Settings,
        provider_factory: ProviderFactory = create_provider,
        inflight: dict[str, asyncio.Task] | None = None,
    ) -> None:
        self._s = settings
        self._provider_factory = provider_factory
        self._inflight: dict[str, asyncio.Task] = {} if inflight is None else inflight

    def is_generating(self, session_id: str) -> bool:
        task = self._inflight.get(session_id)
        return task is not None and not task.done()

    def cancel(self, session_id: str) -> bool:
        task = self._inflight.get(session_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def generate_insight(self, request: InsightRequest) -> LLMResponse:
        """Never raises for provider or data problems; failures land in ``LLMResponse.error``."""
        try:
            validate_request(request)
        except InsightValidationError as exc:
            logger.warning("[%s] %s", ErrorCode.VALIDATION_ERROR, exc)
            return LLMResponse.failure(str(exc))

        if len(request.data) > self._s.max_insight_rows:
            logger.info("Truncating insight data from %d to %d rows", len(request.data), self._s.max_insight_rows)
            request = request.model_copy(update={"data": request.data[: self._s.max_insight_rows]})

        try:
            context = build_analysis_context(request, self._s.sample_row_count)
            system_prompt = compose_system_prompt(context)
            user_prompt = compose_user_prompt(request.prompt)
            provider = self._provider_factory(request.provider, self._s)
            return await self._dispatch(provider, system_prompt, user_prompt, request.session_id)
        except Exception as exc:
            logger.warning("Error calling %s API: %s", request.provider, exc)
            return LLMResponse.failure(f"Failed to generate insights using {request.provider}: {exc}")

    async def _dispatch(
        self,
        provider: LLMProvider,
        system_prompt: str,
        user_prompt: str,
        session_id: str | None,
    ) -> LLMResponse:
        if session_id is not None and self.cancel(session_id):
            logger.info("[%s] Superseded in-flight insight request for session %s", ErrorCode.CANCELLED, session_id)

        start = time.perf_counter()
        task = asyncio.create_task(provider.send(system_prompt, user_prompt))
        if session_id is not None:
            self._inflight[session_id] = task
        try:
            done, _ = await asyncio.wait({task}, timeout=self._s.request_timeout_s)
        finally:
            if not task.done():
                task.cancel()
            if session_id is not None and self._inflight.get(session_id) is task:
                del self._inflight[session_id]

        if not done:
            raise InsightError(f"[{ErrorCode.TIMEOUT}] no response after {self._s.request_timeout_s}s")
        if task.cancelled():
            raise InsightError(f"[{ErrorCode.CANCELLED}] request superseded by a newer insight request")
        exc = task.exception()
        if exc is not None:
            raise exc

        result = task.result()
        logger.info("Insight generated by %s in %dms", provider.name, int((time.perf_counter() - start) * 1000))
        return LLMResponse(
            text=result.text,
            token_usage=TokenUsage(
                input_tokens=result.token_usage.input_tokens,
                output_tokens=result.token_usage.output_tokens,
                total_tokens=result.token_usage.total_tokens,
            ),
        )
