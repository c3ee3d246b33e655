"""
FastAPI application for the ad-performance insights service.

Routes delegate business logic to the analytics pipeline and services layer.
"""
from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Any, Literal

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .analytics import (
    AnalysisSession,
    AnalyticsError,
    FilterCondition,
    SortConfig,
    SourceRegistry,
    configure_collation,
    infer_columns,
    run_pipeline,
    validate_condition,
)
from .config import get_settings, update_settings
from .domain import ErrorCode, FILTER_OPERATORS, SHEET_TABS
from .integrations import PROVIDERS, SheetsClient, create_provider
from .services import HealthService, InsightRequest, InsightService, InsightValidationError, LLMResponse, validate_request

logger = logging.getLogger(__name__)

app = FastAPI(title="Ad Insights Service", version="1.0.0", docs_url="/docs", redoc_url="/redoc", openapi_url="/openapi.json")
app.add_middleware(CORSMiddleware, allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"], allow_credentials=True, allow_methods=["*"], allow_headers=["*"])


# ============================================================================
# Pydantic Models
# ============================================================================

class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SortModel(_WireModel):
    column: str = ""
    direction: Literal["asc", "desc"] = "asc"


class AnalysisRequest(_WireModel):
    sources: list[str] = Field(default_factory=list)
    filters: list[FilterCondition] = Field(default_factory=list)
    sort: SortModel | None = None
    row_limit_per_source: int | None = Field(None, alias="rowLimitPerSource", ge=1)
    preview_row_count: int | None = Field(None, alias="previewRowCount", ge=0)


class SettingsResponse(BaseModel):
    sheet_url: str | None
    gemini_api_key_set: bool
    openai_api_key_set: bool
    anthropic_api_key_set: bool
    default_provider: Literal["gemini-pro", "openai-gpt-4", "anthropic-claude-3"]
    default_currency: str
    row_limit_per_source: int
    preview_row_count: int
    max_insight_rows: int
    sample_row_count: int
    max_output_tokens: int
    temperature: float
    request_timeout_s: int


class ConfigUpdate(BaseModel):
    sheet_url: str | None = None
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    default_provider: Literal["gemini-pro", "openai-gpt-4", "anthropic-claude-3"] | None = None
    default_currency: str | None = None
    row_limit_per_source: int | None = Field(None, ge=1)
    preview_row_count: int | None = Field(None, ge=0)
    max_insight_rows: int | None = Field(None, ge=1)
    sample_row_count: int | None = Field(None, ge=1)
    max_output_tokens: int | None = Field(None, ge=1)
    temperature: float | None = Field(None, ge=0.0, le=2.0)
    request_timeout_s: int | None = Field(None, ge=1)


class HealthStatus(BaseModel):
    status: Literal["ok", "error", "unavailable"]
    message: str | None = None
    latency_ms: int | None = None


class HealthResponse(BaseModel):
    backend: HealthStatus
    sheet_endpoint: HealthStatus
    providers: dict[str, HealthStatus]


def _error(status_code: int, error: str, details: Any = None) -> JSONResponse:
    body: dict[str, Any] = {"error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


# ============================================================================
# Service Factories + State
# ============================================================================

_registry = SourceRegistry()
_inflight: dict[str, asyncio.Task] = {}


def _sheets_client() -> SheetsClient:
    s = get_settings()
    return SheetsClient(s.sheet_url, s.request_timeout_s)


def _insight_service() -> InsightService:
    return InsightService(get_settings(), create_provider, inflight=_inflight)


def _health_service() -> HealthService:
    s = get_settings()
    return HealthService(_sheets_client(), [create_provider(name, s) for name in PROVIDERS])


def get_registry() -> SourceRegistry:
    return _registry


def set_registry(registry: SourceRegistry) -> None:
    global _registry
    _registry = registry


async def _refresh_registry() -> SourceRegistry:
    registry = await SourceRegistry.load(_sheets_client(), SHEET_TABS)
    set_registry(registry)
    return registry


@app.on_event("startup")
async def startup() -> None:
    configure_collation()
    if not get_settings().sheet_url:
        logger.warning("SHEET_URL not set; starting with an empty source registry")
        return
    try:
        await _refresh_registry()
    except Exception as exc:
        logger.warning("Initial source load failed: %s", exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, "Invalid request body", exc.errors())


# ============================================================================
# Insight Routes
# ============================================================================

@app.post("/api/insights", response_model=LLMResponse, response_model_exclude_none=True)
@app.post("/insights", response_model=LLMResponse, response_model_exclude_none=True, include_in_schema=False)
async def generate_insights(request: InsightRequest):
    try:
        validate_request(request)
    except InsightValidationError as exc:
        return _error(400, str(exc))
    try:
        return await _insight_service().generate_insight(request)
    except Exception as exc:
        logger.exception("[%s] Insights API error", ErrorCode.INTERNAL_ERROR)
        return _error(500, "Failed to generate insights", str(exc))


# ============================================================================
# Source + Analysis Routes
# ============================================================================

@app.get("/api/sources")
async def list_sources() -> dict:
    sources = get_registry().list_sources()
    return {"total": len(sources), "sources": [s.to_dict() for s in sources], "default": get_registry().default_source()}


@app.post("/api/sources/refresh")
async def refresh_sources():
    if not get_settings().sheet_url:
        return _error(502, "Sheet endpoint not configured", "Set SHEET_URL or POST /api/config with sheet_url")
    registry = await _refresh_registry()
    sources = registry.list_sources()
    return {"status": "ok", "total": len(sources), "sources": [s.to_dict() for s in sources]}


@app.post("/api/analysis")
async def analyze(payload: AnalysisRequest):
    s = get_settings()
    registry = get_registry()
    session = AnalysisSession(
        row_limit_per_source=payload.row_limit_per_source or s.row_limit_per_source,
        preview_row_count=s.preview_row_count if payload.preview_row_count is None else payload.preview_row_count,
    )
    session.select_sources(payload.sources)
    if payload.sort is not None:
        session.sort = SortConfig(column=payload.sort.column, direction=payload.sort.direction)

    try:
        for source_id in session.selected_sources:
            registry.get_source(source_id)
        columns = infer_columns(registry.sample_rows(session.selected_sources))
        for condition in payload.filters:
            validate_condition(condition, columns)
        session.filters = list(payload.filters)
        result = run_pipeline(registry, session)
    except AnalyticsError as exc:
        return _error(400, str(exc))

    return {
        "columns": [c.to_dict() for c in result.columns],
        "preview": jsonable_encoder(result.preview),
        "summary": result.summary.model_dump(by_alias=True, exclude_none=True),
        "totalRows": result.total_rows,
        "combinedRows": len(result.combined_rows),
        "filteredRows": result.filtered_rows,
    }


@app.get("/api/operators")
async def list_operators() -> dict:
    return {column_type: list(ops) for column_type, ops in FILTER_OPERATORS.items()}


# ============================================================================
# Settings & Health Routes
# ============================================================================

def _settings_response() -> SettingsResponse:
    s = get_settings()
    return SettingsResponse(
        sheet_url=s.sheet_url,
        gemini_api_key_set=bool(s.gemini_api_key),
        openai_api_key_set=bool(s.openai_api_key),
        anthropic_api_key_set=bool(s.anthropic_api_key),
        default_provider=s.default_provider,
        default_currency=s.default_currency,
        row_limit_per_source=s.row_limit_per_source,
        preview_row_count=s.preview_row_count,
        max_insight_rows=s.max_insight_rows,
        sample_row_count=s.sample_row_count,
        max_output_tokens=s.max_output_tokens,
        temperature=s.temperature,
        request_timeout_s=s.request_timeout_s,
    )


@app.get("/api/settings", response_model=SettingsResponse)
async def get_api_settings() -> SettingsResponse:
    return _settings_response()


@app.post("/api/config")
async def update_config(payload: ConfigUpdate) -> dict:
    update_settings({k: v for k, v in payload.model_dump().items() if v is not None})
    return {"status": "ok", "settings": _settings_response().model_dump()}


@app.get("/api/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    r = await _health_service().check_all()
    return HealthResponse(
        backend=HealthStatus(status=r.backend.status, message=r.backend.message, latency_ms=r.backend.latency_ms),
        sheet_endpoint=HealthStatus(status=r.sheet_endpoint.status, message=r.sheet_endpoint.message, latency_ms=r.sheet_endpoint.latency_ms),
        providers={name: HealthStatus(status=h.status, message=h.message, latency_ms=h.latency_ms) for name, h in r.providers.items()},
    )


@app.get("/")
async def root() -> dict:
    s = get_settings()
    return {
        "service": "adinsights",
        "status": "ok",
        "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
        "sources_loaded": len(get_registry().list_sources()),
        "default_provider": s.default_provider,
    }
