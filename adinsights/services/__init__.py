"""Services layer for adinsights."""
from .insight_service import (
    InsightService,
    InsightRequest,
    LLMResponse,
    TokenUsage,
    AnalysisContext,
    InsightError,
    InsightValidationError,
    validate_request,
    build_analysis_context,
    compose_system_prompt,
    compose_user_prompt,
    request_from_pipeline,
)
from .health_service import HealthService, HealthReport, ServiceHealth

__all__ = ["InsightService", "InsightRequest", "LLMResponse", "TokenUsage", "AnalysisContext", "InsightError",
           "InsightValidationError", "validate_request", "build_analysis_context", "compose_system_prompt",
           "compose_user_prompt", "request_from_pipeline", "HealthService", "HealthReport", "ServiceHealth"]
