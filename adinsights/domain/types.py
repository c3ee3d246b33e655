"""
Core type definitions and constants.
"""
from __future__ import annotations

from typing import Literal

ColumnType = Literal["metric", "dimension", "date"]
SortDirection = Literal["asc", "desc"]
ProviderName = Literal["gemini-pro", "openai-gpt-4", "anthropic-claude-3"]

SHEET_TABS: tuple[str, ...] = (
    "Dashboard",
    "Dashboard LivCor",
    "All Error Score Card",
    "Broken Error Dashboard",
    "Soft Error Dashboard",
)

SOURCE_FIELD = "__dataSource"

FILTER_OPERATORS: dict[str, tuple[str, ...]] = {
    "dimension": ("contains", "does not contain", "equals", "not equals", "starts with", "ends with"),
    "metric": ("equals", "not equals", "greater than", "less than", "greater than or equals", "less than or equals"),
    "date": ("equals", "not equals", "after", "before", "on or after", "on or before"),
}


class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    UNSUPPORTED_PROVIDER = "UNSUPPORTED_PROVIDER"
    CANCELLED = "CANCELLED"
    TIMEOUT = "TIMEOUT"
    SOURCE_NOT_FOUND = "SOURCE_NOT_FOUND"
    INVALID_FILTER = "INVALID_FILTER"
    INTERNAL_ERROR = "INTERNAL_ERROR"
