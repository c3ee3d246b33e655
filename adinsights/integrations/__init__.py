"""Integrations layer for adinsights."""
from .llm_client import (
    LLMProvider,
    GeminiProvider,
    OpenAIProvider,
    AnthropicProvider,
    PROVIDERS,
    create_provider,
    ProviderResult,
    TokenCounts,
    LLMClientError,
    ProviderConfigurationError,
    ProviderUpstreamError,
    ProviderMalformedResponseError,
    ProviderTransportError,
    UnsupportedProviderError,
)
from .sheets_client import SheetsClient, SheetsClientError
from .tab_adapters import adapt_tab

__all__ = ["LLMProvider", "GeminiProvider", "OpenAIProvider", "AnthropicProvider", "PROVIDERS", "create_provider",
           "ProviderResult", "TokenCounts", "LLMClientError", "ProviderConfigurationError", "ProviderUpstreamError",
           "ProviderMalformedResponseError", "ProviderTransportError", "UnsupportedProviderError",
           "SheetsClient", "SheetsClientError", "adapt_tab"]
