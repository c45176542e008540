"""
LLM Infrastructure Layer

Shared AI infrastructure for the enricher: providers, the retrying client,
configuration and the error hierarchy.

Architecture:
    Infrastructure Layer (this module)
        ↓
    Domain Layer (enrichment)
        ↓
    Application Layer (CLI)

Usage:
    >>> from enricher.llm import LLMConfig, LLMProviderFactory, AIClient
    >>>
    >>> factory = LLMProviderFactory(LLMConfig.load_from_yaml())
    >>> client = AIClient(provider_loader=lambda: factory.create_provider("auto"))
    >>> result = client.invoke("Hello", max_tokens=50)
"""

from enricher.llm.providers.base import BaseLLMProvider, LLMRequest, LLMResponse
from enricher.llm.factory import LLMProviderFactory, AutoSelectionConfig
from enricher.llm.client import AIClient, InvokeResult, TokenUsage
from enricher.llm.config import LLMConfig, AnthropicConfig, OpenAIConfig
from enricher.llm.errors import (
    LLMError,
    ConfigurationError,
    ProviderError,
    TransportError,
    RateLimitError,
    AuthenticationError,
    InvalidRequestError,
)

__all__ = [
    "BaseLLMProvider",
    "LLMRequest",
    "LLMResponse",
    "LLMProviderFactory",
    "AutoSelectionConfig",
    "AIClient",
    "InvokeResult",
    "TokenUsage",
    "LLMConfig",
    "AnthropicConfig",
    "OpenAIConfig",
    "LLMError",
    "ConfigurationError",
    "ProviderError",
    "TransportError",
    "RateLimitError",
    "AuthenticationError",
    "InvalidRequestError",
]
