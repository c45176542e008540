"""
LLM Provider Implementations

Provider IDs:
    - cloud-anthropic: Anthropic Messages API
    - cloud-openai: OpenAI Chat Completions API
"""

from enricher.llm.providers.base import BaseLLMProvider, LLMRequest, LLMResponse
from enricher.llm.providers.cloud_anthropic import CloudAnthropicProvider
from enricher.llm.providers.cloud_openai import CloudOpenAIProvider

__all__ = [
    "BaseLLMProvider",
    "LLMRequest",
    "LLMResponse",
    "CloudAnthropicProvider",
    "CloudOpenAIProvider",
]
