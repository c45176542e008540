"""
Cloud OpenAI LLM Provider

Provider for OpenAI's GPT models via the Chat Completions API, using the
official ``openai`` SDK.

File naming follows pattern: cloud_{service}.py
Provider ID: cloud-openai
"""

from typing import Dict, Any

import openai

from enricher.llm.config import OpenAIConfig
from enricher.llm.providers.base import BaseLLMProvider, LLMRequest, LLMResponse
from enricher.llm.providers.sdk_errors import translate_sdk_error
from enricher.llm.errors import ConfigurationError, TransportError


class CloudOpenAIProvider(BaseLLMProvider):
    """Cloud OpenAI LLM provider.

    Configuration is loaded from:
    1. Environment variables (OPENAI_API_KEY, OPENAI_MODEL, etc.)
    2. Config file (config.yaml llm.openai section)
    3. Defaults (gpt-4o-mini, 1024 max_tokens, etc.)
    """

    # Pricing per 1M tokens
    PRICING = {
        "gpt-4o-mini": {"input": 0.15, "output": 0.60},
        "gpt-4o": {"input": 2.50, "output": 10.00},
        "gpt-4-turbo": {"input": 10.00, "output": 30.00},
        "gpt-3.5-turbo": {"input": 0.50, "output": 1.50},
    }

    def __init__(self, config: OpenAIConfig):
        if not config.api_key:
            raise ConfigurationError(
                "OpenAI API key not found. Set OPENAI_API_KEY environment "
                "variable or provide api_key in configuration."
            )
        self.config = config
        self._client = None

    @property
    def client(self) -> openai.OpenAI:
        """Lazy-load OpenAI client.

        Built with ``max_retries=0`` so that ``enricher.llm.retry`` owns the
        backoff.
        """
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                max_retries=0
            )
        return self._client

    def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate completion from OpenAI."""
        model = request.model or self.config.default_model

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": request.prompt}],
                max_tokens=request.max_tokens,
                temperature=request.temperature,
                **request.metadata
            )
        except openai.APIError as e:
            raise translate_sdk_error(e, openai, "OpenAI") from e

        try:
            choice = response.choices[0]
            content = choice.message.content or ""
            input_tokens = int(response.usage.prompt_tokens)
            output_tokens = int(response.usage.completion_tokens)
        except (IndexError, AttributeError, TypeError, ValueError) as e:
            raise TransportError(f"Malformed OpenAI response payload: {e}")

        return LLMResponse(
            content=content,
            model_used=getattr(response, "model", None) or model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=self.calculate_cost(model, input_tokens, output_tokens),
            metadata={
                "provider": "openai",
                "finish_reason": getattr(choice, "finish_reason", None),
                "response_id": getattr(response, "id", None),
            }
        )

    def calculate_cost(self, model: str, input_tokens: int, output_tokens: int) -> float:
        if self.config.pricing_override and model in self.config.pricing_override:
            pricing = self.config.pricing_override[model]
        else:
            pricing = self.PRICING.get(model)

        if not pricing:
            return 0.0

        input_cost = (input_tokens / 1_000_000) * pricing["input"]
        output_cost = (output_tokens / 1_000_000) * pricing["output"]
        return input_cost + output_cost

    def get_capabilities(self) -> Dict[str, Any]:
        return {
            "provider": "cloud-openai",
            "default_model": self.config.default_model,
            "supported_models": list(self.PRICING.keys()),
        }
