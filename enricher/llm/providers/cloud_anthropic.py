"""
Cloud Anthropic Claude Provider

Provider implementation for Anthropic's Claude models via the Messages API,
using the official ``anthropic`` SDK.

File naming follows pattern: cloud_{provider}.py
Provider ID: cloud-anthropic
"""

from typing import Dict, Any

import anthropic

from enricher.llm.config import AnthropicConfig
from enricher.llm.providers.base import BaseLLMProvider, LLMRequest, LLMResponse
from enricher.llm.providers.sdk_errors import translate_sdk_error
from enricher.llm.errors import ConfigurationError, TransportError


class CloudAnthropicProvider(BaseLLMProvider):
    """Cloud Anthropic Claude LLM provider.

    Deployment: Cloud (requires API key and internet connection)
    Provider: Anthropic
    Access Method: anthropic SDK (Messages API)

    The SDK client is built with ``max_retries=0``; retries and backoff are
    handled by ``enricher.llm.retry``.

    Example:
        >>> from enricher.llm.config import AnthropicConfig
        >>> config = AnthropicConfig(api_key="sk-ant-...")
        >>> provider = CloudAnthropicProvider(config)
        >>> request = LLMRequest(prompt="Which industry is Acme in?", max_tokens=100, temperature=0.2)
        >>> response = provider.generate(request)
    """

    # Pricing per 1M tokens
    PRICING = {
        "claude-3-5-haiku-20241022": {"input": 0.80, "output": 4.00},
        "claude-3-5-sonnet-20241022": {"input": 3.00, "output": 15.00},
        "claude-3-haiku-20240307": {"input": 0.25, "output": 1.25},
        "claude-3-opus-20240229": {"input": 15.00, "output": 75.00},
        "claude-sonnet-4-20250514": {"input": 3.00, "output": 15.00},
    }

    def __init__(self, config: AnthropicConfig):
        """Initialize Cloud Anthropic provider.

        Raises:
            ConfigurationError: If no API key is configured
        """
        if not config.api_key:
            raise ConfigurationError(
                "Anthropic API key not found. Set ANTHROPIC_API_KEY environment "
                "variable or provide api_key in configuration."
            )
        self.config = config
        self._client = None

    @property
    def client(self) -> anthropic.Anthropic:
        """Lazy-load the Anthropic client."""
        if self._client is None:
            self._client = anthropic.Anthropic(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                max_retries=0
            )
        return self._client

    def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate completion using Claude."""
        model = request.model or self.config.default_model

        try:
            response = self.client.messages.create(
                model=model,
                max_tokens=request.max_tokens or self.config.max_tokens,
                temperature=request.temperature,
                messages=[{"role": "user", "content": request.prompt}],
                **request.metadata
            )
        except anthropic.APIError as e:
            raise translate_sdk_error(e, anthropic, "Anthropic") from e

        try:
            content = "".join(
                block.text for block in response.content
                if getattr(block, "type", None) == "text"
            )
            input_tokens = int(response.usage.input_tokens)
            output_tokens = int(response.usage.output_tokens)
        except (AttributeError, TypeError, ValueError) as e:
            raise TransportError(f"Malformed Anthropic response payload: {e}")

        return LLMResponse(
            content=content,
            model_used=getattr(response, "model", None) or model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=self.calculate_cost(model, input_tokens, output_tokens),
            metadata={
                "provider": "anthropic",
                "stop_reason": getattr(response, "stop_reason", None),
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

        # Pricing is per 1M tokens
        input_cost = (input_tokens / 1_000_000) * pricing["input"]
        output_cost = (output_tokens / 1_000_000) * pricing["output"]
        return input_cost + output_cost

    def get_capabilities(self) -> Dict[str, Any]:
        return {
            "provider": "cloud-anthropic",
            "default_model": self.config.default_model,
            "supported_models": list(self.PRICING.keys()),
        }
