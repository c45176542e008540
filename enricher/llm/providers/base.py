"""
Base LLM Provider Protocol

Defines the abstract base class and standardized request/response formats
for all provider implementations, so the enrichment layer sees the same
interface whether it talks to Anthropic or OpenAI.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, Optional


@dataclass
class LLMRequest:
    """Standardized request format for all LLM providers.

    Attributes:
        prompt: The complete prompt text to send to the LLM
        max_tokens: Maximum number of tokens to generate in the response
        temperature: Sampling temperature (0.0 = deterministic, 1.0 = creative)
        model: Optional specific model to use (overrides provider default)
        metadata: Additional provider-specific parameters
    """
    prompt: str
    max_tokens: int
    temperature: float
    model: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate request parameters."""
        if not self.prompt:
            raise ValueError("Prompt cannot be empty")
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")


@dataclass
class LLMResponse:
    """Standardized response format from all LLM providers.

    Attributes:
        content: The generated text content from the LLM
        model_used: The actual model that processed the request
        input_tokens: Prompt tokens reported by the provider
        output_tokens: Completion tokens reported by the provider
        cost_usd: Cost in USD for this API call
        metadata: Additional provider-specific response data
    """
    content: str
    model_used: str
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens


class BaseLLMProvider(ABC):
    """Abstract base class for LLM provider implementations.

    The provider is responsible for:
    - Calling the AI service through its SDK
    - Translating SDK failures into the ``enricher.llm.errors`` hierarchy
    - Pricing requests and responses

    Retrying is NOT the provider's job; ``AIClient`` wraps providers with
    the retry/backoff policy.
    """

    @abstractmethod
    def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate completion from the LLM.

        Args:
            request: Standardized LLM request with prompt and parameters

        Returns:
            Standardized LLM response with content and usage

        Raises:
            RateLimitError: On HTTP 429
            TransportError: On other transient failures
            AuthenticationError: If credentials are rejected
            InvalidRequestError: If the request is rejected
        """
        pass

    @abstractmethod
    def get_capabilities(self) -> Dict[str, Any]:
        """Return provider capabilities.

        Returns:
            Dictionary containing at least:
                - provider: Provider identifier (e.g., "cloud-anthropic")
                - default_model: Model used when the request names none
                - supported_models: List of priced model identifiers
        """
        pass

    def calculate_cost(self, model: str, input_tokens: int, output_tokens: int) -> float:
        """Cost in USD for the given token counts (0.0 for unpriced models)."""
        return 0.0
