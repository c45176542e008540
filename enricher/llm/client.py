"""
AI Client

The synchronous boundary the enrichment layer talks to. Wraps a provider
with the retry/backoff policy and the per-minute call spacing, and turns
every outcome except a missing credential into an ``InvokeResult`` value.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from enricher.llm.errors import ConfigurationError
from enricher.llm.providers.base import BaseLLMProvider, LLMRequest
from enricher.llm.retry import retry_llm_call


logger = logging.getLogger(__name__)


@dataclass
class TokenUsage:
    """Token counts reported by the provider."""
    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, other: "TokenUsage") -> None:
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens


@dataclass
class InvokeResult:
    """Outcome of a single ``AIClient.invoke`` call.

    Attributes:
        success: Whether the provider returned an answer
        text: Answer text (empty on failure)
        usage: Token usage of the successful call
        cost_usd: Cost of the successful call
        model: Model that answered
        error: Human-readable error message on failure
        exception: The final exception raised by the provider on failure
    """
    success: bool
    text: str = ""
    usage: TokenUsage = field(default_factory=TokenUsage)
    cost_usd: float = 0.0
    model: Optional[str] = None
    error: Optional[str] = None
    exception: Optional[Exception] = None


class AIClient:
    """Retrying, rate-spaced client over a single LLM provider.

    Example:
        >>> client = AIClient(provider_loader=lambda: factory.create_provider("auto"))
        >>> result = client.invoke("Which industry is Acme in?", max_tokens=100)
        >>> if result.success:
        ...     print(result.text)
    """

    def __init__(
        self,
        provider: Optional[BaseLLMProvider] = None,
        provider_loader: Optional[Callable[[], BaseLLMProvider]] = None,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: Optional[float] = 60.0,
        calls_per_minute: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize the client.

        Args:
            provider: Provider instance to use
            provider_loader: Callable building the provider on first use;
                used when ``provider`` is not given so that a missing
                credential surfaces on the first call
            max_attempts: Maximum attempts per call, first call included
            base_delay: Base delay for exponential backoff
            max_delay: Upper bound for a single wait
            calls_per_minute: Minimum spacing between HTTP calls; None disables
            sleep: Sleep function (injectable for tests)
            clock: Monotonic clock (injectable for tests)
        """
        if provider is None and provider_loader is None:
            raise ValueError("AIClient needs a provider or a provider_loader")

        self._provider = provider
        self._provider_loader = provider_loader
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.calls_per_minute = calls_per_minute
        self.sleep = sleep
        self.clock = clock
        self.call_count = 0
        self._last_call_at: Optional[float] = None

    @property
    def provider(self) -> BaseLLMProvider:
        """The provider, built on first access.

        Raises:
            ConfigurationError: If no credential is configured
        """
        if self._provider is None:
            self._provider = self._provider_loader()
        return self._provider

    def ensure_configured(self) -> None:
        """Raise ConfigurationError now rather than on the first call."""
        _ = self.provider

    def invoke(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.2
    ) -> InvokeResult:
        """Send one prompt and return the outcome.

        Retries transient failures with exponential backoff (HTTP 429 honours
        the retry-after hint). Only ``ConfigurationError`` is raised.
        """
        provider = self.provider

        try:
            request = LLMRequest(
                prompt=prompt,
                max_tokens=max_tokens,
                temperature=temperature,
                model=model
            )
        except ValueError as e:
            return InvokeResult(success=False, error=f"Invalid request: {e}", exception=e)

        try:
            response = retry_llm_call(
                self._paced_generate,
                provider,
                request,
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                max_delay=self.max_delay,
                sleep=self.sleep
            )
        except ConfigurationError:
            raise
        except Exception as e:
            logger.debug(f"AI call failed: {type(e).__name__}: {e}")
            return InvokeResult(success=False, error=str(e), exception=e)

        return InvokeResult(
            success=True,
            text=response.content,
            usage=TokenUsage(response.input_tokens, response.output_tokens),
            cost_usd=response.cost_usd,
            model=response.model_used
        )

    def _paced_generate(self, provider: BaseLLMProvider, request: LLMRequest):
        self._respect_rate_limit()
        self.call_count += 1
        return provider.generate(request)

    def _respect_rate_limit(self) -> None:
        if not self.calls_per_minute:
            return

        interval = 60.0 / self.calls_per_minute
        now = self.clock()
        if self._last_call_at is not None:
            remaining = self._last_call_at + interval - now
            if remaining > 0:
                logger.debug(f"Rate limiting: sleeping {remaining:.2f}s")
                self.sleep(remaining)
                now = self.clock()
        self._last_call_at = now
