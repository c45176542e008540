"""
LLM Infrastructure Error Classes

This module defines the exception hierarchy for calls to the upstream AI API.
All LLM-related errors inherit from LLMError base class, enabling
consistent error handling across providers.

Error Hierarchy:
    LLMError (base)
    ├── ConfigurationError (missing credential / invalid configuration)
    └── ProviderError (provider operation failures)
        ├── TransportError (non-2xx response, malformed payload)
        │   ├── TimeoutError
        │   └── NetworkError
        ├── RateLimitError (HTTP 429, optional retry-after hint)
        ├── AuthenticationError
        └── InvalidRequestError

Usage:
    >>> from enricher.llm.errors import ConfigurationError
    >>>
    >>> if not api_key:
    >>>     raise ConfigurationError(
    >>>         "Anthropic API key not configured. "
    >>>         "Set ANTHROPIC_API_KEY environment variable."
    >>>     )
"""

from typing import Optional


class LLMError(Exception):
    """Base exception for all LLM infrastructure errors."""
    pass


class ConfigurationError(LLMError):
    """Raised when LLM configuration is invalid or missing.

    The most common case is a provider with no API key configured. This
    error is never retried; it aborts the whole batch run.
    """
    pass


class ProviderError(LLMError):
    """Raised when a provider operation fails.

    Attributes:
        status_code: HTTP status code of the failed response, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(ProviderError):
    """Raised when the call itself failed: non-2xx status or a payload that
    could not be decoded. Transient; retried with exponential backoff.
    """
    pass


class TimeoutError(TransportError):
    """Raised when the request took longer than the configured timeout."""
    pass


class NetworkError(TransportError):
    """Raised when network connectivity issues prevented the request."""
    pass


class RateLimitError(ProviderError):
    """Raised when the provider answered HTTP 429.

    Attributes:
        retry_after: Seconds the server asked us to wait, if it sent a hint

    Example:
        >>> raise RateLimitError(
        >>>     "Anthropic rate limit exceeded: 429 Too Many Requests",
        >>>     retry_after=20.0
        >>> )
    """

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class AuthenticationError(ProviderError):
    """Raised when the provider rejected our credentials (401/403).

    Permanent; should NOT trigger retry logic.
    """
    pass


class InvalidRequestError(ProviderError):
    """Raised when the provider rejected the request itself (400/404).

    Permanent; should NOT trigger retry logic.
    """
    pass
