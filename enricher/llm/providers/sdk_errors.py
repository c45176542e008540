"""
SDK error translation shared by the cloud providers.

The ``anthropic`` and ``openai`` SDKs raise errors with the same shape
(``APITimeoutError``, ``APIConnectionError``, ``APIStatusError`` with a
``status_code`` and the raw ``response``). ``translate_sdk_error`` turns them
into the ``enricher.llm.errors`` classes the retry layer understands.
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from types import ModuleType
from typing import Optional

from enricher.llm.errors import (
    AuthenticationError,
    InvalidRequestError,
    LLMError,
    NetworkError,
    RateLimitError,
    TimeoutError,
    TransportError,
)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a ``Retry-After`` header into seconds.

    Accepts both forms allowed by RFC 9110: delay-seconds and an HTTP-date.
    Returns None for a missing or unparseable header.
    """
    if not value:
        return None

    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def translate_sdk_error(error: Exception, sdk: ModuleType, provider_name: str) -> LLMError:
    """Map an exception raised by a vendor SDK onto the LLM error hierarchy.

    Args:
        error: Exception raised by the SDK call
        sdk: The SDK module (``anthropic`` or ``openai``)
        provider_name: Name used in error messages

    Returns:
        RateLimitError for 429 (with the server's retry-after hint),
        AuthenticationError for 401/403, InvalidRequestError for
        400/404/422, TimeoutError, NetworkError, or TransportError for
        anything else
    """
    if isinstance(error, sdk.APITimeoutError):
        return TimeoutError(f"{provider_name} request timed out: {error}")
    if isinstance(error, sdk.APIConnectionError):
        return NetworkError(f"Network error connecting to {provider_name}: {error}")

    if isinstance(error, sdk.APIStatusError):
        status = error.status_code
        if status == 429:
            headers = getattr(error.response, "headers", None) or {}
            return RateLimitError(
                f"{provider_name} rate limit exceeded: {error}",
                retry_after=parse_retry_after(headers.get("retry-after"))
            )
        if status in (401, 403):
            return AuthenticationError(
                f"{provider_name} authentication failed: {error}", status_code=status
            )
        if status in (400, 404, 422):
            return InvalidRequestError(
                f"Invalid {provider_name} request: {error}", status_code=status
            )
        return TransportError(f"{provider_name} API returned {status}: {error}", status_code=status)

    return TransportError(f"{provider_name} API call failed: {error}")
