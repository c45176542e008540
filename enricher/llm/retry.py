"""
Retry Logic with Exponential Backoff

Provides retry utilities for handling transient errors in AI API calls.
Implements exponential backoff with configurable attempts and delays, and
honours the server's ``Retry-After`` hint on HTTP 429.
"""

import time
import logging
from typing import Callable, Optional

from enricher.llm.errors import (
    RateLimitError,
    TransportError,
    AuthenticationError,
    InvalidRequestError,
    ConfigurationError,
)


logger = logging.getLogger(__name__)


# Transient errors that should trigger retry
TRANSIENT_ERRORS = (
    RateLimitError,
    TransportError,
)

# Permanent errors that should NOT trigger retry
PERMANENT_ERRORS = (
    AuthenticationError,
    InvalidRequestError,
    ConfigurationError,
)


def is_transient_error(error: Exception) -> bool:
    """Check if an error is transient and should be retried."""
    return isinstance(error, TRANSIENT_ERRORS)


def is_permanent_error(error: Exception) -> bool:
    """Check if an error is permanent and should NOT be retried."""
    return isinstance(error, PERMANENT_ERRORS)


def calculate_backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: Optional[float] = None
) -> float:
    """Calculate exponential backoff delay.

    Uses exponential backoff: delay = base_delay * (2 ** attempt)
    - Attempt 0: 1s
    - Attempt 1: 2s
    - Attempt 2: 4s

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Optional upper bound for the delay

    Returns:
        Delay in seconds
    """
    delay = base_delay * (2 ** attempt)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


class RetryContext:
    """Iterator-style retry helper with exponential backoff.

    Example:
        >>> retry_ctx = RetryContext(max_attempts=3, base_delay=1.0)
        >>> for attempt in retry_ctx:
        ...     try:
        ...         result = call_api()
        ...         break  # Success
        ...     except RateLimitError as e:
        ...         if not retry_ctx.should_retry(e):
        ...             raise
        ...         retry_ctx.wait(e)
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: Optional[float] = 60.0,
        log_retries: bool = True,
        sleep: Callable[[float], None] = time.sleep
    ):
        """Initialize retry context.

        Args:
            max_attempts: Maximum number of attempts, first call included
            base_delay: Base delay for exponential backoff
            max_delay: Upper bound for backoff and retry-after waits
            log_retries: Whether to log retry attempts
            sleep: Sleep function (injectable for tests)
        """
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.log_retries = log_retries
        self.sleep = sleep
        self.current_attempt = 0

    def __iter__(self):
        self.current_attempt = 0
        return self

    def __next__(self):
        if self.current_attempt >= self.max_attempts:
            raise StopIteration

        attempt = self.current_attempt
        self.current_attempt += 1
        return attempt

    def should_retry(self, error: Exception) -> bool:
        """Check if error should trigger another attempt."""
        if is_permanent_error(error):
            return False

        if self.current_attempt >= self.max_attempts:
            return False

        return is_transient_error(error)

    def delay_for(self, error: Optional[Exception] = None) -> float:
        """Delay before the next attempt.

        A rate-limit error carrying a retry-after hint wins over the
        exponential schedule.
        """
        retry_after = getattr(error, "retry_after", None)
        if isinstance(error, RateLimitError) and retry_after is not None:
            if self.max_delay is not None:
                return min(retry_after, self.max_delay)
            return retry_after
        return calculate_backoff_delay(
            max(0, self.current_attempt - 1), self.base_delay, self.max_delay
        )

    def wait(self, error: Optional[Exception] = None):
        """Wait before the next retry."""
        if self.current_attempt == 0:
            return

        delay = self.delay_for(error)
        if self.log_retries:
            logger.warning(
                f"Transient error (attempt {self.current_attempt}/{self.max_attempts}): "
                f"{type(error).__name__ if error else 'unknown'}: {error}. "
                f"Retrying in {delay:.1f}s..."
            )
        self.sleep(delay)


def retry_llm_call(
    func: Callable,
    *args,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: Optional[float] = 60.0,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs
):
    """Retry an LLM API call with exponential backoff.

    Example:
        >>> result = retry_llm_call(
        ...     provider.generate,
        ...     request,
        ...     max_attempts=3,
        ...     base_delay=1.0
        ... )

    Raises:
        Exception: The last error once retries are exhausted, or the first
            permanent error
    """
    retry_ctx = RetryContext(max_attempts, base_delay, max_delay, sleep=sleep)
    last_exception = None

    for attempt in retry_ctx:
        try:
            return func(*args, **kwargs)

        except Exception as e:
            if not retry_ctx.should_retry(e):
                if is_transient_error(e):
                    logger.error(
                        f"All {retry_ctx.max_attempts} attempts failed: "
                        f"{type(e).__name__}: {e}"
                    )
                raise

            last_exception = e
            retry_ctx.wait(e)

    if last_exception:
        raise last_exception
