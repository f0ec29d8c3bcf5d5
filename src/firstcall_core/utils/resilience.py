"""Retry policies for calls to downstream services.

Only transient failures are retried: connection errors, timeouts, and 5xx or
429 responses. A 4xx answer means the request itself is wrong and retrying
would only repeat it.
"""

import logging
from typing import Callable, TypeVar

import httpx
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
    RetryCallState,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient_http_error(exc: BaseException) -> bool:
    """True for failures worth retrying against a remote service."""
    if isinstance(exc, (httpx.TransportError, httpx.TimeoutException)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status >= 500 or status == 429
    return False


def _log_retry_attempt(retry_state: RetryCallState) -> None:
    """Log each retry with the failing call and the error that triggered it."""
    logger.warning(
        f"[Resilience] Retry attempt {retry_state.attempt_number} for "
        f"{retry_state.fn.__name__ if retry_state.fn else 'call'} after "
        f"{retry_state.seconds_since_start or 0.0:.1f}s. "
        f"Exception: {retry_state.outcome.exception() if retry_state.outcome else 'Unknown'}"
    )


# Standard retry policy for delivering case records
# - Wait 2^x * 1 seconds between retries (1s, 2s, 4s, 8s)
# - Stop after 5 attempts
# - Re-raise the last exception if every attempt fails
delivery_retry = retry(
    retry=retry_if_exception(is_transient_http_error),
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    before_sleep=_log_retry_attempt,
    reraise=True,
)


def create_delivery_retry(
    max_attempts: int = 5,
    min_wait: float = 1,
    max_wait: float = 8,
    multiplier: float = 1,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Create a retry decorator for transient HTTP failures.

    Args:
        max_attempts: Maximum number of attempts (including the first)
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
        multiplier: Exponential backoff multiplier

    Returns:
        A retry decorator configured with the specified parameters

    Example:
        ```python
        # Tests: no waiting between attempts
        fast_retry = create_delivery_retry(max_attempts=3, min_wait=0, max_wait=0)
        ```
    """
    return retry(
        retry=retry_if_exception(is_transient_http_error),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=multiplier, min=min_wait, max=max_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
