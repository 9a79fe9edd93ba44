"""
Retry utility functions with exponential backoff.
Categorizes errors as transient (retryable) or permanent (non-retryable).
Only the transport layer retries; token and merge logic never do.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TypeVar

import httpx
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from aggregator.config import settings

logger = structlog.get_logger()

T = TypeVar("T")


class TransientError(Exception):
    """Raised for transient/retryable errors (network issues, rate limits, 5xx)."""

    pass


def is_transient_error(exception: Exception) -> bool:
    """
    Determine if an exception represents a transient error that should be retried.

    Args:
        exception: The exception to check

    Returns:
        True if error is transient (retryable), False otherwise
    """
    # Network/connection errors are transient
    if isinstance(exception, httpx.ConnectError | httpx.TimeoutException | httpx.NetworkError):
        return True

    if isinstance(exception, httpx.HTTPStatusError):
        status_code = exception.response.status_code
        # HTTP 5xx errors and rate limiting (429) are transient
        return 500 <= status_code < 600 or status_code == 429

    if isinstance(exception, TimeoutError | TransientError):
        return True

    # Default to non-retryable for unknown errors
    return False


def retry_with_backoff(
    max_attempts: int | None = None,
    initial_delay: float | None = None,
    multiplier: float | None = None,
    max_delay: float = 30.0,
):
    """
    Decorator for retrying coroutine functions with exponential backoff.
    Only retries on transient errors; the last transient error is re-raised
    as TransientError chained to the original exception.

    Args:
        max_attempts: Maximum number of attempts (default from settings)
        initial_delay: Initial delay in seconds (default from settings)
        multiplier: Multiplier for exponential backoff (default from settings)
        max_delay: Maximum delay in seconds

    Returns:
        Decorated coroutine function with retry logic
    """
    attempts = max_attempts or settings.max_retry_attempts
    min_wait = settings.retry_initial_delay_seconds if initial_delay is None else initial_delay
    backoff = multiplier or settings.retry_backoff_multiplier

    def retry_decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @retry(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=backoff, min=min_wait, max=max_delay),
            retry=retry_if_exception_type(TransientError),
            reraise=True,
            before_sleep=_log_retry_attempt,
        )
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except TransientError:
                raise
            except Exception as e:
                if is_transient_error(e):
                    # Wrap as TransientError to trigger retry
                    raise TransientError(f"Transient error: {str(e)}") from e
                raise

        return wrapper

    return retry_decorator


def _log_retry_attempt(retry_state: RetryCallState):
    """Log retry attempt before sleeping."""
    if retry_state.outcome is not None:
        exception = retry_state.outcome.exception()
        logger.warning(
            "Retrying after transient error",
            attempt=retry_state.attempt_number,
            exception=str(exception),
            wait_time=retry_state.next_action.sleep if retry_state.next_action else 0,
        )
