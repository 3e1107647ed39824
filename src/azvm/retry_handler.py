"""Retry logic with exponential backoff for transient ARM failures.

Used by the ARM transport for individual HTTP requests (network errors,
throttling, 5xx). Long-running operation polling does not go through
this module: a failed status query is never retried by the poller.

Usage:
    @retry_with_exponential_backoff(max_attempts=3)
    def call_arm():
        return session.get(url)

An exception carrying a ``retry_after`` attribute (seconds) overrides the
computed delay for that attempt, so 429 responses honor Retry-After.
"""

import functools
import logging
import random
import re
import time
from typing import Any, Callable, TypeVar

import requests

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class RetryableHttpError(Exception):
    """Raised inside a retried call when a response has a retryable status."""

    def __init__(self, status_code: int, message: str = "", retry_after: float | None = None):
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message or f"HTTP {status_code}")


def retry_with_exponential_backoff(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] | None = None,
) -> Callable[[F], F]:
    """Decorator for retrying operations with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        initial_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay between retries in seconds (default: 30.0)
        jitter: Add random jitter (+/-25%) to delays (default: True)
        retryable_exceptions: Tuple of exception types to retry
            (default: network errors and RetryableHttpError)

    Returns:
        Decorated function that will retry on transient failures
    """
    if retryable_exceptions is None:
        retryable_exceptions = _get_default_retryable_exceptions()

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay

            for attempt in range(1, max_attempts + 1):
                try:
                    result = func(*args, **kwargs)

                    if attempt > 1:
                        logger.info(
                            f"{func.__name__} succeeded on attempt {attempt}/{max_attempts}"
                        )

                    return result

                except retryable_exceptions as e:
                    if attempt >= max_attempts:
                        logger.error(
                            f"{func.__name__} failed after {max_attempts} attempts: "
                            f"{safe_error_message(e)}"
                        )
                        raise

                    actual_delay = _retry_after_of(e)
                    if actual_delay is None:
                        actual_delay = delay
                        if jitter:
                            jitter_amount = delay * 0.25
                            actual_delay = delay + random.uniform(-jitter_amount, jitter_amount)
                        actual_delay = min(actual_delay, max_delay)

                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt}/{max_attempts}, "
                        f"retrying in {actual_delay:.2f}s: {safe_error_message(e)}"
                    )

                    time.sleep(actual_delay)
                    delay *= 2

            raise RuntimeError(f"{func.__name__} failed with unknown error")

        return wrapper  # type: ignore

    return decorator


def _get_default_retryable_exceptions() -> tuple[type[Exception], ...]:
    return (
        TimeoutError,
        ConnectionError,
        requests.ConnectionError,
        requests.Timeout,
        RetryableHttpError,
    )


def _retry_after_of(exception: Exception) -> float | None:
    value = getattr(exception, "retry_after", None)
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except (TypeError, ValueError):
        return None


_BEARER_PATTERN = re.compile(r"(bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)
_SENSITIVE_PATTERNS = ["secret=", "password=", "token=", "key=", "sig="]


def safe_error_message(exception: Exception | str) -> str:
    """Create an error message safe for logging.

    Truncates long messages and masks bearer tokens and credential-like
    query parameters.
    """
    error_str = str(exception)

    if len(error_str) > 200:
        error_str = error_str[:200] + "..."

    error_str = _BEARER_PATTERN.sub(r"\1***", error_str)

    for pattern in _SENSITIVE_PATTERNS:
        index = error_str.lower().find(pattern)
        if index >= 0:
            error_str = error_str[: index + len(pattern)] + "***"

    return error_str


def should_retry_http_error(status_code: int) -> bool:
    """Determine if an HTTP status code should trigger a retry.

    Retryable status codes:
        - 408: Request Timeout
        - 429: Too Many Requests (throttling)
        - 500, 502, 503, 504: server-side failures
    """
    return status_code in RETRYABLE_STATUS_CODES


__all__ = [
    "RetryableHttpError",
    "retry_with_exponential_backoff",
    "safe_error_message",
    "should_retry_http_error",
]
