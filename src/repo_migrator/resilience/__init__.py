"""Cancellation, retry and rate limiting for remote calls."""

from repo_migrator.resilience.abort import (
    CancellationToken,
    OperationCancelledError,
    abort_if_signaled,
    is_abort_error,
)
from repo_migrator.resilience.rate_limit import (
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitStore,
    RateLimitWindow,
)
from repo_migrator.resilience.retry import (
    RETRYABLE_STATUS_CODES,
    get_status_code,
    is_retryable_error,
    with_retry,
)

__all__ = [
    "CancellationToken",
    "InMemoryRateLimitStore",
    "OperationCancelledError",
    "RETRYABLE_STATUS_CODES",
    "RateLimitStore",
    "RateLimitWindow",
    "RateLimiter",
    "abort_if_signaled",
    "get_status_code",
    "is_abort_error",
    "is_retryable_error",
    "with_retry",
]
