"""Bounded exponential-backoff retry for remote operations.

Failures are classified before any retry:
- retryable: a transient HTTP status (408, 429, 5xx gateway family) or
  a timeout, or a message that looks like a network or availability failure
- fatal: everything else, plus every cancellation

The last error is re-raised unchanged once the budget is spent.
"""

import asyncio
import logging
import random
import re
from typing import Awaitable, Callable, TypeVar

from repo_migrator.resilience.abort import (
    CancellationToken,
    abort_if_signaled,
    is_abort_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 3
DEFAULT_BASE_DELAY = 0.5
MAX_RETRY_DELAY = 10.0
JITTER_FLOOR = 0.75
JITTER_SPAN = 0.5

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

_TRANSIENT_MESSAGE = re.compile(
    r"network|fetch|timeout|timed out|connection|temporar|econnreset|econnrefused|etimedout|enotfound|socket|eai_again|unavailable",
    re.IGNORECASE,
)


def get_status_code(error: BaseException) -> int | None:
    """Return the HTTP-like status carried by ``error``, if any.

    SDK errors expose ``status_code``; some HTTP clients use ``status``.
    """
    for attribute in ("status_code", "status"):
        value = getattr(error, attribute, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def is_retryable_error(error: BaseException) -> bool:
    if is_abort_error(error):
        return False
    status = get_status_code(error)
    if status is not None and status in RETRYABLE_STATUS_CODES:
        return True
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return True
    return bool(_TRANSIENT_MESSAGE.search(str(error)))


def jittered_delay(base_delay: float, rand: Callable[[], float] = random.random) -> float:
    """Scale ``base_delay`` by a random factor in [0.75, 1.25)."""
    return base_delay * (JITTER_FLOOR + rand() * JITTER_SPAN)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int = DEFAULT_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = MAX_RETRY_DELAY,
    token: CancellationToken | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    rand: Callable[[], float] = random.random,
    label: str = "remote call",
) -> T:
    """Run ``operation`` with bounded, jittered exponential backoff.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        retries: Retries allowed after the first attempt.
        base_delay: Delay in seconds before the first retry; doubles per
            retry up to ``max_delay``.
        token: Cancellation token checked before each attempt and each sleep.
        sleep: Sleep implementation override. Defaults to the token's
            interruptible sleep, or ``asyncio.sleep`` without a token.
        rand: Source of jitter in [0, 1).
        label: Name used in retry log lines.

    Returns:
        The operation's result.

    Raises:
        OperationCancelledError: If the token is cancelled.
        Exception: The last error raised by ``operation`` when it is fatal
            or the retry budget is exhausted.
    """
    if sleep is None:
        sleep = token.sleep if token is not None else asyncio.sleep

    delay = base_delay
    remaining = max(0, retries)
    while True:
        abort_if_signaled(token)
        try:
            return await operation()
        except Exception as exc:
            if remaining <= 0 or not is_retryable_error(exc):
                raise
            wait = jittered_delay(delay, rand)
            logger.warning(
                "%s failed (%s); retrying in %.2fs (%d left)",
                label, exc, wait, remaining,
            )
            remaining -= 1
            abort_if_signaled(token)
            await sleep(wait)
            delay = min(delay * 2, max_delay)
