"""Fixed-window request quota keyed by client identity."""

import time
from typing import Callable, Protocol

from pydantic import BaseModel, ConfigDict

DEFAULT_RATE_LIMIT = 60
DEFAULT_WINDOW_SECONDS = 60.0


class RateLimitWindow(BaseModel):
    model_config = ConfigDict(frozen=False)

    count: int
    reset_at: float


class RateLimitStore(Protocol):
    """Storage for per-client windows; swap in a shared store across processes."""

    def get(self, key: str) -> RateLimitWindow | None: ...

    def set(self, key: str, window: RateLimitWindow) -> None: ...


class InMemoryRateLimitStore:
    def __init__(self) -> None:
        self._windows: dict[str, RateLimitWindow] = {}

    def get(self, key: str) -> RateLimitWindow | None:
        return self._windows.get(key)

    def set(self, key: str, window: RateLimitWindow) -> None:
        self._windows[key] = window


class RateLimiter:
    """Allows ``limit`` requests per client within each fixed window."""

    def __init__(
        self,
        store: RateLimitStore | None = None,
        limit: int = DEFAULT_RATE_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store: RateLimitStore = store if store is not None else InMemoryRateLimitStore()
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock

    def check(self, key: str) -> bool:
        """Count one request for ``key``.

        Returns:
            True if the request is within quota, False if it must be rejected.
        """
        now = self._clock()
        window = self.store.get(key)
        if window is None or now > window.reset_at:
            self.store.set(key, RateLimitWindow(count=1, reset_at=now + self.window_seconds))
            return True
        if window.count >= self.limit:
            return False
        window.count += 1
        self.store.set(key, window)
        return True

    def retry_after(self, key: str) -> float:
        window = self.store.get(key)
        if window is None:
            return 0.0
        return max(0.0, window.reset_at - self._clock())
