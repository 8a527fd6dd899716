"""Cooperative cancellation shared by every phase and remote call."""

import asyncio


class OperationCancelledError(Exception):
    """Raised when a run is cancelled through its CancellationToken."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)


class CancellationToken:
    """Single abort signal threaded through a migration run.

    Work checks the token at suspension points only: before each remote
    call and before each backoff sleep. ``sleep`` wakes early on cancel.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError(self.reason or "Operation cancelled")

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first.

        Raises:
            OperationCancelledError: If the token is cancelled before or
                during the sleep.
        """
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(0.0, seconds))
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()


def abort_if_signaled(token: CancellationToken | None) -> None:
    """Raise OperationCancelledError if ``token`` has been cancelled."""
    if token is not None:
        token.raise_if_cancelled()


def is_abort_error(error: BaseException) -> bool:
    return isinstance(error, (OperationCancelledError, asyncio.CancelledError))
