"""Deadline race between a handler and the Lambda time budget.

The deadline fires ``early_threshold_ms`` before the time Lambda reports
as remaining, so the invocation can be marked as timed out while the
process is still alive to record it.
"""

import asyncio
from collections.abc import Awaitable
from typing import Any, TypeVar

from .constants import EARLY_TIMEOUT_THRESHOLD_MS, TIMEOUT_MESSAGE
from .logger import create_logger

logger = create_logger("deadline")

T = TypeVar("T")


class FunctionTimeoutError(Exception):
    """The invocation is about to exceed its time budget."""

    def __init__(self, message: str = TIMEOUT_MESSAGE) -> None:
        super().__init__(message)


class DeadlineRace:
    """One-shot deadline for a single invocation.

    A fresh instance is used per invocation; ``timed_out`` only ever
    describes that invocation.
    """

    def __init__(self, early_threshold_ms: int = EARLY_TIMEOUT_THRESHOLD_MS) -> None:
        self.early_threshold_ms = early_threshold_ms
        self.timed_out = False
        self._timer: asyncio.TimerHandle | None = None
        self._future: asyncio.Future[Any] | None = None

    def start(self, remaining_time_ms: int | None) -> "asyncio.Future[Any]":
        """Schedule the deadline and return a future that fails when it passes.

        Without a remaining time the returned future never settles and
        timeout detection is off for this invocation.
        """
        loop = asyncio.get_running_loop()
        self._future = loop.create_future()
        if remaining_time_ms is None:
            logger.debug("Remaining time unavailable, timeout detection disabled")
            return self._future

        delay_ms = max(remaining_time_ms - self.early_threshold_ms, 0)
        self._timer = loop.call_later(delay_ms / 1000, self._expire)
        return self._future

    def _expire(self) -> None:
        self._timer = None
        if self._future is None or self._future.done():
            return
        self.timed_out = True
        self._future.set_exception(FunctionTimeoutError())

    def cancel(self) -> None:
        """Drop the pending timer and its future. Safe to call repeatedly."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._future is None:
            return
        if not self._future.done():
            self._future.cancel()
        elif not self._future.cancelled():
            # Mark a lost timeout as retrieved so asyncio does not report it.
            self._future.exception()

    async def run(self, awaitable: Awaitable[T], remaining_time_ms: int | None) -> T:
        """Await ``awaitable`` unless the deadline passes first.

        Returns the handler's value or re-raises its error. Raises
        ``FunctionTimeoutError`` when the deadline wins; the handler is then
        left running.
        """
        handler = asyncio.ensure_future(awaitable)
        deadline = self.start(remaining_time_ms)
        try:
            await asyncio.wait({handler, deadline}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            handler.cancel()
            self.cancel()
            raise

        if handler.done():
            # A timer firing in the same loop iteration does not count.
            self.timed_out = False
            self.cancel()
            return handler.result()

        return deadline.result()
