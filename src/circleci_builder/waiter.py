"""Deadline-bounded polling."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

from .exceptions import OperationCancelledError, TimeoutExceededError


class CancelToken:
    """Cooperative cancellation flag checked between polls and retry attempts.

    Setting it never interrupts a request already in flight.
    """

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError


def deadline_after(seconds: float) -> float:
    """Absolute deadline on the monotonic clock, *seconds* from now."""
    return time.monotonic() + seconds


async def wait_until(
    checker: Callable[[int], Awaitable[bool]],
    *,
    interval: float,
    deadline: float,
    cancel: CancelToken | None = None,
) -> None:
    """Call *checker* every *interval* seconds until it returns True.

    The checker receives the number of previous invocations. Any exception it
    raises ends the wait. Passing *deadline* raises ``TimeoutExceededError``.
    """
    count = 0
    while True:
        if time.monotonic() > deadline:
            raise TimeoutExceededError
        if cancel is not None:
            cancel.raise_if_cancelled()
        await asyncio.sleep(interval)
        if await checker(count):
            return
        count += 1
