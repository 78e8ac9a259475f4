"""Fixed-delay retry wrapper for remote calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .config import RetryPolicy
from .waiter import CancelToken

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str,
    cancel: CancelToken | None = None,
) -> T:
    """Await *operation* up to ``policy.attempts`` times and return its first result.

    Every failure is logged with *description* (``"GetBuild GET /project/..."``)
    and the delay between attempts is constant. Once the budget is exhausted the
    most recent error is raised.
    """
    for attempt in range(1, policy.attempts + 1):
        if cancel is not None:
            cancel.raise_if_cancelled()
        try:
            return await operation()
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "%s failed (attempt %d/%d) -> %s", description, attempt, policy.attempts, e
            )
            if attempt == policy.attempts:
                raise
        await asyncio.sleep(policy.interval)
    raise ValueError(f"retry policy allows no attempts: {policy.attempts}")
