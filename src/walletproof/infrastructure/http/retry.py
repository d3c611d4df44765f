"""Bounded retry for async operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(
    attempt: int, initial: float, multiplier: float, maximum: Optional[float] = None
) -> float:
    """Delay before retry number ``attempt`` (0-based)."""
    delay = initial * (multiplier**attempt)
    if maximum is not None:
        delay = min(delay, maximum)
    return delay


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    delay: float = 0.5,
    multiplier: float = 1.0,
    max_delay: Optional[float] = None,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "operation",
) -> T:
    """Run ``operation`` up to ``attempts`` times.

    ``multiplier == 1`` gives a fixed delay, anything larger an exponential
    backoff capped at ``max_delay``. The last exception is re-raised once the
    attempts are exhausted; exceptions outside ``retry_on`` propagate at once.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    for attempt in range(attempts):
        try:
            return await operation()
        except retry_on as e:
            if attempt == attempts - 1:
                raise
            wait = backoff_delay(attempt, delay, multiplier, max_delay)
            logger.debug(
                "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                description,
                attempt + 1,
                attempts,
                e,
                wait,
            )
            await sleep(wait)
    raise AssertionError("unreachable")
