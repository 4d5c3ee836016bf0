"""Bounded polling and retry helpers for long-running Forge operations.

Some Forge actions (site commands, WordPress installs) are accepted
immediately and finish asynchronously. These helpers wait for them with a
fixed attempt budget and never run unbounded.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    is_done: Callable[[T], bool],
    *,
    max_attempts: int = 30,
    delay: float = 2.0,
    backoff: float = 1.0,
    max_delay: float = 30.0,
) -> T | None:
    """Call ``fetch`` until ``is_done`` accepts its result.

    Errors raised by ``fetch`` are logged and count as "not done yet".

    Args:
        fetch: Coroutine factory returning the current remote state.
        is_done: Predicate over that state.
        max_attempts: Maximum number of ``fetch`` calls.
        delay: Initial sleep between attempts in seconds.
        backoff: Multiplier applied to the delay after every attempt.
        max_delay: Upper bound for the delay.

    Returns:
        The first accepted result, or None if every attempt was used up.
    """
    wait = delay
    for attempt in range(1, max_attempts + 1):
        try:
            result = await fetch()
            if is_done(result):
                return result
        except Exception as exc:
            logger.debug("Polling attempt %d/%d failed: %s", attempt, max_attempts, exc)

        if attempt < max_attempts:
            await asyncio.sleep(wait)
            wait = min(wait * backoff, max_delay)

    logger.info("Gave up polling after %d attempts", max_attempts)
    return None


async def retry_while(
    operation: Callable[[], Awaitable[T]],
    should_retry: Callable[[Exception], bool],
    *,
    max_attempts: int = 10,
    delay: float = 0.5,
) -> T:
    """Run ``operation``, retrying while it fails with a retryable error.

    Non-retryable errors, and the retryable error from the final attempt,
    propagate to the caller.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if attempt >= max_attempts or not should_retry(exc):
                raise
            logger.warning(
                "Retryable error (attempt %d/%d): %s", attempt, max_attempts, exc
            )
            await asyncio.sleep(delay)

    raise RuntimeError("retry_while requires max_attempts >= 1")
