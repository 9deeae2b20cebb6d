"""Bounded retry with linear backoff for backend calls.

Every exception raised by the wrapped operation is treated as transient.
After the last attempt the final exception propagates unchanged.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0


def linear_backoff(base_delay: float = DEFAULT_BASE_DELAY) -> Callable[[int], float]:
    """Build a backoff function returning ``attempt * base_delay``.

    Args:
        base_delay: Delay in seconds after the first failed attempt.

    Returns:
        Function mapping the 1-based failed attempt number to a delay.
    """

    def delay_for(attempt: int) -> float:
        return attempt * base_delay

    return delay_for


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    base_delay: float = DEFAULT_BASE_DELAY,
    backoff: Callable[[int], float] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run an async operation, retrying it on failure.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt.
        max_attempts: Total attempts including the first one.
        base_delay: Step of the default linear backoff, in seconds.
        backoff: Optional override mapping failed attempt number to delay.
        sleep: Coroutine used to wait between attempts.

    Returns:
        The result of the first successful attempt.

    Raises:
        ValueError: If max_attempts is lower than 1.
        Exception: The last failure, once all attempts are used up.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    delay_for = backoff or linear_backoff(base_delay)

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt == max_attempts:
                logger.error(f"Giving up after {attempt} attempts: {e}")
                raise
            delay = delay_for(attempt)
            logger.warning(
                f"Attempt {attempt}/{max_attempts} failed ({e}); retrying in {delay:.1f}s"
            )
            await sleep(delay)

    # Unreachable: the loop either returns or re-raises.
    raise AssertionError("retry loop exited without a result")
