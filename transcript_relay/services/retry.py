"""Bounded exponential backoff with a compensating action on failure."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def calculate_backoff(attempt: int, base_delay: float, jitter: float = 0.0) -> float:
    """Calculate the delay after a failed attempt.

    Args:
        attempt: The attempt that just failed (1-based)
        base_delay: Delay after the first failure; doubles for each later one
        jitter: Fractional jitter applied symmetrically (0.25 means ±25%)

    Returns:
        Delay in seconds
    """
    delay: float = base_delay * (2 ** (attempt - 1))
    if jitter:
        delay += delay * jitter * (random.random() * 2 - 1)
    return max(0.0, delay)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    base_delay: float,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    compensate: Callable[[BaseException], None] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    jitter: float = 0.0,
    label: str = "operation",
) -> T:
    """Run an async operation, retrying failures with exponential backoff.

    Errors outside ``retry_on`` end the loop immediately. When the loop ends
    without a result (attempts exhausted, non-retryable error, or
    cancellation) ``compensate`` is called once with the final exception,
    which is then re-raised.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_attempts: Total attempts including the first (>= 1)
        base_delay: Delay in seconds after the first failure
        retry_on: Exception types that trigger another attempt
        compensate: Rollback hook invoked before the final exception propagates
        sleep: Awaitable sleep, replaceable in tests
        jitter: Fractional jitter passed to calculate_backoff
        label: Name used in log messages

    Returns:
        The operation's result

    Raises:
        ValueError: If max_attempts is less than 1
        Exception: The last error raised by the operation
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    try:
        attempt = 1
        while True:
            try:
                return await operation()
            except retry_on as e:
                if attempt >= max_attempts:
                    if max_attempts > 1:
                        logger.error(
                            f"{label} failed after {max_attempts} attempts: {e}"
                        )
                    raise
                delay = calculate_backoff(attempt, base_delay, jitter)
                logger.warning(
                    f"{label} failed, retrying in {delay:.1f}s "
                    f"(attempt {attempt}/{max_attempts}): {e}"
                )
                await sleep(delay)
                attempt += 1
    except BaseException as exc:
        if compensate is not None:
            compensate(exc)
        raise
