# stableswap/utils/retry.py

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from ..core.exceptions import RetryExhausted
from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def poll_until(
        fetch: Callable[[], Awaitable[T]],
        predicate: Callable[[T], bool],
        max_attempts: int,
        interval_seconds: float,
        label: str = "poll",
) -> T:
    """
    Calls `fetch` until `predicate` accepts its result.

    At most `max_attempts` calls are made, with `interval_seconds` of sleep between
    them, so the total wait is bounded. Exceptions raised by `fetch` are not retried.
    Raises RetryExhausted carrying the last observed value when the budget runs out.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_value: Optional[T] = None
    for attempt in range(1, max_attempts + 1):
        last_value = await fetch()
        if predicate(last_value):
            logger.debug(f"{label}: satisfied on attempt {attempt}/{max_attempts}")
            return last_value
        if attempt < max_attempts:
            await asyncio.sleep(interval_seconds)

    logger.warning(f"{label}: not satisfied after {max_attempts} attempts (last value: {last_value})")
    raise RetryExhausted(label, max_attempts, last_value)
