"""Retry helpers with exponential backoff for outbound calls."""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pinmint.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def backoff_delay(
    attempt: int, base_delay: float, max_delay: float, backoff_factor: float = 2.0
) -> float:
    """Delay before the retry that follows ``attempt`` (zero-based)."""
    return min(base_delay * (backoff_factor**attempt), max_delay)


def with_async_retry(
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
    backoff_factor: float = 2.0,
    retry_on: tuple[type[Exception], ...] = (Exception,),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator that retries a coroutine with exponential backoff.

    Args:
        max_attempts: Total number of attempts, including the first one
        base_delay: Initial delay between attempts in seconds
        max_delay: Maximum delay between attempts in seconds
        backoff_factor: Multiplier for exponential backoff
        retry_on: Exception types that trigger another attempt

    Returns:
        Decorated coroutine function with retry logic
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    if attempt == max_attempts - 1:
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay, backoff_factor)
                    logger.debug(
                        "retrying_call",
                        function=func.__qualname__,
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                        delay=round(delay, 3),
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper

    return decorator
