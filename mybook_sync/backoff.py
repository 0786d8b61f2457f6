"""Retry with exponential backoff for async operations."""
import asyncio
from typing import Awaitable, Callable, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def execute(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 5,
    initial_delay_ms: int = 200,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> T:
    """
    Run an async operation, retrying every failure with exponential backoff.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        max_attempts: Total number of attempts, including the first
        initial_delay_ms: Delay before the second attempt; doubled after each retry
        sleep: Coroutine used to wait, in seconds

    Returns:
        Result of the first successful attempt

    Raises:
        The exception of the last attempt, unchanged
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    delay_ms = initial_delay_ms
    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            if attempt == max_attempts - 1:
                raise
            logger.warning(f"Error: {e}. Retrying in {delay_ms}ms... (attempt {attempt + 1}/{max_attempts})")
            await sleep(delay_ms / 1000)
            delay_ms *= 2

    # Unreachable: the loop either returns or re-raises
    raise RuntimeError("retry loop exited without a result")
