"""Retry with exponential backoff for storage writes."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from textindex.core.config import settings
from textindex.core.exceptions import BlobStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    operation: str = "operation",
    max_retries: Optional[int] = None,
    delay: Optional[float] = None,
    backoff_multiplier: Optional[float] = None,
    exceptions: Tuple[Type[Exception], ...] = (BlobStoreError,),
) -> T:
    """
    Await a coroutine factory, retrying transient failures.

    Args:
        func: Zero-argument callable returning a fresh awaitable per attempt.
        operation: Short label used in log messages.
        max_retries: Retries after the first attempt.
        delay: Wait before the first retry, in seconds.
        backoff_multiplier: Factor applied to the wait after each retry.
        exceptions: Exception types treated as transient.

    Returns:
        Result of the first successful attempt.

    Raises:
        The last transient exception once retries are exhausted. Other
        exceptions propagate immediately.
    """
    max_retries = settings.max_retries if max_retries is None else max_retries
    wait_time = settings.retry_delay_seconds if delay is None else delay
    backoff_multiplier = backoff_multiplier or settings.retry_backoff_multiplier

    attempts = max_retries + 1
    attempt = 1
    while True:
        try:
            return await func()
        except exceptions as e:
            if attempt >= attempts:
                logger.error(f"{operation} failed after {attempts} attempts: {str(e)}")
                raise
            logger.warning(
                f"{operation} attempt {attempt}/{attempts} failed: {str(e)}. "
                f"Retrying in {wait_time:.2f}s"
            )
            await asyncio.sleep(wait_time)
            wait_time *= backoff_multiplier
            attempt += 1
