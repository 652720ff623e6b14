from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_DELAY_SECONDS = 0.25


def _is_retryable(error: Exception) -> bool:
    return bool(getattr(error, "retryable", False))


def _calculate_backoff_seconds(attempt: int, base_delay: float) -> float:
    return base_delay * (2 ** (attempt - 1))


async def call_with_retries(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    description: str,
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
) -> T:
    """
    Await operation(), retrying errors that carry retryable=True.

    Errors without the flag (quota, invalid generation, not-found) are raised
    on the first attempt. The last retryable error is re-raised once
    max_attempts is spent.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as error:
            if not _is_retryable(error) or attempt >= max_attempts:
                raise
            delay = _calculate_backoff_seconds(attempt, base_delay)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                description,
                attempt,
                max_attempts,
                delay,
                error,
            )
            await asyncio.sleep(delay)
            attempt += 1
