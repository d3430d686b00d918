"""Retry mechanisms for cache storage database operations."""

import functools
import sqlite3
import time
from collections.abc import Callable
from typing import Any, TypeVar

from lexsync.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Lock contention clears up on its own; schema and syntax errors never do
RETRYABLE_MESSAGES = (
    "database is locked",
    "database table is locked",
    "cannot start a transaction within a transaction",
)


def with_db_retry(
    max_retries: int = 5,
    base_delay: float = 0.1,
    max_delay: float = 2.0,
    backoff_factor: float = 2.0,
    sleep: Callable[[float], None] | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator that retries SQLite lock errors with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        backoff_factor: Multiplier for exponential backoff
        sleep: Blocking sleep, ``time.sleep`` when omitted

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except sqlite3.OperationalError as e:
                    message = str(e).lower()
                    retryable = any(m in message for m in RETRYABLE_MESSAGES)
                    if not retryable or attempt == max_retries:
                        raise

                    delay = min(base_delay * (backoff_factor**attempt), max_delay)
                    logger.debug(
                        "cache_db_retry",
                        attempt=attempt + 1,
                        max_attempts=max_retries + 1,
                        delay=delay,
                        error=str(e),
                    )
                    (sleep or time.sleep)(delay)

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper

    return decorator
