"""Loading, error and retry handling around client API calls."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any, Optional, TypeVar

from lexsync.client.config import RetryPolicy
from lexsync.client.status import SyncStatusBus
from lexsync.core.errors import is_retryable
from lexsync.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]


class SyncCoordinator:
    """Runs API operations while keeping a ``SyncStatusBus`` current.

    ``request`` tracks loading state and the last error. ``mutate`` also
    counts in-flight changes. ``with_retry`` retries transport and
    availability failures with linear backoff and surfaces everything else
    immediately.
    """

    def __init__(
        self,
        status_bus: SyncStatusBus,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.status_bus = status_bus
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._clock = clock

    async def request(self, op: Operation[T]) -> T:
        self.status_bus.update(is_loading=True, error=None)
        try:
            result = await op()
        except Exception as e:
            self.status_bus.update(is_loading=False, error=str(e))
            raise
        self.status_bus.update(is_loading=False, last_sync=self._clock())
        return result

    async def mutate(self, op: Operation[T]) -> T:
        self.status_bus.change_pending(1)
        try:
            return await self.request(op)
        finally:
            self.status_bus.change_pending(-1)

    async def with_retry(
        self,
        op: Operation[T],
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
    ) -> T:
        """
        Call ``op`` until it succeeds or fails terminally.

        Args:
            op: Zero-argument coroutine function
            max_attempts: Total calls allowed, defaults to the retry policy
            base_delay: Seconds multiplied by the attempt number between calls

        Returns:
            The result of the first successful call
        """
        attempts = max_attempts if max_attempts is not None else self.retry_policy.max_attempts
        delay = base_delay if base_delay is not None else self.retry_policy.base_delay

        for attempt in range(1, attempts + 1):
            try:
                return await op()
            except Exception as e:
                if not is_retryable(e) or attempt >= attempts:
                    raise
                logger.warning(
                    "sync_retry",
                    attempt=attempt,
                    max_attempts=attempts,
                    delay=delay * attempt,
                    error=str(e),
                )
                await self._sleep(delay * attempt)

        raise RuntimeError("Unexpected retry loop exit")
