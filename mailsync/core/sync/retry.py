"""Bounded retry of folder sync attempts."""

import asyncio
from typing import Awaitable, Callable

from mailsync.core.models import SyncResult
from mailsync.utils.logging import get_logger

logger = get_logger(__name__)

Attempt = Callable[[], Awaitable[SyncResult]]
Sleep = Callable[[float], Awaitable[None]]

DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY = 2.0


def is_retryable(result: SyncResult) -> bool:
    """Only full failures caused by a transient error are worth repeating."""
    return (
        result.is_total_failure
        and result.error is not None
        and result.error.retryable
    )


class RetryPolicy:
    """Re-run a failed attempt a fixed number of times after a fixed delay."""

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        delay: float = DEFAULT_RETRY_DELAY,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if delay < 0:
            raise ValueError("delay must be >= 0")

        self.max_retries = max_retries
        self.delay = delay
        self._sleep = sleep

    async def run(self, attempt: Attempt) -> SyncResult:
        """Invoke ``attempt`` until it no longer needs retrying.

        Args:
            attempt: Zero-argument coroutine function producing a SyncResult

        Returns:
            The result of the last invocation, failed or not
        """
        result = await attempt()

        for retry in range(1, self.max_retries + 1):
            if not is_retryable(result):
                break

            logger.warning(
                f"Retrying {result.folder or 'folder'} sync "
                f"({retry}/{self.max_retries}) in {self.delay:g}s",
                extra={
                    "folder": result.folder,
                    "error_type": result.error.kind.value,
                    "error": result.error.message,
                },
            )
            await self._sleep(self.delay)
            result = await attempt()

        return result


async def with_retry(
    attempt: Attempt,
    max_retries: int = DEFAULT_MAX_RETRIES,
    delay: float = DEFAULT_RETRY_DELAY,
) -> SyncResult:
    """Shorthand for ``RetryPolicy(max_retries, delay).run(attempt)``."""
    return await RetryPolicy(max_retries=max_retries, delay=delay).run(attempt)
