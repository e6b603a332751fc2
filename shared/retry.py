"""
Retry mechanism for resilient fetches.

Attempts are spaced by a fixed delay.
"""

import asyncio
from typing import Any, Optional, Callable, Awaitable

from shared.logging import get_logger


class RetryConfig:
    """Configuration for retry behavior.

    ``retry_count`` is the number of retries after the first attempt, so a
    call is attempted at most ``retry_count + 1`` times.
    """

    def __init__(self, retry_count: int = 3, delay: float = 1.0):
        if retry_count < 0:
            raise ValueError("retry_count must be >= 0")
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.retry_count = retry_count
        self.delay = delay

    @property
    def max_attempts(self) -> int:
        return self.retry_count + 1


class RetryError(Exception):
    """Exception raised when all retry attempts are exhausted."""
    def __init__(self, message: str, last_exception: Exception, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


class RetryAborted(Exception):
    """Raised when the caller asked to stop between attempts."""


async def call_with_retry(func: Callable[[], Awaitable[Any]],
                          config: RetryConfig,
                          *,
                          name: str = "call",
                          exceptions: tuple = (Exception,),
                          should_abort: Optional[Callable[[], bool]] = None,
                          on_retry: Optional[Callable[[int, Exception], None]] = None) -> Any:
    """Await ``func`` until it succeeds or the retry budget runs out.

    Every attempt and every delay is awaited here, so the final outcome is
    always returned or raised to the original caller. ``should_abort`` is
    checked after each suspension point.
    """
    logger = get_logger(f"dashboard.retry.{name}")

    last_exception: Optional[Exception] = None

    for attempt in range(1, config.max_attempts + 1):
        try:
            result = await func()
        except exceptions as e:
            last_exception = e

            if should_abort and should_abort():
                raise RetryAborted(name)

            if attempt == config.max_attempts:
                logger.error(
                    "All retry attempts exhausted",
                    attempt=attempt,
                    max_attempts=config.max_attempts,
                    resource=name,
                    error=str(e)
                )
                raise RetryError(
                    f"{name} failed after {config.max_attempts} attempts",
                    last_exception=e,
                    attempts=attempt
                )

            logger.warning(
                "Retry attempt failed, waiting before next attempt",
                attempt=attempt,
                delay=config.delay,
                resource=name,
                error=str(e)
            )
            if on_retry:
                on_retry(attempt, e)

            await asyncio.sleep(config.delay)

            if should_abort and should_abort():
                raise RetryAborted(name)
            continue

        if attempt > 1:
            logger.info("Retry succeeded", attempt=attempt, resource=name)
        return result

    # max_attempts is always >= 1
    raise RetryError(
        f"Unexpected exit from retry loop for {name}",
        last_exception=last_exception or Exception("Unknown error"),
        attempts=config.max_attempts
    )

