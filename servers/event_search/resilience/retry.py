"""Bounded retry with exponential backoff, shared by every source client."""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from ..errors import ProviderError, RateLimitedError

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings for provider calls.

    Args:
        max_attempts: Total attempts including the first call
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum backoff delay in seconds
        rate_limit_base_delay: Initial wait after a 429 without Retry-After
        max_rate_limit_wait: Cap on any wait after a 429
        jitter: Add randomness to delay to prevent thundering herd
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    rate_limit_base_delay: float = 1.0
    max_rate_limit_wait: float = 10.0
    jitter: bool = True

    def should_retry(self, error: Exception) -> bool:
        return isinstance(error, ProviderError) and error.retryable

    def delay_for(self, attempt: int, error: Exception) -> float:
        """Seconds to wait after a failed attempt (0-based)."""
        if isinstance(error, RateLimitedError):
            if error.retry_after is not None:
                return min(max(error.retry_after, 0.0), self.max_rate_limit_wait)
            return min(self.rate_limit_base_delay * (2**attempt), self.max_rate_limit_wait)

        delay = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random()
        return delay


async def retry_call(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    policy: Optional[RetryPolicy] = None,
    source: Optional[str] = None,
    **kwargs: Any,
) -> T:
    """Run ``func`` under ``policy``.

    Only retryable ProviderErrors are retried; anything else propagates
    immediately.

    Raises:
        The last error once attempts are exhausted
    """
    policy = policy or RetryPolicy()
    last_exception: Optional[Exception] = None

    for attempt in range(policy.max_attempts):
        try:
            return await func(*args, **kwargs)
        except ProviderError as e:
            last_exception = e
            if not policy.should_retry(e):
                raise

            if attempt < policy.max_attempts - 1:
                delay = policy.delay_for(attempt, e)
                logger.warning(
                    "retry_attempt",
                    source=source,
                    attempt=attempt + 1,
                    max_attempts=policy.max_attempts,
                    delay=round(delay, 2),
                    error=e.describe(),
                )
                await asyncio.sleep(delay)

    logger.error(
        "retry_exhausted",
        source=source,
        max_attempts=policy.max_attempts,
        error=str(last_exception),
    )
    raise last_exception  # type: ignore
