"""
Retry utilities with exponential backoff.

Provides retry logic for API calls with capped exponential backoff,
additive jitter and support for server-provided retry-after delays.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import ErrorKind, TuteliqError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Jitter is drawn from [0, JITTER_RATIO * base_delay]
JITTER_RATIO = 0.25

# Indirection so tests can observe delays without waiting on the clock
_sleep = asyncio.sleep


def default_is_retryable(error: BaseException) -> bool:
    """Rate limits, server faults, network failures and timeouts are retryable."""
    return isinstance(error, TuteliqError) and error.is_retryable


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration for a single call.

    Attributes:
        max_retries: Retries after the first attempt (total calls = max_retries + 1)
        initial_delay: Delay before the first retry, in seconds
        max_delay: Cap for any computed backoff delay, in seconds
        backoff_multiplier: Growth factor applied per attempt
        is_retryable: Predicate deciding whether an exception is retried
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    is_retryable: Callable[[BaseException], bool] = default_is_retryable

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay <= 0:
            raise ValueError("initial_delay must be > 0")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if self.backoff_multiplier <= 1:
            raise ValueError("backoff_multiplier must be > 1")


def compute_backoff(attempt: int, policy: RetryPolicy) -> float:
    """
    Backoff delay for a zero-based attempt number.

    The result lies in [base, min(max_delay, base * 1.25)] where
    base = initial_delay * backoff_multiplier ** attempt.
    """
    base = policy.initial_delay * (policy.backoff_multiplier ** attempt)
    jitter = random.uniform(0, JITTER_RATIO * base)
    return min(base + jitter, policy.max_delay)


def retry_delay(error: BaseException, attempt: int, policy: RetryPolicy) -> float:
    """Delay before the next attempt; an explicit retry-after wins over backoff."""
    if (
        isinstance(error, TuteliqError)
        and error.kind is ErrorKind.RATE_LIMIT
        and error.retry_after
    ):
        return error.retry_after
    return compute_backoff(attempt, policy)


async def with_retry(
    func: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    *,
    operation_name: Optional[str] = None,
) -> T:
    """
    Retry an async operation with exponential backoff.

    Args:
        func: Zero-argument async callable to retry
        policy: Retry configuration (default: RetryPolicy())
        operation_name: Name for logging purposes

    Returns:
        Result from the first successful call

    Raises:
        The last attempt's exception, unchanged, once it is not retryable
        or max_retries is exhausted.

    Example:
        >>> result = await with_retry(
        ...     lambda: client.get_policy(),
        ...     RetryPolicy(max_retries=2),
        ...     operation_name="Get Policy"
        ... )
    """
    policy = policy or RetryPolicy()
    name = operation_name or getattr(func, "__name__", "operation")
    total = policy.max_retries + 1
    attempt = 0

    while True:
        try:
            logger.debug(f"[Retry] Attempt {attempt + 1}/{total}: {name}")
            result = await func()

            if attempt > 0:
                logger.info(f"[Retry] {name} succeeded on attempt {attempt + 1}/{total}")

            return result

        except Exception as e:
            if attempt >= policy.max_retries or not policy.is_retryable(e):
                if attempt > 0:
                    logger.error(f"[Retry] {name} failed after {attempt + 1} attempts: {e}")
                raise

            delay = retry_delay(e, attempt, policy)
            logger.warning(f"[Retry] {name} failed (attempt {attempt + 1}/{total}): {e}")
            logger.info(f"[Retry] Retrying in {delay:.2f}s...")

            await _sleep(delay)
            attempt += 1
