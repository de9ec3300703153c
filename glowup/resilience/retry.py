"""Retry for score writes

A score write is retried only when the failure is transient (dropped
connection, pool timeout, serialization conflict surfaced as an operational
error). Backoff is exponential with jitter so two grants racing for the same
row don't collide again on the retry. The scoring service allows one retry.
"""

import asyncio
import random
import logging
from typing import Callable, Any, TypeVar
from functools import wraps
import psycopg

from glowup.config import SCORING_RETRY_BASE_DELAY, SCORING_WRITE_RETRIES
from glowup.resilience.metrics import record_retry

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRIES = SCORING_WRITE_RETRIES
BASE_DELAY = SCORING_RETRY_BASE_DELAY  # seconds
MAX_DELAY = 5.0  # seconds
JITTER = 0.1  # +/- 10%


def is_retryable_error(exc: Exception) -> bool:
    """
    Whether a failed write may be attempted again

    - GlowUpError subclasses declare it (WriteError does; RecordNotFoundError
      and ConfigurationError don't, retrying cannot fix them)
    - raw psycopg.OperationalError, including psycopg_pool.PoolTimeout
    - anything else is a bug and is not retried
    """
    retryable = getattr(exc, "retryable", None)
    if retryable is not None:
        return bool(retryable)

    return isinstance(exc, psycopg.OperationalError)


def calculate_backoff(attempt: int) -> float:
    """
    Delay before retry number `attempt` (0-indexed)

    min(BASE_DELAY * 2^attempt, MAX_DELAY), then +/- JITTER, never negative.
    """
    delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY)
    delay += random.uniform(-JITTER * delay, JITTER * delay)
    return max(delay, 0.0)


async def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any
) -> T:
    """
    Await func(*args, **kwargs), retrying transient failures

    Args:
        func: Coroutine function to call
        max_retries: Retries after the first attempt (0 disables retrying)

    Raises:
        The first non-retryable error, or the last error once retries run out

    Example:
        state = await retry_with_backoff(store.write_user_score_state, user_id, delta, max_retries=1)
    """
    operation = getattr(func, "__name__", repr(func))
    retries = 0

    while True:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not is_retryable_error(e):
                raise

            if retries >= max_retries:
                if retries:
                    logger.error(f"[RETRY] {operation} still failing after {retries} retries: {e}")
                raise

            delay = calculate_backoff(retries)
            retries += 1
            record_retry(operation)
            logger.warning(
                f"[RETRY] {operation} failed with {type(e).__name__}, "
                f"retry {retries}/{max_retries} in {delay:.2f}s"
            )
            await asyncio.sleep(delay)


def with_retry(max_retries: int = MAX_RETRIES) -> Callable:
    """
    Decorator form of retry_with_backoff

    Example:
        @with_retry(max_retries=1)
        async def save_score(user_id, delta):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_with_backoff(func, *args, max_retries=max_retries, **kwargs)
        return wrapper
    return decorator
