"""
Backoff for outbound HTTP calls.

GitHub requests retry on 429/5xx and network errors; notification webhooks
retry on network errors only. Anything else is raised to the caller at once.
"""

import logging
import asyncio
import functools
import random
from typing import Callable, Type, Tuple, Any

import aiohttp

logger = logging.getLogger(__name__)


class RetryExhausted(Exception):
    """The call kept failing with a retryable error."""
    pass


def backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: bool) -> float:
    """Seconds to wait after the given zero-based attempt (doubling, capped)."""
    delay = min(base_delay * 2 ** attempt, max_delay)
    return delay * (0.5 + random.random()) if jitter else delay


async def retry_with_backoff(
    func: Callable,
    *args,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
    **kwargs
) -> Any:
    """
    Call func, retrying up to max_retries times on retry_on errors.

    Raises:
        RetryExhausted: Every attempt failed; chained to the last error
    """
    attempts = max_retries + 1
    for attempt in range(attempts):
        try:
            return await func(*args, **kwargs)
        except retry_on as e:
            if attempt + 1 == attempts:
                logger.error(f"{func.__name__} failed {attempts} times, giving up: {e}")
                raise RetryExhausted(f"{func.__name__} failed after {attempts} attempts: {e}") from e

            delay = backoff_delay(attempt, base_delay, max_delay, jitter)
            logger.warning(f"{func.__name__} failed ({type(e).__name__}: {e}), attempt {attempt + 1}/{attempts}; waiting {delay:.2f}s")
            await asyncio.sleep(delay)


def with_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
):
    """Decorator form of retry_with_backoff for async functions and methods."""
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            return await retry_with_backoff(
                func,
                *args,
                max_retries=max_retries,
                base_delay=base_delay,
                max_delay=max_delay,
                jitter=jitter,
                retry_on=retry_on,
                **kwargs
            )
        return wrapper
    return decorator


# Network failures worth retrying for any HTTP integration
NETWORK_ERRORS = (aiohttp.ClientConnectionError, asyncio.TimeoutError)

GITHUB_RETRY = {
    "max_retries": 3,
    "base_delay": 1.0,
    "max_delay": 30.0,
}

WEBHOOK_RETRY = {
    "max_retries": 2,
    "base_delay": 1.0,
    "max_delay": 10.0,
    "retry_on": NETWORK_ERRORS,
}


def with_webhook_retry(func: Callable):
    """Decorator with notification webhook retry configuration."""
    return with_retry(**WEBHOOK_RETRY)(func)
