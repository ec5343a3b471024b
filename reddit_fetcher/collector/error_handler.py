"""Retry policy for Reddit API requests: exponential backoff, 429 waits and a consecutive 5xx cut-off."""

import asyncio
import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar, cast

import aiohttp
from aiohttp.client_exceptions import ClientResponseError

from reddit_fetcher.collector.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")
AsyncFunc = Callable[..., Awaitable[T]]

RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (aiohttp.ClientError, asyncio.TimeoutError)

RATE_LIMITED = "rate_limited"
SERVER_ERROR = "server_error"
TRANSIENT = "transient"


class ConsecutiveErrorTracker:
    """
    Counts 5xx responses received in a row.

    A successful request resets the count; once it reaches ``threshold`` the
    retry loop stops retrying and surfaces the last error.
    """

    def __init__(self, threshold: int, prometheus_exporter=None):
        self.threshold = threshold
        self.consecutive_errors = 0
        self.prometheus_exporter = prometheus_exporter

    def record_error(self) -> None:
        self.consecutive_errors += 1
        logger.warning(f"{self.consecutive_errors} consecutive 5xx responses (limit {self.threshold})")
        self._publish()
        if self.prometheus_exporter:
            self.prometheus_exporter.record_api_error("5xx")

    def record_success(self) -> None:
        if not self.consecutive_errors:
            return
        logger.info(f"Request succeeded after {self.consecutive_errors} consecutive 5xx responses")
        self.consecutive_errors = 0
        self._publish()

    def should_abort(self) -> bool:
        return self.consecutive_errors >= self.threshold

    def _publish(self) -> None:
        if self.prometheus_exporter:
            self.prometheus_exporter.set_consecutive_5xx_errors(self.consecutive_errors)


class Backoff:
    """
    Delay schedule for one retried call.

    Delays start at ``initial`` and grow by ``factor`` up to ``maximum``; at most
    ``max_retries`` sleeps are handed out.
    """

    def __init__(self, max_retries: int, initial: float, maximum: float, factor: float):
        self.max_retries = max_retries
        self.maximum = maximum
        self.factor = factor
        self.attempts = 0
        self._delay = initial

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_retries

    async def sleep(self, reason: str) -> None:
        delay = self._delay
        self.attempts += 1
        logger.warning(f"{reason}; retry {self.attempts}/{self.max_retries} in {delay:.2f}s")
        await asyncio.sleep(delay)
        self._delay = min(delay * self.factor, self.maximum)


def classify(error: BaseException, retry_on: Tuple[Type[BaseException], ...] = RETRYABLE_ERRORS) -> Optional[str]:
    """
    Sort an exception into a retry category.

    Returns:
        ``RATE_LIMITED`` for 429, ``SERVER_ERROR`` for 5xx, ``TRANSIENT`` for
        other ``retry_on`` errors, None for anything that must not be retried
    """
    if isinstance(error, ClientResponseError):
        if error.status == 429:
            return RATE_LIMITED
        if 500 <= error.status < 600:
            return SERVER_ERROR
        return None
    if isinstance(error, retry_on):
        return TRANSIENT
    return None


def with_exponential_backoff(
    max_retries: int = 5,
    initial_backoff: float = 1.0,
    max_backoff: float = 32.0,
    backoff_factor: float = 2.0,
    error_tracker: Optional[ConsecutiveErrorTracker] = None,
    rate_limiter: Optional[RateLimiter] = None,
    retry_on: Tuple[Type[BaseException], ...] = RETRYABLE_ERRORS,
) -> Callable[[AsyncFunc[T]], AsyncFunc[T]]:
    """
    Decorator retrying an async call with exponential backoff.

    5xx responses and ``retry_on`` errors are retried up to ``max_retries``
    times. A 429 waits on ``rate_limiter`` and does not use up a retry. Other
    HTTP errors, other exceptions and task cancellation propagate at once.

    Args:
        max_retries: Maximum number of retry attempts
        initial_backoff: Initial backoff time in seconds
        max_backoff: Maximum backoff time in seconds
        backoff_factor: Multiplier for backoff time between retries
        error_tracker: Optional tracker for consecutive 5xx errors
        rate_limiter: Optional rate limiter for handling 429 responses
        retry_on: Exception types considered transient

    Returns:
        Decorator function
    """
    def decorator(func: AsyncFunc[T]) -> AsyncFunc[T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            backoff = Backoff(max_retries, initial_backoff, max_backoff, backoff_factor)

            while True:
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    category = classify(e, retry_on)

                    if category == RATE_LIMITED and rate_limiter:
                        logger.warning(f"Rate limited (429): {e}")
                        headers = cast(ClientResponseError, e).headers or {}
                        await rate_limiter.handle_429(headers.get("Retry-After"))
                        continue

                    if category == SERVER_ERROR:
                        if error_tracker:
                            error_tracker.record_error()
                            if error_tracker.should_abort():
                                logger.critical(f"Giving up: {error_tracker.consecutive_errors} consecutive 5xx responses")
                                raise
                    elif category != TRANSIENT:
                        if isinstance(e, ClientResponseError):
                            logger.warning(f"Client error {e.status}: {e}")
                        raise

                    if backoff.exhausted:
                        logger.error(f"Giving up after {max_retries} retries: {e!r}")
                        raise
                    await backoff.sleep(f"Request failed with {e!r}")
                    continue

                if error_tracker:
                    error_tracker.record_success()
                return result

        return cast(AsyncFunc[T], wrapper)
    return decorator
