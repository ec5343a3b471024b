"""Request pacing shared by every fetch against the Reddit API."""

import asyncio
import logging
import time
from typing import Any, Mapping, Optional

from reddit_fetcher.config import RateLimitConfig

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 60.0

REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"


def _header_number(headers: Mapping[str, Any], name: str) -> Optional[float]:
    if name not in headers:
        return None
    try:
        return float(headers[name])
    except (ValueError, TypeError):
        logger.warning(f"Ignoring malformed {name} header: {headers[name]!r}")
        return None


class RateLimiter:
    """
    Paces Reddit API requests.

    Two budgets apply. Request starts are spaced ``60 / max_requests_per_minute``
    seconds apart, and when the ``X-Ratelimit-Remaining`` header drops below
    ``min_remaining_calls`` callers sleep until the advertised reset.

    Start times are reserved under a lock but slept outside it, so concurrent
    callers queue up on distinct slots and a cancelled caller does not hold up
    the rest.
    """

    def __init__(self, config: RateLimitConfig):
        self.config = config
        self.min_interval = 60.0 / config.max_requests_per_minute

        # from the most recent response headers
        self.remaining_calls: Optional[int] = None
        self.reset_timestamp: Optional[float] = None
        self.last_request_time = 0.0

        self._next_slot = 0.0
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        """Sleep until the caller may send its request; call once per request."""
        delay = await self._reserve_slot()
        if delay > 0:
            await asyncio.sleep(delay)
        if self._budget_low():
            await self._sleep_until_reset()

    async def _reserve_slot(self) -> float:
        async with self._lock:
            now = time.time()
            start = max(now, self._next_slot, self.last_request_time + self.min_interval)
            self._next_slot = start + self.min_interval
        return start - now

    def _budget_low(self) -> bool:
        return (
            self.remaining_calls is not None
            and self.reset_timestamp is not None
            and self.remaining_calls < self.config.min_remaining_calls
        )

    async def _sleep_until_reset(self) -> None:
        pause = self.reset_timestamp - time.time() + self.config.sleep_buffer_sec
        if pause <= 0:
            return
        logger.info(f"Only {self.remaining_calls} calls left in this window, pausing {pause:.2f}s for the reset")
        await asyncio.sleep(pause)
        self.forget_window()

    def forget_window(self) -> None:
        """Drop what the last headers said about the current window."""
        self.remaining_calls = None
        self.reset_timestamp = None

    def update_from_headers(self, headers: Mapping[str, Any]) -> None:
        """
        Record the rate limit window advertised by a response.

        Header names are matched case-insensitively; malformed values are
        logged and ignored.
        """
        self.last_request_time = time.time()
        lowered = {str(k).lower(): v for k, v in headers.items()}

        remaining = _header_number(lowered, REMAINING_HEADER)
        if remaining is not None:
            self.remaining_calls = int(remaining)

        reset_in = _header_number(lowered, RESET_HEADER)
        if reset_in is not None:
            self.reset_timestamp = self.last_request_time + reset_in

        if remaining is not None and reset_in is not None:
            logger.debug(f"Rate limit window: {self.remaining_calls} calls left, reset in {reset_in:.0f}s")

    async def handle_429(self, retry_after: Optional[str] = None) -> None:
        """
        Sleep after a 429 response.

        Args:
            retry_after: Retry-After header value; unparsable or missing values
                fall back to ``DEFAULT_RETRY_AFTER``
        """
        try:
            pause = float(retry_after) if retry_after else DEFAULT_RETRY_AFTER
        except (ValueError, TypeError):
            pause = DEFAULT_RETRY_AFTER
        pause += self.config.sleep_buffer_sec

        logger.warning(f"Rate limited (429), pausing {pause:.2f}s")
        await asyncio.sleep(pause)
        self.forget_window()
