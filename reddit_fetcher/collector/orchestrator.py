"""Bounded-concurrency execution of many comment fetches."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from reddit_fetcher.collector.fetch_task import CommentsFetcher
from reddit_fetcher.errors import (
    AggregateFetchError,
    ConfigError,
    FetchAbortedError,
    FetchCancelledError,
    FetchTimeoutError,
)
from reddit_fetcher.models.things import CommentsRequest, CommentsResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 10


@dataclass
class MultiFetchResult:
    """
    Outcome of a multi-fetch call.

    ``results[i]`` and ``errors[i]`` belong to ``requests[i]``; exactly one of
    them is set for every item once the call has returned.
    """

    results: List[Optional[CommentsResult]] = field(default_factory=list)
    errors: List[Optional[BaseException]] = field(default_factory=list)

    @classmethod
    def sized(cls, size: int) -> "MultiFetchResult":
        return cls(results=[None] * size, errors=[None] * size)

    def __len__(self) -> int:
        return len(self.results)

    @property
    def ok(self) -> bool:
        return all(err is None for err in self.errors)

    @property
    def failed_indexes(self) -> List[int]:
        return [i for i, err in enumerate(self.errors) if err is not None]

    @property
    def first_error(self) -> Optional[BaseException]:
        """Error of the lowest-indexed failed item."""
        for err in self.errors:
            if err is not None:
                return err
        return None

    def successful(self) -> List[CommentsResult]:
        return [res for res, err in zip(self.results, self.errors) if err is None and res is not None]

    def raise_for_errors(self) -> None:
        """Raise ``AggregateFetchError`` if any item failed."""
        if not self.ok:
            raise AggregateFetchError(self.errors)


class MultiFetchOrchestrator:
    """
    Runs many comment fetches with at most ``max_concurrency`` in flight.

    Items are admitted in input order: the admission loop takes a semaphore
    slot before it creates an item's task, and the slot is handed back by the
    task's done-callback, so it is returned on success, failure and
    cancellation alike (even for a task cancelled before it first ran).
    Per-item errors are recorded, not raised. Cancelling the caller, setting
    ``cancel_event`` or exceeding ``timeout`` stops admission, cancels every
    running item and waits for all of them before ``fetch_many`` exits.
    """

    def __init__(
        self,
        fetcher: CommentsFetcher,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        fail_fast: bool = False,
        prometheus_exporter=None,
    ):
        """
        Initialize the orchestrator.

        Args:
            fetcher: Fetcher used for every item
            max_concurrency: Maximum number of concurrently running fetches
            fail_fast: Stop admitting new items after the first item error
            prometheus_exporter: Optional Prometheus exporter for metrics

        Raises:
            ConfigError: If the fetcher is missing or the ceiling is below 1
        """
        if fetcher is None:
            raise ConfigError("fetcher is required", field="fetcher")
        if isinstance(max_concurrency, bool) or not isinstance(max_concurrency, int) or max_concurrency < 1:
            raise ConfigError(f"max_concurrency must be at least 1, got {max_concurrency!r}", field="max_concurrency")
        self.fetcher = fetcher
        self.max_concurrency = max_concurrency
        self.fail_fast = fail_fast
        self.prometheus_exporter = prometheus_exporter

        # Only touched from the event loop thread
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        """Number of item tasks currently running."""
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest ``in_flight`` value observed since construction."""
        return self._peak_in_flight

    async def fetch_many(
        self,
        requests: Iterable[CommentsRequest],
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> MultiFetchResult:
        """
        Fetch comments for every request.

        Args:
            requests: Requests to fetch, in the order results are reported
            timeout: Optional deadline for the whole call in seconds
            cancel_event: Optional shared cancellation signal

        Returns:
            MultiFetchResult aligned with ``requests``

        Raises:
            FetchCancelledError: If ``cancel_event`` was set before completion
            FetchTimeoutError: If ``timeout`` elapsed before completion
            asyncio.CancelledError: If the calling task was cancelled
        """
        requests = list(requests)
        result = MultiFetchResult.sized(len(requests))
        if not requests:
            return result

        if cancel_event is not None and cancel_event.is_set():
            raise FetchCancelledError(partial=result)

        logger.info(f"Fetching {len(requests)} requests with concurrency {self.max_concurrency}")
        # set before anything here cancels an item task
        stopping = asyncio.Event()
        batch = asyncio.create_task(self._run_batch(requests, result, stopping))
        waiters = {batch}
        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.create_task(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopping.set()
            if not batch.done():
                batch.cancel()
            if cancel_waiter is not None:
                cancel_waiter.cancel()
            # the batch task only finishes after every item task has finished
            await asyncio.wait(waiters)

        if batch.done() and not batch.cancelled():
            # re-raise anything unexpected from the batch itself
            batch.result()
            logger.info(f"Fetched {len(requests)} requests: {len(result.failed_indexes)} failed")
            return result

        if cancel_waiter is not None and cancel_waiter in done:
            logger.warning("Multi-fetch cancelled")
            raise FetchCancelledError(partial=result)

        if timeout is not None and batch not in done:
            logger.warning(f"Multi-fetch exceeded deadline of {timeout}s")
            raise FetchTimeoutError(timeout, partial=result)

        logger.warning("Multi-fetch batch was cancelled from inside")
        raise FetchCancelledError(partial=result)

    async def _run_batch(
        self, requests: List[CommentsRequest], result: MultiFetchResult, stopping: asyncio.Event
    ) -> None:
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks: List[asyncio.Task] = []

        def release_slot(_task: asyncio.Task) -> None:
            semaphore.release()

        try:
            for index, request in enumerate(requests):
                await semaphore.acquire()
                if self.fail_fast and result.first_error is not None:
                    semaphore.release()
                    self._abort_remaining(result, index)
                    break
                task = asyncio.create_task(self._run_item(index, request, result, stopping))
                task.add_done_callback(release_slot)
                tasks.append(task)

            if tasks:
                await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            if tasks:
                await asyncio.wait(tasks)

    async def _run_item(
        self, index: int, request: CommentsRequest, result: MultiFetchResult, stopping: asyncio.Event
    ) -> None:
        self._enter()
        try:
            result.results[index] = await self.fetcher.fetch(request)
        except asyncio.CancelledError:
            if stopping.is_set():
                raise
            # the fetch raised CancelledError without this call cancelling it
            logger.warning(f"Request {index} was cancelled by its fetch")
            result.errors[index] = FetchCancelledError(f"request at index {index} cancelled")
        except Exception as e:
            logger.warning(f"Request {index} failed: {e}")
            result.errors[index] = e
        finally:
            self._exit()

    def _abort_remaining(self, result: MultiFetchResult, start: int) -> None:
        cause = result.first_error
        logger.warning(f"Fail-fast: not attempting {len(result) - start} remaining requests")
        for index in range(start, len(result)):
            error = FetchAbortedError(index)
            error.__cause__ = cause
            result.errors[index] = error

    def _enter(self) -> None:
        self._in_flight += 1
        if self._in_flight > self._peak_in_flight:
            self._peak_in_flight = self._in_flight
        if self.prometheus_exporter:
            self.prometheus_exporter.set_in_flight(self._in_flight)

    def _exit(self) -> None:
        self._in_flight -= 1
        if self.prometheus_exporter:
            self.prometheus_exporter.set_in_flight(self._in_flight)
