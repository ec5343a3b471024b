"""High-level Reddit client wiring configuration, transport, parser and fetchers together."""

import asyncio
import logging
from typing import Iterable, Optional

from reddit_fetcher.collector.fetch_task import CommentsFetcher
from reddit_fetcher.collector.orchestrator import MultiFetchOrchestrator, MultiFetchResult
from reddit_fetcher.collector.pagination import PostIterator
from reddit_fetcher.collector.rate_limiter import RateLimiter
from reddit_fetcher.collector.transport import AiohttpTransport, StaticTokenProvider, TokenProvider, Transport
from reddit_fetcher.config import Config
from reddit_fetcher.errors import ConfigError
from reddit_fetcher.models.things import (
    Account,
    CommentsRequest,
    CommentsResult,
    MoreCommentsRequest,
    PostsRequest,
    PostsResult,
    Subreddit,
)
from reddit_fetcher.monitoring.metrics import PrometheusExporter
from reddit_fetcher.parsing.parser import ThingParser
from reddit_fetcher.utils.logging_utils import setup_logging
from reddit_fetcher.validation import MAX_PAGINATION_LIMIT, RequestValidator

logger = logging.getLogger(__name__)


class RedditClient:
    """
    Client for reading posts, comment trees and accounts from the Reddit API.

    Example:
        async with RedditClient(Config.from_files("config.yaml")) as client:
            result = await client.get_comments(CommentsRequest("golang", "abc123"))
    """

    def __init__(
        self,
        config: Config,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[Transport] = None,
        prometheus_exporter: Optional[PrometheusExporter] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration
            token_provider: Bearer token source (defaults to the configured access token)
            transport: Transport override (defaults to ``AiohttpTransport``)
            prometheus_exporter: Optional Prometheus exporter for metrics

        Raises:
            ConfigError: If the configuration is invalid
        """
        if config is None:
            raise ConfigError("config is required", field="config")
        errors = config.validate(require_token=token_provider is None and transport is None)
        if errors:
            raise ConfigError("; ".join(errors))
        self.config = config

        if prometheus_exporter is None and config.monitoring.enable_prometheus:
            prometheus_exporter = PrometheusExporter(port=config.monitoring.prometheus_port)
            prometheus_exporter.start_server()
        self.prometheus_exporter = prometheus_exporter

        self.rate_limiter = RateLimiter(config.rate_limit)
        self._owns_transport = transport is None
        if transport is None:
            transport = AiohttpTransport(
                token_provider or StaticTokenProvider(config.access_token),
                rate_limiter=self.rate_limiter,
                base_url=config.base_url,
                user_agent=config.user_agent,
                timeout=config.request_timeout_sec,
                retry=config.retry,
                prometheus_exporter=prometheus_exporter,
            )
        self.transport = transport

        self.parser = ThingParser(max_depth=config.fetch.max_comment_depth, metrics=prometheus_exporter)
        self.validator = RequestValidator()
        self.fetcher = CommentsFetcher(
            self.transport,
            self.rate_limiter,
            validator=self.validator,
            parser=self.parser,
            prometheus_exporter=prometheus_exporter,
        )
        self.orchestrator = MultiFetchOrchestrator(
            self.fetcher,
            max_concurrency=config.fetch.max_concurrency,
            fail_fast=config.fetch.fail_fast,
            prometheus_exporter=prometheus_exporter,
        )

    @classmethod
    def from_files(cls, config_path: str, env_path: Optional[str] = None, **kwargs) -> "RedditClient":
        """Build a client from a YAML config file and ``.env``, configuring logging first."""
        config = Config.from_files(config_path, env_path)
        if config.logging_config_path:
            setup_logging(config.logging_config_path)
        return cls(config, **kwargs)

    async def __aenter__(self) -> "RedditClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the transport if this client created it."""
        if self._owns_transport and isinstance(self.transport, AiohttpTransport):
            await self.transport.close()

    async def get_comments(self, request: CommentsRequest) -> CommentsResult:
        return await self.fetcher.fetch(request)

    async def get_comments_multiple(
        self,
        requests: Iterable[CommentsRequest],
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> MultiFetchResult:
        """
        Fetch comments for many posts concurrently.

        Per-request failures are reported in the returned result rather than
        raised; call ``raise_for_errors()`` on it to treat any failure as fatal.

        Args:
            requests: Comment requests
            timeout: Deadline for the whole batch (defaults to ``fetch.timeout_sec``)
            cancel_event: Optional shared cancellation signal
        """
        if timeout is None:
            timeout = self.config.fetch.timeout_sec
        return await self.orchestrator.fetch_many(requests, timeout=timeout, cancel_event=cancel_event)

    async def get_more_comments(self, request: MoreCommentsRequest) -> CommentsResult:
        return await self.fetcher.fetch_more_comments(request)

    async def get_hot(self, request: Optional[PostsRequest] = None) -> PostsResult:
        return await self.fetcher.fetch_posts(request, sort="hot")

    async def get_new(self, request: Optional[PostsRequest] = None) -> PostsResult:
        return await self.fetcher.fetch_posts(request, sort="new")

    def iter_hot(self, subreddit: Optional[str] = None, limit: int = MAX_PAGINATION_LIMIT) -> PostIterator:
        """Iterate hot posts across pages; ``limit`` is the page size."""
        return PostIterator(self.fetcher, sort="hot", subreddit=subreddit, limit=limit)

    def iter_new(self, subreddit: Optional[str] = None, limit: int = MAX_PAGINATION_LIMIT) -> PostIterator:
        """Iterate new posts across pages; ``limit`` is the page size."""
        return PostIterator(self.fetcher, sort="new", subreddit=subreddit, limit=limit)

    async def get_subreddit(self, name: str) -> Subreddit:
        return await self.fetcher.fetch_subreddit(name)

    async def me(self) -> Account:
        return await self.fetcher.fetch_me()
