"""Network side of the client: transport, pacing, retries and fetch orchestration."""

from reddit_fetcher.collector.fetch_task import CommentsFetcher
from reddit_fetcher.collector.orchestrator import MultiFetchOrchestrator, MultiFetchResult
from reddit_fetcher.collector.pagination import PostIterator
from reddit_fetcher.collector.rate_limiter import RateLimiter
from reddit_fetcher.collector.transport import AiohttpTransport, StaticTokenProvider

__all__ = [
    "AiohttpTransport",
    "CommentsFetcher",
    "MultiFetchOrchestrator",
    "MultiFetchResult",
    "PostIterator",
    "RateLimiter",
    "StaticTokenProvider",
]
