"""Async Reddit API client for comment trees and other listings.

The package turns Reddit's ``{kind, data}`` envelopes into typed domain objects
and fetches many comment trees concurrently under a fixed concurrency ceiling.
"""

from reddit_fetcher.client import RedditClient
from reddit_fetcher.collector.orchestrator import MultiFetchOrchestrator, MultiFetchResult
from reddit_fetcher.collector.pagination import PostIterator
from reddit_fetcher.config import Config
from reddit_fetcher.errors import (
    AggregateFetchError,
    AuthenticationError,
    ConfigError,
    DecodeError,
    FetchAbortedError,
    FetchCancelledError,
    FetchTimeoutError,
    KindMismatchError,
    ListingChildError,
    NilInputError,
    ParseError,
    RedditClientError,
    ResponseParseError,
    TransportError,
    UnknownKindError,
    ValidationError,
    find_cause,
)
from reddit_fetcher.models import (
    Comment,
    CommentsRequest,
    CommentsResult,
    CommentTree,
    Envelope,
    Kind,
    Listing,
    MoreCommentsRequest,
    Post,
    PostsRequest,
    PostsResult,
    TraversalOptions,
    TraversalOrder,
)
from reddit_fetcher.parsing import ThingParser

__version__ = "0.1.0"

__all__ = [
    "AggregateFetchError",
    "AuthenticationError",
    "Comment",
    "CommentTree",
    "CommentsRequest",
    "CommentsResult",
    "Config",
    "ConfigError",
    "DecodeError",
    "Envelope",
    "FetchAbortedError",
    "FetchCancelledError",
    "FetchTimeoutError",
    "Kind",
    "KindMismatchError",
    "Listing",
    "ListingChildError",
    "MoreCommentsRequest",
    "MultiFetchOrchestrator",
    "MultiFetchResult",
    "NilInputError",
    "ParseError",
    "Post",
    "PostIterator",
    "PostsRequest",
    "PostsResult",
    "RedditClient",
    "RedditClientError",
    "ResponseParseError",
    "ThingParser",
    "TransportError",
    "TraversalOptions",
    "TraversalOrder",
    "UnknownKindError",
    "ValidationError",
    "find_cause",
]
