"""Single-request fetch operations: validate, pace, send, parse."""

import logging
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar

from reddit_fetcher.collector.rate_limiter import RateLimiter
from reddit_fetcher.collector.transport import Transport
from reddit_fetcher.errors import (
    ConfigError,
    DecodeError,
    NilInputError,
    ParseError,
    RedditClientError,
    ResponseParseError,
    TransportError,
    ValidationError,
)
from reddit_fetcher.models.things import (
    Account,
    CommentsRequest,
    CommentsResult,
    Envelope,
    Kind,
    MoreCommentsRequest,
    PostsRequest,
    PostsResult,
    RequestDescription,
    Subreddit,
    decode_json,
)
from reddit_fetcher.parsing.fields import json_type_name
from reddit_fetcher.parsing.parser import ThingParser
from reddit_fetcher.validation import RequestValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")

POST_SORTS = ("hot", "new")


def comments_request_description(request: CommentsRequest) -> RequestDescription:
    params: Dict[str, str] = {}
    if request.limit > 0:
        params["limit"] = str(request.limit)
    if request.after:
        params["after"] = request.after
    if request.before:
        params["before"] = request.before
    if request.sort:
        params["sort"] = request.sort
    if request.depth is not None:
        params["depth"] = str(request.depth)
    return RequestDescription("GET", f"r/{request.subreddit}/comments/{request.post_id}", params)


def posts_request_description(request: PostsRequest, sort: str) -> RequestDescription:
    params: Dict[str, str] = {}
    if request.limit > 0:
        params["limit"] = str(request.limit)
    if request.after:
        params["after"] = request.after
    if request.before:
        params["before"] = request.before
    path = f"r/{request.subreddit}/{sort}" if request.subreddit else sort
    return RequestDescription("GET", path, params)


def more_comments_request_description(request: MoreCommentsRequest) -> RequestDescription:
    link_id = request.link_id if request.link_id.startswith("t3_") else f"t3_{request.link_id}"
    params = {
        "api_type": "json",
        "link_id": link_id,
        "children": ",".join(request.comment_ids),
    }
    if request.sort:
        params["sort"] = request.sort
    if request.depth is not None:
        params["depth"] = str(request.depth)
    if request.limit > 0:
        params["limit_children"] = str(request.limit)
    return RequestDescription("GET", "api/morechildren", params)


def raise_for_api_error(document: Any, operation: str) -> None:
    """Raise ``TransportError`` for ``{"error": ..., "message": ...}`` bodies."""
    if not isinstance(document, Mapping) or "error" not in document or "kind" in document:
        return
    code = document.get("error")
    message = document.get("message") or document.get("reason") or "unknown error"
    status = code if isinstance(code, int) and not isinstance(code, bool) else None
    raise TransportError(f"reddit API error: {message}", status=status, operation=operation)


class CommentsFetcher:
    """
    Fetcher performing one logical API operation per call.

    Every operation validates its request before any I/O, waits on the shared
    rate limiter exactly once, sends exactly one request through the transport
    (which owns retries) and parses the response. Task cancellation propagates
    from whichever await it interrupts; nothing is parsed afterwards.
    """

    def __init__(
        self,
        transport: Transport,
        rate_limiter: RateLimiter,
        validator: Optional[RequestValidator] = None,
        parser: Optional[ThingParser] = None,
        prometheus_exporter=None,
    ):
        """
        Initialize the fetcher.

        Args:
            transport: Transport used for the network round trip
            rate_limiter: Rate limiter shared by every fetch
            validator: Request validator (defaults to ``RequestValidator``)
            parser: Envelope parser (defaults to ``ThingParser``)
            prometheus_exporter: Optional Prometheus exporter for metrics

        Raises:
            ConfigError: If transport or rate limiter is missing
        """
        if transport is None:
            raise ConfigError("transport is required", field="transport")
        if rate_limiter is None:
            raise ConfigError("rate limiter is required", field="rate_limiter")
        self.transport = transport
        self.rate_limiter = rate_limiter
        self.validator = validator or RequestValidator()
        self.parser = parser or ThingParser(metrics=prometheus_exporter)
        self.prometheus_exporter = prometheus_exporter

    async def fetch(self, request: CommentsRequest) -> CommentsResult:
        """
        Fetch a post and its comment tree.

        Args:
            request: Comments request

        Returns:
            CommentsResult with the post (if returned), comment trees, ``more``
            ids and the pagination cursors of the comments listing

        Raises:
            NilInputError: If ``request`` is None
            ValidationError: If a request field is malformed
            TransportError: On network or API failure
            AuthenticationError: If credentials are rejected
            ResponseParseError: If the response cannot be parsed
        """
        if request is None:
            raise NilInputError("comments request", operation="fetch_comments")
        self.validator.validate_comments_request(request)
        return await self._run(
            "fetch_comments",
            comments_request_description(request),
            self._extract_comments_response,
        )

    async def fetch_posts(self, request: Optional[PostsRequest] = None, sort: str = "hot") -> PostsResult:
        """Fetch a page of posts from a subreddit (or the front page) sorted by ``hot`` or ``new``."""
        if sort not in POST_SORTS:
            raise ValidationError("sort", sort, f"sort must be one of {list(POST_SORTS)}")
        request = request or PostsRequest()
        self.validator.validate_posts_request(request)
        return await self._run(
            f"fetch_{sort}",
            posts_request_description(request, sort),
            self.parser.extract_posts,
        )

    async def fetch_subreddit(self, name: str) -> Subreddit:
        """Fetch the ``about`` data of a subreddit."""
        self.validator.validate("subreddit", name)
        return await self._run(
            "fetch_subreddit",
            RequestDescription("GET", f"r/{name}/about"),
            self.parser.parse_subreddit,
        )

    async def fetch_me(self) -> Account:
        """Fetch the account the access token belongs to."""
        return await self._run(
            "fetch_me",
            RequestDescription("GET", "api/v1/me"),
            self._extract_account,
        )

    async def fetch_more_comments(self, request: MoreCommentsRequest) -> CommentsResult:
        """
        Fetch comments hidden behind ``more`` placeholders.

        The endpoint returns a flat list of comments; their tree position is
        given by ``parent_id``.
        """
        if request is None:
            raise NilInputError("more comments request", operation="fetch_more_comments")
        self.validator.validate_more_comments_request(request)
        if not request.comment_ids:
            return CommentsResult()
        return await self._run(
            "fetch_more_comments",
            more_comments_request_description(request),
            self._extract_more_children,
        )

    async def _run(self, operation: str, description: RequestDescription, extract: Callable[[Any], T]) -> T:
        if self.prometheus_exporter:
            self.prometheus_exporter.record_fetch_operation(operation)
        try:
            await self.rate_limiter.wait()
            body = await self.transport.send(description)
            document = self._decode(operation, body)
            raise_for_api_error(document, operation)
            try:
                return extract(document)
            except ParseError as e:
                raise ResponseParseError(operation, e) from e
        except RedditClientError as e:
            logger.warning(f"{operation} failed: {e}")
            if self.prometheus_exporter:
                self.prometheus_exporter.record_fetch_failure(operation, e)
            raise

    def _decode(self, operation: str, body: bytes) -> Any:
        try:
            return decode_json(body)
        except ParseError as e:
            raise ResponseParseError(operation, e) from e

    def _extract_comments_response(self, document: Any) -> CommentsResult:
        # a bare listing object is the one-element form of the response
        if isinstance(document, Mapping):
            document = [document]
        return self.parser.extract_post_and_comments(document)

    def _extract_account(self, document: Any) -> Account:
        # /api/v1/me returns the bare account object rather than an envelope
        if isinstance(document, Mapping) and "kind" not in document:
            document = Envelope(Kind.ACCOUNT.value, document)
        return self.parser.parse_account(document)

    def _extract_more_children(self, document: Any) -> CommentsResult:
        if not isinstance(document, Mapping) or not isinstance(document.get("json"), Mapping):
            raise DecodeError(f"expected object with a json member, got {json_type_name(document)}")
        body = document["json"]
        errors = body.get("errors") or []
        if errors:
            raise TransportError(f"reddit API error: {errors[0]}", operation="fetch_more_comments")
        data = body.get("data") or {}
        if not isinstance(data, Mapping):
            raise DecodeError(f"expected object, got {json_type_name(data)}", field="json.data")
        listing = Envelope(Kind.LISTING.value, {"children": data.get("things")})
        comments, more_ids = self.parser.extract_comments(listing)
        return CommentsResult(comments=comments, more_ids=more_ids)
