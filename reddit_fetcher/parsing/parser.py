"""Kind dispatch from envelopes to typed domain objects."""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from reddit_fetcher.errors import (
    ConfigError,
    DecodeError,
    KindMismatchError,
    NilInputError,
    UnknownKindError,
)
from reddit_fetcher.models.things import (
    Account,
    Award,
    Comment,
    CommentsResult,
    Envelope,
    Kind,
    Listing,
    Message,
    More,
    Post,
    PostsResult,
    Subreddit,
    Thing,
)
from reddit_fetcher.parsing.decoders import (
    decode_account,
    decode_award,
    decode_comment,
    decode_message,
    decode_more,
    decode_post,
    decode_subreddit,
)
from reddit_fetcher.parsing.fields import json_type_name
from reddit_fetcher.parsing.listing import ListingDecoder

logger = logging.getLogger(__name__)

MAX_COMMENT_DEPTH = 50

REPLY_KINDS = frozenset({Kind.COMMENT.value, Kind.MORE.value})
POST_KINDS = frozenset({Kind.POST.value})

EnvelopeLike = Union[Envelope, Mapping[str, Any]]


class ThingParser:
    """
    Parser turning ``{kind, data}`` envelopes into domain objects.

    Comment reply trees are expanded recursively with an explicit depth argument.
    A comment at depth ``d`` only expands its replies when ``d + 1 <= max_depth``;
    deeper subtrees are dropped and the comment is flagged with
    ``replies_truncated`` instead of failing the parse.

    Args:
        max_depth: Deepest comment level that is still expanded (root is 0)
        metrics: Optional ``PrometheusExporter`` for parse metrics
    """

    def __init__(self, max_depth: int = MAX_COMMENT_DEPTH, metrics=None):
        if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 0:
            raise ConfigError(f"max_depth must be a non-negative integer, got {max_depth!r}", field="max_depth")
        self.max_depth = max_depth
        self.metrics = metrics
        self.listings = ListingDecoder(self)
        self._decoders: Dict[str, Callable[[Envelope, int], Thing]] = {
            Kind.COMMENT.value: self._parse_comment,
            Kind.ACCOUNT.value: lambda envelope, depth: decode_account(envelope.data),
            Kind.POST.value: lambda envelope, depth: decode_post(envelope.data),
            Kind.MESSAGE.value: lambda envelope, depth: decode_message(envelope.data),
            Kind.SUBREDDIT.value: lambda envelope, depth: decode_subreddit(envelope.data),
            Kind.AWARD.value: lambda envelope, depth: decode_award(envelope.data),
            Kind.LISTING.value: lambda envelope, depth: self.listings.decode(envelope, depth),
            Kind.MORE.value: lambda envelope, depth: decode_more(envelope.data),
        }

    def parse(self, envelope: Optional[EnvelopeLike], expected_kind: Optional[str] = None) -> Thing:
        """
        Parse one envelope into its domain object.

        Args:
            envelope: Envelope (or decoded ``{kind, data}`` mapping) to parse
            expected_kind: If given, the envelope must have this kind

        Returns:
            Post, Comment, Listing, Account, Message, Subreddit, Award or More

        Raises:
            NilInputError: If ``envelope`` is None
            KindMismatchError: If ``expected_kind`` does not match
            UnknownKindError: If the kind is outside the known vocabulary
            DecodeError: If the payload is malformed
            ListingChildError: If a listing child fails to parse
        """
        envelope = self._coerce(envelope)
        if expected_kind is not None:
            expected = expected_kind.value if isinstance(expected_kind, Kind) else expected_kind
            if envelope.kind != expected:
                raise KindMismatchError(expected, envelope.kind)
        try:
            return self.dispatch(envelope, 0)
        except RecursionError as e:
            raise DecodeError("nesting exceeds the interpreter recursion limit", kind=envelope.kind) from e

    def dispatch(self, envelope: Envelope, depth: int) -> Thing:
        """Decode ``envelope`` as a node at ``depth`` of the current tree."""
        decoder = self._decoders.get(envelope.kind)
        if decoder is None:
            logger.warning(f"Unknown thing kind: {envelope.kind!r}")
            raise UnknownKindError(envelope.kind)
        return decoder(envelope, depth)

    def parse_post(self, envelope: Optional[EnvelopeLike]) -> Post:
        return self.parse(envelope, Kind.POST.value)

    def parse_comment(self, envelope: Optional[EnvelopeLike]) -> Comment:
        return self.parse(envelope, Kind.COMMENT.value)

    def parse_account(self, envelope: Optional[EnvelopeLike]) -> Account:
        return self.parse(envelope, Kind.ACCOUNT.value)

    def parse_message(self, envelope: Optional[EnvelopeLike]) -> Message:
        return self.parse(envelope, Kind.MESSAGE.value)

    def parse_subreddit(self, envelope: Optional[EnvelopeLike]) -> Subreddit:
        return self.parse(envelope, Kind.SUBREDDIT.value)

    def parse_award(self, envelope: Optional[EnvelopeLike]) -> Award:
        return self.parse(envelope, Kind.AWARD.value)

    def parse_more(self, envelope: Optional[EnvelopeLike]) -> More:
        return self.parse(envelope, Kind.MORE.value)

    def parse_listing(self, envelope: Optional[EnvelopeLike]) -> Listing:
        return self.parse(envelope, Kind.LISTING.value)

    def record_truncation(self) -> None:
        if self.metrics:
            self.metrics.record_depth_truncation()

    # ------------------------------------------------------------------
    # Response extraction
    # ------------------------------------------------------------------

    def extract_posts(self, envelope: Optional[EnvelopeLike]) -> PostsResult:
        """
        Extract the posts of a listing whose children must all be ``t3``.

        Returns:
            PostsResult with the posts and the listing cursors
        """
        listing = self._parse_restricted_listing(envelope, POST_KINDS)
        return PostsResult(posts=list(listing.children), after=listing.after, before=listing.before)

    def extract_comments(self, envelope: Optional[EnvelopeLike]) -> Tuple[List[Comment], List[str]]:
        """
        Extract comments from a listing of ``t1``/``more`` children or a single ``t1``.

        Returns:
            Top-level comments with their reply trees, and the ids of every
            ``more`` placeholder (top level first, then in tree order)
        """
        envelope = self._coerce(envelope)
        if envelope.kind == Kind.COMMENT.value:
            comments = [self.parse_comment(envelope)]
            return comments, collect_more_ids(comments, [])

        if envelope.kind != Kind.LISTING.value:
            raise KindMismatchError(f"{Kind.LISTING.value} or {Kind.COMMENT.value}", envelope.kind)
        listing = self._parse_restricted_listing(envelope, REPLY_KINDS)
        comments, top_level_more = split_replies(listing.children)
        return comments, collect_more_ids(comments, top_level_more)

    def extract_post_and_comments(self, elements: Any) -> CommentsResult:
        """
        Extract the result of a comments request.

        Accepts the usual two-element ``[post, comments]`` response, where the
        post element is a ``t3`` envelope or a listing whose first child is a
        ``t3``, and the one-element form that only carries a comments listing.

        Raises:
            DecodeError: If the response has any other shape
        """
        if elements is None:
            raise NilInputError("response")
        if not isinstance(elements, Sequence) or isinstance(elements, (str, bytes)):
            raise DecodeError(f"expected array of envelopes, got {json_type_name(elements)}")
        if len(elements) not in (1, 2):
            raise DecodeError(f"expected 1 or 2 envelopes, got {len(elements)}")

        post = None
        if len(elements) == 2:
            post = self._extract_post(elements[0])

        comments_envelope = self._coerce(elements[-1], "comments listing")
        if comments_envelope.kind != Kind.LISTING.value:
            raise KindMismatchError(Kind.LISTING.value, comments_envelope.kind)
        listing = self._parse_restricted_listing(comments_envelope, REPLY_KINDS)
        comments, top_level_more = split_replies(listing.children)

        if self.metrics:
            self.metrics.record_comments_parsed(count_comments(comments))

        return CommentsResult(
            post=post,
            comments=comments,
            more_ids=collect_more_ids(comments, top_level_more),
            after=listing.after,
            before=listing.before,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _coerce(self, envelope: Optional[EnvelopeLike], what: str = "envelope") -> Envelope:
        if envelope is None:
            raise NilInputError(what)
        if isinstance(envelope, Envelope):
            return envelope
        return Envelope.from_dict(envelope)

    def _extract_post(self, element: Any) -> Optional[Post]:
        envelope = self._coerce(element, "post")
        if envelope.kind == Kind.POST.value:
            return self.parse_post(envelope)
        if envelope.kind != Kind.LISTING.value:
            raise KindMismatchError(f"{Kind.LISTING.value} or {Kind.POST.value}", envelope.kind)
        posts = self.extract_posts(envelope).posts
        return posts[0] if posts else None

    def _parse_restricted_listing(self, envelope: Optional[EnvelopeLike], kinds) -> Listing:
        envelope = self._coerce(envelope)
        if envelope.kind != Kind.LISTING.value:
            raise KindMismatchError(Kind.LISTING.value, envelope.kind)
        try:
            return self.listings.decode(envelope, 0, allowed_kinds=kinds)
        except RecursionError as e:
            raise DecodeError("nesting exceeds the interpreter recursion limit", kind=envelope.kind) from e

    def _parse_comment(self, envelope: Envelope, depth: int) -> Comment:
        comment, replies = decode_comment(envelope.data, depth)
        if replies is None or replies == "":
            return comment
        if not isinstance(replies, Mapping):
            raise DecodeError(
                f"expected listing or empty string, got {json_type_name(replies)}",
                kind=Kind.COMMENT.value,
                field="replies",
            )

        if depth + 1 > self.max_depth:
            logger.warning(
                f"Comment {comment.id} at depth {depth} reached max depth {self.max_depth}; "
                f"dropping its replies"
            )
            comment.replies_truncated = True
            self.record_truncation()
            return comment

        replies_envelope = Envelope.from_dict(replies)
        if replies_envelope.kind != Kind.LISTING.value:
            raise KindMismatchError(Kind.LISTING.value, replies_envelope.kind)
        listing = self.listings.decode(replies_envelope, depth + 1, allowed_kinds=REPLY_KINDS)
        comment.replies, more = split_replies(listing.children)
        comment.more_children_ids = more
        return comment


def split_replies(children: Sequence[Thing]) -> Tuple[List[Comment], List[str]]:
    """Split listing children into comments and the ids carried by ``more`` placeholders."""
    comments: List[Comment] = []
    more_ids: List[str] = []
    for child in children:
        if isinstance(child, More):
            more_ids.extend(child.children)
        elif isinstance(child, Comment):
            comments.append(child)
    return comments, more_ids


def collect_more_ids(comments: Sequence[Comment], top_level: List[str]) -> List[str]:
    """Append ``more`` ids found anywhere in the trees to ``top_level``, in tree order."""
    ids = list(top_level)
    stack = list(reversed(comments))
    while stack:
        comment = stack.pop()
        ids.extend(comment.more_children_ids)
        stack.extend(reversed(comment.replies))
    return ids


def count_comments(comments: Sequence[Comment]) -> int:
    total = 0
    stack = list(comments)
    while stack:
        comment = stack.pop()
        total += 1
        stack.extend(comment.replies)
    return total
