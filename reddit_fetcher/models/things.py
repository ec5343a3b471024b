"""Data models for Reddit envelopes ("things") and the domain objects they carry."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

from reddit_fetcher.errors import DecodeError
from reddit_fetcher.utils import json_utils

# Reddit's own submission limits
MAX_POST_TITLE_LENGTH = 300
MAX_COMMENT_BODY_LENGTH = 10000


class Kind(str, Enum):
    """Closed vocabulary of envelope kinds."""

    COMMENT = "t1"
    ACCOUNT = "t2"
    POST = "t3"
    MESSAGE = "t4"
    SUBREDDIT = "t5"
    AWARD = "t6"
    LISTING = "Listing"
    MORE = "more"


def decode_json(raw: Union[bytes, bytearray, str], what: str = "response") -> Any:
    """
    Decode a JSON document.

    Args:
        raw: Raw response body
        what: Name used in error messages

    Returns:
        Decoded JSON value

    Raises:
        DecodeError: On empty, invalid or truncated input
    """
    if raw is None or len(raw) == 0:
        raise DecodeError(f"empty {what}")
    try:
        try:
            return json.loads(raw)
        except RecursionError:
            # deep comment chains exceed the C scanner's nesting limit
            return json_utils.loads(raw)
    except (ValueError, TypeError) as e:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise DecodeError(f"invalid JSON in {what}: {e}") from e


@dataclass(frozen=True)
class Envelope:
    """The universal ``{kind, data}`` wire wrapper.

    ``data`` is the undecoded JSON value of the payload; its shape is only
    interpreted once the kind is known.
    """

    kind: str
    data: Any = None

    @classmethod
    def from_dict(cls, obj: Any) -> "Envelope":
        if not isinstance(obj, Mapping):
            raise DecodeError(f"expected an envelope object, got {type(obj).__name__}")
        kind = obj.get("kind")
        if not isinstance(kind, str):
            raise DecodeError(f"expected string, got {type(kind).__name__}", field="kind")
        if "data" not in obj:
            raise DecodeError("missing envelope data", kind=kind, field="data")
        return cls(kind=kind, data=obj["data"])

    @classmethod
    def from_json(cls, raw: Union[bytes, bytearray, str]) -> "Envelope":
        return cls.from_dict(decode_json(raw, "envelope"))


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


@runtime_checkable
class HasID(Protocol):
    id: str
    name: str

    @property
    def fullname(self) -> str: ...


@runtime_checkable
class HasCreationTime(Protocol):
    created: Optional[float]
    created_utc: Optional[float]


@runtime_checkable
class IsVotable(Protocol):
    score: int
    ups: int
    downs: int
    likes: Optional[bool]


@dataclass(frozen=True)
class Edited:
    """Normalised form of the legacy ``edited`` field (``false`` or a timestamp)."""

    is_edited: bool = False
    timestamp: Optional[float] = None


NOT_EDITED = Edited()


# ---------------------------------------------------------------------------
# Domain objects
# ---------------------------------------------------------------------------


@dataclass
class Post:
    id: str = ""
    name: str = ""
    title: str = ""
    author: str = ""
    subreddit: str = ""
    subreddit_id: str = ""
    permalink: str = ""
    url: str = ""
    domain: str = ""
    selftext: str = ""
    upvote_ratio: float = 0.0
    num_comments: int = 0
    score: int = 0
    ups: int = 0
    downs: int = 0
    likes: Optional[bool] = None
    created: Optional[float] = None
    created_utc: Optional[float] = None
    edited: Edited = NOT_EDITED
    is_self: bool = False
    over_18: bool = False
    locked: bool = False
    stickied: bool = False
    spoiler: bool = False
    link_flair_text: Optional[str] = None
    distinguished: Optional[str] = None

    @property
    def fullname(self) -> str:
        return self.name or f"{Kind.POST.value}_{self.id}"


@dataclass
class Comment:
    id: str = ""
    name: str = ""
    body: str = ""
    author: str = ""
    subreddit: str = ""
    subreddit_id: str = ""
    parent_id: str = ""
    link_id: str = ""
    score: int = 0
    ups: int = 0
    downs: int = 0
    likes: Optional[bool] = None
    created: Optional[float] = None
    created_utc: Optional[float] = None
    edited: Edited = NOT_EDITED
    gilded: int = 0
    score_hidden: bool = False
    stickied: bool = False
    distinguished: Optional[str] = None
    depth: int = 0
    replies: List["Comment"] = field(default_factory=list)
    more_children_ids: List[str] = field(default_factory=list)
    replies_truncated: bool = False

    @property
    def fullname(self) -> str:
        return self.name or f"{Kind.COMMENT.value}_{self.id}"


@dataclass
class Account:
    id: str = ""
    name: str = ""
    created: Optional[float] = None
    created_utc: Optional[float] = None
    comment_karma: int = 0
    link_karma: int = 0
    is_gold: bool = False
    is_mod: bool = False
    has_verified_email: Optional[bool] = None
    over_18: bool = False

    @property
    def fullname(self) -> str:
        return f"{Kind.ACCOUNT.value}_{self.id}"


@dataclass
class Message:
    id: str = ""
    name: str = ""
    author: str = ""
    dest: str = ""
    subject: str = ""
    body: str = ""
    context: str = ""
    parent_id: str = ""
    subreddit: Optional[str] = None
    created: Optional[float] = None
    created_utc: Optional[float] = None
    new: bool = False
    was_comment: bool = False

    @property
    def fullname(self) -> str:
        return self.name or f"{Kind.MESSAGE.value}_{self.id}"


@dataclass
class Subreddit:
    id: str = ""
    name: str = ""
    display_name: str = ""
    title: str = ""
    public_description: str = ""
    subscribers: int = 0
    over18: bool = False
    subreddit_type: str = ""
    url: str = ""
    created: Optional[float] = None
    created_utc: Optional[float] = None

    @property
    def fullname(self) -> str:
        return self.name or f"{Kind.SUBREDDIT.value}_{self.id}"


@dataclass
class Award:
    id: str = ""
    name: str = ""
    description: str = ""
    coin_price: int = 0
    icon_url: str = ""
    count: int = 0

    @property
    def fullname(self) -> str:
        return self.name or f"{Kind.AWARD.value}_{self.id}"


@dataclass
class More:
    """Placeholder for children that were not included in the response."""

    id: str = ""
    name: str = ""
    parent_id: str = ""
    count: int = 0
    depth: int = 0
    children: List[str] = field(default_factory=list)

    @property
    def fullname(self) -> str:
        return self.name or f"{Kind.COMMENT.value}_{self.id}"


Thing = Union["Listing", Post, Comment, Account, Message, Subreddit, Award, More]


@dataclass
class Listing:
    children: List[Thing] = field(default_factory=list)
    before: Optional[str] = None
    after: Optional[str] = None
    modhash: Optional[str] = None
    dist: Optional[int] = None

    def __len__(self) -> int:
        return len(self.children)


# ---------------------------------------------------------------------------
# Requests and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommentsRequest:
    """Request for the comment tree of one post."""

    subreddit: str
    post_id: str
    limit: int = 0
    after: Optional[str] = None
    before: Optional[str] = None
    sort: Optional[str] = None
    depth: Optional[int] = None


@dataclass(frozen=True)
class MoreCommentsRequest:
    """Request for comments hidden behind ``more`` placeholders."""

    link_id: str
    comment_ids: Tuple[str, ...] = ()
    sort: Optional[str] = None
    depth: Optional[int] = None
    limit: int = 0


@dataclass(frozen=True)
class PostsRequest:
    """Request for a page of posts; an empty subreddit targets the front page."""

    subreddit: Optional[str] = None
    limit: int = 0
    after: Optional[str] = None
    before: Optional[str] = None


@dataclass(frozen=True)
class RequestDescription:
    """Transport-level description of one API call."""

    method: str
    path: str
    params: Mapping[str, str] = field(default_factory=dict)


@dataclass
class CommentsResult:
    post: Optional[Post] = None
    comments: List[Comment] = field(default_factory=list)
    more_ids: List[str] = field(default_factory=list)
    after: Optional[str] = None
    before: Optional[str] = None


@dataclass
class PostsResult:
    posts: List[Post] = field(default_factory=list)
    after: Optional[str] = None
    before: Optional[str] = None
