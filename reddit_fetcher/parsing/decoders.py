"""Per-kind payload decoders for the flat envelope kinds.

Each decoder takes the raw ``data`` value of an envelope, reads its fields with
``FieldReader`` and checks the invariants every parsed object must satisfy.
Comment replies and listing children are recursive and handled by the parser.
"""

import time
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from reddit_fetcher.models.things import (
    MAX_COMMENT_BODY_LENGTH,
    MAX_POST_TITLE_LENGTH,
    Account,
    Award,
    Comment,
    Kind,
    Message,
    More,
    Post,
    Subreddit,
)
from reddit_fetcher.parsing.fields import FieldReader
from reddit_fetcher.validation import (
    DELETED_AUTHORS,
    is_valid_base36,
    is_valid_fullname,
    is_valid_subreddit,
    is_valid_username,
)

# Reddit went live in June 2005
SERVICE_EPOCH = datetime(2005, 6, 1, tzinfo=timezone.utc).timestamp()
CLOCK_SKEW_GRACE_SEC = 3600.0

# "Continue this thread" placeholders carry this id
CONTINUE_THREAD_ID = "_"


def check_id(r: FieldReader, value: str) -> None:
    if not value:
        raise r.error("id", "missing required field")
    if not is_valid_base36(value):
        raise r.error("id", f"invalid base36 id {value!r}")


def check_fullname(r: FieldReader, name: str, value: Optional[str]) -> None:
    if value and not is_valid_fullname(value):
        raise r.error(name, f"invalid fullname {value!r}")


def check_author(r: FieldReader, name: str, value: str) -> None:
    if value and value not in DELETED_AUTHORS and not is_valid_username(value):
        raise r.error(name, f"invalid username {value!r}")


def check_subreddit_name(r: FieldReader, name: str, value: str) -> None:
    if not value or is_valid_subreddit(value):
        return
    # user profile pseudo-subreddits are named u_<username>
    if value.startswith("u_") and is_valid_username(value[2:]):
        return
    raise r.error(name, f"invalid subreddit name {value!r}")


def check_max_length(r: FieldReader, name: str, value: str, limit: int) -> None:
    if len(value) > limit:
        raise r.error(name, f"exceeds maximum length of {limit} characters")


def check_timestamps(r: FieldReader, created: Optional[float], created_utc: Optional[float]) -> None:
    latest = time.time() + CLOCK_SKEW_GRACE_SEC
    for name, value in (("created", created), ("created_utc", created_utc)):
        if value is None:
            continue
        if value <= 0:
            raise r.error(name, f"timestamp must be positive, got {value}")
        if value < SERVICE_EPOCH:
            raise r.error(name, f"timestamp {value} predates the service epoch")
        if value > latest:
            raise r.error(name, f"timestamp {value} is in the future")
    if created != created_utc:
        raise r.error("created", f"created ({created}) does not match created_utc ({created_utc})")


def check_votes(r: FieldReader, score: int, ups: int, downs: int) -> None:
    if ups != score:
        raise r.error("ups", f"ups ({ups}) must equal score ({score})")
    if downs != 0:
        raise r.error("downs", f"downs must be 0, got {downs}")


def _identity(r: FieldReader) -> Tuple[str, str]:
    item_id = r.string("id", required=True)
    check_id(r, item_id)
    name = r.string("name")
    check_fullname(r, "name", name)
    return item_id, name


def _created(r: FieldReader) -> Tuple[Optional[float], Optional[float]]:
    created, created_utc = r.timestamps()
    check_timestamps(r, created, created_utc)
    return created, created_utc


def decode_post(data: Any) -> Post:
    r = FieldReader(Kind.POST.value, data)
    post_id, name = _identity(r)

    title = r.string("title")
    check_max_length(r, "title", title, MAX_POST_TITLE_LENGTH)
    author = r.string("author")
    check_author(r, "author", author)
    subreddit = r.string("subreddit")
    check_subreddit_name(r, "subreddit", subreddit)
    subreddit_id = r.string("subreddit_id")
    check_fullname(r, "subreddit_id", subreddit_id)

    upvote_ratio = r.number("upvote_ratio")
    if not 0.0 <= upvote_ratio <= 1.0:
        raise r.error("upvote_ratio", f"must be within [0, 1], got {upvote_ratio}")

    score, ups, downs, likes = r.votes()
    check_votes(r, score, ups, downs)
    created, created_utc = _created(r)

    return Post(
        id=post_id,
        name=name,
        title=title,
        author=author,
        subreddit=subreddit,
        subreddit_id=subreddit_id,
        permalink=r.string("permalink"),
        url=r.string("url"),
        domain=r.string("domain"),
        selftext=r.string("selftext"),
        upvote_ratio=upvote_ratio,
        num_comments=r.integer("num_comments", minimum=0),
        score=score,
        ups=ups,
        downs=downs,
        likes=likes,
        created=created,
        created_utc=created_utc,
        edited=r.edited(),
        is_self=r.boolean("is_self"),
        over_18=r.boolean("over_18"),
        locked=r.boolean("locked"),
        stickied=r.boolean("stickied"),
        spoiler=r.boolean("spoiler"),
        link_flair_text=r.optional_string("link_flair_text"),
        distinguished=r.optional_string("distinguished"),
    )


def decode_comment(data: Any, depth: int) -> Tuple[Comment, Any]:
    """
    Decode the flat fields of a comment.

    Returns:
        The comment (without replies) and the raw ``replies`` value
    """
    r = FieldReader(Kind.COMMENT.value, data)
    comment_id, name = _identity(r)

    body = r.string("body")
    check_max_length(r, "body", body, MAX_COMMENT_BODY_LENGTH)
    author = r.string("author")
    check_author(r, "author", author)
    subreddit = r.string("subreddit")
    check_subreddit_name(r, "subreddit", subreddit)
    parent_id = r.string("parent_id")
    link_id = r.string("link_id")
    subreddit_id = r.string("subreddit_id")
    for field_name, value in (("parent_id", parent_id), ("link_id", link_id), ("subreddit_id", subreddit_id)):
        check_fullname(r, field_name, value)

    score, ups, downs, likes = r.votes()
    check_votes(r, score, ups, downs)
    created, created_utc = _created(r)

    comment = Comment(
        id=comment_id,
        name=name,
        body=body,
        author=author,
        subreddit=subreddit,
        subreddit_id=subreddit_id,
        parent_id=parent_id,
        link_id=link_id,
        score=score,
        ups=ups,
        downs=downs,
        likes=likes,
        created=created,
        created_utc=created_utc,
        edited=r.edited(),
        gilded=r.integer("gilded", minimum=0),
        score_hidden=r.boolean("score_hidden"),
        stickied=r.boolean("stickied"),
        distinguished=r.optional_string("distinguished"),
        depth=depth,
    )
    return comment, r.data.get("replies")


def decode_account(data: Any) -> Account:
    r = FieldReader(Kind.ACCOUNT.value, data)
    account_id = r.string("id", required=True)
    check_id(r, account_id)
    # accounts carry the username in ``name`` rather than a fullname
    name = r.string("name")
    check_author(r, "name", name)
    created, created_utc = _created(r)
    return Account(
        id=account_id,
        name=name,
        created=created,
        created_utc=created_utc,
        comment_karma=r.integer("comment_karma", minimum=0),
        link_karma=r.integer("link_karma", minimum=0),
        is_gold=r.boolean("is_gold"),
        is_mod=r.boolean("is_mod"),
        has_verified_email=r.optional_boolean("has_verified_email"),
        over_18=r.boolean("over_18"),
    )


def decode_message(data: Any) -> Message:
    r = FieldReader(Kind.MESSAGE.value, data)
    message_id, name = _identity(r)
    author = r.string("author")
    check_author(r, "author", author)
    parent_id = r.string("parent_id")
    check_fullname(r, "parent_id", parent_id)
    created, created_utc = _created(r)
    return Message(
        id=message_id,
        name=name,
        author=author,
        dest=r.string("dest"),
        subject=r.string("subject", required=True),
        body=r.string("body", required=True),
        context=r.string("context"),
        parent_id=parent_id,
        subreddit=r.optional_string("subreddit"),
        created=created,
        created_utc=created_utc,
        new=r.boolean("new"),
        was_comment=r.boolean("was_comment"),
    )


def decode_subreddit(data: Any) -> Subreddit:
    r = FieldReader(Kind.SUBREDDIT.value, data)
    subreddit_id, name = _identity(r)
    display_name = r.string("display_name")
    check_subreddit_name(r, "display_name", display_name)
    created, created_utc = _created(r)
    return Subreddit(
        id=subreddit_id,
        name=name,
        display_name=display_name,
        title=r.string("title"),
        public_description=r.string("public_description"),
        subscribers=r.integer("subscribers", minimum=0),
        over18=r.boolean("over18"),
        subreddit_type=r.string("subreddit_type"),
        url=r.string("url"),
        created=created,
        created_utc=created_utc,
    )


def decode_award(data: Any) -> Award:
    r = FieldReader(Kind.AWARD.value, data)
    # award ids are opaque tokens such as "gid_1", not base36
    award_id = r.string("id", required=True)
    if not award_id.strip():
        raise r.error("id", "missing required field")
    return Award(
        id=award_id,
        name=r.string("name"),
        description=r.string("description"),
        coin_price=r.integer("coin_price", minimum=0),
        icon_url=r.string("icon_url"),
        count=r.integer("count", minimum=0),
    )


def decode_more(data: Any) -> More:
    r = FieldReader(Kind.MORE.value, data)
    more_id = r.string("id", required=True)
    name = r.string("name")
    if more_id != CONTINUE_THREAD_ID:
        check_id(r, more_id)
        check_fullname(r, "name", name)
    parent_id = r.string("parent_id")
    check_fullname(r, "parent_id", parent_id)
    children = r.string_list("children")
    for i, child_id in enumerate(children):
        if not is_valid_base36(child_id):
            raise r.error(f"children[{i}]", f"invalid base36 id {child_id!r}")
    return More(
        id=more_id,
        name=name,
        parent_id=parent_id,
        count=r.integer("count", minimum=0),
        depth=r.integer("depth", minimum=0),
        children=children,
    )

