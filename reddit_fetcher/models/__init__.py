"""Domain models produced by the parser."""

from reddit_fetcher.models.things import (
    MAX_COMMENT_BODY_LENGTH,
    MAX_POST_TITLE_LENGTH,
    NOT_EDITED,
    Account,
    Award,
    Comment,
    CommentsRequest,
    CommentsResult,
    Edited,
    Envelope,
    HasCreationTime,
    HasID,
    IsVotable,
    Kind,
    Listing,
    Message,
    More,
    MoreCommentsRequest,
    Post,
    PostsRequest,
    PostsResult,
    RequestDescription,
    Subreddit,
    Thing,
    decode_json,
)
from reddit_fetcher.models.tree import CommentTree, TraversalOptions, TraversalOrder

__all__ = [
    "MAX_COMMENT_BODY_LENGTH",
    "MAX_POST_TITLE_LENGTH",
    "NOT_EDITED",
    "Account",
    "Award",
    "Comment",
    "CommentTree",
    "CommentsRequest",
    "CommentsResult",
    "Edited",
    "Envelope",
    "HasCreationTime",
    "HasID",
    "IsVotable",
    "Kind",
    "Listing",
    "Message",
    "More",
    "MoreCommentsRequest",
    "Post",
    "PostsRequest",
    "PostsResult",
    "RequestDescription",
    "Subreddit",
    "Thing",
    "TraversalOptions",
    "TraversalOrder",
    "decode_json",
]
