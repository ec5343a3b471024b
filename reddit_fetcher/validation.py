"""Format checks for Reddit identifiers and request parameters."""

import re
from typing import Any, Optional

from reddit_fetcher.errors import NilInputError, ValidationError

BASE36_RE = re.compile(r"^[0-9a-z]+$")
FULLNAME_RE = re.compile(r"^t[1-6]_[0-9a-z]+$")
SUBREDDIT_RE = re.compile(r"^[a-zA-Z0-9_]{3,21}$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]{3,20}$")

DELETED_AUTHORS = frozenset({"[deleted]", "[removed]"})

MAX_PAGINATION_LIMIT = 100
MAX_ID_LENGTH = 100
MAX_MORE_CHILDREN = 100
COMMENT_SORTS = frozenset({"confidence", "top", "new", "controversial", "old", "random", "qa", "live"})
REQUEST_FIELDS = frozenset({"subreddit", "post_id", "after", "before", "limit", "sort", "depth"})


def is_valid_base36(value: Any) -> bool:
    return isinstance(value, str) and bool(BASE36_RE.match(value))


def is_valid_fullname(value: Any) -> bool:
    return isinstance(value, str) and bool(FULLNAME_RE.match(value))


def is_valid_subreddit(value: Any) -> bool:
    return isinstance(value, str) and bool(SUBREDDIT_RE.match(value))


def is_valid_username(value: Any) -> bool:
    return isinstance(value, str) and bool(USERNAME_RE.match(value))


class RequestValidator:
    """
    Validator for request parameters.

    ``validate`` is a pure format check that raises ``ValidationError`` so that an
    invalid request fails before any network round trip.
    """

    def validate(self, field: str, value: Any) -> None:
        """
        Validate a single request field.

        Args:
            field: Field name (``subreddit``, ``post_id``, ``after``, ``before``,
                ``limit``, ``sort`` or ``depth``)
            value: Value to check

        Raises:
            ValidationError: If the value is malformed or the field is unknown
        """
        if field not in REQUEST_FIELDS:
            raise ValidationError(field, value, "unknown field")
        getattr(self, f"_check_{field}")(value)

    def validate_comments_request(self, request) -> None:
        """Validate every field of a ``CommentsRequest``."""
        if request is None:
            raise NilInputError("comments request", operation="validate")
        self.validate("subreddit", request.subreddit)
        self.validate("post_id", request.post_id)
        self._check_pagination(request.after, request.before, request.limit)
        if request.sort is not None:
            self.validate("sort", request.sort)
        if request.depth is not None:
            self.validate("depth", request.depth)

    def validate_posts_request(self, request) -> None:
        """Validate a ``PostsRequest``; an empty subreddit targets the front page."""
        if request is None:
            return
        if request.subreddit:
            self.validate("subreddit", request.subreddit)
        self._check_pagination(request.after, request.before, request.limit)

    def validate_more_comments_request(self, request) -> None:
        """Validate a ``MoreCommentsRequest``; ``link_id`` may be a bare id or a t3 fullname."""
        if request is None:
            raise NilInputError("more comments request", operation="validate")
        link_id = request.link_id
        if isinstance(link_id, str) and link_id.startswith("t3_"):
            link_id = link_id[3:]
        self.validate("post_id", link_id)
        if len(request.comment_ids) > MAX_MORE_CHILDREN:
            raise ValidationError(
                "comment_ids", len(request.comment_ids), f"at most {MAX_MORE_CHILDREN} ids per request"
            )
        for comment_id in request.comment_ids:
            if not is_valid_base36(comment_id):
                raise ValidationError("comment_ids", comment_id, "must be base36 (0-9, a-z)")
        self.validate("limit", request.limit)
        if request.sort is not None:
            self.validate("sort", request.sort)
        if request.depth is not None:
            self.validate("depth", request.depth)

    def _check_pagination(self, after: Optional[str], before: Optional[str], limit: int) -> None:
        if after and before:
            raise ValidationError("pagination", (after, before), "cannot set both after and before")
        if after:
            self.validate("after", after)
        if before:
            self.validate("before", before)
        self.validate("limit", limit)

    def _check_subreddit(self, value: Any) -> None:
        if not isinstance(value, str) or not value:
            raise ValidationError("subreddit", value, "subreddit name cannot be empty")
        if not is_valid_subreddit(value):
            if len(value) < 3:
                reason = "subreddit name must be at least 3 characters"
            elif len(value) > 21:
                reason = "subreddit name cannot exceed 21 characters"
            else:
                reason = "only letters, numbers, and underscores allowed"
            raise ValidationError("subreddit", value, reason)
        if value.startswith("_") or value.endswith("_"):
            raise ValidationError("subreddit", value, "cannot start or end with underscore")
        if "__" in value:
            raise ValidationError("subreddit", value, "cannot contain consecutive underscores")

    def _check_post_id(self, value: Any) -> None:
        if not isinstance(value, str) or not value:
            raise ValidationError("post_id", value, "post ID is required")
        if len(value) > MAX_ID_LENGTH:
            raise ValidationError("post_id", value, f"post ID too long (max {MAX_ID_LENGTH} characters)")
        if not is_valid_base36(value):
            raise ValidationError("post_id", value, "must be base36 (0-9, a-z)")

    def _check_cursor(self, field: str, value: Any) -> None:
        if not is_valid_fullname(value):
            raise ValidationError(field, value, "expected a fullname like t3_abc123")

    def _check_after(self, value: Any) -> None:
        self._check_cursor("after", value)

    def _check_before(self, value: Any) -> None:
        self._check_cursor("before", value)

    def _check_limit(self, value: Any) -> None:
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError("limit", value, "limit must be an integer")
        if value < 0:
            raise ValidationError("limit", value, "limit cannot be negative")
        if value > MAX_PAGINATION_LIMIT:
            raise ValidationError("limit", value, f"limit cannot exceed {MAX_PAGINATION_LIMIT}")

    def _check_sort(self, value: Any) -> None:
        if not isinstance(value, str) or value not in COMMENT_SORTS:
            raise ValidationError("sort", value, f"sort must be one of {sorted(COMMENT_SORTS)}")

    def _check_depth(self, value: Any) -> None:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValidationError("depth", value, "depth must be a non-negative integer")
