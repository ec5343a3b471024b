"""Helpers for navigating parsed comment trees.

All traversals use an explicit stack or queue so arbitrarily deep trees never
hit the interpreter recursion limit.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Iterator, List, Optional, Sequence, Tuple

from reddit_fetcher.models.things import Comment


class TraversalOrder(str, Enum):
    DEPTH_FIRST = "depth_first"
    BREADTH_FIRST = "breadth_first"


@dataclass(frozen=True)
class TraversalOptions:
    """
    Options for ``CommentTree.traverse``.

    A comment rejected by ``min_score`` or ``filter_func`` is skipped together
    with all of its replies.

    Attributes:
        order: Depth-first pre-order or breadth-first (level by level)
        max_depth: Deepest level yielded, top-level comments being level 0;
            ``None`` means unlimited
        min_score: Skip comments scoring below this
        filter_func: Skip comments for which this returns False
    """

    order: TraversalOrder = TraversalOrder.DEPTH_FIRST
    max_depth: Optional[int] = None
    min_score: Optional[int] = None
    filter_func: Optional[Callable[[Comment], bool]] = None

    def __post_init__(self):
        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        # accept plain strings such as "breadth_first"
        object.__setattr__(self, "order", TraversalOrder(self.order))

    def accepts(self, comment: Comment) -> bool:
        if self.min_score is not None and comment.score < self.min_score:
            return False
        if self.filter_func is not None and not self.filter_func(comment):
            return False
        return True


class CommentTree:
    """
    Read-only view over a forest of top-level comments.

    Args:
        comments: Top-level comments in response order
    """

    def __init__(self, comments: Sequence[Comment]):
        self._roots: List[Comment] = list(comments)

    def __len__(self) -> int:
        return self.count()

    def __iter__(self) -> Iterator[Comment]:
        for _, comment in self.walk():
            yield comment

    def walk(self) -> Iterator[Tuple[int, Comment]]:
        """
        Depth-first pre-order traversal.

        Yields:
            ``(level, comment)`` pairs, where top-level comments have level 0
        """
        stack: List[Tuple[int, Comment]] = [(0, c) for c in reversed(self._roots)]
        while stack:
            level, comment = stack.pop()
            yield level, comment
            for reply in reversed(comment.replies):
                stack.append((level + 1, reply))

    def traverse(self, options: Optional[TraversalOptions] = None) -> Iterator[Tuple[int, Comment]]:
        """
        Traversal with ordering, depth and filtering options.

        With default options this yields the same pairs as ``walk``.

        Yields:
            ``(level, comment)`` pairs
        """
        options = options or TraversalOptions()
        pending: Deque[Tuple[int, Comment]] = deque((0, c) for c in self._roots)
        breadth_first = options.order == TraversalOrder.BREADTH_FIRST
        if not breadth_first:
            pending.reverse()

        while pending:
            level, comment = pending.popleft() if breadth_first else pending.pop()
            if not options.accepts(comment):
                continue
            yield level, comment

            if options.max_depth is not None and level >= options.max_depth:
                continue
            children = [(level + 1, reply) for reply in comment.replies]
            if breadth_first:
                pending.extend(children)
            else:
                pending.extend(reversed(children))

    def top_level(self) -> List[Comment]:
        return list(self._roots)

    def flatten(self) -> List[Comment]:
        """Return every comment in depth-first tree order."""
        return list(self)

    def filter(self, predicate: Callable[[Comment], bool]) -> List[Comment]:
        return [c for c in self if predicate(c)]

    def find(self, predicate: Callable[[Comment], bool]) -> Optional[Comment]:
        for comment in self:
            if predicate(comment):
                return comment
        return None

    def get_by_id(self, comment_id: str) -> Optional[Comment]:
        """Look up a comment by bare id or fullname."""
        if comment_id.startswith("t1_"):
            comment_id = comment_id[3:]
        return self.find(lambda c: c.id == comment_id)

    def get_by_author(self, author: str) -> List[Comment]:
        return self.filter(lambda c: c.author == author)

    def count(self) -> int:
        return sum(1 for _ in self.walk())

    def depth(self) -> int:
        """Number of levels in the tree (0 for an empty tree)."""
        deepest = 0
        for level, _ in self.walk():
            deepest = max(deepest, level + 1)
        return deepest

    def more_ids(self) -> List[str]:
        """Unexpanded child ids collected from ``more`` placeholders, in tree order."""
        ids: List[str] = []
        for comment in self:
            ids.extend(comment.more_children_ids)
        return ids
