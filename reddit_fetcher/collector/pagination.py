"""Iteration over post listings page by page, following the ``after`` cursor."""

import logging
from collections import deque
from typing import Deque, List, Optional

from reddit_fetcher.collector.fetch_task import POST_SORTS, CommentsFetcher
from reddit_fetcher.errors import ValidationError
from reddit_fetcher.models.things import Post, PostsRequest
from reddit_fetcher.validation import MAX_PAGINATION_LIMIT

logger = logging.getLogger(__name__)


class PostIterator:
    """
    Async iterator over the posts of a hot or new listing.

    Pages of ``limit`` posts are fetched on demand. Iteration ends after a page
    that is empty or carries no ``after`` cursor. A failed page fetch raises
    from ``next`` (or the ``async for``) and leaves the iterator where it was,
    so calling ``next`` again retries the same page.

    Example:
        async for post in client.iter_new("golang", limit=50):
            print(post.title)
    """

    def __init__(
        self,
        fetcher: CommentsFetcher,
        sort: str = "hot",
        subreddit: Optional[str] = None,
        limit: int = MAX_PAGINATION_LIMIT,
    ):
        """
        Initialize the iterator.

        Args:
            fetcher: Fetcher used for every page
            sort: ``hot`` or ``new``
            subreddit: Subreddit name; ``None`` iterates the front page
            limit: Posts per page, clamped to 1..100
        """
        if sort not in POST_SORTS:
            raise ValidationError("sort", sort, f"sort must be one of {list(POST_SORTS)}")
        self.fetcher = fetcher
        self.sort = sort
        self.subreddit = subreddit
        self.limit = min(max(limit, 1), MAX_PAGINATION_LIMIT)
        self.reset()

    def reset(self) -> None:
        """Start over from the first page."""
        self._buffer: Deque[Post] = deque()
        self._after: Optional[str] = None
        self._has_more = True
        self.pages_fetched = 0

    @property
    def has_next(self) -> bool:
        """False once the last page has been fetched and every post handed out."""
        return bool(self._buffer) or self._has_more

    @property
    def after(self) -> Optional[str]:
        """Cursor the next page will be requested with."""
        return self._after

    def __aiter__(self) -> "PostIterator":
        return self

    async def __anext__(self) -> Post:
        while not self._buffer:
            if not self._has_more:
                raise StopAsyncIteration
            await self._fetch_page()
        return self._buffer.popleft()

    async def next(self) -> Post:
        """
        Return the next post, fetching a page first if needed.

        Raises:
            StopAsyncIteration: If the listing is exhausted
            RedditClientError: If a page fetch fails
        """
        return await self.__anext__()

    async def collect(self, max_posts: int = 0) -> List[Post]:
        """
        Gather the remaining posts.

        Args:
            max_posts: Stop after this many posts; 0 or less means no cap
        """
        posts: List[Post] = []
        async for post in self:
            posts.append(post)
            if 0 < max_posts <= len(posts):
                break
        return posts

    async def _fetch_page(self) -> None:
        request = PostsRequest(subreddit=self.subreddit, limit=self.limit, after=self._after)
        result = await self.fetcher.fetch_posts(request, sort=self.sort)
        self.pages_fetched += 1

        self._buffer.extend(result.posts)
        if not result.posts or not result.after:
            self._has_more = False
        elif result.after == self._after:
            # the listing handed back the cursor we sent; another request would repeat this page
            logger.warning(f"Listing cursor {result.after} did not advance, stopping")
            self._has_more = False
        self._after = result.after
        logger.debug(
            f"Fetched page {self.pages_fetched} of {self.sort} posts: {len(result.posts)} posts, after={result.after}"
        )
