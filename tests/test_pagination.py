"""Tests for iterating post listings across pages."""

import pytest

from tests.builders import FakeTransport, listing, post, to_bytes
from reddit_fetcher import Config, RedditClient
from reddit_fetcher.collector.fetch_task import CommentsFetcher
from reddit_fetcher.collector.pagination import PostIterator
from reddit_fetcher.errors import TransportError, ValidationError

PAGES = {
    None: listing([post("p1"), post("p2")], after="t3_p2"),
    "t3_p2": listing([post("p3"), post("p4")], after="t3_p4"),
    "t3_p4": listing([post("p5")]),
}


def paged(pages=PAGES):
    def respond(request):
        return to_bytes(pages[request.params.get("after")])

    return respond


def make_iterator(transport, rate_limiter, **kwargs):
    return PostIterator(CommentsFetcher(transport, rate_limiter), **kwargs)


@pytest.mark.asyncio
async def test_follows_cursor_to_the_last_page(rate_limiter):
    transport = FakeTransport(paged())
    iterator = make_iterator(transport, rate_limiter, subreddit="golang", limit=2)

    ids = [p.id async for p in iterator]

    assert ids == ["p1", "p2", "p3", "p4", "p5"]
    assert [call.params.get("after") for call in transport.calls] == [None, "t3_p2", "t3_p4"]
    assert all(call.path == "r/golang/hot" for call in transport.calls)
    assert iterator.pages_fetched == 3
    assert not iterator.has_next


@pytest.mark.asyncio
async def test_collect_stops_at_max_posts(rate_limiter):
    transport = FakeTransport(paged())
    iterator = make_iterator(transport, rate_limiter, sort="new")

    first = await iterator.collect(max_posts=3)

    assert [p.id for p in first] == ["p1", "p2", "p3"]
    assert len(transport.calls) == 2
    assert iterator.has_next
    assert (await iterator.next()).id == "p4"
    assert [p.id for p in await iterator.collect()] == ["p5"]


@pytest.mark.asyncio
async def test_next_after_exhaustion(rate_limiter):
    iterator = make_iterator(FakeTransport(paged({None: listing([post("p1")])})), rate_limiter)

    assert (await iterator.next()).id == "p1"
    with pytest.raises(StopAsyncIteration):
        await iterator.next()


@pytest.mark.asyncio
async def test_empty_listing(rate_limiter):
    iterator = make_iterator(FakeTransport(paged({None: listing([], after="t3_zz")})), rate_limiter)

    assert iterator.has_next
    assert await iterator.collect() == []
    assert not iterator.has_next


@pytest.mark.asyncio
async def test_cursor_that_does_not_advance_ends_iteration(rate_limiter):
    pages = {None: listing([post("p1")], after="t3_p1"), "t3_p1": listing([post("p2")], after="t3_p1")}
    transport = FakeTransport(paged(pages))

    posts = await make_iterator(transport, rate_limiter).collect()

    assert [p.id for p in posts] == ["p1", "p2"]
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_failed_page_is_retried_by_the_next_call(rate_limiter):
    failures = [TransportError("unavailable", status=503)]

    def respond(request):
        if failures:
            return failures.pop()
        return paged()(request)

    transport = FakeTransport(respond)
    iterator = make_iterator(transport, rate_limiter)

    with pytest.raises(TransportError):
        await iterator.next()
    assert iterator.pages_fetched == 0

    assert (await iterator.next()).id == "p1"
    assert transport.calls[1].params.get("after") is None


@pytest.mark.asyncio
async def test_reset_starts_over(rate_limiter):
    iterator = make_iterator(FakeTransport(paged()), rate_limiter)

    await iterator.collect()
    iterator.reset()

    assert iterator.has_next
    assert iterator.after is None
    assert (await iterator.next()).id == "p1"


@pytest.mark.parametrize("limit, expected", [(500, 100), (0, 1), (-4, 1), (25, 25)])
def test_page_size_is_clamped(fetcher, limit, expected):
    assert PostIterator(fetcher, limit=limit).limit == expected


def test_rejects_unknown_sort(fetcher):
    with pytest.raises(ValidationError):
        PostIterator(fetcher, sort="rising")


@pytest.mark.asyncio
async def test_client_iterators():
    config = Config(access_token="token")
    config.rate_limit.max_requests_per_minute = 60000
    transport = FakeTransport(paged())
    client = RedditClient(config, transport=transport)

    hot = await client.iter_hot(limit=2).collect()
    new = await client.iter_new("golang").collect(max_posts=1)

    assert len(hot) == 5
    assert [p.id for p in new] == ["p1"]
    assert transport.calls[0].path == "hot"
    assert transport.calls[0].params["limit"] == "2"
    assert transport.calls[-1].path == "r/golang/new"
    assert transport.calls[-1].params["limit"] == "100"
