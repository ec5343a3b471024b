"""Shared pytest fixtures."""

from unittest.mock import MagicMock

import pytest

from tests.builders import FakeTransport, NoopRateLimiter, comments_response, post_id_of, to_bytes
from reddit_fetcher.collector.fetch_task import CommentsFetcher
from reddit_fetcher.monitoring.metrics import PrometheusExporter
from reddit_fetcher.parsing.parser import ThingParser


@pytest.fixture
def parser():
    return ThingParser()


@pytest.fixture
def mock_exporter():
    return MagicMock(spec=PrometheusExporter)


@pytest.fixture
def rate_limiter():
    return NoopRateLimiter()


@pytest.fixture
def echo_transport():
    """Transport answering every comments request with a post carrying the requested id."""
    return FakeTransport(lambda request: to_bytes(comments_response(post_id_of(request))))


@pytest.fixture
def fetcher(echo_transport, rate_limiter):
    return CommentsFetcher(echo_transport, rate_limiter)
