"""Tests for the high-level client."""

import asyncio
import os
from unittest.mock import patch

import pytest
import yaml

from tests.builders import FakeTransport, comments_response, listing, post, post_id_of, to_bytes
from reddit_fetcher import RedditClient
from reddit_fetcher.collector.transport import AiohttpTransport
from reddit_fetcher.config import Config
from reddit_fetcher.errors import ConfigError, FetchCancelledError
from reddit_fetcher.models import CommentsRequest, PostsRequest


def respond(request):
    if "/comments/" in request.path:
        return to_bytes(comments_response(post_id_of(request)))
    return to_bytes(listing([post("aaa111")]))


@pytest.fixture
def config():
    config = Config(access_token="token")
    config.fetch.max_concurrency = 3
    config.rate_limit.max_requests_per_minute = 60000
    return config


@pytest.fixture
def transport():
    return FakeTransport(respond)


def test_requires_config():
    with pytest.raises(ConfigError):
        RedditClient(None)


def test_missing_token_is_a_config_error():
    with pytest.raises(ConfigError, match="REDDIT_ACCESS_TOKEN"):
        RedditClient(Config())


def test_invalid_settings_are_reported_together(config):
    config.fetch.max_concurrency = 0
    config.request_timeout_sec = 0

    with pytest.raises(ConfigError) as exc_info:
        RedditClient(config)

    assert "fetch.max_concurrency" in str(exc_info.value)
    assert "request_timeout_sec" in str(exc_info.value)


def test_default_wiring(config):
    client = RedditClient(config)

    assert isinstance(client.transport, AiohttpTransport)
    assert client.transport.rate_limiter is client.rate_limiter
    assert client.fetcher.rate_limiter is client.rate_limiter
    assert client.orchestrator.max_concurrency == 3
    assert client.parser.max_depth == 50


def test_custom_transport_needs_no_token(transport):
    client = RedditClient(Config(), transport=transport)

    assert client.transport is transport


def test_prometheus_enabled(config):
    config.monitoring.enable_prometheus = True
    config.monitoring.prometheus_port = 9123

    with patch("reddit_fetcher.monitoring.metrics.start_http_server") as mock_start_server:
        client = RedditClient(config)

    mock_start_server.assert_called_once_with(9123)
    assert client.orchestrator.prometheus_exporter is client.prometheus_exporter


def test_from_files(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump({"fetch": {"max_concurrency": 7, "max_comment_depth": 10}}), encoding="utf-8"
    )
    env_path = tmp_path / ".env"
    env_path.write_text("REDDIT_ACCESS_TOKEN=abc\n", encoding="utf-8")

    with patch.dict(os.environ, {}, clear=True):
        client = RedditClient.from_files(str(config_path), str(env_path))

    assert client.config.access_token == "abc"
    assert client.orchestrator.max_concurrency == 7
    assert client.parser.max_depth == 10


class TestOperations:
    @pytest.mark.asyncio
    async def test_get_comments(self, config, transport):
        async with RedditClient(config, transport=transport) as client:
            result = await client.get_comments(CommentsRequest("golang", "abc123"))

        assert result.post.id == "abc123"

    @pytest.mark.asyncio
    async def test_get_comments_multiple(self, config, transport):
        requests = [CommentsRequest("golang", f"p{i}") for i in range(9)]

        async with RedditClient(config, transport=transport) as client:
            result = await client.get_comments_multiple(requests)

        assert [r.post.id for r in result.results] == [f"p{i}" for i in range(9)]
        assert transport.peak <= 3

    @pytest.mark.asyncio
    async def test_get_comments_multiple_cancelled(self, config):
        transport = FakeTransport(respond, delay=5)
        cancel = asyncio.Event()

        async with RedditClient(config, transport=transport) as client:
            asyncio.get_running_loop().call_later(0.02, cancel.set)
            with pytest.raises(FetchCancelledError):
                await client.get_comments_multiple(
                    [CommentsRequest("golang", "abc123")] * 5, cancel_event=cancel
                )

        assert transport.active == 0

    @pytest.mark.asyncio
    async def test_get_hot_and_new(self, config, transport):
        async with RedditClient(config, transport=transport) as client:
            hot = await client.get_hot(PostsRequest("golang"))
            new = await client.get_new()

        assert [p.id for p in hot.posts] == ["aaa111"]
        assert [p.id for p in new.posts] == ["aaa111"]
        assert [c.path for c in transport.calls] == ["r/golang/hot", "new"]
