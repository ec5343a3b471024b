"""HTTP transport for the Reddit OAuth API."""

import asyncio
import logging
from contextlib import nullcontext
from typing import Optional, Protocol

import aiohttp
from aiohttp.client_exceptions import ClientResponseError

from reddit_fetcher.collector.error_handler import ConsecutiveErrorTracker, with_exponential_backoff
from reddit_fetcher.collector.rate_limiter import RateLimiter
from reddit_fetcher.config import DEFAULT_USER_AGENT, RetryConfig
from reddit_fetcher.errors import AuthenticationError, ConfigError, TransportError
from reddit_fetcher.models.things import RequestDescription

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = (401, 403)


class Transport(Protocol):
    async def send(self, request: RequestDescription) -> bytes: ...


class TokenProvider(Protocol):
    async def get_token(self) -> str: ...


class StaticTokenProvider:
    """Token provider returning a pre-acquired bearer token."""

    def __init__(self, token: str):
        if not token:
            raise ConfigError("access token must not be empty", field="access_token")
        self._token = token

    async def get_token(self) -> str:
        return self._token

    def __repr__(self) -> str:
        return "StaticTokenProvider(token=***)"


class AiohttpTransport:
    """
    Transport sending authenticated requests with aiohttp.

    Each ``send`` is one logical request: transient failures (connection errors,
    timeouts, 5xx) are retried with exponential backoff, 429 responses wait on
    the shared rate limiter, and response headers feed it the remaining budget.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        rate_limiter: Optional[RateLimiter] = None,
        base_url: str = "https://oauth.reddit.com",
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        retry: Optional[RetryConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        prometheus_exporter=None,
    ):
        """
        Initialize the transport.

        Args:
            token_provider: Source of the bearer token
            rate_limiter: Shared rate limiter updated from response headers
            base_url: API root URL
            user_agent: User-Agent header sent with every request
            timeout: Total timeout per attempt in seconds
            retry: Retry configuration
            session: Optional externally managed session
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        if token_provider is None:
            raise ConfigError("token provider is required", field="token_provider")
        self.token_provider = token_provider
        self.rate_limiter = rate_limiter
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self.retry = retry or RetryConfig()
        self.prometheus_exporter = prometheus_exporter

        self._session = session
        self._owns_session = session is None

        self.error_tracker = ConsecutiveErrorTracker(self.retry.failure_threshold, prometheus_exporter)
        self._send_with_retry = with_exponential_backoff(
            max_retries=self.retry.max_retries,
            initial_backoff=self.retry.initial_backoff,
            max_backoff=self.retry.max_backoff,
            backoff_factor=self.retry.backoff_factor,
            error_tracker=self.error_tracker,
            rate_limiter=rate_limiter,
        )(self._send_once)

    async def __aenter__(self) -> "AiohttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying session if this transport created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            self._owns_session = True
        return self._session

    async def send(self, request: RequestDescription) -> bytes:
        """
        Send a request and return the raw response body.

        Raises:
            AuthenticationError: If no token could be obtained or the API rejects it
            TransportError: On network failure or a non-success status after retries
        """
        operation = f"{request.method} {request.path}"
        try:
            token = await self.token_provider.get_token()
        except AuthenticationError:
            raise
        except Exception as e:
            self._record_error("auth")
            raise AuthenticationError(f"token provider failed: {e}", operation=operation) from e

        timer = self.prometheus_exporter.time_request() if self.prometheus_exporter else nullcontext()
        try:
            with timer:
                return await self._send_with_retry(request, token)
        except ClientResponseError as e:
            # 5xx responses are already counted by the error tracker
            if not 500 <= e.status < 600:
                self._record_error(str(e.status))
            if e.status in AUTH_FAILURE_STATUSES:
                raise AuthenticationError(e.message, status=e.status, operation=operation) from e
            raise TransportError(e.message, status=e.status, operation=operation, headers=dict(e.headers or {})) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._record_error("connection")
            raise TransportError(f"request failed: {e!r}", operation=operation) from e

    async def _send_once(self, request: RequestDescription, token: str) -> bytes:
        session = self._get_session()
        url = f"{self.base_url}/{request.path.lstrip('/')}"
        params = {"raw_json": "1"}
        params.update(request.params)
        headers = {
            "Authorization": f"Bearer {token}",
            "User-Agent": self.user_agent,
        }

        logger.debug(f"{request.method} {url} params={params}")
        async with session.request(request.method, url, params=params, headers=headers) as response:
            if self.rate_limiter:
                self.rate_limiter.update_from_headers(response.headers)
            body = await response.read()
            if not 200 <= response.status < 300:
                raise ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=response.reason or f"HTTP {response.status}",
                    headers=response.headers,
                )
            return body

    def _record_error(self, error_type: str) -> None:
        if self.prometheus_exporter:
            self.prometheus_exporter.record_api_error(error_type)
