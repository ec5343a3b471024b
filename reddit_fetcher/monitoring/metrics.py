"""Prometheus metrics for the fetch pipeline, the transport and the parser."""

import logging
import time
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

# Fetch pipeline
FETCH_OPERATIONS = Counter(
    "reddit_fetcher_fetch_operations_total",
    "Fetch operations started, by operation",
    ["operation_type"],
)

FETCH_FAILURES = Counter(
    "reddit_fetcher_fetch_failures_total",
    "Fetch operations that raised, by operation and exception class",
    ["operation_type", "error_type"],
)

FETCHES_IN_FLIGHT = Gauge(
    "reddit_fetcher_fetches_in_flight",
    "Multi-fetch item tasks currently running",
)

# Transport
API_ERRORS = Counter(
    "reddit_fetcher_api_errors_total",
    "Failed API round trips, by HTTP status or failure class",
    ["error_type"],
)

CONSECUTIVE_5XX_ERRORS = Gauge(
    "reddit_fetcher_consecutive_5xx_errors",
    "5xx responses received in a row",
)

REQUEST_DURATION = Histogram(
    "reddit_fetcher_request_duration_seconds",
    "Wall time of single API round trips",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)

# Parser
DEPTH_TRUNCATIONS = Counter(
    "reddit_fetcher_depth_truncations_total",
    "Comments whose replies were cut off by the depth limit",
)

COMMENTS_PARSED = Counter(
    "reddit_fetcher_comments_parsed_total",
    "Comments decoded from comment responses",
)


class PrometheusExporter:
    """
    Thin facade over the module-level metrics.

    Components take an optional exporter and call it when present, so metrics
    stay off unless a client is configured with one.
    """

    def __init__(self, port: int = 8000):
        self.port = port
        self.server_started = False

    def start_server(self) -> None:
        """Expose ``/metrics`` on ``port``; a port that cannot be bound is logged, not raised."""
        if self.server_started:
            return
        try:
            start_http_server(self.port)
        except OSError as e:
            logger.error(f"Could not start Prometheus metrics server on port {self.port}: {e}")
            return
        self.server_started = True
        logger.info(f"Prometheus metrics available on port {self.port}")

    def record_fetch_operation(self, operation_type: str) -> None:
        FETCH_OPERATIONS.labels(operation_type=operation_type).inc()

    def record_fetch_failure(self, operation_type: str, error: BaseException) -> None:
        FETCH_FAILURES.labels(operation_type=operation_type, error_type=type(error).__name__).inc()

    def record_api_error(self, error_type: str) -> None:
        """
        Count a failed round trip.

        Args:
            error_type: HTTP status (``"404"``), ``"5xx"`` or a failure class such
                as ``"connection"`` or ``"auth"``
        """
        API_ERRORS.labels(error_type=error_type).inc()

    def set_consecutive_5xx_errors(self, count: int) -> None:
        CONSECUTIVE_5XX_ERRORS.set(count)

    def set_in_flight(self, count: int) -> None:
        FETCHES_IN_FLIGHT.set(count)

    def record_depth_truncation(self) -> None:
        DEPTH_TRUNCATIONS.inc()

    def record_comments_parsed(self, count: int) -> None:
        if count > 0:
            COMMENTS_PARSED.inc(count)

    def time_request(self) -> "RequestTimer":
        return RequestTimer()


class RequestTimer:
    """Observes the duration of its ``with`` block in the request histogram."""

    def __init__(self):
        self.start_time: Optional[float] = None

    def __enter__(self) -> "RequestTimer":
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is None:
            return
        REQUEST_DURATION.observe(time.time() - self.start_time)
