"""
Prometheus metrics collection for httpdriver.

Counts attempts, retries, received statuses and exhausted requests, and times
each driver call.
"""

from typing import Optional
import time
from contextlib import contextmanager

from prometheus_client import (
    Counter,
    Histogram,
    CollectorRegistry,
    REGISTRY,
)


class DriverMetrics:
    """
    Collects Prometheus metrics for a driver.

    Metrics include:
    - Attempt and retry counters by method
    - Response counters by method and status code
    - Exhausted request counter by method
    - Request duration histogram by method

    Pass a dedicated registry when more than one driver lives in a process.
    """

    def __init__(
        self,
        service_name: str = "httpdriver",
        registry: Optional[CollectorRegistry] = None,
        enabled: bool = True,
    ):
        """
        Initialize metrics collector.

        Args:
            service_name: Name of the calling service (label on all metrics)
            registry: Prometheus registry (defaults to global REGISTRY)
            enabled: Whether metrics collection is enabled
        """
        self.service_name = service_name
        self.registry = registry or REGISTRY
        self.enabled = enabled

        if not self.enabled:
            return

        self.attempts_total = Counter(
            "httpdriver_attempts_total",
            "Total number of request attempts",
            ["service", "method"],
            registry=self.registry,
        )

        self.retries_total = Counter(
            "httpdriver_retries_total",
            "Total number of retries after a transport failure",
            ["service", "method"],
            registry=self.registry,
        )

        self.responses_total = Counter(
            "httpdriver_responses_total",
            "Total number of HTTP responses received",
            ["service", "method", "status"],
            registry=self.registry,
        )

        self.exhausted_total = Counter(
            "httpdriver_exhausted_total",
            "Total number of requests that failed after all attempts",
            ["service", "method"],
            registry=self.registry,
        )

        self.request_duration_seconds = Histogram(
            "httpdriver_request_duration_seconds",
            "Driver call duration in seconds, including retries",
            ["service", "method"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self.registry,
        )

    def record_attempt(self, method: str) -> None:
        if not self.enabled:
            return

        self.attempts_total.labels(
            service=self.service_name,
            method=method,
        ).inc()

    def record_retry(self, method: str) -> None:
        if not self.enabled:
            return

        self.retries_total.labels(
            service=self.service_name,
            method=method,
        ).inc()

    def record_response(self, method: str, status_code: int) -> None:
        """
        Record a received response.

        Args:
            method: HTTP method
            status_code: Received status code
        """
        if not self.enabled:
            return

        self.responses_total.labels(
            service=self.service_name,
            method=method,
            status=str(status_code),
        ).inc()

    def record_exhausted(self, method: str) -> None:
        if not self.enabled:
            return

        self.exhausted_total.labels(
            service=self.service_name,
            method=method,
        ).inc()

    @contextmanager
    def time_request(self, method: str):
        """
        Context manager to time a driver call.

        Example:
            with metrics.time_request("GET"):
                driver.do_get(url)
        """
        if not self.enabled:
            yield
            return

        start_time = time.time()
        try:
            yield
        finally:
            duration = time.time() - start_time
            self.request_duration_seconds.labels(
                service=self.service_name,
                method=method,
            ).observe(duration)
