"""
Connection pooling for httpdriver.

This module provides a PooledTransport that sends requests through a single
shared httpx.Client, bounded by a total connection limit and a per-destination
connection limit.
"""

import logging
import ssl
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from httpdriver.config import DriverConfig
from httpdriver.exceptions import PoolExhaustedError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolConfig:
    """Configuration for the connection pool.

    Attributes:
        max_connections_per_route: Maximum connections per destination (default: 20)
        max_total_connections: Maximum connections overall (default: 30)
        connect_timeout: Seconds to establish a connection (default: 5.0)
        read_timeout: Seconds to wait for response data (default: 5.0)
    """
    max_connections_per_route: int = 20
    max_total_connections: int = 30
    connect_timeout: float = 5.0
    read_timeout: float = 5.0

    def __post_init__(self) -> None:
        """Validate pool configuration."""
        if self.max_connections_per_route <= 0:
            raise ValueError("max_connections_per_route must be positive")
        if self.max_total_connections < self.max_connections_per_route:
            raise ValueError(
                "max_total_connections must be >= max_connections_per_route"
            )
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if self.read_timeout <= 0:
            raise ValueError("read_timeout must be positive")

    @classmethod
    def from_driver_config(cls, config: DriverConfig) -> "PoolConfig":
        """Derive pool settings from a driver configuration."""
        return cls(
            max_connections_per_route=config.max_pool_per_route,
            max_total_connections=config.max_pool_total,
            connect_timeout=config.connect_timeout_ms / 1000.0,
            read_timeout=config.read_timeout_ms / 1000.0,
        )

    @property
    def timeout(self) -> httpx.Timeout:
        """httpx timeout derived from the connect/read timeouts."""
        return httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.read_timeout,
            pool=self.connect_timeout,
        )

    @property
    def limits(self) -> httpx.Limits:
        """httpx limits enforcing the total connection cap."""
        return httpx.Limits(
            max_connections=self.max_total_connections,
            max_keepalive_connections=self.max_total_connections,
        )


def route_key(url: httpx.URL) -> str:
    """Identify the destination a request is sent to."""
    port = url.port
    if port is None:
        port = 443 if url.scheme == "https" else 80
    return f"{url.scheme}://{url.host}:{port}"


class PooledTransport:
    """Thread-safe pooled transport over httpx.Client.

    The total cap is enforced by httpx's own pool. The per-route cap is
    enforced here with one bounded semaphore per destination; a caller that
    cannot get a slot within the connect timeout gets PoolExhaustedError.

    Example:
        transport = PooledTransport(ssl_context, PoolConfig())
        response = transport.execute(httpx.Request("GET", "https://peer/api"))
        transport.close()
    """

    def __init__(
        self,
        ssl_context: Optional[ssl.SSLContext],
        config: PoolConfig | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the pooled transport.

        Args:
            ssl_context: Context used for every TLS handshake
            config: Pool configuration
            client: Pre-built client (tests pass one backed by httpx.MockTransport)
        """
        self._config = config or PoolConfig()
        self._client = client or httpx.Client(
            verify=ssl_context if ssl_context is not None else True,
            timeout=self._config.timeout,
            limits=self._config.limits,
            follow_redirects=False,
        )

        self._routes_lock = threading.Lock()
        # Entries exist only while some caller holds or waits for a route slot
        self._route_slots: dict[str, threading.BoundedSemaphore] = {}
        self._route_users: dict[str, int] = defaultdict(int)
        self._in_flight: dict[str, int] = defaultdict(int)
        self._closed = False

        # Metrics
        self._total_requests = 0

        logger.info(
            f"PooledTransport initialized (max per route: "
            f"{self._config.max_connections_per_route}, "
            f"max total: {self._config.max_total_connections})"
        )

    @property
    def config(self) -> PoolConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    def _slot_for(self, route: str) -> threading.BoundedSemaphore:
        """Register as a user of the route and return its semaphore.

        Every call must be paired with _release_route.
        """
        with self._routes_lock:
            self._route_users[route] += 1
            slot = self._route_slots.get(route)
            if slot is None:
                slot = threading.BoundedSemaphore(
                    self._config.max_connections_per_route
                )
                self._route_slots[route] = slot
            return slot

    def _release_route(self, route: str) -> None:
        with self._routes_lock:
            self._route_users[route] -= 1
            if self._route_users[route] == 0:
                del self._route_users[route]
                self._route_slots.pop(route, None)
                self._in_flight.pop(route, None)

    def execute(self, request: httpx.Request) -> httpx.Response:
        """Send a request through the pool.

        The response body is read before the route slot is released, so the
        underlying connection is back in the pool when this returns.

        Args:
            request: Prepared request

        Returns:
            Response with its body loaded

        Raises:
            PoolExhaustedError: If no slot for the route became free in time
            httpx.TransportError: On connection, TLS or timeout failures
        """
        route = route_key(request.url)
        slot = self._slot_for(route)

        try:
            if not slot.acquire(timeout=self._config.connect_timeout):
                logger.warning(f"No free connection slot for {route}")
                raise PoolExhaustedError(
                    route, self._config.max_connections_per_route
                )

            with self._routes_lock:
                self._in_flight[route] += 1
                self._total_requests += 1

            try:
                response = self._client.send(request)
                try:
                    response.read()
                finally:
                    response.close()
                return response
            finally:
                with self._routes_lock:
                    self._in_flight[route] -= 1
                slot.release()
        finally:
            self._release_route(route)

    def close(self) -> None:
        """Close the client and every pooled connection."""
        if self._closed:
            return
        self._closed = True
        self._client.close()
        logger.debug("PooledTransport closed")

    def get_stats(self) -> dict[str, Any]:
        """Get pool statistics.

        Returns:
            Dictionary of pool statistics
        """
        with self._routes_lock:
            in_flight = {
                route: count
                for route, count in self._in_flight.items()
                if count
            }
            return {
                "total_requests": self._total_requests,
                "active_routes": len(self._route_slots),
                "in_flight": in_flight,
                "max_connections_per_route": self._config.max_connections_per_route,
                "max_total_connections": self._config.max_total_connections,
                "closed": self._closed,
            }
