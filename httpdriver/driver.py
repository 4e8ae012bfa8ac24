"""
HTTP driver facade.

The Driver owns exactly one transport at a time and sends every request
through a RetryPolicy. Plain-text operations collapse any unexpected status to
an empty string; do_post_http_response returns the literal status and body.

Example:
    config = DriverConfig(
        truststore_path="/etc/certs/ca.pem",
        cert_path="/etc/certs/service.crt",
        key_path="/etc/certs/service.key",
    )
    with build_driver(config) as driver:
        body = driver.do_get("https://peer.example.com/status")
"""

import logging
import ssl
import time
from enum import Enum
from typing import Iterable, Mapping, Optional, Union

import httpx

from httpdriver.config import DriverConfig
from httpdriver.exceptions import (
    ConfigurationError,
    DriverClosedError,
    TransportNotAttachedError,
)
from httpdriver.identity.context import build_ssl_context
from httpdriver.identity.material import KeyMaterial
from httpdriver.observability.metrics import DriverMetrics
from httpdriver.response import DriverResponse
from httpdriver.transport.base import Transport
from httpdriver.transport.pool import PoolConfig, PooledTransport
from httpdriver.transport.retry import RetryConfig, RetryPolicy


logger = logging.getLogger(__name__)

FormFields = Union[Mapping[str, str], Iterable[tuple[str, str]]]

GET_SUCCESS_STATUSES = frozenset({httpx.codes.OK})
POST_SUCCESS_STATUSES = frozenset({httpx.codes.OK, httpx.codes.CREATED})


class DriverState(str, Enum):
    """Lifecycle state of a driver.

    DETACHED: no transport attached yet (or detached with set_transport(None))
    BUILT: a transport is attached and requests can be sent
    CLOSED: close() was called; terminal
    """

    DETACHED = "detached"
    BUILT = "built"
    CLOSED = "closed"


def _form_data(fields: Optional[FormFields]) -> dict[str, list[str] | str]:
    if fields is None:
        return {}
    if isinstance(fields, Mapping):
        return dict(fields)

    data: dict[str, list[str] | str] = {}
    for name, value in fields:
        data.setdefault(name, []).append(value)
    return data


class Driver:
    """Blocking HTTP client driver with bounded retry.

    Safe for concurrent requests from many threads; the pool caps are the only
    admission control. set_transport() and close() must not race in-flight
    requests.
    """

    def __init__(
        self,
        config: DriverConfig | None = None,
        transport: Transport | None = None,
        retry_policy: RetryPolicy | None = None,
        metrics: DriverMetrics | None = None,
    ) -> None:
        """Initialize driver.

        Args:
            config: Driver configuration (uses defaults if None)
            transport: Transport to send requests through
            retry_policy: Retry policy (derived from config if None)
            metrics: Metrics collector (disabled if None)
        """
        self._config = config or DriverConfig()
        self._transport = transport
        self._retry = retry_policy or RetryPolicy(
            RetryConfig.from_driver_config(self._config)
        )
        self._metrics = metrics or DriverMetrics(enabled=False)
        self._closed = False

        logger.debug(
            f"Driver built (attempts: {self._retry.config.max_attempts}, "
            f"interval: {self._retry.config.interval_ms}ms)"
        )

    @property
    def config(self) -> DriverConfig:
        return self._config

    @property
    def state(self) -> DriverState:
        if self._closed:
            return DriverState.CLOSED
        if self._transport is None:
            return DriverState.DETACHED
        return DriverState.BUILT

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    def set_transport(self, transport: Optional[Transport]) -> None:
        """Replace the transport, closing the one it replaces.

        Passing None detaches the current transport.

        Raises:
            DriverClosedError: If attaching a transport to a closed driver
        """
        if transport is not None and self._closed:
            raise DriverClosedError("Cannot attach a transport to a closed driver")

        previous = self._transport
        self._transport = transport

        if previous is not None and previous is not transport:
            previous.close()
            logger.debug("Replaced driver transport")

    def close(self) -> None:
        """Release the transport. Safe to call repeatedly or with no transport."""
        transport = self._transport
        self._transport = None
        self._closed = True

        if transport is not None:
            transport.close()
            logger.debug("Driver closed")

    def _require_transport(self) -> Transport:
        if self._closed:
            raise DriverClosedError("Driver is closed")
        if self._transport is None:
            raise TransportNotAttachedError("Driver has no transport attached")
        return self._transport

    def _execute(self, request: httpx.Request) -> httpx.Response:
        """Send a request under the retry policy.

        Raises:
            TransportError: If every attempt failed at the transport level
        """
        transport = self._require_transport()
        method = request.method

        def attempt() -> Optional[httpx.Response]:
            self._metrics.record_attempt(method)
            return transport.execute(request)

        def on_retry(attempt_number: int, error: BaseException) -> None:
            self._metrics.record_retry(method)

        logger.debug(f"Outbound {method} {request.url}")
        start_time = time.time()

        with self._metrics.time_request(method):
            result = self._retry.execute(attempt, on_retry=on_retry)

        if not result.succeeded:
            self._metrics.record_exhausted(method)

        response = result.unwrap()
        elapsed_ms = (time.time() - start_time) * 1000

        self._metrics.record_response(method, response.status_code)
        logger.debug(
            f"Response {response.status_code} for {method} {request.url} "
            f"({elapsed_ms:.2f}ms, attempts: {result.attempts})"
        )
        return response

    def _body_if_success(
        self,
        response: httpx.Response,
        request: httpx.Request,
        accepted: frozenset[int],
    ) -> str:
        if response.status_code in accepted:
            return response.text

        logger.warning(
            f"{request.method} {request.url} returned status "
            f"{response.status_code}; returning empty body"
        )
        return ""

    def _post_request(
        self,
        target: Union[str, httpx.URL, httpx.Request],
        fields: Optional[FormFields],
        headers: Optional[Mapping[str, str]],
    ) -> httpx.Request:
        if isinstance(target, httpx.Request):
            if fields is not None or headers is not None:
                raise ValueError(
                    "fields and headers cannot be combined with a prepared request"
                )
            if target.method != "POST":
                raise ValueError(f"Expected a POST request, got {target.method}")
            return target

        return httpx.Request(
            "POST",
            target,
            data=_form_data(fields),
            headers=headers,
        )

    def do_get(
        self,
        url: Union[str, httpx.URL],
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Send a GET request.

        Args:
            url: Request URL
            headers: Optional request headers

        Returns:
            The body text on 200 OK, otherwise an empty string

        Raises:
            TransportError: If every attempt failed at the transport level
            DriverClosedError: If the driver is closed
            TransportNotAttachedError: If no transport is attached
        """
        request = httpx.Request("GET", url, headers=headers)
        response = self._execute(request)
        return self._body_if_success(response, request, GET_SUCCESS_STATUSES)

    def do_post(
        self,
        target: Union[str, httpx.URL, httpx.Request],
        fields: Optional[FormFields] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Send a POST request.

        Either pass a URL with form fields (sent URL-encoded), or a prepared
        httpx.Request carrying its own body.

        Args:
            target: Request URL or prepared POST request
            fields: Form fields as a mapping or (name, value) pairs
            headers: Optional request headers (URL form only)

        Returns:
            The body text on 200 OK or 201 Created, otherwise an empty string

        Raises:
            TransportError: If every attempt failed at the transport level
            DriverClosedError: If the driver is closed
            TransportNotAttachedError: If no transport is attached
            ValueError: If a prepared request is not a POST
        """
        request = self._post_request(target, fields, headers)
        response = self._execute(request)
        return self._body_if_success(response, request, POST_SUCCESS_STATUSES)

    def do_post_http_response(
        self,
        target: Union[str, httpx.URL, httpx.Request],
        fields: Optional[FormFields] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> DriverResponse:
        """Send a POST request and return the literal status and body.

        Every received response is returned, success or error.

        Raises:
            TransportError: If every attempt failed at the transport level
            DriverClosedError: If the driver is closed
            TransportNotAttachedError: If no transport is attached
        """
        request = self._post_request(target, fields, headers)
        response = self._execute(request)
        return DriverResponse.from_httpx(response)

    def __enter__(self) -> "Driver":
        self._require_transport()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def build_driver(
    config: DriverConfig | None = None,
    *,
    ssl_context: ssl.SSLContext | None = None,
    key_material: KeyMaterial | None = None,
    retry_policy: RetryPolicy | None = None,
    metrics: DriverMetrics | None = None,
) -> Driver:
    """Build a ready driver from configuration.

    The TLS context is created here, once, before any connection is opened.

    Args:
        config: Driver configuration (uses defaults if None)
        ssl_context: Ready SSL context to use instead of building one
        key_material: In-memory client identity (from a credential refresher)
        retry_policy: Retry policy (derived from config if None)
        metrics: Metrics collector

    Returns:
        Driver with a pooled transport attached

    Raises:
        ConfigurationError: If the TLS context cannot be built
    """
    config = config or DriverConfig()

    if ssl_context is None:
        ssl_context = build_ssl_context(config, key_material)
    elif key_material is not None:
        raise ConfigurationError(
            "Provide either an SSL context or key material, not both"
        )

    transport = PooledTransport(ssl_context, PoolConfig.from_driver_config(config))

    return Driver(
        config=config,
        transport=transport,
        retry_policy=retry_policy,
        metrics=metrics,
    )
