"""
Custom exceptions for httpdriver.

All exceptions inherit from HttpDriverError for easy catching of driver-specific
errors. Construction problems surface as ConfigurationError before any socket
is opened; transport problems surface as TransportError once the retry budget
has been spent.
"""

from typing import Optional


class HttpDriverError(Exception):
    """
    Base exception for all httpdriver errors.

    All driver exceptions inherit from this class, allowing callers to catch
    any driver-specific error with a single exception handler.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(HttpDriverError):
    """
    Raised when a driver cannot be built from its configuration.

    This includes:
    - Unreadable or malformed truststore, certificate or private key files
    - Wrong truststore or key password
    - Certificate and private key that do not belong together
    - Unrecognized TLS algorithm name
    - Invalid YAML/environment configuration

    Note:
        Configuration errors are raised synchronously while building, before
        any network activity. A driver that failed to build must not be used.
    """

    pass


class TransportError(HttpDriverError):
    """
    Raised when a request could not obtain an HTTP response.

    This includes:
    - Connection refused or reset
    - Connect/read timeouts
    - TLS handshake failures
    - The transport returning no response at all

    A received HTTP response of any status is never a TransportError.
    """

    pass


class PoolExhaustedError(TransportError):
    """
    Raised when no connection slot for a destination became free in time.

    This is a TransportError, so it is retried like any other transport
    failure.
    """

    def __init__(self, route: str, max_connections: int):
        super().__init__(
            f"Connection pool exhausted for route {route}",
            details={"route": route, "max_connections": max_connections},
        )
        self.route = route
        self.max_connections = max_connections


class DriverClosedError(HttpDriverError):
    """
    Raised when a request is issued through a closed driver.

    Closing is terminal; the driver never reconnects on its own.
    """

    pass


class TransportNotAttachedError(HttpDriverError):
    """
    Raised when a request is issued before any transport is attached.

    A driver created without a transport, or detached with
    set_transport(None), is not closed; attaching a transport makes it usable.
    """

    pass
