"""
Transport abstraction for httpdriver.

The driver talks to the network only through a Transport: execute one prepared
request and return the response, or fail. Production code uses PooledTransport;
tests substitute MockTransport or any object with the same two methods.
"""

from typing import Optional, Protocol, runtime_checkable

import httpx


@runtime_checkable
class Transport(Protocol):
    """Protocol for request transports."""

    def execute(self, request: httpx.Request) -> Optional[httpx.Response]:
        """Send one request and return its response.

        The returned response must have its body read. Returning None is
        treated by the driver exactly like a transport failure.
        """
        ...

    def close(self) -> None:
        """Release all connections. Must be safe to call more than once."""
        ...
