"""
httpdriver

A blocking HTTP client driver for calling peer services over mutually
authenticated TLS, with connection pooling and bounded retry.

- Client certificate and key presented on every handshake
- Server certificates validated against a configured truststore
- Per-destination and total connection limits
- Transport failures retried a fixed number of times at a fixed interval
- Received responses, of any status, never retried

Example:
    from httpdriver import DriverConfig, build_driver

    config = DriverConfig(
        truststore_path="/etc/certs/ca.pem",
        cert_path="/etc/certs/service.crt",
        key_path="/etc/certs/service.key",
    )
    with build_driver(config) as driver:
        body = driver.do_get("https://peer.example.com/status")
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

from httpdriver.config import DriverConfig, LoggingConfig, Settings
from httpdriver.driver import Driver, DriverState, build_driver
from httpdriver.exceptions import (
    ConfigurationError,
    DriverClosedError,
    HttpDriverError,
    PoolExhaustedError,
    TransportError,
    TransportNotAttachedError,
)
from httpdriver.identity import KeyMaterial, create_ssl_context
from httpdriver.response import DriverResponse

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "DriverConfig",
    "LoggingConfig",
    "Settings",
    # Driver
    "Driver",
    "DriverState",
    "DriverResponse",
    "build_driver",
    # Identity
    "KeyMaterial",
    "create_ssl_context",
    # Exceptions
    "HttpDriverError",
    "ConfigurationError",
    "TransportError",
    "PoolExhaustedError",
    "DriverClosedError",
    "TransportNotAttachedError",
]
