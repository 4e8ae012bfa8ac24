"""
httpdriver - Transport Layer

This module provides the transport components the driver is built on.

Components:
    - Transport: Protocol every transport implements (execute + close)
    - PooledTransport: httpx-backed pool with per-route and total limits
    - RetryPolicy: Bounded, fixed-interval retry of transport failures

Example:
    from httpdriver.transport import PooledTransport, PoolConfig, RetryPolicy

    transport = PooledTransport(ssl_context, PoolConfig(max_connections_per_route=10))
    policy = RetryPolicy(RetryConfig(max_attempts=3, interval_ms=200))
    response = policy.execute(lambda: transport.execute(request)).unwrap()
"""

from .base import Transport

from .pool import (
    PooledTransport,
    PoolConfig,
    route_key,
)

from .retry import (
    AttemptStatus,
    ExecutionResult,
    NoResponseError,
    RETRYABLE_EXCEPTIONS,
    RetryConfig,
    RetryPolicy,
)

__all__ = [
    # Base
    "Transport",

    # Pool
    "PooledTransport",
    "PoolConfig",
    "route_key",

    # Retry
    "AttemptStatus",
    "ExecutionResult",
    "NoResponseError",
    "RETRYABLE_EXCEPTIONS",
    "RetryConfig",
    "RetryPolicy",
]
