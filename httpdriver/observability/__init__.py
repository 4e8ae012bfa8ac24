"""
httpdriver - Observability Layer

This module provides observability for the driver:
- Prometheus metrics collection
- Structured JSON logging
"""

from httpdriver.observability.metrics import DriverMetrics
from httpdriver.observability.logging import (
    JSONFormatter,
    configure_from_settings,
    setup_logging,
)

__all__ = [
    "DriverMetrics",
    "JSONFormatter",
    "configure_from_settings",
    "setup_logging",
]
