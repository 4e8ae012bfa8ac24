"""
Shared pytest configuration for httpdriver tests.

This module configures pytest and imports all fixtures for use in tests.
"""

import logging
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Import all fixtures from httpdriver.testing
from httpdriver.testing import (
    cert_files,
    driver,
    driver_config,
    mock_transport,
    no_sleep,
)

# Re-export fixtures so they're available to all tests
__all__ = [
    "cert_files",
    "driver",
    "driver_config",
    "mock_transport",
    "no_sleep",
]


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers",
        "tls: mark test as building real TLS contexts"
    )


@pytest.fixture(autouse=True)
def reset_package_logger():
    """
    Undo handlers installed by setup_logging between tests.

    The CLI configures the package logger; without this, handlers bound to a
    closed capture stream would leak into later tests.
    """
    logger = logging.getLogger("httpdriver")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture
def sample_urls():
    """
    Provides common URLs for testing.

    Returns:
        Dict of named URLs
    """
    return {
        "page": "https://localhost:4443/sample.html",
        "post": "https://localhost:4443/sample",
        "other_host": "https://peer.example.test:8443/api",
    }


@pytest.fixture
def xml_body():
    """
    Provides a sample POST body.

    Returns:
        str
    """
    return "<?xml version='1.0'?><methodCall><methodName>test.test</methodName></methodCall>"
