"""
Pytest fixtures for httpdriver testing.

This module provides reusable pytest fixtures for testing code that uses the
driver. Import these fixtures in your conftest.py or test files.
"""

import pytest

from httpdriver.config import DriverConfig
from httpdriver.driver import Driver
from httpdriver.transport.retry import RetryConfig, RetryPolicy
from .mocks import (
    MockTransport,
    SleepRecorder,
    write_certificate_files,
)


@pytest.fixture
def mock_transport():
    """
    Provides a mock transport for testing.

    Returns:
        MockTransport that answers 404 until responses are queued

    Example:
        def test_call(mock_transport):
            mock_transport.add_response(200, b"ok")
    """
    return MockTransport()


@pytest.fixture
def no_sleep():
    """
    Provides a sleep stand-in that records requested pauses.

    Returns:
        SleepRecorder
    """
    return SleepRecorder()


@pytest.fixture
def driver_config():
    """
    Provides a driver configuration without certificate material.

    Returns:
        DriverConfig with default pool, retry and timeout settings
    """
    return DriverConfig()


@pytest.fixture
def driver(driver_config, mock_transport, no_sleep):
    """
    Provides a driver wired to the mock transport.

    Retry pauses are recorded by no_sleep instead of blocking.

    Returns:
        Driver
    """
    policy = RetryPolicy(
        RetryConfig.from_driver_config(driver_config),
        sleep=no_sleep,
    )
    instance = Driver(
        config=driver_config,
        transport=mock_transport,
        retry_policy=policy,
    )
    yield instance
    instance.close()


@pytest.fixture
def cert_files(tmp_path):
    """
    Provides generated CA truststores and a client cert/key on disk.

    Returns:
        CertificateFiles
    """
    return write_certificate_files(tmp_path)
