"""
httpdriver - Testing Utilities

This module provides mocks, certificate generators and fixtures for testing
code built on httpdriver.

Export all public testing utilities for easy import:
    from httpdriver.testing import MockTransport, mock_transport

"""

from .mocks import (
    CertificateFiles,
    MockReply,
    MockTransport,
    SleepRecorder,
    generate_ca,
    generate_client_certificate,
    generate_key_material,
    write_certificate_files,
)

from .fixtures import (
    cert_files,
    driver,
    driver_config,
    mock_transport,
    no_sleep,
)

__all__ = [
    # Mocks
    "MockReply",
    "MockTransport",
    "SleepRecorder",

    # Certificates
    "CertificateFiles",
    "generate_ca",
    "generate_client_certificate",
    "generate_key_material",
    "write_certificate_files",

    # Fixtures
    "cert_files",
    "driver",
    "driver_config",
    "mock_transport",
    "no_sleep",
]
