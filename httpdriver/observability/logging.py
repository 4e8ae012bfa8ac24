"""
Structured JSON logging for httpdriver.

Provides JSON-formatted logs carrying the service name and any extra fields
attached to a record.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from httpdriver.config import LoggingConfig


_RESERVED_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    ]
)


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in JSON format with standard fields:
    - timestamp: ISO 8601 timestamp
    - level: Log level
    - logger: Logger name
    - message: Log message
    - service: Name of the calling service
    - extra: Additional fields from log record
    """

    def __init__(self, service_name: str, *args, **kwargs):
        """
        Initialize JSON formatter.

        Args:
            service_name: Name of the service (included in all logs)
        """
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


def setup_logging(
    service_name: str = "httpdriver",
    level: str = "INFO",
    json_format: bool = True,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Setup logging for the httpdriver package.

    Args:
        service_name: Name of the calling service
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON formatter (recommended for production)
        stream: Output stream (default: stdout)

    Returns:
        Configured package logger
    """
    logger = logging.getLogger("httpdriver")
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)

    if json_format:
        formatter: logging.Formatter = JSONFormatter(service_name=service_name)
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


def configure_from_settings(
    config: LoggingConfig,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Apply a LoggingConfig section."""
    return setup_logging(
        service_name=config.service_name,
        level=config.level,
        json_format=config.format == "json",
        stream=stream,
    )
