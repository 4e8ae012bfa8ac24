"""
Retry logic with a fixed interval for httpdriver.

Each request gets a bounded number of attempts. Only transport-level failures
are retried; any received HTTP response, whatever its status, ends the loop.
The pause between attempts blocks the calling thread only.
"""

import logging
import ssl
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

import httpx

from httpdriver.config import (
    DEFAULT_MAX_RETRY_ATTEMPTS,
    DEFAULT_RETRY_INTERVAL_MS,
    DriverConfig,
)
from httpdriver.exceptions import TransportError


logger = logging.getLogger(__name__)

T = TypeVar("T")


RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    httpx.TransportError,
    ssl.SSLError,
    OSError,
    TransportError,
)


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Total attempts including the first (default: 2)
        interval_ms: Pause between attempts in milliseconds (default: 1000)
        retryable_exceptions: Exception types treated as transport failures
    """
    max_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS
    interval_ms: int = DEFAULT_RETRY_INTERVAL_MS
    retryable_exceptions: tuple[type[BaseException], ...] = RETRYABLE_EXCEPTIONS

    def __post_init__(self) -> None:
        """Validate retry configuration."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval_ms < 0:
            raise ValueError("interval_ms must be non-negative")

    @classmethod
    def from_driver_config(cls, config: DriverConfig) -> "RetryConfig":
        """Derive retry settings from a driver configuration."""
        return cls(
            max_attempts=config.max_retry_attempts,
            interval_ms=config.retry_interval_ms,
        )

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0


class AttemptStatus(str, Enum):
    """Outcome of one attempt, or of the whole execution."""

    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class ExecutionResult(Generic[T]):
    """Tagged result of running an operation under a retry policy.

    Attributes:
        status: SUCCESS or EXHAUSTED
        value: The operation's result when status is SUCCESS
        error: The last failure when status is EXHAUSTED
        attempts: Number of attempts made
    """
    status: AttemptStatus
    value: Optional[T] = None
    error: Optional[BaseException] = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == AttemptStatus.SUCCESS

    def unwrap(self) -> T:
        """Return the value, or raise TransportError if attempts ran out.

        Raises:
            TransportError: Chained to the last underlying failure
        """
        if self.status == AttemptStatus.SUCCESS:
            return self.value

        raise TransportError(
            f"Request failed after {self.attempts} attempts: {self.error}",
            details={"attempts": self.attempts},
        ) from self.error


class NoResponseError(TransportError):
    """Raised internally when an attempt produced no response object."""

    def __init__(self) -> None:
        super().__init__("Transport returned no response")


class RetryPolicy:
    """Implements a bounded, fixed-interval retry loop.

    Example:
        policy = RetryPolicy(RetryConfig(max_attempts=3, interval_ms=500))
        result = policy.execute(lambda: transport.execute(request))
        response = result.unwrap()
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize retry policy with configuration.

        Args:
            config: RetryConfig instance with retry parameters
            sleep: Blocking sleep function, replaceable in tests
        """
        self._config = config or RetryConfig()
        self._sleep = sleep

    @property
    def config(self) -> RetryConfig:
        return self._config

    def _classify(self, func: Callable[[], Optional[T]]) -> tuple[AttemptStatus, Any]:
        """Run one attempt and classify its outcome.

        Non-retryable exceptions propagate to the caller unchanged.
        """
        try:
            value = func()
        except self._config.retryable_exceptions as e:
            return AttemptStatus.RETRYABLE_FAILURE, e

        if value is None:
            return AttemptStatus.RETRYABLE_FAILURE, NoResponseError()

        return AttemptStatus.SUCCESS, value

    def execute(
        self,
        func: Callable[[], Optional[T]],
        on_retry: Callable[[int, BaseException], None] | None = None,
    ) -> ExecutionResult[T]:
        """Execute an operation with retry logic.

        Args:
            func: Zero-argument callable performing one attempt
            on_retry: Called with (attempt number, failure) before each pause

        Returns:
            ExecutionResult tagged SUCCESS or EXHAUSTED
        """
        max_attempts = self._config.max_attempts
        last_error: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            logger.debug(f"Executing attempt {attempt}/{max_attempts}")

            status, outcome = self._classify(func)

            if status == AttemptStatus.SUCCESS:
                if attempt > 1:
                    logger.info(f"Request succeeded on attempt {attempt}/{max_attempts}")
                return ExecutionResult(
                    status=AttemptStatus.SUCCESS,
                    value=outcome,
                    attempts=attempt,
                )

            last_error = outcome

            if attempt == max_attempts:
                break

            logger.info(
                f"Attempt {attempt}/{max_attempts} failed with "
                f"{type(outcome).__name__}: {outcome}. "
                f"Retrying in {self._config.interval_ms}ms"
            )
            if on_retry is not None:
                on_retry(attempt, outcome)
            self._sleep(self._config.interval_seconds)

        logger.error(
            f"All {max_attempts} attempts failed. "
            f"Last failure: {type(last_error).__name__}: {last_error}"
        )
        return ExecutionResult(
            status=AttemptStatus.EXHAUSTED,
            error=last_error,
            attempts=max_attempts,
        )
