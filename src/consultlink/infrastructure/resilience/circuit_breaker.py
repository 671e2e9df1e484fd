"""
Circuit Breaker pattern implementation.

Stops hitting the store after repeated failures, then lets a few test
calls through once the cool-down has passed.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, Callable, Optional

from ..logging import ConsultLinkLogger, logging_context


class CircuitBreakerState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation, requests pass through
    OPEN = "open"          # Failure threshold exceeded, requests blocked
    HALF_OPEN = "half_open"  # Testing if storage recovered


@dataclass
class CircuitBreakerConfig:
    """
    Configuration for circuit breaker behavior.

    Attributes:
        failure_threshold: Number of failures before opening circuit
        success_threshold: Number of successes in HALF_OPEN to close circuit
        timeout: Seconds to wait before trying HALF_OPEN (recovery test)
        exclude_exceptions: Exceptions that don't count as failures
    """
    failure_threshold: int = 5
    success_threshold: int = 2
    timeout: float = 30.0  # seconds
    exclude_exceptions: tuple = (ValueError, TypeError)


class CircuitBreakerError(Exception):
    """Raised when circuit breaker is open and blocking requests."""

    code = "storage_unavailable"
    retryable = True


class CircuitBreaker:
    """
    Circuit breaker guarding calls into storage.

    Tracks failures and opens the circuit when the failure threshold is
    reached. After a timeout it enters HALF_OPEN and lets calls through
    to test whether storage has recovered.

    Example:
        >>> breaker = CircuitBreaker(name="connection_store")
        >>>
        >>> @breaker.protect
        ... async def load(connection_id):
        ...     return await repository.find_by_id(connection_id)
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize circuit breaker.

        Args:
            name: Name of the protected resource (for logging)
            config: Circuit breaker configuration
            clock: Monotonic time source in seconds
        """
        self.name = name
        self.config = config if config else CircuitBreakerConfig()
        self._clock = clock

        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[float] = None
        self._lock = threading.Lock()

        self.logger = ConsultLinkLogger.get_instance()

    @property
    def state(self) -> CircuitBreakerState:
        """Get current circuit breaker state."""
        with self._lock:
            # Cool-down elapsed: let test calls through
            if (self._state == CircuitBreakerState.OPEN and
                    self._last_failure_time is not None and
                    self._clock() - self._last_failure_time >= self.config.timeout):
                self._state = CircuitBreakerState.HALF_OPEN
                self._success_count = 0

                with logging_context(operation="circuit_breaker_half_open"):
                    self.logger.info(
                        f"Circuit breaker entering HALF_OPEN state: {self.name}",
                        extra={
                            "circuit_breaker": self.name,
                            "state": self._state.value,
                            "timeout_seconds": self.config.timeout
                        }
                    )

            return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def _record_success(self):
        with self._lock:
            self._failure_count = 0

            if self._state == CircuitBreakerState.HALF_OPEN:
                self._success_count += 1

                if self._success_count >= self.config.success_threshold:
                    # Storage recovered, close the circuit
                    self._state = CircuitBreakerState.CLOSED
                    self._success_count = 0

                    with logging_context(operation="circuit_breaker_closed"):
                        self.logger.info(
                            f"Circuit breaker closed (recovered): {self.name}",
                            extra={
                                "circuit_breaker": self.name,
                                "state": self._state.value,
                                "success_threshold": self.config.success_threshold
                            }
                        )

    def _record_failure(self, exception: Exception):
        # Domain outcomes are answers, not storage failures
        if isinstance(exception, self.config.exclude_exceptions):
            self._record_success()
            return

        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            # A failed test call reopens immediately
            if self._state == CircuitBreakerState.HALF_OPEN:
                self._state = CircuitBreakerState.OPEN
                self._failure_count = 0

                with logging_context(operation="circuit_breaker_reopened"):
                    self.logger.warning(
                        f"Circuit breaker reopened (recovery failed): {self.name}",
                        extra={
                            "circuit_breaker": self.name,
                            "state": self._state.value,
                            "error_type": type(exception).__name__
                        }
                    )

            # In CLOSED, open once the threshold is reached
            elif (self._state == CircuitBreakerState.CLOSED and
                  self._failure_count >= self.config.failure_threshold):
                self._state = CircuitBreakerState.OPEN

                with logging_context(operation="circuit_breaker_opened"):
                    self.logger.error(
                        f"Circuit breaker opened (failure threshold exceeded): {self.name}",
                        extra={
                            "circuit_breaker": self.name,
                            "state": self._state.value,
                            "failure_count": self._failure_count,
                            "failure_threshold": self.config.failure_threshold,
                            "timeout_seconds": self.config.timeout
                        }
                    )

    def protect(self, func: Callable) -> Callable:
        """
        Decorator to protect an async function with circuit breaker.

        Args:
            func: Async function to protect

        Returns:
            Protected function

        Raises:
            CircuitBreakerError: If circuit is open
        """
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            # Check circuit state
            current_state = self.state

            if current_state == CircuitBreakerState.OPEN:
                with logging_context(operation="circuit_breaker_blocked"):
                    self.logger.warning(
                        f"Circuit breaker blocked call: {self.name}",
                        extra={
                            "circuit_breaker": self.name,
                            "state": current_state.value,
                            "function": func.__name__
                        }
                    )

                raise CircuitBreakerError(
                    f"Circuit breaker is OPEN for {self.name}. "
                    f"Storage unavailable. Will retry after {self.config.timeout}s."
                )

            # Execute the function
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                self._record_failure(e)
                raise

            self._record_success()
            return result

        return wrapper

    def reset(self):
        """Manually reset the circuit breaker to CLOSED state."""
        with self._lock:
            self._state = CircuitBreakerState.CLOSED
            self._failure_count = 0
            self._success_count = 0
            self._last_failure_time = None

            with logging_context(operation="circuit_breaker_reset"):
                self.logger.info(
                    f"Circuit breaker manually reset: {self.name}",
                    extra={
                        "circuit_breaker": self.name,
                        "state": self._state.value
                    }
                )
