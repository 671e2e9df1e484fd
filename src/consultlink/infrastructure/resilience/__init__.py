"""Resilience infrastructure for ConsultLink."""

from .retry import retry_with_backoff, RetryConfig
from .circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerState,
    CircuitBreakerError
)
from .storage_guard import StorageGuard

__all__ = [
    "retry_with_backoff",
    "RetryConfig",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    "CircuitBreakerError",
    "StorageGuard",
]
