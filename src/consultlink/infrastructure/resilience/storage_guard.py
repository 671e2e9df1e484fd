"""Retry plus circuit breaker around storage-bound handler work."""

from typing import Any, Awaitable, Callable, Optional

from ...domain.exceptions import (
    ActiveConnectionConflictError,
    ConnectionRuleViolation,
    NotFoundError,
    ValidationError,
)
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from .retry import RetryConfig, retry_with_backoff

# Outcomes of a healthy store; they never trip the breaker.
DOMAIN_OUTCOMES = (
    ValidationError,
    NotFoundError,
    ConnectionRuleViolation,
    ActiveConnectionConflictError,
)


class StorageGuard:
    """
    Runs a coroutine function under retry and a shared circuit breaker.

    The breaker sits inside the retry loop, so an open circuit fails fast
    instead of being retried. Only StorageUnavailableError is retried, and
    only through call(); writes go through call_once() because a commit may
    land before the failure is reported.
    """

    def __init__(
        self,
        retry_config: Optional[RetryConfig] = None,
        breaker_config: Optional[CircuitBreakerConfig] = None,
        name: str = "connection_store",
    ):
        self.retry_config = retry_config or RetryConfig()
        breaker_config = breaker_config or CircuitBreakerConfig()
        breaker_config.exclude_exceptions = tuple(
            set(breaker_config.exclude_exceptions) | set(DOMAIN_OUTCOMES)
        )
        self.breaker = CircuitBreaker(name=name, config=breaker_config)

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Await func(*args, **kwargs) under the guard.

        Raises:
            StorageUnavailableError: Storage still failing after retries
            CircuitBreakerError: Circuit is open
        """
        protected = self.breaker.protect(func)

        async def attempt():
            return await protected(*args, **kwargs)

        attempt.__name__ = getattr(func, "__name__", "storage_call")
        return await retry_with_backoff(self.retry_config)(attempt)()

    async def call_once(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Await func(*args, **kwargs) behind the breaker, without retrying.

        For non-idempotent writes: a timeout after the commit would make a
        retry report the caller's own write as a conflict.

        Raises:
            StorageUnavailableError: Storage failed
            CircuitBreakerError: Circuit is open
        """
        return await self.breaker.protect(func)(*args, **kwargs)
