"""
Retry logic with exponential backoff.

Provides a decorator-based retry mechanism for transient storage
failures. Only exceptions listed in ``retryable_exceptions`` are retried;
everything else (domain rule violations in particular) is raised on the
first attempt.
"""

import asyncio
import random
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

from ...domain.exceptions import StorageUnavailableError
from ..logging import ConsultLinkLogger, logging_context


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds before first retry
        max_delay: Maximum delay in seconds between retries
        exponential_base: Base for exponential backoff (typically 2)
        jitter: Add random jitter to prevent thundering herd (0.0 to 1.0)
        retryable_exceptions: Exception types that trigger a retry
    """
    max_retries: int = 3
    initial_delay: float = 0.2
    max_delay: float = 5.0
    exponential_base: float = 2.0
    jitter: float = 0.1
    retryable_exceptions: Tuple[Type[Exception], ...] = (StorageUnavailableError,)

    def delay_for(self, attempt: int) -> float:
        """
        Backoff before the given attempt (attempt 1 is the first retry).

        Args:
            attempt: 1-based retry number

        Returns:
            Delay in seconds, capped at max_delay before jitter
        """
        delay = min(
            self.initial_delay * (self.exponential_base ** (attempt - 1)),
            self.max_delay
        )
        if self.jitter > 0:
            delay += delay * self.jitter * random.random()
        return delay


def retry_with_backoff(config: Optional[RetryConfig] = None):
    """
    Decorator for retrying async functions with exponential backoff.

    Args:
        config: Retry configuration (uses defaults if None)

    Returns:
        Decorated function with retry logic

    Example:
        >>> @retry_with_backoff(RetryConfig(max_retries=5))
        ... async def load(connection_id):
        ...     return await repository.find_by_id(connection_id)
    """
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            logger = ConsultLinkLogger.get_instance()
            last_exception = None

            for attempt in range(config.max_retries + 1):
                if attempt > 0:
                    delay = config.delay_for(attempt)

                    with logging_context(operation="retry_backoff"):
                        logger.warning(
                            f"Retrying {func.__name__} (attempt {attempt + 1}/{config.max_retries + 1})",
                            extra={
                                "function": func.__name__,
                                "attempt": attempt + 1,
                                "max_attempts": config.max_retries + 1,
                                "delay_seconds": round(delay, 2),
                                "last_error": type(last_exception).__name__ if last_exception else None
                            }
                        )

                    await asyncio.sleep(delay)

                try:
                    result = await func(*args, **kwargs)
                except config.retryable_exceptions as e:
                    last_exception = e

                    if attempt == config.max_retries:
                        with logging_context(operation="retry_exhausted"):
                            logger.error(
                                f"All retry attempts exhausted for {func.__name__}",
                                extra={
                                    "function": func.__name__,
                                    "total_attempts": attempt + 1,
                                    "error_type": type(e).__name__,
                                    "error_message": str(e)
                                }
                            )
                        raise
                    continue

                if attempt > 0:
                    with logging_context(operation="retry_success"):
                        logger.info(
                            f"Retry successful for {func.__name__}",
                            extra={
                                "function": func.__name__,
                                "successful_attempt": attempt + 1,
                            }
                        )

                return result

            raise last_exception if last_exception else RuntimeError("Unexpected retry state")

        return wrapper
    return decorator
