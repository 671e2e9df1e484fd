"""
Tests for retry logic with exponential backoff.
"""

import pytest
import time

from consultlink.domain.exceptions import DuplicatePendingError, StorageUnavailableError
from consultlink.infrastructure.resilience import retry_with_backoff, RetryConfig


class TestRetryLogic:
    """Test suite for retry logic."""

    @pytest.mark.asyncio
    async def test_successful_first_attempt(self):
        """Test that successful calls don't retry."""
        call_count = 0

        @retry_with_backoff(RetryConfig(max_retries=3))
        async def successful_call():
            nonlocal call_count
            call_count += 1
            return "success"

        result = await successful_call()

        assert result == "success"
        assert call_count == 1, "Should only call once for successful operation"

    @pytest.mark.asyncio
    async def test_retry_on_storage_unavailable(self):
        """Test retry on transient storage errors."""
        call_count = 0

        @retry_with_backoff(RetryConfig(max_retries=3, initial_delay=0.01))
        async def failing_then_success():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise StorageUnavailableError("Connection store is unavailable")
            return "success after retries"

        result = await failing_then_success()

        assert result == "success after retries"
        assert call_count == 3, "Should retry twice before succeeding"

    @pytest.mark.asyncio
    async def test_exhausted_retries(self):
        """Test that all retries are exhausted before raising."""
        call_count = 0

        @retry_with_backoff(RetryConfig(max_retries=2, initial_delay=0.01))
        async def always_fails():
            nonlocal call_count
            call_count += 1
            raise StorageUnavailableError("Always fails")

        with pytest.raises(StorageUnavailableError):
            await always_fails()

        assert call_count == 3, "Should try once + 2 retries"

    @pytest.mark.asyncio
    async def test_domain_errors_not_retried(self):
        """Test that rule violations surface on the first attempt."""
        call_count = 0

        @retry_with_backoff(RetryConfig(max_retries=3, initial_delay=0.01))
        async def duplicate():
            nonlocal call_count
            call_count += 1
            raise DuplicatePendingError("Connection request already pending")

        with pytest.raises(DuplicatePendingError):
            await duplicate()

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_unlisted_exceptions_not_retried(self):
        """Test that only configured exception types are retried."""
        call_count = 0

        @retry_with_backoff(RetryConfig(max_retries=3, initial_delay=0.01))
        async def broken():
            nonlocal call_count
            call_count += 1
            raise KeyError("bug")

        with pytest.raises(KeyError):
            await broken()

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_custom_retryable_exceptions(self):
        """Test that retryable_exceptions can be widened."""
        call_count = 0

        @retry_with_backoff(RetryConfig(
            max_retries=2,
            initial_delay=0.01,
            retryable_exceptions=(ConnectionError, StorageUnavailableError),
        ))
        async def flaky():
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                raise ConnectionError("reset by peer")
            return "ok"

        assert await flaky() == "ok"
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_exponential_backoff_timing(self):
        """Test that backoff delays increase exponentially."""
        call_times = []

        @retry_with_backoff(RetryConfig(
            max_retries=3,
            initial_delay=0.05,
            exponential_base=2.0,
            jitter=0.0
        ))
        async def failing_call():
            call_times.append(time.monotonic())
            raise StorageUnavailableError("fail")

        with pytest.raises(StorageUnavailableError):
            await failing_call()

        assert len(call_times) == 4
        gaps = [b - a for a, b in zip(call_times, call_times[1:])]
        assert gaps[0] >= 0.045
        assert gaps[1] >= 0.095
        assert gaps[2] >= 0.195

    @pytest.mark.asyncio
    async def test_preserves_function_name(self):
        """Test that the decorator keeps the wrapped function's metadata."""
        @retry_with_backoff()
        async def load_connection():
            return 1

        assert load_connection.__name__ == "load_connection"


class TestRetryConfig:
    """Test suite for RetryConfig."""

    def test_defaults(self):
        """Test default retry settings."""
        config = RetryConfig()

        assert config.max_retries == 3
        assert config.initial_delay == 0.2
        assert config.max_delay == 5.0
        assert config.retryable_exceptions == (StorageUnavailableError,)

    def test_delay_grows_and_caps(self):
        """Test exponential growth bounded by max_delay."""
        config = RetryConfig(initial_delay=1.0, max_delay=5.0, exponential_base=2.0, jitter=0.0)

        assert [config.delay_for(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]

    def test_jitter_bounds(self):
        """Test that jitter only ever adds up to the configured fraction."""
        config = RetryConfig(initial_delay=1.0, jitter=0.5)

        for _ in range(50):
            assert 1.0 <= config.delay_for(1) <= 1.5
