"""
Tests for Retry Module

Tests for conti/core/retry.py
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from conti.core.retry import (
    RetryConfig,
    RetryPolicy,
    calculate_delay,
    shot_retry_config,
)


class TestCalculateDelay:
    """Tests for the backoff formula."""

    def test_exponential_growth(self):
        config = shot_retry_config(max_retries=3)

        assert [calculate_delay(attempt, config) for attempt in range(3)] == [1.0, 2.0, 4.0]

    def test_capped_at_max_delay(self):
        config = shot_retry_config(max_retries=3)

        assert calculate_delay(4, config) == 10.0
        assert calculate_delay(10, config) == 10.0

    def test_custom_base_and_cap(self):
        config = RetryConfig(base_delay=0.5, max_delay=3.0, exponential_base=3.0)

        assert [calculate_delay(attempt, config) for attempt in range(4)] == [0.5, 1.5, 3.0, 3.0]


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_max_attempts(self):
        assert RetryPolicy(shot_retry_config(0)).max_attempts == 1
        assert RetryPolicy(shot_retry_config(3)).max_attempts == 4

    def test_delays_for_three_retries(self):
        assert RetryPolicy(shot_retry_config(3)).delays() == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_success_first_try(self, recording_sleep):
        func = AsyncMock(return_value="image")
        policy = RetryPolicy(shot_retry_config(2), sleep=recording_sleep)

        result = await policy.call(func, "prompt", style="pencil")

        assert result == "image"
        func.assert_awaited_once_with("prompt", style="pencil")
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, recording_sleep):
        func = AsyncMock(side_effect=[RuntimeError("busy"), RuntimeError("busy"), "image"])
        policy = RetryPolicy(shot_retry_config(2), sleep=recording_sleep)

        result = await policy.call(func)

        assert result == "image"
        assert func.await_count == 3
        assert recording_sleep.calls == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhausted_reraises_last_error(self, recording_sleep):
        errors = [RuntimeError("first"), RuntimeError("second"), RuntimeError("last")]
        func = AsyncMock(side_effect=errors)
        policy = RetryPolicy(shot_retry_config(2), sleep=recording_sleep)

        with pytest.raises(RuntimeError) as exc_info:
            await policy.call(func)

        assert exc_info.value is errors[-1]
        assert func.await_count == 3
        assert recording_sleep.calls == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_zero_retries_never_sleeps(self, recording_sleep):
        func = AsyncMock(side_effect=ValueError("nope"))
        policy = RetryPolicy(shot_retry_config(0), sleep=recording_sleep)

        with pytest.raises(ValueError):
            await policy.call(func)

        assert func.await_count == 1
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_on_retry_hook(self, recording_sleep):
        error = RuntimeError("busy")
        func = AsyncMock(side_effect=[error, "ok"])
        on_retry = MagicMock()
        policy = RetryPolicy(shot_retry_config(1), sleep=recording_sleep)

        await policy.call(func, on_retry=on_retry)

        on_retry.assert_called_once_with(error, 0)
