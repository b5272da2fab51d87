"""
Retry utilities with exponential backoff.

Provides the bounded retry policy that guards a single shot's image
generation: up to ``max_retries + 1`` attempts, waiting
``min(base * 2^(k-1), max)`` before retry k.
"""

import asyncio
from typing import Awaitable, Callable, TypeVar, Any, Optional
from dataclasses import dataclass

from conti.core.logging_config import get_logger

logger = get_logger("core.retry")

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[Any]]
RetryHook = Callable[[Exception, int], None]


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 2
    base_delay: float = 1.0  # Base delay in seconds
    max_delay: float = 10.0  # Maximum delay in seconds
    exponential_base: float = 2.0  # Multiplier for exponential backoff


def calculate_delay(
    attempt: int,
    config: RetryConfig
) -> float:
    """
    Calculate delay before next retry attempt.

    Args:
        attempt: Failed attempt number (0-indexed); the delay returned is
            the wait before retry ``attempt + 1``
        config: Retry configuration

    Returns:
        Delay in seconds before next attempt
    """
    delay = config.base_delay * (config.exponential_base ** attempt)
    return min(delay, config.max_delay)


class RetryPolicy:
    """
    Bounded exponential backoff for one operation.

    Exhausting the attempts re-raises the last error unchanged; callers
    decide what a final failure means.

    Usage:
        policy = RetryPolicy(RetryConfig(max_retries=2))
        image = await policy.call(client.generate_image, prompt=prompt)
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Optional[SleepFunc] = None
    ):
        self.config = config or RetryConfig()
        self._sleep = sleep or asyncio.sleep

    @property
    def max_attempts(self) -> int:
        return self.config.max_retries + 1

    def delays(self) -> list:
        """Every delay this policy would wait if all attempts failed."""
        return [calculate_delay(attempt, self.config) for attempt in range(self.config.max_retries)]

    async def call(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        on_retry: Optional[RetryHook] = None,
        label: str = "operation",
        **kwargs: Any
    ) -> T:
        """
        Call an async function, retrying on failure.

        Args:
            func: Async function to call
            *args: Positional arguments for the function
            on_retry: Optional callback called before each retry with
                (exception, failed_attempt_index)
            label: Name used in log messages
            **kwargs: Keyword arguments for the function

        Returns:
            Result of the first successful call
        """
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                last_exception = e

                if attempt < self.config.max_retries:
                    delay = calculate_delay(attempt, self.config)
                    logger.warning(
                        f"{label}: attempt {attempt + 1}/{self.max_attempts} failed: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )

                    if on_retry:
                        on_retry(e, attempt)

                    await self._sleep(delay)
                else:
                    logger.error(
                        f"{label}: all {self.max_attempts} attempts failed. "
                        f"Last error: {e}"
                    )

        raise last_exception


def shot_retry_config(
    max_retries: int,
    base_delay: float = 1.0,
    max_delay: float = 10.0
) -> RetryConfig:
    """Retry configuration used for storyboard shot generation."""
    return RetryConfig(
        max_retries=max_retries,
        base_delay=base_delay,
        max_delay=max_delay,
        exponential_base=2.0
    )
