"""
Exchange Gateway - Throttling and Retry.

============================================================
PURPOSE
============================================================
RateLimiter:  minimum interval between requests of one adapter
              instance, FIFO under an asyncio.Lock.
RetryPolicy:  bounded exponential backoff with jitter for
              throttled or unavailable responses.

============================================================
"""

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, Optional, TypeVar

from .config import RetryConfig
from .errors import BaseError, DDoSProtection, ExchangeNotAvailable, NetworkError


logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


# ============================================================
# RATE LIMITER
# ============================================================

class RateLimiter:
    """
    Token bucket of size one refilling every interval_ms.

    The previous-request time is recorded only after a waiter's sleep
    completes, so a caller cancelled while waiting leaves the clock
    untouched.
    """

    def __init__(
        self,
        interval_ms: int,
        enabled: bool = True,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.interval_ms = interval_ms
        self.enabled = enabled
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_request: Optional[float] = None

    @property
    def last_request(self) -> Optional[float]:
        return self._last_request

    async def acquire(self) -> float:
        """
        Wait for a request slot.

        Returns:
            Seconds spent waiting
        """
        if not self.enabled or self.interval_ms <= 0:
            return 0.0

        async with self._lock:
            waited = 0.0
            if self._last_request is not None:
                delay = self._last_request + self.interval_ms / 1000.0 - self._clock()
                if delay > 0:
                    await self._sleep(delay)
                    waited = delay
            self._last_request = self._clock()
            return waited


# ============================================================
# RETRY POLICY
# ============================================================

class RetryPolicy:
    """
    Bounded retry with exponential backoff and jitter.

    Retryable: DDoSProtection, ExchangeNotAvailable, and NetworkError
    when retry_on_network_error is set. Everything else is terminal.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or RetryConfig()
        self._sleep = sleep
        self._rng = rng or random.Random()

    @property
    def max_attempts(self) -> int:
        return self.config.max_retries + 1

    def is_retryable(self, error: BaseException) -> bool:
        if isinstance(error, (DDoSProtection, ExchangeNotAvailable)):
            return True
        if isinstance(error, NetworkError):
            return self.config.retry_on_network_error
        return False

    def compute_delay(self, attempt: int) -> float:
        """
        Backoff before the retry that follows `attempt` (1-based).
        """
        cfg = self.config
        delay = cfg.initial_delay_seconds * (cfg.backoff_multiplier ** (attempt - 1))
        delay = min(delay, cfg.max_delay_seconds)
        if cfg.jitter_ratio > 0:
            delay += delay * cfg.jitter_ratio * self._rng.random()
        return min(delay, cfg.max_delay_seconds)

    async def run(
        self,
        operation: Callable[[int], Awaitable[T]],
        on_retry: Optional[Callable[[BaseError, int, float], None]] = None,
    ) -> T:
        """
        Run operation(attempt) until it succeeds, fails terminally, or
        attempts run out.

        Args:
            operation: Coroutine factory receiving the 1-based attempt
            on_retry: Called with (error, attempt, delay) before sleeping

        Returns:
            Operation result
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation(attempt)
            except BaseError as e:
                if not self.is_retryable(e) or attempt >= self.max_attempts:
                    raise

                delay = self.compute_delay(attempt)
                logger.warning(
                    f"{type(e).__name__} (attempt {attempt}/{self.max_attempts}): "
                    f"{e.message or e}. Retrying in {delay:.2f}s..."
                )
                if on_retry is not None:
                    on_retry(e, attempt, delay)
                await self._sleep(delay)
