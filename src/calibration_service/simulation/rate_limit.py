"""
Token-bucket pacing of outbound generation calls.

With a burst of 1 the limiter enforces a minimum spacing between call
starts: the first call proceeds at once and each later call waits until
one interval has elapsed since the previous token was taken. Time spent
waiting on a response counts towards that interval, so a call that takes
longer than the interval is followed by the next one without a gap.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

DEFAULT_MIN_INTERVAL_SECONDS = 0.05


@dataclass(frozen=True)
class RateLimitPolicy:
    """
    Attributes:
        min_interval_seconds: Minimum spacing between call starts, averaged
            over the burst. 0 disables pacing.
        burst: Number of calls that may proceed back to back.
    """

    min_interval_seconds: float = DEFAULT_MIN_INTERVAL_SECONDS
    burst: int = 1

    def __post_init__(self) -> None:
        if self.min_interval_seconds < 0:
            raise ValueError(
                f"min_interval_seconds must be >= 0, got {self.min_interval_seconds}"
            )
        if self.burst < 1:
            raise ValueError(f"burst must be >= 1, got {self.burst}")


class TokenBucketRateLimiter:
    def __init__(
        self,
        policy: RateLimitPolicy,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._policy = policy
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(policy.burst)
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self._policy.min_interval_seconds > 0

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        self._last_refill = now
        self._tokens = min(
            float(self._policy.burst),
            self._tokens + elapsed / self._policy.min_interval_seconds,
        )

    async def acquire(self) -> None:
        """Wait until a call may proceed."""
        if not self.enabled:
            return

        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    return
                deficit = 1 - self._tokens
                await self._sleep(deficit * self._policy.min_interval_seconds)
