"""
Reconnect Backoff
=================

Bounded, jittered exponential backoff for the stream client.

    delay(n) = min(base_delay * 2^n, max_delay) + uniform(0, jitter)

n is the 0-indexed retry attempt, so the first retry waits
1000-2000 ms and later ones cap at 30000-31000 ms with the defaults.
The jitter term spreads out many clients reconnecting after the
same outage.
"""

import random
from dataclasses import dataclass, field
from typing import Callable


@dataclass(frozen=True)
class RetryPolicy:
    """
    Backoff constants.

    Attributes:
        max_retries: Consecutive failures tolerated before giving up
        base_delay_ms: Delay before the first retry (before jitter)
        max_delay_ms: Cap on the exponential term
        jitter_ms: Upper bound (exclusive) of the random addition
    """

    max_retries: int = 10
    base_delay_ms: float = 1000.0
    max_delay_ms: float = 30000.0
    jitter_ms: float = 1000.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0 or self.jitter_ms < 0:
            raise ValueError("delays must be >= 0")

    def base_delay_for(self, attempt: int) -> float:
        """Delay for a retry attempt without jitter, in ms."""
        if attempt < 0:
            raise ValueError("attempt must be >= 0")
        # Avoid huge powers once the cap is reached
        if self.base_delay_ms and attempt > 64:
            return self.max_delay_ms
        return min(self.base_delay_ms * (2 ** attempt), self.max_delay_ms)

    def delay_for(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        """
        Delay for a retry attempt, in ms.

        Args:
            attempt: 0-indexed retry attempt
            rng: Source of uniform values in [0, 1)
        """
        return self.base_delay_for(attempt) + rng() * self.jitter_ms


@dataclass
class RetryContext:
    """
    Consecutive-failure counter bound to a policy.

    Invariant: 0 <= retry_count <= policy.max_retries
    """

    policy: RetryPolicy = field(default_factory=RetryPolicy)
    retry_count: int = 0

    @property
    def max_retries(self) -> int:
        return self.policy.max_retries

    @property
    def exhausted(self) -> bool:
        return self.retry_count >= self.policy.max_retries

    def record_failure(self) -> int:
        """
        Count a failed connection.

        Returns:
            The attempt index of the retry this failure earns, i.e. the
            number of failures counted before it.
        """
        attempt = self.retry_count
        self.retry_count = min(self.retry_count + 1, self.policy.max_retries)
        return attempt

    def reset(self) -> None:
        self.retry_count = 0
