"""
Poll interval with exponential backoff.

The interval stays at the base while at most one poll in a row has failed,
then doubles per further failure up to a cap:

    errors <= 1: interval
    errors  > 1: min(interval * 2 ** (errors - 1), max_delay)

Optional jitter (a fraction of the delay, either side) spreads displays
that lost the server at the same moment.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Final

from kds_shared.config.settings import settings

DEFAULT_JITTER_FACTOR: Final[float] = 0.0


@dataclass(frozen=True, slots=True)
class PollBackoff:
    interval: float = 5.0
    max_delay: float = 30.0
    jitter_factor: float = DEFAULT_JITTER_FACTOR

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        if self.max_delay < self.interval:
            raise ValueError("max_delay must be >= interval")
        if not 0 <= self.jitter_factor <= 1:
            raise ValueError("jitter_factor must be between 0 and 1")

    @classmethod
    def from_settings(cls, jitter_factor: float = DEFAULT_JITTER_FACTOR) -> "PollBackoff":
        return cls(
            interval=settings.kds_poll_interval_seconds,
            max_delay=settings.kds_max_backoff_seconds,
            jitter_factor=jitter_factor,
        )

    def base_delay(self, consecutive_errors: int) -> float:
        """Delay before the next poll, without jitter."""
        if consecutive_errors <= 1:
            return self.interval
        # Bounded exponent; the result is capped at max_delay regardless
        exponent = min(consecutive_errors - 1, 32)
        return min(self.interval * (2 ** exponent), self.max_delay)

    def delay(self, consecutive_errors: int) -> float:
        base = self.base_delay(consecutive_errors)
        if not self.jitter_factor:
            return base
        spread = base * self.jitter_factor
        return max(0.0, base + random.uniform(-spread, spread))
