"""
Circuit breaker guarding event publishing.

While Redis keeps failing, publishes are skipped outright so a bump or a
fan-out never stalls on connection timeouts. After ``recovery_timeout``
a few probe publishes are let through; one success closes the circuit,
one failure opens it again.
"""

from __future__ import annotations

import random
import threading
import time
from enum import Enum
from typing import Callable

from kds_shared.config.settings import settings
from kds_shared.config.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class EventCircuitBreaker:

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_max_calls: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max_calls = half_open_max_calls
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._opened_at: float | None = None
        self._failures = 0
        self._probes = 0
        self._rejected = 0

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._probes = 0

    def can_execute(self) -> bool:
        with self._lock:
            if self._state is CircuitState.OPEN:
                if self._clock() - self._opened_at < self.recovery_timeout:
                    self._rejected += 1
                    return False
                self._state = CircuitState.HALF_OPEN
                logger.info("Event publishing circuit half-open, probing Redis")

            if self._state is CircuitState.HALF_OPEN:
                if self._probes >= self.half_open_max_calls:
                    self._rejected += 1
                    return False
                self._probes += 1
            return True

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._state is CircuitState.HALF_OPEN:
                self._open()
                logger.error("Redis probe failed, event publishing circuit re-opened")
            elif self._state is CircuitState.CLOSED and self._failures >= self.failure_threshold:
                self._open()
                logger.error(
                    "Event publishing circuit opened",
                    failures=self._failures,
                    threshold=self.failure_threshold,
                )

    def record_success(self) -> None:
        with self._lock:
            if self._state is not CircuitState.CLOSED:
                logger.info("Event publishing circuit closed")
            self._state = CircuitState.CLOSED
            self._opened_at = None
            self._failures = 0
            self._probes = 0

    def reset(self) -> None:
        """Back to CLOSED with cleared counters."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._opened_at = None
            self._failures = self._probes = self._rejected = 0

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "state": self._state.value,
                "failure_count": self._failures,
                "rejected_count": self._rejected,
            }


_breaker: EventCircuitBreaker | None = None
_breaker_lock = threading.Lock()


def get_event_circuit_breaker() -> EventCircuitBreaker:
    """Process-wide breaker shared by every publish."""
    global _breaker
    with _breaker_lock:
        if _breaker is None:
            _breaker = EventCircuitBreaker(
                failure_threshold=settings.redis_publish_max_retries + 2,
            )
        return _breaker


def publish_retry_delay(attempt: int, base_delay: float, cap: float = 2.0) -> float:
    """Full-jitter delay before retry number ``attempt`` (1-based)."""
    return random.uniform(0, min(cap, base_delay * 2 ** (attempt - 1)))
