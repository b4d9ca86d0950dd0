"""
Sliding-window rate limiter for source API calls.

Single-process and best-effort: the source API's own quota is the hard
backstop, this only avoids wasted 429 round-trips.
"""

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional, Union

import structlog

from exceptions import RateLimitExceededError

logger = structlog.get_logger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class Granted:
    """Admission granted; the call may proceed now."""


@dataclass(frozen=True)
class Deferred:
    """Admission refused; retry after wait_ms."""
    wait_ms: float


Admission = Union[Granted, Deferred]


class SlidingWindowRateLimiter:
    """
    Admit at most `limit` calls per `window_ms`.

    admit() drops timestamps older than the window and grants (recording
    the call) while fewer than `limit` remain; otherwise it defers until
    the oldest timestamp leaves the window.

    acquire() wraps admit() in a bounded wait loop for callers.
    """

    def __init__(
        self,
        limit: int,
        window_ms: float,
        max_wait_ms: float = 30000,
        max_attempts: int = 10,
        clock: Callable[[], float] = _monotonic_ms,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")

        self.limit = limit
        self.window_ms = float(window_ms)
        self.max_wait_ms = float(max_wait_ms)
        self.max_attempts = max_attempts
        self._clock = clock
        self._sleep = sleep
        self._calls: deque[float] = deque()
        self.window_start: Optional[float] = None
        self.execution_count = 0
        self.rejection_count = 0

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_ms
        while self._calls and self._calls[0] <= cutoff:
            self._calls.popleft()
        self.window_start = self._calls[0] if self._calls else None

    def admit(self) -> Admission:
        """Try to take a slot in the current window."""
        now = self._clock()
        self._evict(now)

        if len(self._calls) < self.limit:
            self._calls.append(now)
            if self.window_start is None:
                self.window_start = now
            return Granted()

        wait_ms = self._calls[0] + self.window_ms - now
        return Deferred(wait_ms=max(wait_ms, 1.0))

    def record_execution(self) -> None:
        self.execution_count += 1

    def record_rejection(self) -> None:
        self.rejection_count += 1

    def acquire(self, operation: Optional[str] = None) -> None:
        """
        Block until a slot is granted.

        Each deferred wait is capped at max_wait_ms.

        Raises:
            RateLimitExceededError: If no slot is granted within max_attempts
        """
        for attempt in range(1, self.max_attempts + 1):
            admission = self.admit()
            if isinstance(admission, Granted):
                return

            self.record_rejection()
            if attempt == self.max_attempts:
                break

            wait_ms = min(admission.wait_ms, self.max_wait_ms)
            logger.info(
                "rate_limit_deferred",
                operation=operation,
                attempt=attempt,
                max_attempts=self.max_attempts,
                wait_ms=round(wait_ms),
            )
            self._sleep(wait_ms / 1000.0)

        logger.warning("rate_limit_exhausted", operation=operation, attempts=self.max_attempts)
        raise RateLimitExceededError(self.max_attempts, operation)

    def remaining_in_window(self) -> int:
        self._evict(self._clock())
        return max(self.limit - len(self._calls), 0)

    def ms_until_next_slot(self) -> float:
        now = self._clock()
        self._evict(now)
        if len(self._calls) < self.limit:
            return 0.0
        return max(self._calls[0] + self.window_ms - now, 0.0)

    def status(self) -> dict:
        """Snapshot for diagnostics."""
        return {
            "limit": self.limit,
            "window_ms": self.window_ms,
            "execution_count": self.execution_count,
            "rejection_count": self.rejection_count,
            "remaining_in_window": self.remaining_in_window(),
            "ms_until_next_slot": self.ms_until_next_slot(),
        }
