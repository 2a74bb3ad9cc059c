"""AI health gating.

``should_use_fallback`` is the single decision point between the AI tier
and the deterministic tier. ``AIHealthTracker`` supplies the health flag
when the caller does not pass one, debouncing failures and retrying after
a cooldown.
"""

import threading
import time
from typing import Any, Callable, Dict, Optional

from artisan_matching.logging import get_logger

logger = get_logger(__name__, component="health")


def should_use_fallback(ai_healthy: bool, force_check: bool = False) -> bool:
    """Return True when the AI tier must be skipped.

    force_check is accepted for callers that want to signal a fresh health
    probe; the decision is still the negation of the health flag.
    """
    return not ai_healthy


class AIHealthTracker:
    """Thread-safe record of AI matcher successes and failures.

    The tracker reports unhealthy once ``failure_threshold`` consecutive
    failures were recorded. While unhealthy, ``allows_attempt()`` returns True
    to the first caller after ``cooldown_seconds`` and restarts the cooldown,
    so one request per window retries the matcher; a success resets the
    failure count.

    With the defaults (threshold 1, cooldown 0) a single failure marks the
    matcher unhealthy and every following request retries it immediately.
    """

    def __init__(
        self,
        failure_threshold: int = 1,
        cooldown_seconds: float = 0.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        if failure_threshold < 1:
            raise ValueError(f"failure_threshold must be >= 1, got {failure_threshold}")
        if cooldown_seconds < 0:
            raise ValueError(f"cooldown_seconds must be >= 0, got {cooldown_seconds}")

        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._consecutive_failures = 0
        self._total_failures = 0
        self._total_successes = 0
        self._retry_after: Optional[float] = None
        self._last_failure_reason: Optional[str] = None

    @property
    def is_healthy(self) -> bool:
        with self._lock:
            return self._consecutive_failures < self.failure_threshold

    def allows_attempt(self) -> bool:
        """Whether the AI tier should be tried for the next request."""
        with self._lock:
            if self._consecutive_failures < self.failure_threshold:
                return True
            now = self._clock()
            if self._retry_after is not None and now < self._retry_after:
                return False
            # this caller holds the retry until the window passes again
            self._retry_after = now + self.cooldown_seconds
            return True

    def record_success(self) -> None:
        with self._lock:
            recovered = self._consecutive_failures >= self.failure_threshold
            self._consecutive_failures = 0
            self._retry_after = None
            self._total_successes += 1

        if recovered:
            logger.info(
                "AI matcher recovered",
                extra={"event": "matching.health.recovered"},
            )

    def record_failure(self, reason: Optional[str] = None) -> None:
        with self._lock:
            self._consecutive_failures += 1
            self._total_failures += 1
            self._retry_after = self._clock() + self.cooldown_seconds
            self._last_failure_reason = reason
            tripped = self._consecutive_failures == self.failure_threshold
            failures = self._consecutive_failures

        if tripped:
            logger.warning(
                "AI matcher marked unhealthy",
                extra={
                    "event": "matching.health.unhealthy",
                    "consecutive_failures": failures,
                    "reason": reason,
                },
            )

    def reset(self) -> None:
        with self._lock:
            self._consecutive_failures = 0
            self._retry_after = None
            self._last_failure_reason = None

    def snapshot(self) -> Dict[str, Any]:
        """Current tracker state for status reporting."""
        with self._lock:
            return {
                "healthy": self._consecutive_failures < self.failure_threshold,
                "consecutive_failures": self._consecutive_failures,
                "total_failures": self._total_failures,
                "total_successes": self._total_successes,
                "failure_threshold": self.failure_threshold,
                "cooldown_seconds": self.cooldown_seconds,
                "last_failure_reason": self._last_failure_reason,
            }
