"""Per-operation circuit breaker.

States:
- CLOSED: normal operation, counting consecutive failed calls
- OPEN: threshold reached, calls are rejected until the recovery timeout
- HALF_OPEN: recovery timeout elapsed, exactly one trial call is let through

Transitions:
- CLOSED -> OPEN: after N consecutive failed calls
- OPEN -> HALF_OPEN: on the first call after the recovery timeout
- HALF_OPEN -> CLOSED: trial call succeeded
- HALF_OPEN -> OPEN: trial call failed
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Consecutive-failure breaker with a single half-open trial."""

    def __init__(
        self,
        key: str,
        failure_threshold: int = 3,
        recovery_timeout: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize circuit breaker.

        Args:
            key: Operation key this breaker guards (for logging)
            failure_threshold: Consecutive failed calls before opening
            recovery_timeout: Seconds to stay open before allowing a trial call
            clock: Monotonic time source, injectable for tests
        """
        self.key = key
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.trips = 0
        self.opened_at: float | None = None
        self._trial_in_flight = False

    def can_attempt(self) -> bool:
        """Check whether a call may proceed, moving OPEN -> HALF_OPEN when due."""
        if self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            if self.opened_at is not None and self._clock() - self.opened_at >= self.recovery_timeout:
                logger.info(f"[CircuitBreaker:{self.key}] Recovery timeout elapsed, entering HALF_OPEN")
                self.state = CircuitState.HALF_OPEN
                self._trial_in_flight = True
                return True
            return False

        # HALF_OPEN: one trial at a time
        if self._trial_in_flight:
            return False
        self._trial_in_flight = True
        return True

    def record_success(self) -> None:
        if self.state == CircuitState.HALF_OPEN:
            logger.info(f"[CircuitBreaker:{self.key}] Trial call succeeded, closing circuit")
            self.state = CircuitState.CLOSED
            self.opened_at = None
        self.failure_count = 0
        self._trial_in_flight = False

    def record_failure(self) -> None:
        self._trial_in_flight = False

        if self.state == CircuitState.HALF_OPEN:
            logger.warning(f"[CircuitBreaker:{self.key}] Trial call failed, reopening circuit")
            self._open()
            return

        self.failure_count += 1
        if self.state == CircuitState.CLOSED and self.failure_count >= self.failure_threshold:
            logger.error(
                f"[CircuitBreaker:{self.key}] Opening circuit after "
                f"{self.failure_count} consecutive failures"
            )
            self._open()

    def release_trial(self) -> None:
        """Give back a half-open trial slot whose call was abandoned."""
        self._trial_in_flight = False

    def retry_after(self) -> float:
        """Seconds until a trial call will be allowed (0 unless OPEN)."""
        if self.state != CircuitState.OPEN or self.opened_at is None:
            return 0.0
        return max(0.0, self.recovery_timeout - (self._clock() - self.opened_at))

    def reset(self) -> None:
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.opened_at = None
        self._trial_in_flight = False

    def get_status(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "trips": self.trips,
            "retry_after": self.retry_after(),
        }

    def _open(self) -> None:
        self.state = CircuitState.OPEN
        self.opened_at = self._clock()
        self.trips += 1
