"""Retry, timeout and circuit-breaker protection around plugin calls.

One ResilienceWrapper serves many operation keys; each key gets its own
CircuitBreaker so one unhealthy plugin never trips another.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from cogniplug.errors import CircuitOpen, InvalidConfiguration, PluginTimeoutError
from cogniplug.history import BoundedHistory
from cogniplug.resilience.breaker import CircuitBreaker, CircuitState

if TYPE_CHECKING:
    from cogniplug.config import OrchestratorConfig

logger = logging.getLogger(__name__)

Operation = Callable[[], Any]  # returns a value or an awaitable
RetryPredicate = Callable[[Exception, int], bool]

# Deterministic failures: retrying cannot help
NON_RETRYABLE: tuple[type[Exception], ...] = (CircuitOpen, ValueError, TypeError)


@dataclass(frozen=True)
class ErrorContext:
    """Where and when a protected call failed; passed to fallbacks."""

    key: str
    attempt: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class ErrorRecord:
    key: str
    error_type: str
    message: str
    attempt: int
    timestamp: datetime


@dataclass
class BoundaryStats:
    total_errors: int = 0
    recovered_errors: int = 0
    unrecoverable_errors: int = 0
    fallbacks_used: int = 0
    average_recovery_time: float = 0.0


class ResilienceWrapper:
    """Executes operations with bounded retries, per-call timeout and per-key breakers."""

    def __init__(
        self,
        max_retries: int = 1,
        retry_delay: float = 0.5,
        failure_threshold: int = 3,
        recovery_timeout: float = 15.0,
        enable_fallback: bool = True,
        error_log_capacity: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the wrapper.

        Args:
            max_retries: Retries after the first attempt (0 = single attempt)
            retry_delay: Base backoff in seconds, doubled per retry
            failure_threshold: Consecutive failed calls before a key's circuit opens
            recovery_timeout: Seconds an open circuit waits before a trial call
            enable_fallback: Whether fallbacks passed to execute() are used
            error_log_capacity: Size of the recent-errors buffer
            clock: Monotonic time source shared with the breakers
        """
        if max_retries < 0:
            raise InvalidConfiguration(f"max_retries must be >= 0, got {max_retries}")
        if failure_threshold <= 0:
            raise InvalidConfiguration(f"failure_threshold must be positive, got {failure_threshold}")
        if retry_delay < 0 or recovery_timeout < 0:
            raise InvalidConfiguration("retry_delay and recovery_timeout must be >= 0")

        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._enable_fallback = enable_fallback
        self._clock = clock

        self._breakers: dict[str, CircuitBreaker] = {}
        self._errors: BoundedHistory[ErrorRecord] = BoundedHistory(error_log_capacity)
        self._stats = BoundaryStats()

    @classmethod
    def from_config(
        cls, config: OrchestratorConfig, clock: Callable[[], float] = time.monotonic
    ) -> ResilienceWrapper:
        return cls(
            max_retries=config.max_retries,
            retry_delay=config.retry_delay_s,
            failure_threshold=config.circuit_breaker_threshold,
            recovery_timeout=config.recovery_timeout_s,
            enable_fallback=config.enable_fallback,
            error_log_capacity=config.error_log_capacity,
            clock=clock,
        )

    async def execute(
        self,
        operation: Operation,
        key: str,
        fallback: Callable[[Exception, ErrorContext], Any] | None = None,
        timeout: float | None = None,
        retry_predicate: RetryPredicate | None = None,
    ) -> Any:
        """Run ``operation`` under the breaker for ``key``.

        Args:
            operation: Zero-arg callable returning a value or an awaitable
            key: Breaker key, e.g. "<plugin_id>:invocation"
            fallback: Called with (error, ErrorContext) when the call ultimately fails
            timeout: Per-attempt timeout in seconds (awaitable operations only)
            retry_predicate: Overrides the default retry decision

        Returns:
            The operation's result, or the fallback's result

        Raises:
            CircuitOpen: circuit is open and no fallback is available
            Exception: the last attempt's error when retries are exhausted
        """
        breaker = self.breaker(key)
        context = ErrorContext(key=key)

        if not breaker.can_attempt():
            error = CircuitOpen(key, breaker.retry_after())
            logger.debug(f"[{key}] rejected: circuit open")
            return await self._handle_fallback(error, context, fallback)

        last_error: Exception | None = None
        started = self._clock()
        attempts = self._max_retries + 1

        try:
            for attempt in range(1, attempts + 1):
                context = replace(context, attempt=attempt)
                try:
                    result = await self._run_once(operation, key, timeout)
                except Exception as e:
                    last_error = e
                    self._stats.total_errors += 1
                    logger.warning(f"[{key}] attempt {attempt}/{attempts} failed: {e!r}")
                    if attempt < attempts and self._should_retry(e, attempt, retry_predicate):
                        await asyncio.sleep(self._retry_delay * 2 ** (attempt - 1))
                        continue
                    break

                breaker.record_success()
                if attempt > 1:
                    self._record_recovery(self._clock() - started)
                return result
        except asyncio.CancelledError:
            breaker.release_trial()
            raise

        breaker.record_failure()
        if last_error is None:
            raise RuntimeError(f"[{key}] no attempt was made")
        return await self._handle_fallback(last_error, context, fallback)

    def breaker(self, key: str) -> CircuitBreaker:
        """The breaker guarding ``key`` (created closed on first use)."""
        if key not in self._breakers:
            self._breakers[key] = CircuitBreaker(
                key,
                failure_threshold=self._failure_threshold,
                recovery_timeout=self._recovery_timeout,
                clock=self._clock,
            )
        return self._breakers[key]

    def circuit_state(self, key: str) -> CircuitState:
        breaker = self._breakers.get(key)
        return breaker.state if breaker else CircuitState.CLOSED

    def recent_errors(self, n: int = 10) -> list[ErrorRecord]:
        return self._errors.recent(n)

    def get_stats(self) -> dict[str, Any]:
        """Error counters, breaker trips and per-key breaker status."""
        total = self._stats.total_errors
        return {
            "total_errors": total,
            "recovered_errors": self._stats.recovered_errors,
            "unrecoverable_errors": self._stats.unrecoverable_errors,
            "fallbacks_used": self._stats.fallbacks_used,
            "average_recovery_time": self._stats.average_recovery_time,
            "circuit_breaker_trips": sum(b.trips for b in self._breakers.values()),
            "error_rate": (self._stats.unrecoverable_errors / total * 100) if total else 0.0,
            "breakers": {key: b.get_status() for key, b in self._breakers.items()},
        }

    def reset(self, key: str | None = None) -> None:
        """Close one breaker, or every breaker and clear stats when key is None."""
        if key is not None:
            if key in self._breakers:
                self._breakers[key].reset()
            return
        self._breakers.clear()
        self._errors.clear()
        self._stats = BoundaryStats()

    async def _run_once(self, operation: Operation, key: str, timeout: float | None) -> Any:
        result = operation()
        if not inspect.isawaitable(result):
            return result
        if timeout is None:
            return await result
        try:
            return await asyncio.wait_for(result, timeout)
        except TimeoutError:
            raise PluginTimeoutError(key, timeout) from None

    def _should_retry(
        self, error: Exception, attempt: int, retry_predicate: RetryPredicate | None
    ) -> bool:
        if retry_predicate is not None:
            return retry_predicate(error, attempt)
        return not isinstance(error, NON_RETRYABLE)

    async def _handle_fallback(
        self,
        error: Exception,
        context: ErrorContext,
        fallback: Callable[[Exception, ErrorContext], Any] | None,
    ) -> Any:
        self._errors.push(
            ErrorRecord(
                key=context.key,
                error_type=type(error).__name__,
                message=str(error),
                attempt=context.attempt,
                timestamp=context.timestamp,
            )
        )

        if fallback is not None and self._enable_fallback:
            self._stats.fallbacks_used += 1
            try:
                result = fallback(error, context)
                if inspect.isawaitable(result):
                    result = await result
                return result
            except Exception as fallback_error:
                logger.error(
                    f"[{context.key}] fallback failed: {fallback_error!r} "
                    f"(original error: {error!r})"
                )
                raise

        self._stats.unrecoverable_errors += 1
        raise error

    def _record_recovery(self, duration: float) -> None:
        self._stats.recovered_errors += 1
        n = self._stats.recovered_errors
        avg = self._stats.average_recovery_time
        self._stats.average_recovery_time = avg + (duration - avg) / n
