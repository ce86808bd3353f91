"""Tests for CircuitBreaker and ResilienceWrapper."""

from __future__ import annotations

import asyncio

import pytest

from cogniplug.config import OrchestratorConfig
from cogniplug.errors import CircuitOpen, InvalidConfiguration, PluginTimeoutError
from cogniplug.resilience import CircuitBreaker, CircuitState, ErrorContext, ResilienceWrapper

from tests.helpers import FakeClock


class Flaky:
    """Callable that fails ``failures`` times, then returns ``value``."""

    def __init__(self, failures: int, value: str = "ok", error: type[Exception] = RuntimeError):
        self.failures = failures
        self.value = value
        self.error = error
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return self.value


def make_wrapper(clock: FakeClock, **overrides) -> ResilienceWrapper:
    settings = {
        "max_retries": 0,
        "retry_delay": 0.0,
        "failure_threshold": 3,
        "recovery_timeout": 15.0,
        "clock": clock,
    }
    settings.update(overrides)
    return ResilienceWrapper(**settings)


class TestCircuitBreaker:
    def test_opens_after_threshold(self, clock):
        breaker = CircuitBreaker("k", failure_threshold=2, clock=clock)
        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED
        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        assert breaker.trips == 1
        assert not breaker.can_attempt()

    def test_success_resets_consecutive_count(self, clock):
        breaker = CircuitBreaker("k", failure_threshold=2, clock=clock)
        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED

    def test_half_open_allows_single_trial(self, clock):
        breaker = CircuitBreaker("k", failure_threshold=1, recovery_timeout=10.0, clock=clock)
        breaker.record_failure()
        clock.advance(10.0)

        assert breaker.can_attempt()
        assert breaker.state == CircuitState.HALF_OPEN
        assert not breaker.can_attempt()

    def test_released_trial_can_be_retaken(self, clock):
        breaker = CircuitBreaker("k", failure_threshold=1, recovery_timeout=1.0, clock=clock)
        breaker.record_failure()
        clock.advance(1.0)
        assert breaker.can_attempt()
        breaker.release_trial()
        assert breaker.can_attempt()

    def test_retry_after_counts_down(self, clock):
        breaker = CircuitBreaker("k", failure_threshold=1, recovery_timeout=10.0, clock=clock)
        breaker.record_failure()
        clock.advance(4.0)
        assert breaker.retry_after() == pytest.approx(6.0)
        assert breaker.get_status()["state"] == "open"


class TestResilienceWrapper:
    @pytest.mark.asyncio
    async def test_returns_result_on_success(self, clock):
        wrapper = make_wrapper(clock)
        result = await wrapper.execute(Flaky(0, "value"), "p:invocation")
        assert result == "value"
        assert wrapper.get_stats()["total_errors"] == 0

    @pytest.mark.asyncio
    async def test_sync_operation_supported(self, clock):
        wrapper = make_wrapper(clock)
        assert await wrapper.execute(lambda: 42, "p:activation") == 42

    @pytest.mark.asyncio
    async def test_retries_until_success(self, clock):
        wrapper = make_wrapper(clock, max_retries=2)
        op = Flaky(2)

        assert await wrapper.execute(op, "p:invocation") == "ok"
        assert op.calls == 3
        stats = wrapper.get_stats()
        assert stats["recovered_errors"] == 1
        assert stats["total_errors"] == 2
        assert wrapper.circuit_state("p:invocation") == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_last_error(self, clock):
        wrapper = make_wrapper(clock, max_retries=1)
        op = Flaky(10)

        with pytest.raises(RuntimeError, match="failure 2"):
            await wrapper.execute(op, "p:invocation")

        assert op.calls == 2
        assert wrapper.get_stats()["unrecoverable_errors"] == 1
        [record] = wrapper.recent_errors()
        assert record.key == "p:invocation"
        assert record.attempt == 2

    @pytest.mark.asyncio
    async def test_non_retryable_error_attempted_once(self, clock):
        wrapper = make_wrapper(clock, max_retries=3)
        op = Flaky(10, error=ValueError)

        with pytest.raises(ValueError):
            await wrapper.execute(op, "p:invocation")

        assert op.calls == 1

    @pytest.mark.asyncio
    async def test_retry_predicate_overrides_default(self, clock):
        wrapper = make_wrapper(clock, max_retries=3)
        op = Flaky(10)

        with pytest.raises(RuntimeError):
            await wrapper.execute(op, "p:invocation", retry_predicate=lambda e, attempt: attempt < 2)

        assert op.calls == 2

    @pytest.mark.asyncio
    async def test_timeout_raises_plugin_timeout(self, clock):
        wrapper = make_wrapper(clock)

        async def hang():
            await asyncio.sleep(5)

        with pytest.raises(PluginTimeoutError) as exc_info:
            await wrapper.execute(hang, "p:invocation", timeout=0.01)

        assert exc_info.value.key == "p:invocation"

    @pytest.mark.asyncio
    async def test_circuit_opens_then_fails_fast(self, clock):
        wrapper = make_wrapper(clock)
        op = Flaky(100)

        for _ in range(3):
            with pytest.raises(RuntimeError):
                await wrapper.execute(op, "p:invocation")

        with pytest.raises(CircuitOpen) as exc_info:
            await wrapper.execute(op, "p:invocation")

        assert op.calls == 3
        assert exc_info.value.plugin_id == "p"
        assert exc_info.value.retry_after == pytest.approx(15.0)
        assert wrapper.get_stats()["circuit_breaker_trips"] == 1

    @pytest.mark.asyncio
    async def test_breakers_are_per_key(self, clock):
        wrapper = make_wrapper(clock, failure_threshold=1)
        with pytest.raises(RuntimeError):
            await wrapper.execute(Flaky(1), "a:invocation")

        assert wrapper.circuit_state("a:invocation") == CircuitState.OPEN
        assert await wrapper.execute(Flaky(0), "b:invocation") == "ok"

    @pytest.mark.asyncio
    async def test_half_open_success_closes_circuit(self, clock):
        wrapper = make_wrapper(clock, failure_threshold=1)
        with pytest.raises(RuntimeError):
            await wrapper.execute(Flaky(1), "p:invocation")

        clock.advance(15.0)
        assert await wrapper.execute(Flaky(0), "p:invocation") == "ok"
        assert wrapper.circuit_state("p:invocation") == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens_circuit(self, clock):
        wrapper = make_wrapper(clock, failure_threshold=1)
        op = Flaky(100)
        with pytest.raises(RuntimeError):
            await wrapper.execute(op, "p:invocation")

        clock.advance(15.0)
        with pytest.raises(RuntimeError):
            await wrapper.execute(op, "p:invocation")

        assert wrapper.circuit_state("p:invocation") == CircuitState.OPEN
        with pytest.raises(CircuitOpen):
            await wrapper.execute(op, "p:invocation")
        assert op.calls == 2

    @pytest.mark.asyncio
    async def test_fallback_receives_error_and_context(self, clock):
        wrapper = make_wrapper(clock)
        seen: list[tuple[Exception, ErrorContext]] = []

        def fallback(error, ctx):
            seen.append((error, ctx))
            return "fallback"

        result = await wrapper.execute(Flaky(1), "p:invocation", fallback=fallback)

        assert result == "fallback"
        [(error, ctx)] = seen
        assert isinstance(error, RuntimeError)
        assert ctx.key == "p:invocation"
        assert ctx.attempt == 1
        assert wrapper.get_stats()["fallbacks_used"] == 1

    @pytest.mark.asyncio
    async def test_async_fallback_is_awaited(self, clock):
        wrapper = make_wrapper(clock)

        async def fallback(error, ctx):
            return "async fallback"

        assert await wrapper.execute(Flaky(1), "p:x", fallback=fallback) == "async fallback"

    @pytest.mark.asyncio
    async def test_fallback_disabled_raises(self, clock):
        wrapper = make_wrapper(clock, enable_fallback=False)
        with pytest.raises(RuntimeError):
            await wrapper.execute(Flaky(1), "p:x", fallback=lambda e, c: "unused")

    @pytest.mark.asyncio
    async def test_error_log_is_bounded(self, clock):
        wrapper = make_wrapper(clock, error_log_capacity=2, failure_threshold=100)
        for _ in range(5):
            with pytest.raises(RuntimeError):
                await wrapper.execute(Flaky(1), "p:x")

        assert len(wrapper.recent_errors(10)) == 2

    @pytest.mark.asyncio
    async def test_reset_clears_breakers_and_stats(self, clock):
        wrapper = make_wrapper(clock, failure_threshold=1)
        with pytest.raises(RuntimeError):
            await wrapper.execute(Flaky(1), "p:x")

        wrapper.reset()

        assert wrapper.circuit_state("p:x") == CircuitState.CLOSED
        assert wrapper.get_stats()["total_errors"] == 0
        assert wrapper.recent_errors() == []

    @pytest.mark.asyncio
    async def test_no_attempt_raises_instead_of_returning(self, clock):
        wrapper = make_wrapper(clock)
        wrapper._max_retries = -1

        with pytest.raises(RuntimeError, match="no attempt"):
            await wrapper.execute(Flaky(0), "p:x")

    def test_from_config(self):
        config = OrchestratorConfig(max_retries=4, circuit_breaker_threshold=7)
        wrapper = ResilienceWrapper.from_config(config)
        assert wrapper.breaker("k").failure_threshold == 7

    def test_invalid_settings_raise(self):
        with pytest.raises(InvalidConfiguration):
            ResilienceWrapper(max_retries=-1)
        with pytest.raises(InvalidConfiguration):
            ResilienceWrapper(failure_threshold=0)
