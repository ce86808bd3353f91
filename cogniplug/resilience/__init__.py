"""Retry, timeout and circuit-breaker isolation for plugin calls."""

from cogniplug.resilience.breaker import CircuitBreaker, CircuitState
from cogniplug.resilience.wrapper import ErrorContext, ErrorRecord, ResilienceWrapper

__all__ = ["CircuitBreaker", "CircuitState", "ErrorContext", "ErrorRecord", "ResilienceWrapper"]
