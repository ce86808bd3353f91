"""Configuration settings for plugin orchestration and adaptive learning.

Uses Pydantic Settings for validation and environment variable support.
All settings can be overridden via COGNIPLUG_* environment variables.
"""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings

from cogniplug.errors import InvalidConfiguration


class OrchestratorConfig(BaseSettings):
    """Global configuration for one orchestrator and its learning engine."""

    # Admission control
    max_concurrent_plugins: int = 3
    resource_budget: float | None = 1.0  # total cognitive_load per round, None = unbounded
    require_admission: bool = False  # raise when the registry is empty

    # Ranking
    adaptive_priority: bool = True
    priority_policy: Literal["multiplicative", "additive"] = "multiplicative"
    additive_priority_weight: float = 20.0

    # Per-call isolation
    activation_timeout_s: float = 5.0
    invocation_timeout_s: float = 10.0
    max_retries: int = 1  # retries after the first attempt
    retry_delay_s: float = 0.5
    circuit_breaker_threshold: int = 3  # consecutive failed calls
    recovery_timeout_s: float = 15.0
    enable_fallback: bool = True
    error_log_capacity: int = 100

    # Round cancellation
    round_deadline_s: float | None = None
    require_complete: bool = False

    # Learning
    learning_enabled: bool = True
    learning_rate: float = 0.1
    complexity_bucket_width: float = 1.0
    success_confidence_threshold: float = 0.6
    breakthrough_threshold: float = 0.7
    learning_data_capacity: int = 50
    context_signature_capacity: int = 20
    breakthrough_capacity: int = 10
    outcome_log_capacity: int = 200

    model_config = {"env_prefix": "COGNIPLUG_"}

    def check(self) -> OrchestratorConfig:
        """Reject non-positive capacities and contradictory limits.

        Raises:
            InvalidConfiguration: on the first offending setting
        """
        positive_ints = {
            "max_concurrent_plugins": self.max_concurrent_plugins,
            "circuit_breaker_threshold": self.circuit_breaker_threshold,
            "error_log_capacity": self.error_log_capacity,
            "learning_data_capacity": self.learning_data_capacity,
            "context_signature_capacity": self.context_signature_capacity,
            "breakthrough_capacity": self.breakthrough_capacity,
            "outcome_log_capacity": self.outcome_log_capacity,
        }
        for name, value in positive_ints.items():
            if value <= 0:
                raise InvalidConfiguration(f"{name} must be positive, got {value}")

        if self.resource_budget is not None and self.resource_budget <= 0:
            raise InvalidConfiguration(
                f"resource_budget must be positive or None, got {self.resource_budget}"
            )
        if self.activation_timeout_s <= 0 or self.invocation_timeout_s <= 0:
            raise InvalidConfiguration("plugin call timeouts must be positive")
        if self.max_retries < 0:
            raise InvalidConfiguration(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay_s < 0 or self.recovery_timeout_s < 0:
            raise InvalidConfiguration("retry_delay_s and recovery_timeout_s must be >= 0")
        if self.round_deadline_s is not None and self.round_deadline_s <= 0:
            raise InvalidConfiguration("round_deadline_s must be positive or None")
        if not 0.0 < self.learning_rate <= 1.0:
            raise InvalidConfiguration(f"learning_rate must be in (0, 1], got {self.learning_rate}")
        if self.complexity_bucket_width <= 0:
            raise InvalidConfiguration("complexity_bucket_width must be positive")
        return self
