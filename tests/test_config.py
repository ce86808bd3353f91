"""Tests for OrchestratorConfig defaults, environment overrides and validation."""

from __future__ import annotations

import pytest

from cogniplug.config import OrchestratorConfig
from cogniplug.errors import InvalidConfiguration


def test_defaults_match_reference_limits():
    config = OrchestratorConfig()
    assert config.max_concurrent_plugins == 3
    assert config.resource_budget == 1.0
    assert config.priority_policy == "multiplicative"
    assert config.max_retries == 1
    assert config.circuit_breaker_threshold == 3
    assert config.learning_rate == 0.1
    assert (
        config.learning_data_capacity,
        config.context_signature_capacity,
        config.breakthrough_capacity,
    ) == (50, 20, 10)
    assert config.check() is config


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("COGNIPLUG_MAX_CONCURRENT_PLUGINS", "7")
    monkeypatch.setenv("COGNIPLUG_PRIORITY_POLICY", "additive")
    config = OrchestratorConfig()
    assert config.max_concurrent_plugins == 7
    assert config.priority_policy == "additive"


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_concurrent_plugins": 0},
        {"resource_budget": 0.0},
        {"activation_timeout_s": 0.0},
        {"max_retries": -1},
        {"round_deadline_s": -2.0},
        {"learning_rate": 0.0},
        {"complexity_bucket_width": 0.0},
        {"learning_data_capacity": 0},
        {"error_log_capacity": 0},
    ],
)
def test_check_rejects_bad_values(overrides):
    with pytest.raises(InvalidConfiguration):
        OrchestratorConfig(**overrides).check()


def test_unbounded_budget_allowed():
    assert OrchestratorConfig(resource_budget=None).check().resource_budget is None
