"""Shared test fixtures for the cogniplug test suite."""

from __future__ import annotations

import pytest

from cogniplug.config import OrchestratorConfig
from cogniplug.learning.engine import AdaptiveLearningEngine
from cogniplug.orchestration.orchestrator import PluginOrchestrator
from cogniplug.plugins.registry import PluginRegistry
from cogniplug.resilience.wrapper import ResilienceWrapper
from cogniplug.types import Context

from tests.helpers import FakeClock, make_context


@pytest.fixture
def config() -> OrchestratorConfig:
    """Default limits with no retry backoff and short timeouts for fast tests."""
    return OrchestratorConfig(
        retry_delay_s=0.0,
        activation_timeout_s=1.0,
        invocation_timeout_s=1.0,
    )


@pytest.fixture
def registry() -> PluginRegistry:
    return PluginRegistry()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def learning(config: OrchestratorConfig) -> AdaptiveLearningEngine:
    return AdaptiveLearningEngine.from_config(config)


@pytest.fixture
def orchestrator(
    registry: PluginRegistry, config: OrchestratorConfig, learning: AdaptiveLearningEngine
) -> PluginOrchestrator:
    return PluginOrchestrator(
        registry,
        config=config,
        learning=learning,
        resilience=ResilienceWrapper.from_config(config),
    )


@pytest.fixture
def context() -> Context:
    return make_context()
