"""Shared test doubles for the cogniplug test suite.

Plain classes and builders rather than unittest.mock, so the orchestrator sees
objects that satisfy the real plugin interface.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from cogniplug.types import (
    Activation,
    Context,
    Intervention,
    InterventionMetadata,
    InterventionType,
    Outcome,
    PluginMetadata,
    ResourceRequirements,
)

# ============================================================================
# Builders
# ============================================================================


def make_intervention(plugin_id: str, confidence: float = 0.7, content: str = "") -> Intervention:
    return Intervention(
        type=InterventionType.META_GUIDANCE,
        content=content or f"guidance from {plugin_id}",
        metadata=InterventionMetadata(plugin_id=plugin_id, confidence=confidence),
    )


def make_context(**overrides: Any) -> Context:
    defaults: dict[str, Any] = {"complexity": 5.0, "domain": "testing", "confidence_level": 0.5}
    defaults.update(overrides)
    return Context(**defaults)


# ============================================================================
# Plugin double
# ============================================================================


class StubPlugin:
    """Configurable plugin: fixed activation, optional delays and failures.

    ``invocation_failures`` is the number of intervene() calls that raise
    before calls start succeeding (use a large number for "always fails").
    """

    def __init__(
        self,
        plugin_id: str,
        priority: float = 50.0,
        load: float = 0.1,
        activate: bool = True,
        confidence: float = 0.7,
        activation_error: Exception | None = None,
        invocation_failures: int = 0,
        activation_delay: float = 0.0,
        invocation_delay: float = 0.0,
        feedback_error: Exception | None = None,
        feedback_delay: float = 0.0,
    ):
        self._metadata = PluginMetadata(plugin_id=plugin_id, priority=priority, resource_cost=load)
        self.priority = priority
        self.load = load
        self.activate = activate
        self.confidence = confidence
        self.activation_error = activation_error
        self.invocation_failures = invocation_failures
        self.activation_delay = activation_delay
        self.invocation_delay = invocation_delay
        self.feedback_error = feedback_error
        self.feedback_delay = feedback_delay

        self.activation_calls = 0
        self.invocation_calls = 0
        self.feedback: list[tuple[Outcome, float]] = []
        self.adapted: list[Mapping[str, Any]] = []
        self.destroyed = False

    @property
    def plugin_id(self) -> str:
        return self._metadata.plugin_id

    @property
    def metadata(self) -> PluginMetadata:
        return self._metadata

    async def should_activate(self, context: Context) -> Activation:
        self.activation_calls += 1
        if self.activation_delay:
            await asyncio.sleep(self.activation_delay)
        if self.activation_error is not None:
            raise self.activation_error
        return Activation(
            should_activate=self.activate,
            priority=self.priority,
            confidence=self.confidence,
            resource_requirements=ResourceRequirements(cognitive_load=self.load),
        )

    async def intervene(self, context: Context) -> Intervention:
        self.invocation_calls += 1
        if self.invocation_delay:
            await asyncio.sleep(self.invocation_delay)
        if self.invocation_failures > 0:
            self.invocation_failures -= 1
            raise RuntimeError(f"{self.plugin_id} failed to intervene")
        return make_intervention(self.plugin_id, self.confidence)

    async def receive_feedback(
        self, intervention: Intervention, outcome: Outcome, impact_score: float, context: Context
    ) -> None:
        if self.feedback_delay:
            await asyncio.sleep(self.feedback_delay)
        if self.feedback_error is not None:
            raise self.feedback_error
        self.feedback.append((outcome, impact_score))

    async def adapt(self, learning_data: Mapping[str, Any]) -> None:
        self.adapted.append(learning_data)

    async def destroy(self) -> None:
        self.destroyed = True


# ============================================================================
# Time
# ============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
