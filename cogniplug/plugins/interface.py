"""Capability interface every orchestrated plugin satisfies."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from cogniplug.types import Activation, Context, Intervention, Outcome, PluginMetadata


@runtime_checkable
class CognitivePlugin(Protocol):
    """Plugin interface for admission-controlled interventions.

    Design principle: the orchestrator owns scheduling, plugins only answer.
    Plugins must treat the context as read-only.
    """

    @property
    def plugin_id(self) -> str: ...

    @property
    def metadata(self) -> PluginMetadata: ...

    async def should_activate(self, context: Context) -> Activation:
        """Would this plugin help in this context, and how much would it cost?"""
        ...

    async def intervene(self, context: Context) -> Intervention:
        """Produce the intervention payload. Only called when admitted."""
        ...

    async def receive_feedback(
        self,
        intervention: Intervention,
        outcome: Outcome,
        impact_score: float,
        context: Context,
    ) -> None:
        """Outcome of a round this plugin's intervention took part in."""
        ...

    async def adapt(self, learning_data: Mapping[str, Any]) -> None:
        """Adjust internal configuration from aggregated learning data."""
        ...
