"""Example plugin: creative divergence.

When a hard problem is going nowhere (low confidence on a long session), asks
for several deliberately different approaches before converging again.
"""

from __future__ import annotations

from cogniplug.plugins import BasePlugin, PluginRegistry
from cogniplug.types import (
    Activation,
    Context,
    ImpactLevel,
    Intervention,
    InterventionMetadata,
    InterventionType,
    PluginMetadata,
    ResourceRequirements,
)


class CreativeDivergencePlugin(BasePlugin):
    def __init__(self, stall_after: int = 3):
        super().__init__(
            PluginMetadata(
                plugin_id="creative_divergence",
                name="Creative Divergence",
                description="Generates divergent alternatives when reasoning stalls",
                capabilities=("alternative_generation",),
                complexity_range=(4.0, 10.0),
                priority=65.0,
                resource_cost=0.4,
            ),
            {"stall_after": stall_after},
        )

    def is_stalled(self, context: Context) -> bool:
        return context.session_phase >= self.config["stall_after"] and context.confidence_level < 0.5

    async def should_activate(self, context: Context) -> Activation:
        if not self.is_compatible(context):
            return Activation.decline("outside complexity range")

        stalled = self.is_stalled(context)
        return Activation(
            should_activate=stalled,
            priority=self.base_priority(context) + (1 - context.confidence_level) * 20,
            confidence=0.6 if stalled else 0.2,
            reason="reasoning stalled" if stalled else "progress is fine",
            estimated_impact=ImpactLevel.HIGH if stalled else ImpactLevel.LOW,
            resource_requirements=ResourceRequirements(
                cognitive_load=self.metadata.resource_cost, time_cost=2, creativity_required=True
            ),
        )

    async def intervene(self, context: Context) -> Intervention:
        return Intervention(
            type=InterventionType.THOUGHT_MODIFICATION,
            content=(
                "Before continuing, write down three approaches that differ from the current one "
                "in their starting assumption, then pick the most promising."
            ),
            metadata=InterventionMetadata(
                plugin_id=self.plugin_id,
                confidence=0.65,
                expected_benefit="escape from a stalled line of reasoning",
                side_effects=["adds thoughts to the session"],
            ),
            follow_up_needed=True,
            next_check_after=2,
        )


def register_plugins(registry: PluginRegistry) -> None:
    registry.register(CreativeDivergencePlugin())
