"""Example plugin: role priming.

Frames the next step from the point of view of an expert suited to the
context's domain. Conflicts with creative divergence, since both rewrite the
framing of the same step.
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

ROLES = {
    "programming": "a senior software engineer reviewing a design",
    "mathematics": "a mathematician checking each step of a proof",
    "science": "a researcher designing a falsifiable experiment",
    "writing": "an editor tightening an argument",
    "business": "an analyst weighing costs against risks",
}
DEFAULT_ROLE = "a domain expert explaining the problem to a colleague"


class RolePrimingPlugin(BasePlugin):
    def __init__(self):
        super().__init__(
            PluginMetadata(
                plugin_id="role_priming",
                name="Role Priming",
                description="Primes an expert persona matching the domain",
                capabilities=("role_priming",),
                complexity_range=(2.0, 10.0),
                priority=60.0,
                resource_cost=0.2,
            )
        )

    def role_for(self, context: Context) -> str:
        return ROLES.get(context.domain or "", DEFAULT_ROLE)

    async def should_activate(self, context: Context) -> Activation:
        if not self.is_compatible(context):
            return Activation.decline("outside complexity range")

        # Most useful early in a session, before a framing has settled
        early = context.session_phase < 5
        priority = self.base_priority(context) + (10.0 if early else 0.0)
        return Activation(
            should_activate=early or context.domain in ROLES,
            priority=priority,
            confidence=0.7 if context.domain in ROLES else 0.5,
            reason="early session" if early else f"known domain {context.domain}",
            estimated_impact=ImpactLevel.MEDIUM,
            resource_requirements=ResourceRequirements(cognitive_load=self.metadata.resource_cost),
        )

    async def intervene(self, context: Context) -> Intervention:
        role = self.role_for(context)
        return Intervention(
            type=InterventionType.PROMPT_INJECTION,
            content=f"Approach the next step as {role}.",
            metadata=InterventionMetadata(
                plugin_id=self.plugin_id,
                confidence=0.7 if context.domain in ROLES else 0.5,
                expected_benefit="domain-appropriate framing",
            ),
        )


def register_plugins(registry: PluginRegistry) -> None:
    registry.register(RolePrimingPlugin())
    if "creative_divergence" in registry:
        registry.set_conflicts("role_priming", ["creative_divergence"])
