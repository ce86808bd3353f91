"""Example plugin: metacognitive check.

Watches the current thought for overconfident or assumption-heavy wording and
asks the reasoner to step back and examine its own reasoning. Activation
strength grows with complexity and with how unsure the session already is.

To use this plugin, keep it in the plugins/ directory; the loader calls
register_plugins() when it scans the directory.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

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

PATTERNS = {
    "overconfidence": ("definitely", "certainly", "obviously", "clearly", "without doubt"),
    "assumption_heavy": ("assume", "probably", "likely", "should be", "must be"),
    "tunnel_vision": ("only way", "best approach", "single solution", "no other"),
    "uncertainty_avoidance": ("will work", "is correct", "final answer", "solved"),
}

PROMPTS = {
    "overconfidence": "How certain are you really? Name one piece of evidence that would change your mind.",
    "assumption_heavy": "List the assumptions this step rests on and check the weakest one.",
    "tunnel_vision": "Sketch one alternative approach before committing to this one.",
    "uncertainty_avoidance": "State what could still be wrong with this conclusion.",
    None: "Pause and evaluate whether the reasoning so far actually supports the next step.",
}


class MetacognitiveCheckPlugin(BasePlugin):
    """Self-reflection prompts triggered by overconfident or narrow reasoning."""

    def __init__(self, config: Mapping[str, Any] | None = None):
        super().__init__(
            PluginMetadata(
                plugin_id="metacognitive_check",
                name="Metacognitive Check",
                description="Confidence calibration and assumption questioning",
                capabilities=("confidence_calibration", "assumption_questioning"),
                priority=70.0,
                resource_cost=0.3,
            ),
            {"sensitivity": 0.55, **(config or {})},
        )

    def detect_pattern(self, context: Context) -> str | None:
        thought = (context.current_thought or "").lower()
        for name, triggers in PATTERNS.items():
            if any(trigger in thought for trigger in triggers):
                return name
        return None

    async def should_activate(self, context: Context) -> Activation:
        if not self.is_compatible(context):
            return Activation.decline("outside complexity range")

        need = 1.0 if self.detect_pattern(context) else 0.3
        score = (
            need * 0.4
            + (context.complexity / 10) * 0.3
            + (1 - context.confidence_level) * 0.3
        )
        impact = ImpactLevel.HIGH if score > 0.8 else ImpactLevel.MEDIUM if score > 0.5 else ImpactLevel.LOW
        return Activation(
            should_activate=score > self.config["sensitivity"],
            priority=min(95.0, score * 100),
            confidence=score,
            reason=f"metacognitive need {need:.1f}, score {score:.2f}",
            estimated_impact=impact,
            resource_requirements=ResourceRequirements(
                cognitive_load=self.metadata.resource_cost, time_cost=1, analysis_required=True
            ),
        )

    async def intervene(self, context: Context) -> Intervention:
        pattern = self.detect_pattern(context)
        return Intervention(
            type=InterventionType.META_GUIDANCE,
            content=PROMPTS[pattern],
            metadata=InterventionMetadata(
                plugin_id=self.plugin_id,
                confidence=0.8 if pattern else 0.6,
                expected_benefit="better calibrated confidence",
                side_effects=["may slow down the reasoning"],
            ),
            follow_up_needed=pattern == "overconfidence",
            next_check_after=2 if pattern == "overconfidence" else 3,
            success_metrics=["improved_accuracy", "reduced_bias"],
            failure_indicators=["analysis_paralysis"],
        )

    async def adapt(self, learning_data: Mapping[str, Any]) -> None:
        # Fire less eagerly when the learned effectiveness is poor
        scores = list(learning_data.get("effectiveness", {}).values())
        if not scores:
            return
        average = sum(scores) / len(scores)
        sensitivity = self.config["sensitivity"]
        if average < 0.4:
            self.config["sensitivity"] = min(0.9, sensitivity + 0.05)
        elif average > 0.7:
            self.config["sensitivity"] = max(0.3, sensitivity - 0.05)


def register_plugins(registry: PluginRegistry) -> None:
    registry.register(MetacognitiveCheckPlugin())
