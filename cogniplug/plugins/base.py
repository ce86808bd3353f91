"""Base class for plugins that want built-in metrics and config handling.

Subclasses implement should_activate() and intervene(); feedback updates a
PluginMetrics record that the orchestrator aggregates into its performance
summary.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from cogniplug.types import Activation, Context, Intervention, Outcome, PluginMetadata

logger = logging.getLogger(__name__)


def complexity_band(complexity: float) -> str:
    """Coarse low / medium / high band used for per-plugin metrics."""
    if complexity < 3:
        return "low"
    if complexity < 7:
        return "medium"
    return "high"


@dataclass
class PluginMetrics:
    """Running performance statistics for one plugin."""

    activation_count: int = 0
    success_rate: float = 0.0
    average_impact_score: float = 0.0
    average_response_time: float = 0.0
    performance_by_domain: dict[str, float] = field(default_factory=dict)
    performance_by_complexity: dict[str, float] = field(default_factory=dict)


class BasePlugin(ABC):
    """Convenience base implementing the CognitivePlugin interface."""

    def __init__(self, metadata: PluginMetadata, config: Mapping[str, Any] | None = None):
        self._metadata = metadata
        self.config: dict[str, Any] = dict(config or {})
        self.learning_enabled = True
        self._metrics = PluginMetrics()
        self._domain_counts: dict[str, int] = {}
        self._band_counts: dict[str, int] = {}

    @property
    def plugin_id(self) -> str:
        return self._metadata.plugin_id

    @property
    def metadata(self) -> PluginMetadata:
        return self._metadata

    @abstractmethod
    async def should_activate(self, context: Context) -> Activation: ...

    @abstractmethod
    async def intervene(self, context: Context) -> Intervention: ...

    async def receive_feedback(
        self,
        intervention: Intervention,
        outcome: Outcome,
        impact_score: float,
        context: Context,
        response_time: float = 0.0,
    ) -> None:
        if self.learning_enabled:
            self.update_metrics(outcome, impact_score, response_time, context)

    async def adapt(self, learning_data: Mapping[str, Any]) -> None:
        """No adaptation by default."""
        return None

    async def destroy(self) -> None:
        """Release plugin resources. Called on orchestrator shutdown."""
        return None

    def is_compatible(self, context: Context) -> bool:
        return self._metadata.applies_to(context)

    def base_priority(self, context: Context) -> float:
        return self._metadata.priority

    def get_metrics(self) -> PluginMetrics:
        """Snapshot copy of the current metrics."""
        return replace(
            self._metrics,
            performance_by_domain=dict(self._metrics.performance_by_domain),
            performance_by_complexity=dict(self._metrics.performance_by_complexity),
        )

    def update_config(self, new_config: Mapping[str, Any]) -> None:
        self.config.update(new_config)
        logger.debug(f"Plugin {self.plugin_id} config updated: {sorted(new_config)}")

    def reset(self) -> None:
        self._metrics = PluginMetrics()
        self._domain_counts.clear()
        self._band_counts.clear()

    def update_metrics(
        self,
        outcome: Outcome,
        impact_score: float,
        response_time: float,
        context: Context,
    ) -> None:
        """Fold one outcome into the running means."""
        m = self._metrics
        m.activation_count += 1
        n = m.activation_count
        value = outcome.success_value

        m.success_rate = (m.success_rate * (n - 1) + value) / n
        m.average_impact_score = (m.average_impact_score * (n - 1) + impact_score) / n
        m.average_response_time = (m.average_response_time * (n - 1) + response_time) / n

        if context.domain:
            m.performance_by_domain[context.domain] = self._running_mean(
                self._domain_counts, m.performance_by_domain, context.domain, value
            )

        band = complexity_band(context.complexity)
        m.performance_by_complexity[band] = self._running_mean(
            self._band_counts, m.performance_by_complexity, band, value
        )

    @staticmethod
    def _running_mean(
        counts: dict[str, int], means: dict[str, float], key: str, value: float
    ) -> float:
        counts[key] = counts.get(key, 0) + 1
        previous = means.get(key, 0.0)
        return previous + (value - previous) / counts[key]
