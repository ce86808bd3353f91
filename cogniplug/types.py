"""Core data types shared by the registry, orchestrator and learning engine.

Frozen records describe per-round inputs and verdicts (Context, Activation).
Interventions are plain dataclasses: ownership passes to the caller once a
round returns them.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

# ============================================================================
# Enumerations
# ============================================================================


class Urgency(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ImpactLevel(Enum):
    """Ordinal estimate of how much an intervention will help."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InterventionType(Enum):
    PROMPT_INJECTION = "prompt_injection"
    THOUGHT_MODIFICATION = "thought_modification"
    CONTEXT_ENHANCEMENT = "context_enhancement"
    META_GUIDANCE = "meta_guidance"


class Outcome(Enum):
    """Caller-reported result of a round."""

    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"

    @property
    def success_value(self) -> float:
        return {"success": 1.0, "partial": 0.5, "failure": 0.0}[self.value]


# ============================================================================
# Plugin metadata
# ============================================================================


@dataclass(frozen=True)
class PluginMetadata:
    """Static, registration-time description of a plugin."""

    plugin_id: str
    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    capabilities: tuple[str, ...] = ()
    domains: tuple[str, ...] = ()  # empty = applies to every domain
    complexity_range: tuple[float, float] = (1.0, 10.0)
    priority: float = 50.0  # baseline, 0-100
    resource_cost: float = 0.3  # declared cognitive load, 0-1

    def __post_init__(self):
        if not self.plugin_id:
            raise ValueError("plugin_id must be a non-empty string")
        object.__setattr__(self, "capabilities", tuple(self.capabilities))
        object.__setattr__(self, "domains", tuple(self.domains))
        low, high = self.complexity_range
        if low > high:
            raise ValueError(f"complexity_range min {low} exceeds max {high}")

    def applies_to(self, context: Context) -> bool:
        """Domain and complexity applicability check."""
        if self.domains and context.domain is not None and context.domain not in self.domains:
            return False
        low, high = self.complexity_range
        return low <= context.complexity <= high


# ============================================================================
# Per-round records
# ============================================================================


@dataclass(frozen=True)
class Context:
    """Immutable input shared by every plugin in one round."""

    complexity: float = 5.0
    domain: str | None = None
    urgency: Urgency = Urgency.MEDIUM
    history: tuple[Any, ...] = ()
    confidence_level: float = 0.5
    total_thoughts: int | None = None  # session phase counter
    current_thought: str | None = None
    available_tools: tuple[str, ...] = ()
    attributes: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self):
        if not math.isfinite(self.complexity):
            raise ValueError(f"complexity must be a finite number, got {self.complexity}")
        object.__setattr__(self, "history", tuple(self.history))
        object.__setattr__(self, "available_tools", tuple(self.available_tools))
        if isinstance(self.urgency, str):
            object.__setattr__(self, "urgency", Urgency(self.urgency))
        if not isinstance(self.attributes, MappingProxyType):
            object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    @property
    def session_phase(self) -> int:
        """Thoughts so far: explicit counter, else history length, else 0."""
        return self.total_thoughts or len(self.history) or 0

    @property
    def session_length(self) -> int:
        return max(1, self.session_phase)


@dataclass(frozen=True)
class ResourceRequirements:
    cognitive_load: float = 0.0  # 0-1
    time_cost: float = 1.0  # estimated thoughts needed
    creativity_required: bool = False
    analysis_required: bool = False

    def __post_init__(self):
        if not 0.0 <= self.cognitive_load <= 1.0:
            raise ValueError(f"cognitive_load must be in [0, 1], got {self.cognitive_load}")
        if self.time_cost < 0:
            raise ValueError(f"time_cost must be >= 0, got {self.time_cost}")


@dataclass(frozen=True)
class Activation:
    """A plugin's verdict for one round."""

    should_activate: bool
    priority: float = 50.0
    confidence: float = 0.5
    reason: str = ""
    estimated_impact: ImpactLevel = ImpactLevel.MEDIUM
    resource_requirements: ResourceRequirements = field(default_factory=ResourceRequirements)

    @classmethod
    def decline(cls, reason: str = "") -> Activation:
        return cls(should_activate=False, priority=0.0, confidence=0.0, reason=reason)


@dataclass
class InterventionMetadata:
    plugin_id: str
    confidence: float = 0.5
    expected_benefit: str = ""
    side_effects: list[str] = field(default_factory=list)


@dataclass
class Intervention:
    """Opaque payload produced by an admitted plugin."""

    type: InterventionType
    content: str
    metadata: InterventionMetadata
    follow_up_needed: bool = False
    next_check_after: int | None = None
    success_metrics: list[str] = field(default_factory=list)
    failure_indicators: list[str] = field(default_factory=list)

    @property
    def plugin_id(self) -> str:
        return self.metadata.plugin_id


@dataclass(frozen=True)
class Insight:
    """A detected insight, scored for novelty and confidence (both 0-1)."""

    novelty_score: float
    confidence: float
    description: str = ""
    kind: str = ""
