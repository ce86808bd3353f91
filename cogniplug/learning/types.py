"""Records and bucketed statistics owned by the adaptive learning engine.

Count fields only grow; every raw-example list is a BoundedHistory so only
the most recent N examples are retained.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from cogniplug.history import BoundedHistory

# (plugin_id, domain, complexity bucket)
EffectivenessKey = tuple[str, "str | None", int]
# (domain, complexity bucket, outcome label)
LearningKey = tuple["str | None", int, str]
# (domain, complexity bucket)
InsightKey = tuple["str | None", int]


def complexity_bucket(complexity: float, width: float = 1.0) -> int:
    """Quantize a complexity value to a bucket index (round half up)."""
    return math.floor(complexity / width + 0.5)


@dataclass(frozen=True)
class InterventionRecord:
    """One plugin's share of a reported outcome."""

    plugin_id: str
    effectiveness: float  # attributed impact
    context_complexity: float
    outcome_quality: float  # round impact score
    timestamp: str  # ISO 8601


@dataclass(frozen=True)
class BreakthroughSnapshot:
    """Context in which a high-confidence, high-novelty insight appeared."""

    domain: str | None
    complexity: float
    urgency: str
    session_phase: int
    timestamp: str


@dataclass(frozen=True)
class OutcomeRecord:
    """Entry in the recent-outcomes log."""

    domain: str | None
    bucket: int
    outcome: str
    impact_score: float
    plugin_ids: tuple[str, ...]
    timestamp: str


@dataclass
class LearningData:
    """Aggregate for one (domain, bucket, outcome) key."""

    interventions: BoundedHistory[InterventionRecord]
    count: int = 0
    total_impact: float = 0.0

    @property
    def average_impact(self) -> float:
        return self.total_impact / self.count if self.count else 0.0


@dataclass
class InterventionPattern:
    """How often a plugin fires in one (domain, bucket) and how confident it was."""

    contexts_used: BoundedHistory[str]
    success_count: int = 0
    total_count: int = 0
    typical_impact: float = 0.0

    @property
    def success_rate(self) -> float:
        return self.success_count / self.total_count if self.total_count else 0.0


@dataclass
class InsightPattern:
    """Insight statistics for one (domain, bucket)."""

    breakthrough_contexts: BoundedHistory[BreakthroughSnapshot]
    total_insights: int = 0
    insight_frequency: float = 0.0
    average_novelty: float = 0.0
