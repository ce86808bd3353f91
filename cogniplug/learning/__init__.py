"""Adaptive learning: effectiveness scores and bounded pattern statistics."""

from cogniplug.learning.engine import AdaptiveLearningEngine
from cogniplug.learning.types import (
    BreakthroughSnapshot,
    InsightPattern,
    InterventionPattern,
    InterventionRecord,
    LearningData,
    OutcomeRecord,
    complexity_bucket,
)

__all__ = [
    "AdaptiveLearningEngine",
    "BreakthroughSnapshot",
    "InsightPattern",
    "InterventionPattern",
    "InterventionRecord",
    "LearningData",
    "OutcomeRecord",
    "complexity_bucket",
]
