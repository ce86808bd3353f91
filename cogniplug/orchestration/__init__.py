"""Round orchestration: activation, ranking, admission and invocation."""

from cogniplug.orchestration.admission import (
    AdmissionDecision,
    RankedCandidate,
    SkipReason,
    rank_candidates,
    select_admissible,
)
from cogniplug.orchestration.orchestrator import (
    OrchestrationEvent,
    OrchestrationResult,
    PluginOrchestrator,
)

__all__ = [
    "AdmissionDecision",
    "OrchestrationEvent",
    "OrchestrationResult",
    "PluginOrchestrator",
    "RankedCandidate",
    "SkipReason",
    "rank_candidates",
    "select_admissible",
]
