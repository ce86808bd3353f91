"""Ranking and greedy admission control.

Pure functions over one round's candidates: no plugin calls, no learning
updates. Given the same ranked list and registry snapshot, admission always
produces the same admitted set in the same order.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from cogniplug.types import Activation

if TYPE_CHECKING:
    from cogniplug.plugins.interface import CognitivePlugin
    from cogniplug.plugins.registry import RegistrySnapshot

# Float slack on the budget comparison so loads like 0.1 + 0.2 fit a 0.3 budget
BUDGET_TOLERANCE = 1e-9


class SkipReason(Enum):
    CONFLICT = "conflict"
    CAPACITY = "capacity"
    BUDGET = "budget"
    DEPENDENCY = "dependency"


@dataclass(frozen=True)
class RankedCandidate:
    """A plugin that asked to activate, with its effective ranking priority."""

    plugin: CognitivePlugin
    activation: Activation
    effective_priority: float

    @property
    def plugin_id(self) -> str:
        return self.plugin.plugin_id

    @property
    def cognitive_load(self) -> float:
        return self.activation.resource_requirements.cognitive_load


@dataclass
class AdmissionDecision:
    admitted: list[RankedCandidate] = field(default_factory=list)
    skipped: dict[str, SkipReason] = field(default_factory=dict)

    @property
    def admitted_ids(self) -> list[str]:
        return [c.plugin_id for c in self.admitted]

    @property
    def total_load(self) -> float:
        return math.fsum(c.cognitive_load for c in self.admitted)


def rank_candidates(candidates: Iterable[RankedCandidate]) -> list[RankedCandidate]:
    """Order by effective priority descending, ties broken by plugin id ascending."""
    return sorted(candidates, key=lambda c: (-c.effective_priority, c.plugin_id))


def select_admissible(
    ranked: Iterable[RankedCandidate],
    snapshot: RegistrySnapshot,
    max_concurrent: int,
    budget: float | None = None,
) -> AdmissionDecision:
    """Greedy single pass over ``ranked``.

    A candidate is admitted unless an already admitted plugin conflicts with
    it, one of its declared dependencies has not been admitted, the cap is
    reached, or its load would push the running total over ``budget``.
    Admitting a plugin excludes its whole conflict set for the rest of the
    pass.
    """
    decision = AdmissionDecision()
    excluded: set[str] = set()
    admitted_ids: set[str] = set()
    loads: list[float] = []

    for candidate in ranked:
        plugin_id = candidate.plugin_id

        if plugin_id in excluded:
            decision.skipped[plugin_id] = SkipReason.CONFLICT
            continue
        if any(dep not in admitted_ids for dep in snapshot.dependencies_of(plugin_id)):
            decision.skipped[plugin_id] = SkipReason.DEPENDENCY
            continue
        if len(decision.admitted) >= max_concurrent:
            decision.skipped[plugin_id] = SkipReason.CAPACITY
            continue
        if budget is not None:
            projected = math.fsum([*loads, candidate.cognitive_load])
            if projected > budget + BUDGET_TOLERANCE:
                decision.skipped[plugin_id] = SkipReason.BUDGET
                continue

        decision.admitted.append(candidate)
        admitted_ids.add(plugin_id)
        loads.append(candidate.cognitive_load)
        excluded |= snapshot.conflicts_with(plugin_id)

    return decision
