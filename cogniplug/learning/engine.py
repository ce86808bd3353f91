"""Adaptive learning engine: turns round outcomes into ranking signal.

The engine owns three kinds of state:
1. Effectiveness scores per (plugin, domain, complexity bucket), updated by
   exponential moving average and clamped to [MIN_SCORE, MAX_SCORE]
2. Bucketed statistics tables (learning data, intervention patterns, insight
   patterns) whose raw-example lists are bounded
3. A set of pending adaptation triggers dispatched to registered handlers

The orchestrator reads scores through get_effectiveness_score(); callers feed
outcomes back through the record_* entry points. Every mutation happens under
one lock so concurrent reporters cannot interleave a read-modify-write.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import asdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from cogniplug.errors import InvalidConfiguration, SerializationError
from cogniplug.history import BoundedHistory
from cogniplug.learning.types import (
    BreakthroughSnapshot,
    EffectivenessKey,
    InsightKey,
    InsightPattern,
    InterventionPattern,
    InterventionRecord,
    LearningData,
    LearningKey,
    OutcomeRecord,
    complexity_bucket,
)
from cogniplug.types import Context, Insight, Intervention, Outcome

if TYPE_CHECKING:
    from cogniplug.config import OrchestratorConfig

logger = logging.getLogger(__name__)

AdaptationHandler = Callable[[str], None]


def _noop_adaptation(trigger: str) -> None:
    """Placeholder handler: these triggers have no defined behavior yet."""
    logger.debug(f"Adaptation trigger '{trigger}' has no behavior attached")


def _now() -> str:
    return datetime.now(UTC).isoformat()


class AdaptiveLearningEngine:
    """Learns per-plugin effectiveness from reported outcomes."""

    INITIAL_SCORE = 0.5
    MIN_SCORE = 0.1
    MAX_SCORE = 1.0
    SCHEMA_VERSION = 1
    INITIAL_SUCCESS_RATE = 0.5
    INITIAL_EFFICIENCY = 0.6
    # Session-level smoothing and the levels that schedule adaptation
    SESSION_SMOOTHING = 0.1
    POOR_IMPACT_THRESHOLD = 0.3
    LOW_SESSION_THRESHOLD = 0.4
    BUILTIN_TRIGGERS = ("poor_performance", "low_success_rate", "low_efficiency")

    def __init__(
        self,
        learning_rate: float = 0.1,
        bucket_width: float = 1.0,
        success_confidence_threshold: float = 0.6,
        breakthrough_threshold: float = 0.7,
        learning_data_capacity: int = 50,
        context_signature_capacity: int = 20,
        breakthrough_capacity: int = 10,
        outcome_log_capacity: int = 200,
    ):
        """Initialize learning state.

        Args:
            learning_rate: EMA weight of the newest observation, in (0, 1]
            bucket_width: Width of one complexity bucket
            success_confidence_threshold: Intervention counts as a success above this
            breakthrough_threshold: Insight is a breakthrough when confidence and
                novelty both exceed this
            learning_data_capacity: Raw intervention records kept per learning bucket
            context_signature_capacity: Distinct context signatures kept per pattern
            breakthrough_capacity: Breakthrough snapshots kept per insight bucket
            outcome_log_capacity: Entries kept in the recent-outcomes log
        """
        if not 0.0 < learning_rate <= 1.0:
            raise InvalidConfiguration(f"learning_rate must be in (0, 1], got {learning_rate}")
        if bucket_width <= 0:
            raise InvalidConfiguration(f"bucket_width must be positive, got {bucket_width}")
        for name, cap in (
            ("learning_data_capacity", learning_data_capacity),
            ("context_signature_capacity", context_signature_capacity),
            ("breakthrough_capacity", breakthrough_capacity),
            ("outcome_log_capacity", outcome_log_capacity),
        ):
            if cap <= 0:
                raise InvalidConfiguration(f"{name} must be positive, got {cap}")

        self.learning_rate = learning_rate
        self.bucket_width = bucket_width
        self.success_confidence_threshold = success_confidence_threshold
        self.breakthrough_threshold = breakthrough_threshold
        self._learning_data_capacity = learning_data_capacity
        self._context_signature_capacity = context_signature_capacity
        self._breakthrough_capacity = breakthrough_capacity

        self._lock = threading.RLock()
        self._effectiveness: dict[EffectivenessKey, float] = {}
        self._learning_data: dict[LearningKey, LearningData] = {}
        self._intervention_patterns: dict[EffectivenessKey, InterventionPattern] = {}
        self._insight_patterns: dict[InsightKey, InsightPattern] = {}
        self._performance_metrics: dict[str, float] = {
            "recent_success_rate": self.INITIAL_SUCCESS_RATE,
            "cognitive_efficiency": self.INITIAL_EFFICIENCY,
        }
        self._outcomes: BoundedHistory[OutcomeRecord] = BoundedHistory(outcome_log_capacity)

        # Insertion-ordered set of pending triggers
        self._pending: dict[str, None] = {}
        self._handlers: dict[str, AdaptationHandler] = {
            trigger: _noop_adaptation for trigger in self.BUILTIN_TRIGGERS
        }

    @classmethod
    def from_config(cls, config: OrchestratorConfig) -> AdaptiveLearningEngine:
        return cls(
            learning_rate=config.learning_rate,
            bucket_width=config.complexity_bucket_width,
            success_confidence_threshold=config.success_confidence_threshold,
            breakthrough_threshold=config.breakthrough_threshold,
            learning_data_capacity=config.learning_data_capacity,
            context_signature_capacity=config.context_signature_capacity,
            breakthrough_capacity=config.breakthrough_capacity,
            outcome_log_capacity=config.outcome_log_capacity,
        )

    def complexity_bucket(self, complexity: float) -> int:
        return complexity_bucket(complexity, self.bucket_width)

    # --- Outcome feedback ---

    def record_outcome(
        self,
        context: Context,
        interventions: Sequence[Intervention],
        outcome: Outcome | str,
        impact_score: float,
        attribution: Mapping[str, float] | None = None,
    ) -> dict[str, float]:
        """Attribute a round's impact to the plugins that fired and update their scores.

        Without ``attribution`` the impact is split evenly per intervention (a
        plugin with two interventions receives two shares). With it, each
        firing plugin receives ``impact * weight / sum(weights)``.

        Args:
            context: Context the round ran against
            interventions: Interventions that fired in the round
            outcome: Outcome label ("success", "failure", "partial" or custom)
            impact_score: Round impact; any magnitude is accepted
            attribution: Optional plugin_id -> weight mapping

        Returns:
            Updated effectiveness score per contributing plugin
        """
        label = outcome.value if isinstance(outcome, Outcome) else str(outcome)
        bucket = self.complexity_bucket(context.complexity)
        attributed = self._attribute(interventions, impact_score, attribution)
        timestamp = _now()

        with self._lock:
            data = self._learning_data.get((context.domain, bucket, label))
            if data is None:
                data = LearningData(interventions=BoundedHistory(self._learning_data_capacity))
                self._learning_data[(context.domain, bucket, label)] = data
            data.count += 1
            data.total_impact += impact_score
            for iv in interventions:
                data.interventions.push(
                    InterventionRecord(
                        plugin_id=iv.plugin_id,
                        effectiveness=attributed.get(iv.plugin_id, 0.0),
                        context_complexity=context.complexity,
                        outcome_quality=impact_score,
                        timestamp=timestamp,
                    )
                )

            updated: dict[str, float] = {}
            for plugin_id, share in attributed.items():
                key = (plugin_id, context.domain, bucket)
                old = self._effectiveness.get(key, self.INITIAL_SCORE)
                new = old * (1 - self.learning_rate) + share * self.learning_rate
                self._effectiveness[key] = self._clamp(new)
                updated[plugin_id] = self._effectiveness[key]

            self._outcomes.push(
                OutcomeRecord(
                    domain=context.domain,
                    bucket=bucket,
                    outcome=label,
                    impact_score=impact_score,
                    plugin_ids=tuple(attributed),
                    timestamp=timestamp,
                )
            )
            self._update_session_state(label, impact_score)

        logger.debug(f"Recorded '{label}' outcome ({impact_score:.3f}) for {sorted(updated)}")
        return updated

    def record_intervention_patterns(
        self, context: Context, interventions: Iterable[Intervention]
    ) -> None:
        """Count interventions per (plugin, domain, bucket) and remember where they fired."""
        bucket = self.complexity_bucket(context.complexity)
        signature = f"{context.domain}_{bucket}_{context.urgency.value}"

        with self._lock:
            for iv in interventions:
                key = (iv.plugin_id, context.domain, bucket)
                pattern = self._intervention_patterns.get(key)
                if pattern is None:
                    pattern = InterventionPattern(
                        contexts_used=BoundedHistory(self._context_signature_capacity)
                    )
                    self._intervention_patterns[key] = pattern

                pattern.total_count += 1
                confidence = iv.metadata.confidence
                if confidence > self.success_confidence_threshold:
                    pattern.success_count += 1
                pattern.typical_impact += (confidence - pattern.typical_impact) / pattern.total_count

                if not pattern.contexts_used.contains(lambda s: s == signature):
                    pattern.contexts_used.push(signature)

    def record_insight_patterns(self, context: Context, insights: Iterable[Insight]) -> None:
        """Track insight frequency and novelty, snapshotting breakthrough contexts."""
        bucket = self.complexity_bucket(context.complexity)
        key = (context.domain, bucket)

        with self._lock:
            for insight in insights:
                pattern = self._insight_patterns.get(key)
                if pattern is None:
                    pattern = InsightPattern(
                        breakthrough_contexts=BoundedHistory(self._breakthrough_capacity)
                    )
                    self._insight_patterns[key] = pattern

                pattern.total_insights += 1
                pattern.insight_frequency = pattern.total_insights / max(1, context.session_length)
                pattern.average_novelty += (
                    insight.novelty_score - pattern.average_novelty
                ) / pattern.total_insights

                if (
                    insight.confidence > self.breakthrough_threshold
                    and insight.novelty_score > self.breakthrough_threshold
                ):
                    pattern.breakthrough_contexts.push(
                        BreakthroughSnapshot(
                            domain=context.domain,
                            complexity=context.complexity,
                            urgency=context.urgency.value,
                            session_phase=context.session_phase,
                            timestamp=_now(),
                        )
                    )

    def update_performance_metrics(
        self, interventions: Sequence[Intervention], insights: Sequence[Insight]
    ) -> None:
        with self._lock:
            self._performance_metrics["interventions_per_thought"] = float(len(interventions))
            self._performance_metrics["insights_per_thought"] = float(len(insights))

    def performance_metrics(self) -> dict[str, float]:
        with self._lock:
            return dict(self._performance_metrics)

    # --- Read paths ---

    def get_effectiveness_score(self, plugin_id: str, domain: str | None, bucket: int) -> float:
        """Current score, or INITIAL_SCORE for a key never observed."""
        with self._lock:
            return self._effectiveness.get((plugin_id, domain, bucket), self.INITIAL_SCORE)

    def effectiveness_for(self, plugin_id: str, context: Context) -> float:
        return self.get_effectiveness_score(
            plugin_id, context.domain, self.complexity_bucket(context.complexity)
        )

    def effectiveness_scores(self) -> dict[EffectivenessKey, float]:
        with self._lock:
            return dict(self._effectiveness)

    def learning_data(self, domain: str | None, bucket: int, outcome: Outcome | str) -> LearningData | None:
        label = outcome.value if isinstance(outcome, Outcome) else str(outcome)
        with self._lock:
            return self._learning_data.get((domain, bucket, label))

    def intervention_pattern(
        self, plugin_id: str, domain: str | None, bucket: int
    ) -> InterventionPattern | None:
        with self._lock:
            return self._intervention_patterns.get((plugin_id, domain, bucket))

    def insight_pattern(self, domain: str | None, bucket: int) -> InsightPattern | None:
        with self._lock:
            return self._insight_patterns.get((domain, bucket))

    def recent_outcomes(self, n: int = 20) -> list[OutcomeRecord]:
        with self._lock:
            return self._outcomes.recent(n)

    def plugin_learning_data(self, plugin_id: str) -> dict[str, Any]:
        """Everything learned about one plugin, in the shape passed to plugin.adapt()."""
        with self._lock:
            scores = {
                f"{domain}_{bucket}": score
                for (pid, domain, bucket), score in self._effectiveness.items()
                if pid == plugin_id
            }
            patterns = [
                {
                    "domain": domain,
                    "bucket": bucket,
                    "success_rate": p.success_rate,
                    "total_count": p.total_count,
                    "typical_impact": p.typical_impact,
                }
                for (pid, domain, bucket), p in self._intervention_patterns.items()
                if pid == plugin_id
            ]
        return {"plugin_id": plugin_id, "effectiveness": scores, "patterns": patterns}

    # --- Adaptation triggers ---

    def schedule_adaptation(self, trigger: str) -> None:
        with self._lock:
            self._pending[trigger] = None

    def should_adapt(self) -> bool:
        with self._lock:
            return bool(self._pending)

    def pending_adaptations(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    def register_adaptation_handler(self, trigger: str, handler: AdaptationHandler) -> None:
        """Attach behavior to a trigger name (replaces any previous handler)."""
        with self._lock:
            self._handlers[trigger] = handler

    def drain_adaptations(self) -> list[str]:
        """Dispatch every pending trigger to its handler and clear the set.

        Triggers without a handler are logged and dropped. If a handler raises,
        the triggers not yet dispatched stay pending and the error propagates.

        Returns:
            Triggers that were dispatched, in scheduling order
        """
        with self._lock:
            triggers = list(self._pending)
            self._pending.clear()
            handlers = dict(self._handlers)

        dispatched: list[str] = []
        for index, trigger in enumerate(triggers):
            handler = handlers.get(trigger)
            if handler is None:
                logger.warning(f"No handler for adaptation trigger '{trigger}', dropping")
                continue
            try:
                handler(trigger)
            except Exception:
                with self._lock:
                    for remaining in triggers[index:]:
                        self._pending[remaining] = None
                raise
            dispatched.append(trigger)
        return dispatched

    # --- Serialization ---

    def export_state(self) -> dict[str, Any]:
        """Export all learned state as JSON-compatible data."""
        with self._lock:
            return {
                "schema_version": self.SCHEMA_VERSION,
                "learning_rate": self.learning_rate,
                "bucket_width": self.bucket_width,
                "effectiveness": [
                    {"plugin_id": pid, "domain": domain, "bucket": bucket, "score": score}
                    for (pid, domain, bucket), score in self._effectiveness.items()
                ],
                "learning_data": [
                    {
                        "domain": domain,
                        "bucket": bucket,
                        "outcome": label,
                        "count": data.count,
                        "total_impact": data.total_impact,
                        "interventions": [asdict(r) for r in data.interventions],
                    }
                    for (domain, bucket, label), data in self._learning_data.items()
                ],
                "intervention_patterns": [
                    {
                        "plugin_id": pid,
                        "domain": domain,
                        "bucket": bucket,
                        "success_count": p.success_count,
                        "total_count": p.total_count,
                        "typical_impact": p.typical_impact,
                        "contexts_used": p.contexts_used.all(),
                    }
                    for (pid, domain, bucket), p in self._intervention_patterns.items()
                ],
                "insight_patterns": [
                    {
                        "domain": domain,
                        "bucket": bucket,
                        "total_insights": p.total_insights,
                        "insight_frequency": p.insight_frequency,
                        "average_novelty": p.average_novelty,
                        "breakthrough_contexts": [asdict(s) for s in p.breakthrough_contexts],
                    }
                    for (domain, bucket), p in self._insight_patterns.items()
                ],
                "outcomes": [
                    {**asdict(r), "plugin_ids": list(r.plugin_ids)} for r in self._outcomes
                ],
                "performance_metrics": dict(self._performance_metrics),
                "pending_adaptations": list(self._pending),
            }

    def import_state(self, data: Mapping[str, Any]) -> None:
        """Replace all learned state with a previous export_state() payload.

        Raises:
            SerializationError: if the payload is malformed or from another schema
        """
        version = data.get("schema_version")
        if version != self.SCHEMA_VERSION:
            raise SerializationError(f"Unsupported learning state schema: {version!r}")

        try:
            effectiveness = {
                (e["plugin_id"], e["domain"], int(e["bucket"])): self._clamp(float(e["score"]))
                for e in data.get("effectiveness", [])
            }
            learning_data = {
                (d["domain"], int(d["bucket"]), d["outcome"]): LearningData(
                    interventions=BoundedHistory.from_items(
                        (InterventionRecord(**r) for r in d["interventions"]),
                        self._learning_data_capacity,
                    ),
                    count=int(d["count"]),
                    total_impact=float(d["total_impact"]),
                )
                for d in data.get("learning_data", [])
            }
            intervention_patterns = {
                (p["plugin_id"], p["domain"], int(p["bucket"])): InterventionPattern(
                    contexts_used=BoundedHistory.from_items(
                        p["contexts_used"], self._context_signature_capacity
                    ),
                    success_count=int(p["success_count"]),
                    total_count=int(p["total_count"]),
                    typical_impact=float(p["typical_impact"]),
                )
                for p in data.get("intervention_patterns", [])
            }
            insight_patterns = {
                (p["domain"], int(p["bucket"])): InsightPattern(
                    breakthrough_contexts=BoundedHistory.from_items(
                        (BreakthroughSnapshot(**s) for s in p["breakthrough_contexts"]),
                        self._breakthrough_capacity,
                    ),
                    total_insights=int(p["total_insights"]),
                    insight_frequency=float(p["insight_frequency"]),
                    average_novelty=float(p["average_novelty"]),
                )
                for p in data.get("insight_patterns", [])
            }
            outcomes = BoundedHistory.from_items(
                (
                    OutcomeRecord(**{**r, "plugin_ids": tuple(r["plugin_ids"])})
                    for r in data.get("outcomes", [])
                ),
                self._outcomes.capacity,
            )
            metrics = {k: float(v) for k, v in data.get("performance_metrics", {}).items()}
            pending = [str(t) for t in data.get("pending_adaptations", [])]
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Malformed learning state: {e}") from e

        with self._lock:
            self._effectiveness = effectiveness
            self._learning_data = learning_data
            self._intervention_patterns = intervention_patterns
            self._insight_patterns = insight_patterns
            self._performance_metrics = metrics
            self._outcomes = outcomes
            self._pending = dict.fromkeys(pending)

        logger.info(
            f"Imported learning state: {len(effectiveness)} scores, "
            f"{len(learning_data)} learning buckets"
        )

    # --- Internals ---

    def _attribute(
        self,
        interventions: Sequence[Intervention],
        impact_score: float,
        attribution: Mapping[str, float] | None,
    ) -> dict[str, float]:
        if not interventions:
            return {}

        if attribution:
            firing = list(dict.fromkeys(iv.plugin_id for iv in interventions))
            weights = {pid: max(0.0, float(attribution.get(pid, 0.0))) for pid in firing}
            total = sum(weights.values())
            if total > 0:
                return {pid: impact_score * w / total for pid, w in weights.items()}
            logger.warning("Attribution weights sum to zero, splitting impact evenly")

        share = impact_score / len(interventions)
        attributed: dict[str, float] = {}
        for iv in interventions:
            attributed[iv.plugin_id] = attributed.get(iv.plugin_id, 0.0) + share
        return attributed

    def _update_session_state(self, label: str, impact_score: float) -> None:
        """Smooth session success and efficiency, scheduling triggers when they sag."""
        success_value = {"success": 1.0, "partial": 0.5}.get(label, 0.0)
        metrics = self._performance_metrics
        alpha = self.SESSION_SMOOTHING

        success_rate = metrics.get("recent_success_rate", self.INITIAL_SUCCESS_RATE)
        efficiency = metrics.get("cognitive_efficiency", self.INITIAL_EFFICIENCY)
        metrics["recent_success_rate"] = success_rate * (1 - alpha) + success_value * alpha
        metrics["cognitive_efficiency"] = efficiency * (1 - alpha) + impact_score * alpha

        if label == Outcome.FAILURE.value and impact_score < self.POOR_IMPACT_THRESHOLD:
            self._pending["poor_performance"] = None
        if metrics["recent_success_rate"] < self.LOW_SESSION_THRESHOLD:
            self._pending["low_success_rate"] = None
        if metrics["cognitive_efficiency"] < self.LOW_SESSION_THRESHOLD:
            self._pending["low_efficiency"] = None

    def _clamp(self, score: float) -> float:
        return max(self.MIN_SCORE, min(self.MAX_SCORE, score))
