"""Plugin orchestrator: one admission-controlled round per call.

A round fans out activation queries to every registered plugin, ranks the
volunteers, admits a conflict-free subset within the concurrency cap and
resource budget, then fans out invocations to that subset. Each plugin call
goes through the resilience wrapper, so a slow or failing plugin costs only
its own slot in the round.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from cogniplug.config import OrchestratorConfig
from cogniplug.errors import (
    ActivationQueryFailure,
    AdmissionRequiredError,
    CircuitOpen,
    InvocationFailure,
    PluginError,
    RoundIncompleteError,
)
from cogniplug.learning.engine import AdaptiveLearningEngine
from cogniplug.metrics.timing import PerformanceMonitor, RoundTiming
from cogniplug.orchestration.admission import (
    RankedCandidate,
    SkipReason,
    rank_candidates,
    select_admissible,
)
from cogniplug.resilience.wrapper import ResilienceWrapper
from cogniplug.types import Activation, Context, Insight, Intervention, Outcome

if TYPE_CHECKING:
    from cogniplug.plugins.interface import CognitivePlugin
    from cogniplug.plugins.registry import PluginRegistry
    from cogniplug.resilience.wrapper import ErrorRecord

logger = logging.getLogger(__name__)

# (value, error) pair returned by every per-plugin task; tasks never raise
CallOutcome = tuple[Any, "Exception | None"]

InvocationFallback = Callable[
    ["CognitivePlugin", Context, Exception], "Intervention | None | Awaitable[Intervention | None]"
]


@dataclass(frozen=True)
class OrchestrationEvent:
    """Notification delivered to observers."""

    kind: str  # "round_complete", "plugin_failed" or "feedback_recorded"
    round_number: int
    payload: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


Observer = Callable[[OrchestrationEvent], None]


@dataclass
class OrchestrationResult:
    """Everything one round produced.

    ``interventions`` follow admission order (effective priority descending).
    ``failures`` holds one PluginError per plugin that failed in either phase.
    """

    round_number: int = 0
    interventions: list[Intervention] = field(default_factory=list)
    failures: list[PluginError] = field(default_factory=list)
    admitted: list[str] = field(default_factory=list)
    ranking: list[tuple[str, float]] = field(default_factory=list)
    skipped: dict[str, SkipReason] = field(default_factory=dict)
    cancelled: bool = False
    abandoned: list[str] = field(default_factory=list)
    timing: RoundTiming = field(default_factory=RoundTiming)

    @property
    def duration_ms(self) -> float:
        return self.timing.total_ms

    @property
    def failed_ids(self) -> list[str]:
        return [f.plugin_id for f in self.failures]


class PluginOrchestrator:
    """Ranks, admits and invokes plugins from a registry, learning from feedback."""

    def __init__(
        self,
        registry: PluginRegistry,
        config: OrchestratorConfig | None = None,
        learning: AdaptiveLearningEngine | None = None,
        resilience: ResilienceWrapper | None = None,
        monitor: PerformanceMonitor | None = None,
        observers: Iterable[Observer] = (),
        fallback: InvocationFallback | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            registry: Source of plugins, conflicts and dependencies
            config: Round and learning settings (validated here)
            learning: Learning engine; built from config when omitted
            resilience: Wrapper for every plugin call; built from config when omitted
            monitor: Timing sink; a fresh PerformanceMonitor when omitted
            observers: Callables notified of round, failure and feedback events
            fallback: Called with (plugin, context, error) when an invocation
                ultimately fails; a returned Intervention takes the plugin's slot

        Raises:
            InvalidConfiguration: if config fails validation
        """
        self.config = (config or OrchestratorConfig()).check()
        self.registry = registry
        self.learning = learning or AdaptiveLearningEngine.from_config(self.config)
        self.resilience = resilience or ResilienceWrapper.from_config(self.config)
        self.monitor = monitor or PerformanceMonitor()
        self._observers: list[Observer] = list(observers)
        self._fallback = fallback
        self._round = 0
        # Abandoned tasks stay referenced until their cancellation lands
        self._abandoned_tasks: set[asyncio.Task] = set()

    @property
    def rounds_completed(self) -> int:
        return self._round

    def add_observer(self, observer: Observer) -> None:
        self._observers.append(observer)

    # --- Rounds ---

    async def orchestrate(
        self,
        context: Context,
        config: OrchestratorConfig | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> OrchestrationResult:
        """Run one round against ``context``.

        Args:
            context: Shared read-only input for every plugin
            config: Per-round override of admission, timeout and deadline settings
            cancel_event: Setting it abandons in-flight calls

        Returns:
            OrchestrationResult; individual plugin failures land in ``failures``

        Raises:
            InvalidConfiguration: if the override fails validation
            AdmissionRequiredError: registry empty and require_admission set
            RoundIncompleteError: round cut short and require_complete set
        """
        cfg = config.check() if config is not None else self.config
        loop = asyncio.get_running_loop()
        deadline = None if cfg.round_deadline_s is None else loop.time() + cfg.round_deadline_s
        started = time.perf_counter()

        snapshot = self.registry.snapshot()
        self._round += 1
        result = OrchestrationResult(round_number=self._round)
        result.timing.candidates = len(snapshot.plugins)

        if not snapshot.plugins:
            if cfg.require_admission:
                raise AdmissionRequiredError("No plugins registered but admission is required")
            logger.debug(f"Round {result.round_number}: registry empty")
            return self._finish(result, started)

        # Phase 1: activation queries
        phase_start = time.perf_counter()
        activations, abandoned, cancelled = await self._collect(
            {p.plugin_id: self._query_activation(p, context, cfg) for p in snapshot.plugins},
            deadline,
            cancel_event,
        )
        result.timing.activation_ms = (time.perf_counter() - phase_start) * 1000

        candidates: list[RankedCandidate] = []
        for plugin in snapshot.plugins:
            if plugin.plugin_id not in activations:
                continue
            activation, error = activations[plugin.plugin_id]
            if error is not None:
                self._record_failure(result, ActivationQueryFailure, plugin.plugin_id, error)
            elif activation.should_activate:
                candidates.append(
                    RankedCandidate(
                        plugin=plugin,
                        activation=activation,
                        effective_priority=self.effective_priority(
                            plugin.plugin_id, activation, context, cfg
                        ),
                    )
                )

        if cancelled:
            return self._abandon(result, abandoned, started, cfg)

        # Phase 2: ranking and admission
        phase_start = time.perf_counter()
        ranked = rank_candidates(candidates)
        decision = select_admissible(
            ranked, snapshot, cfg.max_concurrent_plugins, cfg.resource_budget
        )
        result.ranking = [(c.plugin_id, c.effective_priority) for c in ranked]
        result.admitted = decision.admitted_ids
        result.skipped = decision.skipped
        result.timing.admitted = len(decision.admitted)
        result.timing.admission_ms = (time.perf_counter() - phase_start) * 1000

        if decision.skipped:
            logger.debug(
                f"Round {result.round_number}: skipped "
                + ", ".join(f"{pid} ({r.value})" for pid, r in decision.skipped.items())
            )

        # Phase 3: invocation
        phase_start = time.perf_counter()
        by_id = {c.plugin_id: c for c in decision.admitted}
        outcomes, abandoned, cancelled = await self._collect(
            {pid: self._invoke(c.plugin, context, cfg) for pid, c in by_id.items()},
            deadline,
            cancel_event,
        )
        result.timing.invocation_ms = (time.perf_counter() - phase_start) * 1000

        for plugin_id in result.admitted:
            if plugin_id not in outcomes:
                continue
            intervention, error = outcomes[plugin_id]
            if error is not None:
                failure_type = CircuitOpen if isinstance(error, CircuitOpen) else InvocationFailure
                self._record_failure(result, failure_type, plugin_id, error)
            else:
                result.interventions.append(intervention)

        if cancelled:
            return self._abandon(result, abandoned, started, cfg)
        return self._finish(result, started)

    def effective_priority(
        self,
        plugin_id: str,
        activation: Activation,
        context: Context,
        config: OrchestratorConfig | None = None,
    ) -> float:
        """Declared priority biased by learned effectiveness under the configured policy."""
        cfg = config or self.config
        if not cfg.adaptive_priority:
            return activation.priority

        effectiveness = self.learning.effectiveness_for(plugin_id, context)
        if cfg.priority_policy == "additive":
            return activation.priority + cfg.additive_priority_weight * (
                effectiveness - AdaptiveLearningEngine.INITIAL_SCORE
            )
        return activation.priority * effectiveness

    # --- Feedback ---

    async def provide_feedback(
        self,
        interventions: OrchestrationResult | Sequence[Intervention],
        outcome: Outcome | str,
        impact_score: float,
        context: Context,
        attribution: Mapping[str, float] | None = None,
        insights: Sequence[Insight] = (),
    ) -> dict[str, float]:
        """Report how a round went.

        Forwards the outcome to each contributing plugin's receive_feedback
        (failures and calls exceeding invocation_timeout_s are logged, not
        raised), then updates the learning engine when learning is enabled
        and runs any adaptation it scheduled.

        Returns:
            Updated effectiveness score per contributing plugin
        """
        if isinstance(interventions, OrchestrationResult):
            interventions = interventions.interventions
        outcome = Outcome(outcome) if isinstance(outcome, str) else outcome

        for intervention in interventions:
            plugin = self.registry.get(intervention.plugin_id)
            if plugin is None:
                continue
            try:
                await asyncio.wait_for(
                    plugin.receive_feedback(intervention, outcome, impact_score, context),
                    timeout=self.config.invocation_timeout_s,
                )
            except Exception as e:
                logger.warning(f"Plugin {plugin.plugin_id} rejected feedback: {e!r}")

        updated: dict[str, float] = {}
        if self.config.learning_enabled:
            updated = self.learning.record_outcome(
                context, interventions, outcome, impact_score, attribution
            )
            self.learning.record_intervention_patterns(context, interventions)
            if insights:
                self.learning.record_insight_patterns(context, insights)
            self.learning.update_performance_metrics(interventions, insights)

            if self.learning.should_adapt():
                await self.adapt_plugins()

        self._emit(
            "feedback_recorded",
            self._round,
            {"outcome": outcome.value, "impact_score": impact_score, "scores": dict(updated)},
        )
        return updated

    async def adapt_plugins(self) -> list[str]:
        """Dispatch pending adaptation triggers, then let each plugin adapt to what was learned.

        Returns:
            The triggers that were dispatched
        """
        triggers = self.learning.drain_adaptations()
        if not triggers:
            return triggers

        logger.info(f"Adapting plugins for triggers: {', '.join(triggers)}")
        for plugin in self.registry.all_plugins():
            try:
                await plugin.adapt(self.learning.plugin_learning_data(plugin.plugin_id))
            except Exception as e:
                logger.warning(f"Plugin {plugin.plugin_id} failed to adapt: {e!r}")
        return triggers

    # --- Observability ---

    def performance_summary(self) -> dict[str, Any]:
        """Per-plugin metrics (for plugins that expose get_metrics) plus round timing."""
        plugins: dict[str, Any] = {}
        for plugin in self.registry.all_plugins():
            get_metrics = getattr(plugin, "get_metrics", None)
            plugins[plugin.plugin_id] = get_metrics() if callable(get_metrics) else None
        return {
            "rounds": self._round,
            "plugins": plugins,
            "timing": self.monitor.summary,
            "resilience": self.resilience.get_stats(),
            "learning": self.learning.performance_metrics(),
        }

    def recent_errors(self, n: int = 10) -> list[ErrorRecord]:
        return self.resilience.recent_errors(n)

    async def shutdown(self) -> None:
        """Call each plugin's optional destroy() and drop abandoned tasks."""
        for plugin in self.registry.all_plugins():
            destroy = getattr(plugin, "destroy", None)
            if not callable(destroy):
                continue
            try:
                await destroy()
            except Exception as e:
                logger.warning(f"Plugin {plugin.plugin_id} failed to shut down: {e!r}")

        for task in list(self._abandoned_tasks):
            task.cancel()
        logger.info(f"Orchestrator shut down after {self._round} rounds")

    # --- Internals ---

    async def _query_activation(
        self, plugin: CognitivePlugin, context: Context, cfg: OrchestratorConfig
    ) -> CallOutcome:
        started = time.perf_counter()
        try:
            activation = await self.resilience.execute(
                lambda: plugin.should_activate(context),
                key=f"{plugin.plugin_id}:activation",
                timeout=cfg.activation_timeout_s,
            )
            if not isinstance(activation, Activation):
                raise TypeError(f"should_activate returned {type(activation).__name__}")
        except Exception as e:
            self._record_call(plugin.plugin_id, started, failed=True)
            return None, e
        self._record_call(plugin.plugin_id, started)
        return activation, None

    async def _invoke(
        self, plugin: CognitivePlugin, context: Context, cfg: OrchestratorConfig
    ) -> CallOutcome:
        fallback = None
        if self._fallback is not None:
            user_fallback = self._fallback

            def fallback(error: Exception, _ctx: Any) -> Any:
                return user_fallback(plugin, context, error)

        started = time.perf_counter()
        try:
            intervention = await self.resilience.execute(
                lambda: plugin.intervene(context),
                key=f"{plugin.plugin_id}:invocation",
                fallback=fallback,
                timeout=cfg.invocation_timeout_s,
            )
            if not isinstance(intervention, Intervention):
                raise TypeError(
                    f"intervene produced {type(intervention).__name__}, not an Intervention"
                )
        except Exception as e:
            self._record_call(plugin.plugin_id, started, failed=True)
            return None, e
        self._record_call(plugin.plugin_id, started)
        return intervention, None

    async def _collect(
        self,
        calls: dict[str, Awaitable[CallOutcome]],
        deadline: float | None,
        cancel_event: asyncio.Event | None,
    ) -> tuple[dict[str, CallOutcome], list[str], bool]:
        """Run calls concurrently until all finish, the deadline passes or the event is set.

        Returns:
            (outcomes by plugin id, abandoned plugin ids, whether the round was cut short)
        """
        if not calls:
            return {}, [], False

        tasks = {asyncio.ensure_future(call): plugin_id for plugin_id, call in calls.items()}
        if cancel_event is not None and cancel_event.is_set():
            for task in tasks:
                task.cancel()
            return {}, sorted(tasks.values()), True

        waiter = asyncio.ensure_future(cancel_event.wait()) if cancel_event is not None else None
        loop = asyncio.get_running_loop()
        outcomes: dict[str, CallOutcome] = {}
        pending = set(tasks)
        cut_short = False

        try:
            while pending:
                timeout = None if deadline is None else deadline - loop.time()
                if timeout is not None and timeout <= 0:
                    cut_short = True
                    break
                watched = (pending | {waiter}) if waiter is not None else pending
                done, _ = await asyncio.wait(
                    watched, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    if task is waiter:
                        continue
                    pending.discard(task)
                    outcomes[tasks[task]] = task.result()
                if waiter is not None and waiter.done():
                    cut_short = bool(pending)
                    break
                if not done:
                    cut_short = True
                    break
        finally:
            if waiter is not None:
                waiter.cancel()
            for task in pending:
                task.cancel()
                self._abandoned_tasks.add(task)
                task.add_done_callback(self._abandoned_tasks.discard)

        return outcomes, sorted(tasks[t] for t in pending), cut_short

    def _record_failure(
        self,
        result: OrchestrationResult,
        failure_type: type[PluginError],
        plugin_id: str,
        error: Exception,
    ) -> None:
        if isinstance(error, failure_type):
            failure = error
        else:
            failure = failure_type(plugin_id, f"{failure_type.phase} failed: {error!r}")
            failure.__cause__ = error
        result.failures.append(failure)
        logger.warning(f"Plugin {plugin_id} failed during {failure.phase}: {error!r}")
        self._emit(
            "plugin_failed",
            result.round_number,
            {"plugin_id": plugin_id, "phase": failure.phase, "error": failure},
        )

    def _record_call(self, plugin_id: str, started: float, failed: bool = False) -> None:
        self.monitor.record_plugin_call(
            plugin_id, (time.perf_counter() - started) * 1000, failed=failed
        )

    def _abandon(
        self,
        result: OrchestrationResult,
        abandoned: list[str],
        started: float,
        cfg: OrchestratorConfig,
    ) -> OrchestrationResult:
        result.cancelled = True
        result.abandoned = abandoned
        logger.warning(
            f"Round {result.round_number} cut short; abandoned: {', '.join(abandoned) or 'none'}"
        )
        if cfg.require_complete:
            self._finish(result, started)
            raise RoundIncompleteError(abandoned)
        return self._finish(result, started)

    def _finish(self, result: OrchestrationResult, started: float) -> OrchestrationResult:
        result.timing.total_ms = (time.perf_counter() - started) * 1000
        self.monitor.record_round(result.timing, cancelled=result.cancelled)
        self._emit(
            "round_complete",
            result.round_number,
            {
                "admitted": list(result.admitted),
                "interventions": len(result.interventions),
                "failures": len(result.failures),
                "cancelled": result.cancelled,
            },
        )
        return result

    def _emit(self, kind: str, round_number: int, payload: Mapping[str, Any]) -> None:
        event = OrchestrationEvent(kind, round_number, MappingProxyType(dict(payload)))
        for observer in self._observers:
            try:
                observer(event)
            except Exception as e:
                logger.warning(f"Observer failed on {kind}: {e!r}")
