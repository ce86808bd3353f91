"""Wire an orchestrator together from configuration."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from cogniplug.config import OrchestratorConfig
from cogniplug.learning.engine import AdaptiveLearningEngine
from cogniplug.metrics.timing import PerformanceMonitor
from cogniplug.orchestration.orchestrator import Observer, PluginOrchestrator
from cogniplug.plugins.loader import PluginLoader
from cogniplug.plugins.registry import PluginRegistry
from cogniplug.resilience.wrapper import ResilienceWrapper

logger = logging.getLogger(__name__)


def create_orchestrator(
    config: OrchestratorConfig | None = None,
    registry: PluginRegistry | None = None,
    plugin_dirs: list[str] | None = None,
    observers: Iterable[Observer] = (),
) -> PluginOrchestrator:
    """Build an orchestrator with its own learning engine, resilience wrapper and monitor.

    Args:
        config: Settings; read from COGNIPLUG_* environment variables when omitted
        registry: Registry to use; a new empty one when omitted
        plugin_dirs: Directories whose plugin files are loaded into the registry
        observers: Event callbacks passed to the orchestrator

    Raises:
        InvalidConfiguration: if config fails validation
    """
    config = (config or OrchestratorConfig()).check()
    registry = registry if registry is not None else PluginRegistry()

    if plugin_dirs:
        stats = PluginLoader(registry).load_all(plugin_dirs)
        for error in stats["errors"]:
            logger.warning(f"Plugin load error: {error}")

    return PluginOrchestrator(
        registry,
        config=config,
        learning=AdaptiveLearningEngine.from_config(config),
        resilience=ResilienceWrapper.from_config(config),
        monitor=PerformanceMonitor(),
        observers=observers,
    )
