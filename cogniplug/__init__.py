"""cogniplug: adaptive admission control and learning for cognitive plugins."""

from cogniplug.config import OrchestratorConfig
from cogniplug.factory import create_orchestrator
from cogniplug.learning import AdaptiveLearningEngine
from cogniplug.orchestration import OrchestrationResult, PluginOrchestrator
from cogniplug.plugins import BasePlugin, CognitivePlugin, PluginLoader, PluginRegistry
from cogniplug.resilience import ResilienceWrapper
from cogniplug.types import (
    Activation,
    Context,
    Insight,
    Intervention,
    InterventionMetadata,
    InterventionType,
    Outcome,
    PluginMetadata,
    ResourceRequirements,
    Urgency,
)

__version__ = "0.1.0"

__all__ = [
    "Activation",
    "AdaptiveLearningEngine",
    "BasePlugin",
    "CognitivePlugin",
    "Context",
    "Insight",
    "Intervention",
    "InterventionMetadata",
    "InterventionType",
    "OrchestrationResult",
    "OrchestratorConfig",
    "Outcome",
    "PluginLoader",
    "PluginMetadata",
    "PluginOrchestrator",
    "PluginRegistry",
    "ResilienceWrapper",
    "ResourceRequirements",
    "Urgency",
]
