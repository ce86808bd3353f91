"""Plugin system for cogniplug.

Provides the plugin capability interface, a metrics-tracking base class,
the conflict-aware registry and the directory loader.
"""

from __future__ import annotations

from cogniplug.plugins.base import BasePlugin, PluginMetrics
from cogniplug.plugins.interface import CognitivePlugin
from cogniplug.plugins.loader import PluginLoader
from cogniplug.plugins.registry import PluginRegistry, RegistrySnapshot

__all__ = [
    "BasePlugin",
    "CognitivePlugin",
    "PluginLoader",
    "PluginMetrics",
    "PluginRegistry",
    "RegistrySnapshot",
]
