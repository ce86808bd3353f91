"""Registry of orchestrated plugins, their conflicts and dependencies.

Instance-based so every orchestrator owns an explicitly constructed registry.
Reads are cheap snapshots; register/unregister/set_conflicts take a single
writer lock so a round never observes a half-applied mutation.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from cogniplug.errors import RegistryConflictError, UnknownPluginError

if TYPE_CHECKING:
    from cogniplug.plugins.interface import CognitivePlugin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrySnapshot:
    """Consistent view of the registry for the duration of one round."""

    plugins: tuple[CognitivePlugin, ...]
    conflicts: Mapping[str, frozenset[str]]
    dependencies: Mapping[str, tuple[str, ...]]

    def conflicts_with(self, plugin_id: str) -> frozenset[str]:
        return self.conflicts.get(plugin_id, frozenset())

    def dependencies_of(self, plugin_id: str) -> tuple[str, ...]:
        return self.dependencies.get(plugin_id, ())


class PluginRegistry:
    """Holds registered plugins and the symmetric conflict relation between them."""

    def __init__(self):
        self._plugins: dict[str, CognitivePlugin] = {}
        self._conflicts: dict[str, set[str]] = {}
        self._dependencies: dict[str, tuple[str, ...]] = {}
        self._lock = threading.RLock()

    def register(self, plugin: CognitivePlugin) -> None:
        """Register a plugin. A duplicate id replaces the earlier entry."""
        plugin_id = plugin.plugin_id
        with self._lock:
            if plugin_id in self._plugins:
                logger.warning(f"Plugin '{plugin_id}' already registered, overriding")
            self._plugins[plugin_id] = plugin
        logger.debug(f"Registered plugin: {plugin_id}")

    def unregister(self, plugin_id: str) -> bool:
        """Remove a plugin and every conflict/dependency edge touching it.

        Returns:
            False if the id was not registered
        """
        with self._lock:
            if plugin_id not in self._plugins:
                return False
            del self._plugins[plugin_id]

            for other in self._conflicts.pop(plugin_id, set()):
                self._conflicts.get(other, set()).discard(plugin_id)

            self._dependencies.pop(plugin_id, None)
            for owner, deps in list(self._dependencies.items()):
                if plugin_id in deps:
                    self._dependencies[owner] = tuple(d for d in deps if d != plugin_id)

        logger.debug(f"Unregistered plugin: {plugin_id}")
        return True

    def set_conflicts(self, plugin_id: str, conflicting_ids: Iterable[str]) -> None:
        """Declare that ``plugin_id`` cannot share a round with any of ``conflicting_ids``.

        The relation is stored in both directions. Existing conflicts are kept.

        Raises:
            RegistryConflictError: if any id is unregistered or a plugin
                is declared to conflict with itself
        """
        conflicting = list(dict.fromkeys(conflicting_ids))
        with self._lock:
            unknown = [pid for pid in [plugin_id, *conflicting] if pid not in self._plugins]
            if unknown:
                raise RegistryConflictError(plugin_id, unknown)
            if plugin_id in conflicting:
                raise RegistryConflictError(plugin_id, reason="a plugin cannot conflict with itself")

            own = self._conflicts.setdefault(plugin_id, set())
            for other in conflicting:
                own.add(other)
                self._conflicts.setdefault(other, set()).add(plugin_id)

    def conflicts_with(self, plugin_id: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._conflicts.get(plugin_id, ()))

    def set_dependencies(self, plugin_id: str, dependency_ids: Iterable[str]) -> None:
        """Require ``dependency_ids`` to be admitted earlier in the same round.

        Raises:
            UnknownPluginError: for the first unregistered id
        """
        deps = tuple(dict.fromkeys(dependency_ids))
        with self._lock:
            for pid in (plugin_id, *deps):
                if pid not in self._plugins:
                    raise UnknownPluginError(pid)
            self._dependencies[plugin_id] = deps

    def dependencies_of(self, plugin_id: str) -> tuple[str, ...]:
        with self._lock:
            return self._dependencies.get(plugin_id, ())

    def get(self, plugin_id: str) -> CognitivePlugin | None:
        with self._lock:
            return self._plugins.get(plugin_id)

    def all_plugins(self) -> list[CognitivePlugin]:
        """All registered plugins in registration order."""
        with self._lock:
            return list(self._plugins.values())

    def plugin_ids(self) -> list[str]:
        with self._lock:
            return list(self._plugins)

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            return RegistrySnapshot(
                plugins=tuple(self._plugins.values()),
                conflicts=MappingProxyType(
                    {pid: frozenset(ids) for pid, ids in self._conflicts.items() if ids}
                ),
                dependencies=MappingProxyType(dict(self._dependencies)),
            )

    def clear(self) -> None:
        """Clear all registrations. Useful for testing."""
        with self._lock:
            self._plugins.clear()
            self._conflicts.clear()
            self._dependencies.clear()
        logger.debug("Cleared all plugin registrations")

    def __contains__(self, plugin_id: object) -> bool:
        with self._lock:
            return plugin_id in self._plugins

    def __len__(self) -> int:
        with self._lock:
            return len(self._plugins)
