"""Tests for PluginRegistry: registration, conflicts, dependencies, snapshots."""

from __future__ import annotations

import threading

import pytest

from cogniplug.errors import RegistryConflictError, UnknownPluginError
from cogniplug.plugins.registry import PluginRegistry

from tests.helpers import StubPlugin


@pytest.fixture
def populated(registry: PluginRegistry) -> PluginRegistry:
    for plugin_id in ("a", "b", "c"):
        registry.register(StubPlugin(plugin_id))
    return registry


class TestRegistration:
    def test_register_and_lookup(self, registry):
        plugin = StubPlugin("a")
        registry.register(plugin)

        assert registry.get("a") is plugin
        assert "a" in registry
        assert len(registry) == 1
        assert registry.plugin_ids() == ["a"]

    def test_duplicate_register_replaces(self, registry, caplog):
        first, second = StubPlugin("a"), StubPlugin("a")
        registry.register(first)
        registry.register(second)

        assert registry.get("a") is second
        assert len(registry) == 1
        assert "already registered" in caplog.text

    def test_unregister_removes_edges(self, populated):
        populated.set_conflicts("a", ["b", "c"])
        populated.set_dependencies("c", ["b"])

        assert populated.unregister("b") is True

        assert populated.conflicts_with("a") == frozenset({"c"})
        assert populated.dependencies_of("c") == ()
        assert populated.unregister("b") is False

    def test_clear(self, populated):
        populated.set_conflicts("a", ["b"])
        populated.clear()
        assert len(populated) == 0
        assert populated.conflicts_with("a") == frozenset()


class TestConflicts:
    def test_conflicts_are_symmetric(self, populated):
        populated.set_conflicts("a", ["b"])

        assert populated.conflicts_with("a") == frozenset({"b"})
        assert populated.conflicts_with("b") == frozenset({"a"})
        assert populated.conflicts_with("c") == frozenset()

    def test_conflicts_accumulate(self, populated):
        populated.set_conflicts("a", ["b"])
        populated.set_conflicts("a", ["c"])
        assert populated.conflicts_with("a") == frozenset({"b", "c"})

    def test_unknown_id_raises(self, populated):
        with pytest.raises(RegistryConflictError) as exc_info:
            populated.set_conflicts("a", ["b", "ghost"])

        assert exc_info.value.unknown_ids == ["ghost"]
        assert populated.conflicts_with("a") == frozenset()

    def test_self_conflict_raises(self, populated):
        with pytest.raises(RegistryConflictError):
            populated.set_conflicts("a", ["a"])


class TestDependencies:
    def test_set_and_read(self, populated):
        populated.set_dependencies("c", ["a", "b", "a"])
        assert populated.dependencies_of("c") == ("a", "b")

    def test_unknown_dependency_raises(self, populated):
        with pytest.raises(UnknownPluginError):
            populated.set_dependencies("c", ["ghost"])


class TestSnapshot:
    def test_snapshot_is_isolated_from_later_mutation(self, populated):
        populated.set_conflicts("a", ["b"])
        snapshot = populated.snapshot()

        populated.register(StubPlugin("d"))
        populated.set_conflicts("a", ["c"])

        assert [p.plugin_id for p in snapshot.plugins] == ["a", "b", "c"]
        assert snapshot.conflicts_with("a") == frozenset({"b"})
        assert snapshot.dependencies_of("a") == ()

    def test_concurrent_registration_is_consistent(self, registry):
        def worker(offset: int):
            for i in range(50):
                registry.register(StubPlugin(f"p{offset}_{i}"))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 200
        assert len(registry.snapshot().plugins) == 200
